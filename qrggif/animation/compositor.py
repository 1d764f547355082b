"""Frame compositor with disposal-method semantics.

Turns decoded frame patches into full-canvas rasters. The canvas starts fully
transparent; each patch is drawn at its offset (pixels outside the canvas are
clipped, transparent patch pixels leave the canvas untouched), a copy of the
canvas is emitted, and then the frame's disposal method prepares the canvas
for the next frame.

Each disposal method has one handler with the signature
``(canvas, frame, snapshot) -> next canvas``:

- NONE / DO_NOT_DISPOSE: keep the canvas
- RESTORE_BACKGROUND: clear the frame rectangle to transparent
- RESTORE_PREVIOUS: return the snapshot taken before the patch was drawn

Example:
    >>> compositor = FrameCompositor()
    >>> frames = compositor.compose(RawAnimation(data=gif_bytes))
    >>> frames[0].pixels.shape
    (400, 400, 4)
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .gif_decoder import decode_gif
from .types import ComposedFrame, DisposalMethod, Frame, RawAnimation

logger = logging.getLogger(__name__)

DisposalHandler = Callable[[np.ndarray, Frame, Optional[np.ndarray]], np.ndarray]


def new_canvas(width: int, height: int) -> np.ndarray:
    """Create a fully transparent RGBA canvas."""
    return np.zeros((height, width, 4), dtype=np.uint8)


def _clip(
    frame: Frame, canvas_width: int, canvas_height: int
) -> Optional[Tuple[slice, slice, slice, slice]]:
    """Intersect a frame rectangle with the canvas.

    Returns:
        (canvas rows, canvas cols, patch rows, patch cols) slices, or None if
        the patch lies entirely outside the canvas
    """
    x0 = max(frame.left_offset, 0)
    y0 = max(frame.top_offset, 0)
    x1 = min(frame.left_offset + frame.width, canvas_width)
    y1 = min(frame.top_offset + frame.height, canvas_height)
    if x0 >= x1 or y0 >= y1:
        return None

    px0 = x0 - frame.left_offset
    py0 = y0 - frame.top_offset
    return (
        slice(y0, y1),
        slice(x0, x1),
        slice(py0, py0 + (y1 - y0)),
        slice(px0, px0 + (x1 - x0)),
    )


def apply_patch(canvas: np.ndarray, frame: Frame) -> np.ndarray:
    """Draw a frame patch onto a copy of the canvas.

    Args:
        canvas: Current RGBA canvas (H, W, 4)
        frame: Frame whose patch to draw

    Returns:
        New canvas with the patch applied
    """
    result = canvas.copy()
    regions = _clip(frame, canvas.shape[1], canvas.shape[0])
    if regions is None:
        logger.debug(f"Frame {frame.index} lies entirely outside the canvas")
        return result

    rows, cols, patch_rows, patch_cols = regions
    patch = frame.pixels[patch_rows, patch_cols]
    target = result[rows, cols]
    opaque = patch[..., 3] > 0
    target[opaque] = patch[opaque]
    return result


def _keep(canvas: np.ndarray, frame: Frame, snapshot: Optional[np.ndarray]) -> np.ndarray:
    return canvas


def _restore_background(
    canvas: np.ndarray, frame: Frame, snapshot: Optional[np.ndarray]
) -> np.ndarray:
    result = canvas.copy()
    regions = _clip(frame, canvas.shape[1], canvas.shape[0])
    if regions is not None:
        rows, cols, _, _ = regions
        result[rows, cols] = 0
    return result


def _restore_previous(
    canvas: np.ndarray, frame: Frame, snapshot: Optional[np.ndarray]
) -> np.ndarray:
    if snapshot is None:
        return canvas
    return snapshot.copy()


DISPOSAL_HANDLERS: Dict[DisposalMethod, DisposalHandler] = {
    DisposalMethod.NONE: _keep,
    DisposalMethod.DO_NOT_DISPOSE: _keep,
    DisposalMethod.RESTORE_BACKGROUND: _restore_background,
    DisposalMethod.RESTORE_PREVIOUS: _restore_previous,
}


class FrameCompositor:
    """Composites frame patches into full-canvas frames.

    Attributes:
        accumulation_buffer: Canvas state handed to the frame after the last
            composed one (None before the first compose call)
    """

    def __init__(self):
        self.accumulation_buffer: Optional[np.ndarray] = None

    def compose(self, raw: RawAnimation) -> List[ComposedFrame]:
        """Decode an animation and composite every frame.

        Args:
            raw: Encoded animation bytes with optional declared canvas size

        Returns:
            One ComposedFrame per input frame, in order

        Raises:
            DecodeError: If the container cannot be parsed or has no frames
        """
        decoded = decode_gif(raw.data)

        if raw.width is not None and raw.height is not None:
            if (raw.width, raw.height) != (decoded.width, decoded.height):
                logger.warning(
                    f"Declared canvas {raw.width}x{raw.height} differs from "
                    f"logical screen {decoded.width}x{decoded.height}, "
                    f"using logical screen"
                )

        return self.composite_frames(decoded.width, decoded.height, decoded.frames)

    def composite_frames(
        self, width: int, height: int, frames: Sequence[Frame]
    ) -> List[ComposedFrame]:
        """Composite already-decoded frames onto a width x height canvas."""
        canvas = new_canvas(width, height)
        composed: List[ComposedFrame] = []

        for frame in frames:
            snapshot = (
                canvas.copy()
                if frame.disposal_method == DisposalMethod.RESTORE_PREVIOUS
                else None
            )
            canvas = apply_patch(canvas, frame)
            composed.append(
                ComposedFrame(index=frame.index, pixels=canvas.copy(), delay_ms=frame.delay_ms)
            )
            canvas = DISPOSAL_HANDLERS[frame.disposal_method](canvas, frame, snapshot)

        self.accumulation_buffer = canvas
        logger.debug(f"Composited {len(composed)} frames on {width}x{height} canvas")
        return composed
