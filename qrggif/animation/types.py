"""Data types for animation decoding and compositing.

Rasters are numpy uint8 arrays in RGBA channel order with shape (H, W, 4).
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

import numpy as np


class DisposalMethod(Enum):
    """How the canvas is treated after a frame has been displayed."""

    NONE = 0  # Unspecified, leave the canvas as is
    DO_NOT_DISPOSE = 1  # Leave the frame in place
    RESTORE_BACKGROUND = 2  # Clear the frame rectangle to transparent
    RESTORE_PREVIOUS = 3  # Roll back to the canvas before this frame

    @classmethod
    def from_code(cls, code: int) -> "DisposalMethod":
        """Map a GIF disposal code to a method.

        Codes 4-7 are reserved by the format and treated as NONE.
        """
        try:
            return cls(code)
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class RawAnimation:
    """Encoded animation bytes plus the canvas size the caller expects.

    Attributes:
        data: Raw container bytes (GIF87a / GIF89a)
        width: Declared canvas width, None to trust the container
        height: Declared canvas height, None to trust the container
    """

    data: bytes
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_path(cls, path: Path) -> "RawAnimation":
        """Read an animation file from disk."""
        return cls(data=Path(path).read_bytes())


@dataclass
class Frame:
    """One decoded frame patch before compositing.

    Attributes:
        index: Zero-based frame ordinal
        width: Patch width in pixels
        height: Patch height in pixels
        left_offset: Patch x position on the canvas
        top_offset: Patch y position on the canvas
        disposal_method: What to do with the canvas after this frame
        delay_ms: Display duration in milliseconds
        pixels: RGBA patch (height, width, 4); transparent pixels have alpha 0
    """

    index: int
    width: int
    height: int
    left_offset: int
    top_offset: int
    disposal_method: DisposalMethod
    delay_ms: int
    pixels: np.ndarray


@dataclass
class ComposedFrame:
    """Full-canvas RGBA raster after applying one frame's patch.

    Attributes:
        index: Ordinal of the source frame
        pixels: RGBA canvas (height, width, 4)
        delay_ms: Display duration inherited from the source frame
    """

    index: int
    pixels: np.ndarray
    delay_ms: int = 0

    @property
    def width(self) -> int:
        """Canvas width in pixels."""
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        """Canvas height in pixels."""
        return int(self.pixels.shape[0])


@dataclass
class DecodedAnimation:
    """Container-level decode output.

    Attributes:
        width: Logical screen width
        height: Logical screen height
        frames: Frame patches in display order
        background_index: Background colour index from the screen descriptor
        loop_count: NETSCAPE loop count if present (0 = forever)
    """

    width: int
    height: int
    frames: List[Frame] = field(default_factory=list)
    background_index: int = 0
    loop_count: Optional[int] = None
