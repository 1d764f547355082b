"""Shape heuristics for cross-checking recognized symbols.

These are advisory per-frame filters: when enabled, a symbol the OCR engine
accepted is dropped if the ink on the frame does not look like that symbol.

Rules (ink = pixels below 128):
    - Aspect ratio: ink bounding-box width/height within the symbol's range
    - Stroke transitions: the busiest horizontal scanline crosses between ink
      and background a plausible number of times
    - Symmetry: glyphs flagged symmetric must mirror about their vertical axis
"""

import logging
from typing import Optional, Tuple

import numpy as np

from qrggif.common.alphabet import get_spec
from qrggif.common.config_loader import RecognitionConfig

logger = logging.getLogger(__name__)

INK_LEVEL = 128


def ink_bounding_box(binary: np.ndarray) -> Optional[Tuple[int, int, int, int]]:
    """Get the (x0, y0, x1, y1) box around ink pixels, exclusive at x1/y1."""
    ink = binary < INK_LEVEL
    rows = np.flatnonzero(ink.any(axis=1))
    cols = np.flatnonzero(ink.any(axis=0))
    if rows.size == 0:
        return None
    return int(cols[0]), int(rows[0]), int(cols[-1]) + 1, int(rows[-1]) + 1


def ink_aspect_ratio(binary: np.ndarray) -> Optional[float]:
    """Width/height of the ink bounding box, or None without ink."""
    box = ink_bounding_box(binary)
    if box is None:
        return None
    x0, y0, x1, y1 = box
    return (x1 - x0) / (y1 - y0)


def max_stroke_transitions(binary: np.ndarray) -> int:
    """Most ink/background changes along any single horizontal scanline."""
    if binary.shape[1] < 2:
        return 0
    ink = binary < INK_LEVEL
    per_row = np.count_nonzero(ink[:, 1:] != ink[:, :-1], axis=1)
    return int(per_row.max()) if per_row.size else 0


def symmetry_score(gray: np.ndarray, tolerance: int = 30) -> float:
    """Fraction of mirrored pixel pairs whose intensities differ by less than ``tolerance``.

    The score is computed on the ink bounding box so off-centre glyphs are
    not penalized; without ink the whole raster is used.
    """
    box = ink_bounding_box(gray)
    if box is not None:
        x0, y0, x1, y1 = box
        gray = gray[y0:y1, x0:x1]

    half = gray.shape[1] // 2
    if half == 0:
        return 1.0
    left = gray[:, :half].astype(np.int16)
    right = gray[:, ::-1][:, :half].astype(np.int16)
    return float(np.mean(np.abs(left - right) < tolerance))


class ShapeRules:
    """Applies the shape heuristics with configured limits.

    Args:
        config: Recognition configuration holding the rule limits
    """

    def __init__(self, config: Optional[RecognitionConfig] = None):
        self.config = config or RecognitionConfig()

    def check(self, symbol: str, pixels: np.ndarray) -> Optional[str]:
        """Check a recognized symbol against the frame's ink.

        Args:
            symbol: Symbol the engine reported
            pixels: Preprocessed (H, W) raster

        Returns:
            None if every rule passes, otherwise a description of the failure
        """
        if pixels is None or pixels.ndim != 2 or pixels.size == 0:
            return "raster is not a 2-D image"

        spec = get_spec(symbol)
        if spec is None:
            return f"'{symbol}' has no shape rules"

        if spec.aspect_ratio is not None:
            ratio = ink_aspect_ratio(pixels)
            low, high = spec.aspect_ratio
            if ratio is None or not low <= ratio <= high:
                return f"aspect ratio {ratio} outside [{low}, {high}]"

        transitions = max_stroke_transitions(pixels)
        cfg = self.config
        if not cfg.stroke_transitions_min <= transitions <= cfg.stroke_transitions_max:
            return (
                f"{transitions} stroke transitions outside "
                f"[{cfg.stroke_transitions_min}, {cfg.stroke_transitions_max}]"
            )

        if spec.symmetric:
            score = symmetry_score(pixels, cfg.symmetry_tolerance)
            if score <= cfg.symmetry_threshold:
                return f"symmetry {score:.2f} <= {cfg.symmetry_threshold:.2f}"

        return None
