"""Type definitions for frame preprocessing."""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np


@dataclass
class PreprocessedImage:
    """Raster prepared for OCR, derived from exactly one composed frame.

    Attributes:
        source_index: Ordinal of the frame it was derived from
        pixels: Processed raster, (H, W) uint8 for normal frames; degenerate
            inputs are passed through untouched
        threshold: Otsu threshold used for binarization (None for adaptive
            thresholding or degenerate input)
        stages: Intermediate rasters by stage name, filled only on request
    """

    source_index: int
    pixels: np.ndarray
    threshold: Optional[int] = None
    stages: Dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def width(self) -> int:
        """Raster width in pixels."""
        return int(self.pixels.shape[1]) if self.pixels.ndim >= 2 else 0

    @property
    def height(self) -> int:
        """Raster height in pixels."""
        return int(self.pixels.shape[0]) if self.pixels.ndim >= 1 else 0
