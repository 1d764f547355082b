"""Frame preprocessing for symbol recognition."""

from .filters import (
    adaptive_threshold,
    apply_morphology,
    binarize,
    equalize_histogram,
    median_filter,
    otsu_threshold,
    sobel_magnitude,
    thin_strokes,
    to_grayscale,
    upscale,
)
from .processor import FramePreprocessor, is_degenerate
from .types import PreprocessedImage

__all__ = [
    "FramePreprocessor",
    "PreprocessedImage",
    "is_degenerate",
    "adaptive_threshold",
    "apply_morphology",
    "binarize",
    "equalize_histogram",
    "median_filter",
    "otsu_threshold",
    "sobel_magnitude",
    "thin_strokes",
    "to_grayscale",
    "upscale",
]
