"""Deterministic frame preprocessing pipeline.

Fixed step order:
    1. THRESHOLD: Otsu global (or adaptive local) binarization
    2. DENOISE: 3x3 median filter on interior pixels
    3. CONTRAST: histogram equalization
    4. SCALE: integer nearest-neighbour upscale

Then, when configured: Sobel edges, dilate/erode, stroke thinning.

Example:
    >>> preprocessor = FramePreprocessor(PreprocessingConfig())
    >>> image = preprocessor.preprocess(composed_frame)
    >>> image.pixels.shape
    (800, 800)
"""

import logging
from typing import Dict, Optional

import numpy as np

from qrggif.animation.types import ComposedFrame
from qrggif.common.config_loader import PreprocessingConfig

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
from .types import PreprocessedImage

logger = logging.getLogger(__name__)


def is_degenerate(pixels: Optional[np.ndarray]) -> bool:
    """Check if a raster is empty or a single pixel."""
    if pixels is None or pixels.size == 0 or pixels.ndim < 2:
        return True
    return pixels.shape[0] * pixels.shape[1] <= 1


class FramePreprocessor:
    """Applies the legibility pipeline to composed frames.

    Args:
        config: Preprocessing configuration (defaults if None)
    """

    def __init__(self, config: Optional[PreprocessingConfig] = None):
        self.config = config or PreprocessingConfig()

    def preprocess(
        self, frame: ComposedFrame, keep_stages: bool = False
    ) -> PreprocessedImage:
        """Preprocess one composed frame.

        Args:
            frame: Full-canvas RGBA frame
            keep_stages: Return every intermediate raster in ``stages``

        Returns:
            PreprocessedImage tied to the frame's ordinal
        """
        return self.preprocess_array(frame.pixels, frame.index, keep_stages)

    def preprocess_array(
        self, pixels: np.ndarray, source_index: int = 0, keep_stages: bool = False
    ) -> PreprocessedImage:
        """Preprocess a raw RGBA/RGB/gray raster (e.g., a camera capture)."""
        if is_degenerate(pixels):
            logger.debug(
                f"Frame {source_index}: degenerate raster "
                f"{None if pixels is None else pixels.shape}, passing through"
            )
            return PreprocessedImage(source_index=source_index, pixels=pixels)

        cfg = self.config
        stages: Dict[str, np.ndarray] = {}

        gray = to_grayscale(pixels, cfg.background_level)

        threshold: Optional[int] = None
        if cfg.threshold_method == "adaptive":
            image = adaptive_threshold(gray, cfg.adaptive_block_size, cfg.adaptive_c)
        else:
            threshold = otsu_threshold(gray)
            image = binarize(gray, threshold)
        stages["threshold"] = image

        image = median_filter(image)
        stages["denoise"] = image

        image = equalize_histogram(image)
        stages["contrast"] = image

        image = upscale(image, cfg.scale_factor)
        stages["scale"] = image

        if cfg.enable_edge_detection:
            image = sobel_magnitude(image)
            stages["edges"] = image

        if cfg.morphology is not None:
            image = apply_morphology(image, cfg.morphology, cfg.morphology_kernel_size)
            stages["morphology"] = image

        if cfg.enable_thinning:
            image = thin_strokes(image)
            stages["thinned"] = image

        logger.debug(
            f"Frame {source_index}: preprocessed {gray.shape} -> {image.shape} "
            f"(threshold={threshold}, method={cfg.threshold_method})"
        )

        return PreprocessedImage(
            source_index=source_index,
            pixels=image,
            threshold=threshold,
            stages=stages if keep_stages else {},
        )
