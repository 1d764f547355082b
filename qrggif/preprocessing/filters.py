"""Image filters for symbol legibility.

All filters take and return 2-D uint8 grayscale arrays, except
``to_grayscale`` which accepts RGBA/RGB/gray input. Binary images use 0 for
ink and 255 for background.

Fixed pipeline filters:
    - otsu_threshold / binarize: global binarization
    - median_filter: 3x3 median on interior pixels
    - equalize_histogram: CDF-based contrast stretch
    - upscale: integer nearest-neighbour resize

Optional filters:
    - adaptive_threshold: local mean binarization
    - sobel_magnitude: edge emphasis
    - apply_morphology: 3x3 dilate / erode
    - thin_strokes: Zhang-Suen skeletonization of dark strokes
"""

import cv2
import numpy as np


def to_grayscale(pixels: np.ndarray, background_level: int = 255) -> np.ndarray:
    """Convert a raster to grayscale as the rounded mean of R, G and B.

    RGBA input is first flattened onto a uniform ``background_level`` so that
    transparent canvas areas read as background rather than black.

    Args:
        pixels: (H, W, 4) RGBA, (H, W, 3) RGB or (H, W) gray uint8 array
        background_level: Grey level under transparent pixels

    Returns:
        (H, W) uint8 grayscale array
    """
    if pixels.ndim == 2:
        return pixels.astype(np.uint8, copy=True)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError(f"Expected (H, W), (H, W, 3) or (H, W, 4) image, got {pixels.shape}")

    rgb = pixels[..., :3].astype(np.uint32)
    if pixels.shape[2] == 4:
        alpha = pixels[..., 3:4].astype(np.uint32)
        rgb = (rgb * alpha + background_level * (255 - alpha) + 127) // 255

    # Mean of three integers never lands on .5, so (sum + 1) // 3 rounds to nearest
    gray = (rgb.sum(axis=2) + 1) // 3
    return gray.astype(np.uint8)


def otsu_threshold(gray: np.ndarray) -> int:
    """Compute Otsu's global threshold.

    Maximizes the between-class variance ``wB * wF * (mB - mF)^2`` over all
    split points where both classes are non-empty. Ties resolve to the lowest
    threshold; a single-valued image yields 0.

    Args:
        gray: (H, W) uint8 grayscale image

    Returns:
        Threshold in [0, 255]; pixels strictly above it are background
    """
    hist = np.bincount(gray.ravel(), minlength=256).astype(np.float64)
    levels = np.arange(256, dtype=np.float64)
    total = hist.sum()
    total_sum = (levels * hist).sum()

    weight_b = np.cumsum(hist)
    weight_f = total - weight_b
    sum_b = np.cumsum(levels * hist)

    valid = (weight_b > 0) & (weight_f > 0)
    mean_b = np.divide(sum_b, weight_b, out=np.zeros(256), where=weight_b > 0)
    mean_f = np.divide(total_sum - sum_b, weight_f, out=np.zeros(256), where=weight_f > 0)
    variance = np.where(valid, weight_b * weight_f * (mean_b - mean_f) ** 2, 0.0)

    return int(np.argmax(variance))


def binarize(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Map pixels above ``threshold`` to 255 and the rest to 0."""
    return np.where(gray > threshold, 255, 0).astype(np.uint8)


def adaptive_threshold(gray: np.ndarray, block_size: int = 11, c: int = 2) -> np.ndarray:
    """Binarize against the mean of each pixel's ``block_size`` neighbourhood."""
    return cv2.adaptiveThreshold(
        gray,
        255,
        cv2.ADAPTIVE_THRESH_MEAN_C,
        cv2.THRESH_BINARY,
        block_size,
        c,
    )


def median_filter(gray: np.ndarray) -> np.ndarray:
    """Apply a 3x3 median filter to interior pixels.

    The outermost rows and columns keep their original values.
    """
    result = gray.copy()
    height, width = gray.shape
    if height < 3 or width < 3:
        return result

    filtered = cv2.medianBlur(np.ascontiguousarray(gray), 3)
    result[1:-1, 1:-1] = filtered[1:-1, 1:-1]
    return result


def equalize_histogram(gray: np.ndarray) -> np.ndarray:
    """Stretch intensities through the cumulative histogram.

    Each value ``v`` maps to ``round((cdf[v] - cdf_min) / (cdf_max - cdf_min) * 255)``
    with halves rounded up. An image whose CDF is flat across its used range
    (a single distinct value) is returned unchanged.
    """
    if gray.size == 0:
        return gray.copy()

    cdf = np.cumsum(np.bincount(gray.ravel(), minlength=256))
    cdf_min = cdf[cdf > 0][0]
    cdf_max = cdf[-1]
    if cdf_max == cdf_min:
        return gray.copy()

    lut = np.floor((cdf - cdf_min) / (cdf_max - cdf_min) * 255.0 + 0.5)
    lut = np.clip(lut, 0, 255).astype(np.uint8)
    return lut[gray]


def upscale(gray: np.ndarray, factor: int = 2) -> np.ndarray:
    """Enlarge by an integer factor with nearest-neighbour sampling."""
    if factor == 1:
        return gray.copy()
    height, width = gray.shape
    return cv2.resize(
        gray, (width * factor, height * factor), interpolation=cv2.INTER_NEAREST
    )


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """Gradient magnitude of 3x3 Sobel derivatives, clipped to 255."""
    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
    magnitude = np.sqrt(gx * gx + gy * gy)
    return np.clip(magnitude, 0, 255).astype(np.uint8)


def apply_morphology(gray: np.ndarray, operation: str, kernel_size: int = 3) -> np.ndarray:
    """Dilate (local max) or erode (local min) with a square kernel.

    Raises:
        ValueError: If ``operation`` is not "dilate" or "erode"
    """
    kernel = np.ones((kernel_size, kernel_size), dtype=np.uint8)
    if operation == "dilate":
        return cv2.dilate(gray, kernel)
    if operation == "erode":
        return cv2.erode(gray, kernel)
    raise ValueError(f"Unknown morphology operation: {operation}")


def thin_strokes(binary: np.ndarray) -> np.ndarray:
    """Reduce dark strokes to one-pixel skeletons (Zhang-Suen).

    Pixels below 128 are ink. Output is binary: 0 for skeleton, 255 elsewhere.
    """
    image = np.pad((binary < 128).astype(np.uint8), 1)

    while True:
        changed = False
        for sub_iteration in (0, 1):
            p1 = image[1:-1, 1:-1]
            p2 = image[:-2, 1:-1]
            p3 = image[:-2, 2:]
            p4 = image[1:-1, 2:]
            p5 = image[2:, 2:]
            p6 = image[2:, 1:-1]
            p7 = image[2:, :-2]
            p8 = image[1:-1, :-2]
            p9 = image[:-2, :-2]

            ring = [p2, p3, p4, p5, p6, p7, p8, p9, p2]
            neighbours = sum(p.astype(np.int32) for p in ring[:-1])
            transitions = sum(
                ((ring[i] == 0) & (ring[i + 1] == 1)).astype(np.int32) for i in range(8)
            )

            if sub_iteration == 0:
                first = (p2 * p4 * p6) == 0
                second = (p4 * p6 * p8) == 0
            else:
                first = (p2 * p4 * p8) == 0
                second = (p2 * p6 * p8) == 0

            remove = (
                (p1 == 1)
                & (neighbours >= 2)
                & (neighbours <= 6)
                & (transitions == 1)
                & first
                & second
            )
            if remove.any():
                p1[remove] = 0
                changed = True

        if not changed:
            break

    return np.where(image[1:-1, 1:-1] == 1, 0, 255).astype(np.uint8)
