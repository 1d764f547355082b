"""Configuration loader with Pydantic validation for the QRGGIF pipeline.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values.
"""

import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


class AnimationConfig(BaseModel):
    """Animation container constraints.

    Attributes:
        min_frames: Minimum number of frames a credential animation may have
        max_frames: Maximum number of frames a credential animation may have
    """

    min_frames: int = Field(default=3, ge=1)
    max_frames: int = Field(default=8, ge=1)

    @model_validator(mode="after")
    def _check_range(self) -> "AnimationConfig":
        if self.min_frames > self.max_frames:
            raise ValueError(
                f"min_frames ({self.min_frames}) must not exceed "
                f"max_frames ({self.max_frames})"
            )
        return self


class PreprocessingConfig(BaseModel):
    """Frame preprocessing configuration.

    Attributes:
        threshold_method: "otsu" (global) or "adaptive" (local mean) binarization
        adaptive_block_size: Neighbourhood size for adaptive thresholding (odd)
        adaptive_c: Constant subtracted from the local mean
        scale_factor: Integer nearest-neighbour upscale factor
        background_level: Grey level transparent pixels are flattened onto
        enable_edge_detection: Apply Sobel edge magnitude after scaling
        morphology: Optional "dilate" or "erode" pass after scaling
        morphology_kernel_size: Square kernel size for the morphology pass
        enable_thinning: Thin dark strokes to one-pixel skeletons
    """

    threshold_method: Literal["otsu", "adaptive"] = "otsu"
    adaptive_block_size: int = Field(default=11, ge=3)
    adaptive_c: int = 2
    scale_factor: int = Field(default=2, ge=1)
    background_level: int = Field(default=255, ge=0, le=255)
    enable_edge_detection: bool = False
    morphology: Optional[Literal["dilate", "erode"]] = None
    morphology_kernel_size: int = Field(default=3, ge=1)
    enable_thinning: bool = False

    @field_validator("adaptive_block_size")
    @classmethod
    def _odd_block_size(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError(f"adaptive_block_size must be odd, got {v}")
        return v


class EngineConfig(BaseModel):
    """Tesseract engine configuration.

    Attributes:
        lang: Tesseract language model to load
        psm: Page segmentation mode (10 = single character)
        oem: OCR engine mode (1 = LSTM only)
        tesseract_cmd: Optional path to the tesseract binary
        timeout_s: Per-call timeout in seconds (0 disables the timeout)
    """

    lang: str = "eng"
    psm: int = Field(default=10, ge=0, le=13)
    oem: int = Field(default=1, ge=0, le=3)
    tesseract_cmd: Optional[str] = None
    timeout_s: float = Field(default=0, ge=0)


class RecognitionConfig(BaseModel):
    """Symbol acceptance and shape-rule configuration.

    Attributes:
        min_confidence: Confidence a result must strictly exceed (0-100)
        history_size: Recent accepted symbols kept per recognition slot
        enable_shape_rules: Cross-check accepted symbols with shape heuristics
        stroke_transitions_min: Minimum ink transitions on the busiest scanline
        stroke_transitions_max: Maximum ink transitions on the busiest scanline
        symmetry_threshold: Minimum mirror-symmetry score for symmetric glyphs
        symmetry_tolerance: Intensity difference still counted as symmetric
    """

    min_confidence: float = Field(default=70.0, ge=0.0, le=100.0)
    history_size: int = Field(default=5, ge=1)
    enable_shape_rules: bool = False
    stroke_transitions_min: int = Field(default=2, ge=0)
    stroke_transitions_max: int = Field(default=8, ge=0)
    symmetry_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    symmetry_tolerance: int = Field(default=30, ge=0, le=255)


class CacheConfig(BaseModel):
    """Result cache configuration.

    Attributes:
        capacity: Maximum number of live entries
        ttl_ms: Entry lifetime in milliseconds
        store_artifacts: Keep intermediate preprocessing rasters
    """

    capacity: int = Field(default=100, ge=1)
    ttl_ms: int = Field(default=3_600_000, gt=0)
    store_artifacts: bool = False


class VerificationConfig(BaseModel):
    """Fingerprint verification service configuration.

    Attributes:
        url: Endpoint accepting {"animation_hash": ...}
        timeout_s: HTTP timeout in seconds
    """

    url: str = "http://localhost:3000/api/validate-qrg"
    timeout_s: float = Field(default=10.0, gt=0)


class Config(BaseModel):
    """Root configuration container."""

    animation: AnimationConfig = Field(default_factory=AnimationConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    recognition: RecognitionConfig = Field(default_factory=RecognitionConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)


def load_config(config_path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("qrggif/common/config.yaml"))
        >>> print(config.recognition.min_confidence)
        70.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.debug(f"Loading QRGGIF config from {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    return Config(**config_dict)


def get_default_config() -> Config:
    """Get default configuration from the bundled config.yaml file.

    Returns:
        Config loaded from qrggif/common/config.yaml, or model defaults if the
        file is missing
    """
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    logger.warning(
        f"Bundled config not found at {DEFAULT_CONFIG_PATH}, using built-in defaults"
    )
    return Config()
