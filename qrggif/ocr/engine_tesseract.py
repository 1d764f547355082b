"""Tesseract OCR engine wrapper for single-symbol recognition.

The engine is configured for single-character page segmentation and a
whitelist restricted to the approved alphabet. Initialization (binary and
language model check) is expensive, so it happens lazily on first use, at most
once per handle, and ``terminate`` releases the handle idempotently.

Pipelines receive an engine handle explicitly. ``get_shared_engine`` hands out
one process-wide handle for callers that want a single engine across runs;
it stays initialized until its last holder calls ``release_shared_engine``.

Example:
    >>> with TesseractSymbolEngine(EngineConfig()) as engine:
    ...     result = engine.extract_symbol(image)
    ...     print(result.text, result.confidence)
    'ℍ' 91.0
"""

import logging
from typing import List, Optional

import cv2
import numpy as np
import pytesseract

from qrggif.common.alphabet import APPROVED_ALPHABET
from qrggif.common.config_loader import EngineConfig
from qrggif.common.errors import EngineUnavailable

from .types import OCREngineResult

logger = logging.getLogger(__name__)


class TesseractSymbolEngine:
    """Owned handle to a configured Tesseract engine.

    Args:
        config: Engine configuration (defaults if None)
        whitelist: Characters Tesseract may output

    Attributes:
        config: Engine configuration instance
        whitelist: Character whitelist passed to Tesseract
        version: Tesseract version, set after initialization
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        whitelist: str = APPROVED_ALPHABET,
    ):
        self.config = config or EngineConfig()
        self.whitelist = whitelist
        self.version = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """Whether the engine has been initialized and not yet terminated."""
        return self._initialized

    @property
    def tesseract_config(self) -> str:
        """Command-line configuration handed to Tesseract."""
        return (
            f"--oem {self.config.oem} --psm {self.config.psm} "
            f"-c tessedit_char_whitelist={self.whitelist}"
        )

    def initialize(self) -> None:
        """Verify the Tesseract binary and language model.

        Raises:
            EngineUnavailable: If Tesseract is missing or the language model
                is not installed
        """
        if self._initialized:
            return

        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

        try:
            self.version = pytesseract.get_tesseract_version()
            languages: List[str] = pytesseract.get_languages(config="")
        except Exception as e:
            logger.error(f"Tesseract not found or not properly configured: {e}")
            raise EngineUnavailable(
                "Tesseract not available. Please install Tesseract OCR.\n"
                "Linux: sudo apt-get install tesseract-ocr\n"
                "MacOS: brew install tesseract"
            ) from e

        missing = [lang for lang in self.config.lang.split("+") if lang not in languages]
        if missing:
            logger.error(f"Tesseract language model(s) missing: {missing}")
            raise EngineUnavailable(
                f"Tesseract language model(s) {missing} not installed "
                f"(available: {sorted(languages)})"
            )

        self._initialized = True
        logger.info(
            f"Tesseract engine initialized: version {self.version}, "
            f"lang={self.config.lang}, psm={self.config.psm}, oem={self.config.oem}"
        )

    def extract_symbol(self, image: np.ndarray) -> OCREngineResult:
        """Run Tesseract on one preprocessed raster.

        Args:
            image: Grayscale (H, W) raster; RGB/RGBA input is converted

        Returns:
            OCREngineResult with the joined text and mean confidence (0-100)

        Raises:
            EngineUnavailable: If the engine cannot be initialized
        """
        self.initialize()

        if image is None or image.size == 0:
            logger.error("Invalid image: empty or None")
            return OCREngineResult(text="", confidence=0.0, success=False)

        if image.ndim == 3:
            if image.shape[2] == 4:
                image = cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
            elif image.shape[2] == 3:
                image = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
            elif image.shape[2] == 1:
                image = image[:, :, 0]
        if image.ndim != 2:
            logger.error(f"Invalid image shape: {image.shape}")
            return OCREngineResult(text="", confidence=0.0, success=False)

        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.config.lang,
                config=self.tesseract_config,
                output_type=pytesseract.Output.DICT,
                timeout=self.config.timeout_s,
            )
        except Exception as e:
            logger.error(f"Tesseract extraction failed: {e}", exc_info=True)
            return OCREngineResult(text="", confidence=0.0, success=False)

        texts = []
        confidences = []
        for text, conf in zip(data["text"], data["conf"]):
            text = str(text).strip()
            conf = float(conf)
            # conf < 0 marks layout rows without recognized text
            if text and conf >= 0:
                texts.append(text)
                confidences.append(conf)

        if not texts:
            logger.debug("Tesseract returned no text")
            return OCREngineResult(text="", confidence=0.0, success=False)

        result = OCREngineResult(
            text="".join(texts),
            confidence=float(np.mean(confidences)),
            success=True,
        )
        logger.debug(
            f"Tesseract extraction: text='{result.text}', confidence={result.confidence:.1f}"
        )
        return result

    def terminate(self) -> None:
        """Release the engine. Safe to call more than once."""
        if not self._initialized:
            return
        self._initialized = False
        logger.info("Tesseract engine terminated")

    def __enter__(self) -> "TesseractSymbolEngine":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.terminate()


_shared_engine: Optional[TesseractSymbolEngine] = None
_shared_holders = 0


def get_shared_engine(config: Optional[EngineConfig] = None) -> TesseractSymbolEngine:
    """Acquire the process-wide engine handle, creating it on first call.

    Every call counts as one holder and must be paired with
    ``release_shared_engine``. ``config`` only applies when the handle is
    created.
    """
    global _shared_engine, _shared_holders
    if _shared_engine is None:
        _shared_engine = TesseractSymbolEngine(config)
    _shared_holders += 1
    return _shared_engine


def release_shared_engine(force: bool = False) -> None:
    """Release one hold on the process-wide engine handle.

    The handle is terminated and dropped when the last holder releases it,
    or immediately with ``force`` (process teardown).
    """
    global _shared_engine, _shared_holders
    if _shared_engine is None:
        return
    _shared_holders = 0 if force else max(_shared_holders - 1, 0)
    if _shared_holders == 0:
        _shared_engine.terminate()
        _shared_engine = None
        logger.debug("Shared Tesseract engine released")
