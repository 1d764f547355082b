"""Symbol recognizer over an injected OCR engine.

A reading is accepted only if the engine text (whitespace stripped) is
exactly one code point, that code point is in the approved alphabet, and the
confidence is strictly above the threshold. Accepted symbols are recorded in
a bounded per-slot history that can be queried for the most frequent recent
reading.
"""

import logging
from typing import Hashable, Optional

from qrggif.common.alphabet import SYMBOL_TABLE
from qrggif.common.config_loader import RecognitionConfig
from qrggif.preprocessing.types import PreprocessedImage

from .history import DEFAULT_SLOT, SymbolHistory
from .shape_rules import ShapeRules
from .types import (
    LOW_CONFIDENCE,
    NO_TEXT,
    NOT_IN_ALPHABET,
    NOT_SINGLE_CODE_POINT,
    SHAPE_MISMATCH,
    RecognitionResult,
)

logger = logging.getLogger(__name__)


def rejection_reason(
    text: str, confidence: float, min_confidence: float = 70.0
) -> Optional[str]:
    """Explain why an engine reading would be rejected.

    Args:
        text: Engine text
        confidence: Engine confidence (0-100)
        min_confidence: Value the confidence must strictly exceed

    Returns:
        A rejection constant, or None if the reading is acceptable
    """
    text = text.strip()
    if not text:
        return NO_TEXT
    if len(text) != 1:
        return NOT_SINGLE_CODE_POINT
    if text not in SYMBOL_TABLE:
        return NOT_IN_ALPHABET
    if not confidence > min_confidence:
        return LOW_CONFIDENCE
    return None


def accept_symbol(
    text: str, confidence: float, min_confidence: float = 70.0
) -> Optional[str]:
    """Get the accepted symbol for an engine reading, or None.

    Example:
        >>> accept_symbol("ℍ", 70)
        >>> accept_symbol("ℍ", 71)
        'ℍ'
    """
    if rejection_reason(text, confidence, min_confidence) is not None:
        return None
    return text.strip()


class SymbolRecognizer:
    """Recognizes one symbol per preprocessed frame.

    Args:
        engine: OCR engine handle exposing ``extract_symbol(pixels)``
        config: Recognition configuration (defaults if None)

    Attributes:
        engine: Injected engine handle (not owned)
        history: Per-slot window of accepted symbols
        shape_rules: Optional shape cross-check
    """

    def __init__(self, engine, config: Optional[RecognitionConfig] = None):
        self.engine = engine
        self.config = config or RecognitionConfig()
        self.history = SymbolHistory(self.config.history_size)
        self.shape_rules = ShapeRules(self.config)

    def recognize(
        self, image: PreprocessedImage, slot: Optional[Hashable] = None
    ) -> RecognitionResult:
        """Recognize the symbol on one preprocessed frame.

        Args:
            image: Preprocessed raster
            slot: History slot to record an accepted symbol under

        Returns:
            RecognitionResult; ``symbol`` is None when the reading is rejected

        Raises:
            EngineUnavailable: If the engine cannot be initialized
        """
        ordinal = image.source_index
        engine_result = self.engine.extract_symbol(image.pixels)

        if not engine_result.success:
            logger.debug(f"Frame {ordinal}: engine returned no text")
            return RecognitionResult(
                symbol=None,
                confidence=engine_result.confidence,
                source_frame_ordinal=ordinal,
                raw_text=engine_result.text,
                rejection=NO_TEXT,
            )

        reason = rejection_reason(
            engine_result.text, engine_result.confidence, self.config.min_confidence
        )
        symbol = engine_result.text.strip()

        if reason is None and self.config.enable_shape_rules:
            shape_failure = self.shape_rules.check(symbol, image.pixels)
            if shape_failure is not None:
                logger.debug(f"Frame {ordinal}: '{symbol}' failed shape rules: {shape_failure}")
                reason = SHAPE_MISMATCH

        if reason is not None:
            logger.debug(
                f"Frame {ordinal}: rejected '{engine_result.text}' "
                f"(confidence={engine_result.confidence:.1f}, reason={reason})"
            )
            return RecognitionResult(
                symbol=None,
                confidence=engine_result.confidence,
                source_frame_ordinal=ordinal,
                raw_text=engine_result.text,
                rejection=reason,
            )

        self.history.record(DEFAULT_SLOT if slot is None else slot, symbol)
        logger.debug(
            f"Frame {ordinal}: accepted '{symbol}' (confidence={engine_result.confidence:.1f})"
        )
        return RecognitionResult(
            symbol=symbol,
            confidence=engine_result.confidence,
            source_frame_ordinal=ordinal,
            raw_text=engine_result.text,
        )

    def most_frequent(self, slot: Optional[Hashable] = None) -> Optional[str]:
        """Most frequent recent accepted symbol for a slot."""
        return self.history.most_frequent(DEFAULT_SLOT if slot is None else slot)

    def reset_history(self) -> None:
        """Forget all recorded symbols."""
        self.history.clear()
