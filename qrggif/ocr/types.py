"""Type definitions for symbol recognition."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

# Rejection reasons attached to RecognitionResult.rejection
NO_TEXT = "NO_TEXT"
LOW_CONFIDENCE = "LOW_CONFIDENCE"
NOT_SINGLE_CODE_POINT = "NOT_SINGLE_CODE_POINT"
NOT_IN_ALPHABET = "NOT_IN_ALPHABET"
SHAPE_MISMATCH = "SHAPE_MISMATCH"


@dataclass
class OCREngineResult:
    """Raw output of one OCR engine call.

    Attributes:
        text: Extracted text (may be empty)
        confidence: Mean engine confidence (0-100)
        success: Whether the engine produced any text
    """

    text: str
    confidence: float
    success: bool


@dataclass
class RecognitionResult:
    """Outcome of recognizing one frame.

    ``symbol`` is None whenever the engine text was rejected: confidence not
    above the threshold, not exactly one code point, outside the approved
    alphabet, or failing the shape rules.

    Attributes:
        symbol: Accepted symbol or None
        confidence: Engine confidence (0-100)
        source_frame_ordinal: Ordinal of the frame the symbol came from
        raw_text: Engine text before acceptance checks
        rejection: Reason constant when ``symbol`` is None
    """

    symbol: Optional[str]
    confidence: float
    source_frame_ordinal: int
    raw_text: str = ""
    rejection: Optional[str] = None

    @property
    def is_accepted(self) -> bool:
        """Check if a symbol was accepted."""
        return self.symbol is not None

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for export."""
        return asdict(self)
