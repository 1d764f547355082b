"""Exception taxonomy for the QRGGIF pipeline.

Every failure carries a stable error code and the pipeline stage that raised
it, so callers can branch on ``exc.code`` without parsing messages.
"""

from typing import Optional


class QRGGIFError(Exception):
    """Base class for all pipeline failures.

    Attributes:
        code: Stable error code (e.g., "QRG-E001")
        stage: Pipeline stage where the failure occurred
        message: Human-readable explanation
    """

    code = "QRG-E000"
    stage = "PIPELINE"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class DecodeError(QRGGIFError):
    """Animation container is malformed, truncated or has no frames."""

    code = "QRG-E001"
    stage = "DECODE"


class InvalidFrameCount(QRGGIFError):
    """Frame count lies outside the accepted range."""

    code = "QRG-E002"
    stage = "FRAME_COUNT"

    def __init__(self, frame_count: int, min_frames: int, max_frames: int):
        super().__init__(
            f"Invalid number of frames: {frame_count}. "
            f"Expected {min_frames}-{max_frames} frames."
        )
        self.frame_count = frame_count
        self.min_frames = min_frames
        self.max_frames = max_frames


class RecognitionFailure(QRGGIFError):
    """A single frame produced no accepted symbol."""

    code = "QRG-E003"
    stage = "RECOGNITION"

    def __init__(self, frame_ordinal: int, reason: str):
        super().__init__(f"Frame {frame_ordinal}: {reason}")
        self.frame_ordinal = frame_ordinal
        self.reason = reason


class InsufficientSymbols(QRGGIFError):
    """Too few frames survived recognition to form a sequence."""

    code = "QRG-E004"
    stage = "RECOGNITION"

    def __init__(self, recognized: int, required: int):
        super().__init__(
            f"Could not recognize enough symbols: {recognized} < {required}"
        )
        self.recognized = recognized
        self.required = required


class ValidationFailure(QRGGIFError):
    """Recognized sequence violates the ring transition table."""

    code = "QRG-E005"
    stage = "VALIDATION"


class EngineUnavailable(QRGGIFError):
    """OCR engine could not be initialized."""

    code = "QRG-E006"
    stage = "ENGINE"


class VerificationError(QRGGIFError):
    """Verification service could not be reached or answered garbage."""

    code = "QRG-E007"
    stage = "VERIFICATION"
