"""Type definitions for pipeline results."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from qrggif.ocr.types import RecognitionResult


@dataclass
class PipelineResult:
    """Outcome of one successful pipeline run.

    Attributes:
        correlation_id: Caller-supplied identifier for this run
        symbols: Accepted symbols in frame order
        fingerprint: SHA-256 hex digest of the pipe-joined symbols
        recognitions: Per-frame (or per-slot) recognition results, rejected
            frames included
        frame_count: Number of composed frames (or capture slots)
        processing_time_ms: Wall-clock processing time
    """

    correlation_id: str
    symbols: List[str]
    fingerprint: str
    recognitions: List[RecognitionResult] = field(default_factory=list)
    frame_count: int = 0
    processing_time_ms: float = 0.0

    @property
    def sequence(self) -> str:
        """Symbols joined as the fingerprint input string."""
        return "|".join(self.symbols)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for JSON output."""
        return {
            "correlation_id": self.correlation_id,
            "symbols": list(self.symbols),
            "fingerprint": self.fingerprint,
            "recognitions": [r.to_dict() for r in self.recognitions],
            "frame_count": self.frame_count,
            "processing_time_ms": self.processing_time_ms,
        }
