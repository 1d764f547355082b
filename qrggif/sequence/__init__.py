"""Sequence validation and fingerprinting."""

from .fingerprint import SEPARATOR, fingerprint, is_fingerprint
from .validator import (
    InvalidTransition,
    SequenceValidator,
    check_frame_count,
    find_invalid_transition,
)

__all__ = [
    "SEPARATOR",
    "fingerprint",
    "is_fingerprint",
    "InvalidTransition",
    "SequenceValidator",
    "check_frame_count",
    "find_invalid_transition",
]
