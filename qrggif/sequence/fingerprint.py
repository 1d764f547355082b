"""Sequence fingerprinting.

The fingerprint is the SHA-256 digest of the symbols joined with "|", UTF-8
encoded and rendered as 64 lowercase hex characters. No salt, no randomness:
the same ordered sequence always yields the same fingerprint.
"""

import hashlib
import re
from typing import Sequence

SEPARATOR = "|"
FINGERPRINT_PATTERN = re.compile(r"[0-9a-f]{64}")


def fingerprint(symbols: Sequence[str]) -> str:
    """Compute the fingerprint of a symbol sequence.

    Args:
        symbols: Accepted symbols in frame order

    Returns:
        64-character lowercase hex SHA-256 digest

    Example:
        >>> fingerprint(["ℍ", "ℎ", "∑", "⑂", "⑃"]) == hashlib.sha256(
        ...     "ℍ|ℎ|∑|⑂|⑃".encode("utf-8")).hexdigest()
        True
    """
    payload = SEPARATOR.join(symbols)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def is_fingerprint(value: str) -> bool:
    """Check if a value is a well-formed fingerprint."""
    return isinstance(value, str) and bool(FINGERPRINT_PATTERN.fullmatch(value))
