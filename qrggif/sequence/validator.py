"""Symbol sequence validation against the canonical ring table.

A genuine QRGGIF cycles through one symbol ring, so every adjacent pair in
the recognized sequence must be an allowed ring transition. Sequences outside
the accepted length range are never valid; the pipeline rejects such frame
counts before paying for OCR (see ``check_frame_count``).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from qrggif.common.alphabet import (
    MAX_SEQUENCE_LENGTH,
    MIN_SEQUENCE_LENGTH,
    successors,
)
from qrggif.common.errors import InvalidFrameCount

logger = logging.getLogger(__name__)


@dataclass
class InvalidTransition:
    """First adjacent pair that breaks the transition table.

    Attributes:
        position: Index of ``current`` in the sequence
        current: Symbol at ``position``
        next: Symbol that followed it
    """

    position: int
    current: str
    next: str


def check_frame_count(
    frame_count: int,
    min_frames: int = MIN_SEQUENCE_LENGTH,
    max_frames: int = MAX_SEQUENCE_LENGTH,
) -> None:
    """Fail fast if a frame count is outside the accepted range.

    Raises:
        InvalidFrameCount: If ``frame_count`` is not in [min_frames, max_frames]
    """
    if not min_frames <= frame_count <= max_frames:
        raise InvalidFrameCount(frame_count, min_frames, max_frames)


def find_invalid_transition(symbols: Sequence[str]) -> Optional[InvalidTransition]:
    """Locate the first adjacent pair that is not an allowed transition.

    Args:
        symbols: Recognized symbols in frame order

    Returns:
        The offending pair, or None if every transition is allowed
    """
    for position in range(len(symbols) - 1):
        current, following = symbols[position], symbols[position + 1]
        if following not in successors(current):
            return InvalidTransition(position=position, current=current, next=following)
    return None


class SequenceValidator:
    """Validates recognized symbol sequences.

    Args:
        min_length: Shortest acceptable sequence
        max_length: Longest acceptable sequence

    Example:
        >>> validator = SequenceValidator()
        >>> validator.validate(["←", "↑", "→"])
        True
        >>> validator.validate(["←", "∀", "∁"])
        False
    """

    def __init__(
        self,
        min_length: int = MIN_SEQUENCE_LENGTH,
        max_length: int = MAX_SEQUENCE_LENGTH,
    ):
        self.min_length = min_length
        self.max_length = max_length

    def validate(self, symbols: Sequence[str]) -> bool:
        """Check length and every adjacent transition.

        Args:
            symbols: Recognized symbols in frame order

        Returns:
            True if the sequence length is in range and all transitions are allowed
        """
        if not self.min_length <= len(symbols) <= self.max_length:
            logger.debug(
                f"Sequence length {len(symbols)} outside "
                f"[{self.min_length}, {self.max_length}]"
            )
            return False

        invalid = find_invalid_transition(symbols)
        if invalid is not None:
            logger.debug(
                f"Invalid transition at position {invalid.position}: "
                f"'{invalid.current}' -> '{invalid.next}'"
            )
            return False
        return True
