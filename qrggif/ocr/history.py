"""Bounded per-slot history of accepted symbols.

A recognition slot is one logical symbol position (e.g., the n-th frame of a
camera burst). Keeping the last few accepted readings per slot lets noisy
captures be smoothed to the most frequent reading.
"""

from collections import Counter, deque
from typing import Deque, Dict, Hashable, List, Optional

DEFAULT_SLOT = "default"


class SymbolHistory:
    """Keeps the most recent accepted symbols for each slot.

    Args:
        capacity: Symbols kept per slot; the oldest is evicted first

    Example:
        >>> history = SymbolHistory(capacity=5)
        >>> for symbol in ["←", "↑", "↑", "←"]:
        ...     history.record("slot-0", symbol)
        >>> history.most_frequent("slot-0")
        '←'
    """

    def __init__(self, capacity: int = 5):
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._slots: Dict[Hashable, Deque[str]] = {}

    def record(self, slot: Hashable, symbol: str) -> None:
        """Append an accepted symbol to a slot's window."""
        window = self._slots.get(slot)
        if window is None:
            window = deque(maxlen=self.capacity)
            self._slots[slot] = window
        window.append(symbol)

    def recent(self, slot: Hashable) -> List[str]:
        """Get a slot's window, oldest first."""
        return list(self._slots.get(slot, ()))

    def most_frequent(self, slot: Hashable) -> Optional[str]:
        """Get the most frequent symbol in a slot's window.

        Ties go to the tied symbol that entered the window first.

        Returns:
            Most frequent symbol, or None for an empty or unknown slot
        """
        window = self._slots.get(slot)
        if not window:
            return None
        counts = Counter(window)
        best = max(counts.values())
        return next(symbol for symbol in window if counts[symbol] == best)

    def clear(self, slot: Optional[Hashable] = None) -> None:
        """Forget one slot, or every slot when ``slot`` is None."""
        if slot is None:
            self._slots.clear()
        else:
            self._slots.pop(slot, None)

    def __len__(self) -> int:
        return len(self._slots)
