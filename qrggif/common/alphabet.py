"""Canonical QRGGIF symbol table.

One table drives both the OCR whitelist and the sequence validator. Symbols
are grouped into five rings of five code points; an animation cycles through
one ring, so every recognized symbol must be followed by one of its ring
successors.

Ring layout:
    - Pop ring:       ℍ ℎ ∑ ⑂ ⑃
    - Arrow ring:     ← ↑ → ↓ ↔
    - Logic ring:     ∀ ∁ ∂ ∃ ∄
    - Technical ring: ⌀ ⌁ ⌂ ⌃ ⌄
    - Numeral ring:   ① ② ③ ④ ⑤

The first four rings allow a step of one or two positions forward; the
numeral ring only allows the next numeral.

Example:
    >>> from qrggif.common.alphabet import successors, APPROVED_ALPHABET
    >>> sorted(successors("ℍ"))
    ['ℎ', '∑']
    >>> len(APPROVED_ALPHABET)
    25
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

MIN_SEQUENCE_LENGTH = 3
MAX_SEQUENCE_LENGTH = 8


@dataclass(frozen=True)
class SymbolSpec:
    """Static rules for one approved symbol.

    Attributes:
        symbol: The code point itself
        ring: Name of the ring the symbol belongs to
        position: Zero-based position within its ring
        successors: Symbols allowed to follow this one
        aspect_ratio: Optional (min, max) ink bounding-box width/height ratio
        symmetric: Whether the glyph is mirror-symmetric about its vertical axis
    """

    symbol: str
    ring: str
    position: int
    successors: FrozenSet[str]
    aspect_ratio: Optional[Tuple[float, float]] = None
    symmetric: bool = False


SYMBOL_RINGS: Dict[str, Tuple[str, ...]] = {
    "pop": ("ℍ", "ℎ", "∑", "⑂", "⑃"),
    "arrow": ("←", "↑", "→", "↓", "↔"),
    "logic": ("∀", "∁", "∂", "∃", "∄"),
    "technical": ("⌀", "⌁", "⌂", "⌃", "⌄"),
    "numeral": ("①", "②", "③", "④", "⑤"),
}

# Number of forward steps a transition may take within each ring
_RING_STEPS: Dict[str, Tuple[int, ...]] = {
    "pop": (1, 2),
    "arrow": (1, 2),
    "logic": (1, 2),
    "technical": (1, 2),
    "numeral": (1,),
}

_ASPECT_RATIOS: Dict[str, Tuple[float, float]] = {
    "←": (1.5, 2.5),
    "↑": (0.4, 0.6),
    "∀": (0.8, 1.2),
}

_SYMMETRIC = frozenset({"ℍ", "∑", "↑", "↓", "↔", "∀", "⌀", "⌂", "⌃", "⌄"})


def _build_table() -> Dict[str, SymbolSpec]:
    table: Dict[str, SymbolSpec] = {}
    for ring_name, members in SYMBOL_RINGS.items():
        size = len(members)
        for position, symbol in enumerate(members):
            following = frozenset(
                members[(position + step) % size] for step in _RING_STEPS[ring_name]
            )
            table[symbol] = SymbolSpec(
                symbol=symbol,
                ring=ring_name,
                position=position,
                successors=following,
                aspect_ratio=_ASPECT_RATIOS.get(symbol),
                symmetric=symbol in _SYMMETRIC,
            )
    return table


SYMBOL_TABLE: Dict[str, SymbolSpec] = _build_table()

# Whitelist handed to the OCR engine, in ring order
APPROVED_ALPHABET: str = "".join(
    symbol for members in SYMBOL_RINGS.values() for symbol in members
)


def is_approved(symbol: str) -> bool:
    """Check if a string is exactly one approved code point.

    Args:
        symbol: Candidate symbol text

    Returns:
        True if ``symbol`` is a single code point from the approved alphabet
    """
    return len(symbol) == 1 and symbol in SYMBOL_TABLE


def successors(symbol: str) -> FrozenSet[str]:
    """Get the symbols allowed to follow ``symbol``.

    Unknown symbols have no successors.
    """
    spec = SYMBOL_TABLE.get(symbol)
    return spec.successors if spec else frozenset()


def ring_of(symbol: str) -> Optional[str]:
    """Get the ring name for ``symbol``, or None if it is not approved."""
    spec = SYMBOL_TABLE.get(symbol)
    return spec.ring if spec else None


def get_spec(symbol: str) -> Optional[SymbolSpec]:
    """Get the full rule set for ``symbol``."""
    return SYMBOL_TABLE.get(symbol)
