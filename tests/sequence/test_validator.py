"""Unit tests for the sequence validator."""

import random

import pytest

from qrggif.common.alphabet import SYMBOL_RINGS, successors
from qrggif.common.errors import InvalidFrameCount
from qrggif.sequence.validator import (
    SequenceValidator,
    check_frame_count,
    find_invalid_transition,
)


def random_ring_walk(rng, ring, length):
    """Walk a ring following allowed transitions."""
    symbol = rng.choice(SYMBOL_RINGS[ring])
    walk = [symbol]
    while len(walk) < length:
        symbol = rng.choice(sorted(successors(symbol)))
        walk.append(symbol)
    return walk


class TestValidSequences:
    """Test sequences that respect the ring table."""

    @pytest.mark.parametrize("ring", list(SYMBOL_RINGS))
    def test_full_ring_in_order(self, ring):
        """Test each ring in order is valid."""
        assert SequenceValidator().validate(list(SYMBOL_RINGS[ring]))

    def test_random_ring_walks(self):
        """Test random 3-8 symbol walks along allowed transitions are valid."""
        rng = random.Random(1234)
        validator = SequenceValidator()
        for _ in range(500):
            ring = rng.choice(list(SYMBOL_RINGS))
            walk = random_ring_walk(rng, ring, rng.randint(3, 8))
            assert validator.validate(walk), walk

    def test_wraps_around(self):
        """Test a walk across the ring's end is valid."""
        assert SequenceValidator().validate(["⑂", "⑃", "ℍ", "ℎ"])

    def test_two_step_transition(self):
        """Test skipping one ring member is allowed."""
        assert SequenceValidator().validate(["←", "→", "↔"])


class TestInvalidSequences:
    """Test sequences that break the ring table."""

    def test_single_out_of_ring_pair(self):
        """Test one cross-ring pair makes a valid walk invalid."""
        rng = random.Random(99)
        validator = SequenceValidator()
        for _ in range(200):
            ring = rng.choice(list(SYMBOL_RINGS))
            walk = random_ring_walk(rng, ring, rng.randint(3, 7))
            other_ring = rng.choice([r for r in SYMBOL_RINGS if r != ring])
            position = rng.randint(1, len(walk))
            broken = walk[:position] + [rng.choice(SYMBOL_RINGS[other_ring])] + walk[position:]
            assert not validator.validate(broken), broken

    def test_backwards_step(self):
        """Test moving backwards in a ring is invalid."""
        assert not SequenceValidator().validate(["∑", "ℎ", "ℍ"])

    def test_three_step_numeral(self):
        """Test numerals cannot skip."""
        assert not SequenceValidator().validate(["①", "③", "④"])

    def test_unknown_symbol(self):
        """Test a symbol outside the table invalidates the sequence."""
        assert not SequenceValidator().validate(["ℍ", "X", "ℎ"])

    def test_repeated_symbol(self):
        """Test a symbol cannot follow itself."""
        assert not SequenceValidator().validate(["ℍ", "ℍ", "ℎ"])

    @pytest.mark.parametrize("length", [0, 1, 2, 9, 10])
    def test_length_out_of_range(self, length):
        """Test lengths outside 3-8 are invalid even when transitions hold."""
        walk = random_ring_walk(random.Random(length), "pop", length) if length else []
        assert not SequenceValidator().validate(walk)


class TestHelpers:
    """Test transition lookup and frame-count gate."""

    def test_find_invalid_transition(self):
        """Test the first offending pair is reported."""
        invalid = find_invalid_transition(["ℍ", "ℎ", "←", "↑"])

        assert invalid.position == 1
        assert invalid.current == "ℎ"
        assert invalid.next == "←"

    def test_find_invalid_transition_none(self):
        """Test None for a valid sequence."""
        assert find_invalid_transition(["ℍ", "ℎ", "∑"]) is None

    @pytest.mark.parametrize("count", [3, 5, 8])
    def test_frame_count_in_range(self, count):
        """Test counts in range pass."""
        check_frame_count(count)

    @pytest.mark.parametrize("count", [0, 2, 9])
    def test_frame_count_out_of_range(self, count):
        """Test counts out of range raise InvalidFrameCount."""
        with pytest.raises(InvalidFrameCount) as exc_info:
            check_frame_count(count)
        assert exc_info.value.frame_count == count
