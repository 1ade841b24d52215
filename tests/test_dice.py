"""
Unit tests for the deterministic dice system.

Tests SeededRNG, DiceSpec and DiceRoller from src/data_models.py.
"""

import pytest

from src.data_models import DEFAULT_DICE_SPEC, GOLDEN_GAMMA, DiceRoller, DiceSpec, SeededRNG


class TestSeededRNG:
    """Tests for the SplitMix64 generator."""

    def test_same_seed_same_stream(self):
        """Test that two generators with the same seed agree."""
        a, b = SeededRNG(99), SeededRNG(99)
        assert [a.next() for _ in range(20)] == [b.next() for _ in range(20)]

    def test_different_seeds_differ(self):
        """Test that different seeds give different streams."""
        a, b = SeededRNG(1), SeededRNG(2)
        assert [a.next() for _ in range(5)] != [b.next() for _ in range(5)]

    def test_zero_seed_is_replaced(self):
        """Test that seed 0 behaves like the golden-ratio seed."""
        zero, gamma = SeededRNG(0), SeededRNG(GOLDEN_GAMMA)
        assert zero.state == GOLDEN_GAMMA
        assert [zero.next() for _ in range(5)] == [gamma.next() for _ in range(5)]

    def test_outputs_fit_64_bits(self):
        """Test that outputs stay within 64 bits."""
        rng = SeededRNG(123456789)
        for _ in range(100):
            assert 0 <= rng.next() < 2 ** 64

    def test_next_int_bound(self):
        """Test next_int stays below its bound."""
        rng = SeededRNG(7)
        assert all(0 <= rng.next_int(6) < 6 for _ in range(200))


class TestDiceSpec:
    """Tests for dice notation parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("d6", DiceSpec(1, 6, 0)),
            ("2d6", DiceSpec(2, 6, 0)),
            ("1d20+3", DiceSpec(1, 20, 3)),
            ("  D8 ", DiceSpec(1, 8, 0)),
            ("xd10", DiceSpec(1, 10, 0)),
            ("d12+oops", DiceSpec(1, 12, 0)),
        ],
    )
    def test_parse(self, text, expected):
        """Test parsing valid and lenient notations."""
        assert DiceSpec.parse(text) == expected

    @pytest.mark.parametrize("text", ["", "6", "d0", "d-4", "dx", "2d"])
    def test_parse_rejects(self, text):
        """Test that notations without positive sides are rejected."""
        assert DiceSpec.parse(text) is None

    def test_default_spec(self):
        """Test the fallback is 1d100+0."""
        assert DEFAULT_DICE_SPEC == DiceSpec(1, 100, 0)


class TestDiceRoller:
    """Tests for the (seed, sequence) dice roller."""

    def test_roll_advances_sequence_per_die(self):
        """Test that each die consumes one draw."""
        roller = DiceRoller(5, 10)
        roll = roller.roll("3d6+2")
        assert roller.sequence == 13
        assert len(roll.rolls) == 3
        assert all(1 <= face <= 6 for face in roll.rolls)
        assert roll.total == sum(roll.rolls) + 2

    def test_resume_from_sequence(self):
        """Test that a roller created at a sequence continues the same stream."""
        first = DiceRoller(77)
        first.roll("4d10")
        continued = first.roll("2d10")

        resumed = DiceRoller(77, 4).roll("2d10")
        assert resumed.rolls == continued.rolls

    def test_bad_spec_falls_back_to_d100(self):
        """Test that unparseable notation rolls 1d100."""
        roller = DiceRoller(3)
        roll = roller.roll("not dice")
        assert len(roll.rolls) == 1
        assert 1 <= roll.total <= 100
        assert roller.sequence == 1

    def test_randint_and_choice_use_one_draw(self):
        """Test randint and choice each consume exactly one draw."""
        roller = DiceRoller(11)
        value = roller.randint(1, 10)
        picked = roller.choice(["a", "b", "c"])
        assert 1 <= value <= 10
        assert picked in ("a", "b", "c")
        assert roller.sequence == 2

    def test_randint_empty_range(self):
        """Test randint rejects an empty range."""
        with pytest.raises(ValueError):
            DiceRoller(1).randint(5, 4)

    def test_choice_empty(self):
        """Test choice rejects an empty sequence."""
        with pytest.raises(IndexError):
            DiceRoller(1).choice([])

    def test_negative_sequence_clamped(self):
        """Test that a negative starting sequence is treated as zero."""
        assert DiceRoller(9, -3).sequence == 0

    def test_str_format(self):
        """Test the DiceRoll string form."""
        roll = DiceRoller(2).roll("1d4+1")
        assert str(roll) == f"1d4+1: {roll.rolls} + 1 = {roll.total}"
