"""
tests/test_seeds.py
Tests for hexbloop/seeds.py
"""

import pytest

from hexbloop.seeds import (
    LCG_FIXED_POINT,
    LCG_INCREMENT,
    LCG_MODULUS,
    LCG_MULTIPLIER,
    SeededRandom,
    stable_u32,
)


class TestSeededRandom:
    """Tests for the LCG"""

    def test_first_draw(self):
        assert SeededRandom(1).random() == 1015568748 / LCG_MODULUS

    def test_same_seed_same_sequence(self):
        a, b = SeededRandom(99), SeededRandom(99)
        assert [a.random() for _ in range(20)] == [b.random() for _ in range(20)]

    def test_seed_reduced_modulo(self):
        assert SeededRandom(LCG_MODULUS + 5).seed == 5

    def test_fixed_point_state_is_remapped(self):
        assert (LCG_FIXED_POINT * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS == LCG_FIXED_POINT
        rng = SeededRandom(LCG_FIXED_POINT)
        draws = [rng.random() for _ in range(10)]
        assert len(set(draws)) == 10
        assert draws[0] == 1740940611 / LCG_MODULUS

    def test_fixed_point_reached_by_modulo(self):
        rng = SeededRandom(LCG_FIXED_POINT + LCG_MODULUS)
        assert len({rng.random() for _ in range(5)}) == 5

    def test_randint_bounds(self):
        rng = SeededRandom(7)
        values = {rng.randint(1, 3) for _ in range(200)}
        assert values == {1, 2, 3}

    def test_choice_empty(self):
        with pytest.raises(IndexError):
            SeededRandom(1).choice([])

    def test_weighted_choice_skips_zero(self):
        rng = SeededRandom(5)
        assert {rng.weighted_choice([0.0, 1.0, 0.0]) for _ in range(50)} == {1}

    def test_weighted_choice_all_zero(self):
        assert SeededRandom(5).weighted_choice([0.0, 0.0]) == 0


class TestStableU32:
    """Tests for stable_u32"""

    def test_stable(self):
        assert stable_u32("artwork", "NAME") == stable_u32("artwork", "NAME")

    def test_range(self):
        assert 0 <= stable_u32("x") < 2 ** 32

    def test_parts_matter(self):
        assert stable_u32("a", "b") != stable_u32("ab")
