"""
tests/test_naming.py
Tests for hexbloop/naming.py single-name generation and sanitization
"""

import re
from datetime import datetime

import pytest

from hexbloop.errors import NamingError
from hexbloop.lunar import PhaseName, TemporalInfluence, TimeCategory, compute_temporal_influence
from hexbloop.naming import (
    MAX_NAME_LENGTH,
    MIN_NAME_LENGTH,
    STYLE_GLYPHS,
    NameGenerator,
    NameStyle,
    generate_name,
    infer_genre,
    is_valid_name,
    sanitize_name,
    style_weights,
    validate_name,
)
from hexbloop.seeds import SeededRandom

SAFE = re.compile(r"^[A-Za-z0-9_\-.()\[\]]+$")
TIMESTAMP_NAME = re.compile(r"^hexbloop_\d+$")


def _influence(phase_name, time_category, phase=0.5):
    return TemporalInfluence(phase, 0.5, phase_name, time_category)


class TestSanitizeName:
    """Tests for sanitize_name"""

    def test_whitespace_to_underscore(self):
        assert sanitize_name("Dark  Moon Ritual") == "Dark_Moon_Ritual"

    def test_strips_unsafe_characters(self):
        assert sanitize_name("VOID/CULT:*?") == "VOIDCULT"

    def test_collapses_separators(self):
        assert sanitize_name("a__b--c..d") == "a_b-c.d"

    def test_trims_separators(self):
        assert sanitize_name("__GLOW__") == "GLOW"

    def test_truncates(self):
        result = sanitize_name("X" * 80)
        assert len(result) == MAX_NAME_LENGTH

    def test_brackets_allowed(self):
        assert sanitize_name("GHOST(live)[2]") == "GHOST(live)[2]"

    def test_fallback_for_empty(self):
        assert TIMESTAMP_NAME.match(sanitize_name(""))
        assert TIMESTAMP_NAME.match(sanitize_name("///"))

    def test_fallback_for_too_short(self):
        assert TIMESTAMP_NAME.match(sanitize_name("ab"))

    def test_fallback_without_letters(self):
        assert TIMESTAMP_NAME.match(sanitize_name("1234_5678"))

    def test_glyphs_only_for_witchhouse(self):
        text = "✧HEXVEIL✧"
        assert sanitize_name(text, NameStyle.WITCHHOUSE) == text
        assert sanitize_name(text, NameStyle.BLACKMETAL) == "HEXVEIL"


class TestValidateName:
    """Tests for validate_name"""

    def test_valid(self):
        validate_name("CRYPTMOONRITUAL")

    @pytest.mark.parametrize("text", ["", "ab", "X" * 51, "1234", "bad/name"])
    def test_invalid(self, text):
        with pytest.raises(NamingError):
            validate_name(text)

    def test_naming_error_is_value_error(self):
        assert issubclass(NamingError, ValueError)


class TestNameGenerator:
    """Tests for NameGenerator"""

    def test_invariants_over_many_names(self):
        generator = NameGenerator(SeededRandom(1234))
        for i in range(1000):
            inf = compute_temporal_influence(datetime(2024, 1, 1 + i % 28, i % 24, 0))
            record = generator.generate(influence=inf)
            text = record.text
            assert MIN_NAME_LENGTH <= len(text) <= MAX_NAME_LENGTH
            assert re.search(r"[A-Za-z]", text)
            glyphs = STYLE_GLYPHS.get(record.style, "")
            assert all(SAFE.match(c) or c in glyphs for c in text), text
            assert is_valid_name(text, record.style)

    def test_seeded_reproducible(self):
        inf = _influence(PhaseName.NEW_MOON, TimeCategory.DEEP_NIGHT)
        assert generate_name(42, inf) == generate_name(42, inf)

    def test_uniqueness_over_seeds(self):
        inf = _influence(PhaseName.FULL_MOON, TimeCategory.AFTERNOON)
        names = {generate_name(seed, inf).text for seed in range(100)}
        assert len(names) >= 80

    def test_explicit_style(self):
        generator = NameGenerator(SeededRandom(7))
        for style in NameStyle:
            assert generator.generate(style=style).style is style

    def test_pools_by_style(self):
        generator = NameGenerator(SeededRandom(99))
        for _ in range(50):
            record = generator.generate(style=NameStyle.SPARKLEPOP)
            assert SAFE.match(record.text)

    def test_no_global_random_use(self):
        import random
        random.seed(5)
        expected = random.random()
        random.seed(5)
        NameGenerator(SeededRandom(1)).generate(style=NameStyle.MIXED)
        assert random.random() == expected


class TestStyleWeights:
    """Tests for the style selection table"""

    def test_new_moon_night_prefers_blackmetal(self):
        weights = style_weights(_influence(PhaseName.NEW_MOON, TimeCategory.DEEP_NIGHT, 0.0))
        assert max(weights, key=weights.get) is NameStyle.BLACKMETAL

    def test_full_moon_morning_prefers_sparklepop(self):
        weights = style_weights(_influence(PhaseName.FULL_MOON, TimeCategory.MORNING))
        assert max(weights, key=weights.get) is NameStyle.SPARKLEPOP

    def test_all_styles_possible(self):
        for time_category in TimeCategory:
            weights = style_weights(_influence(PhaseName.FIRST_QUARTER, time_category, 0.25))
            assert all(w > 0 for w in weights.values())


class TestInferGenre:
    """Tests for infer_genre"""

    def test_style_decides(self):
        assert infer_genre("ANYTHING", NameStyle.BLACKMETAL) == "Black Metal"
        assert infer_genre("ANYTHING", NameStyle.WITCHHOUSE) == "Witch House"

    def test_keywords_for_mixed(self):
        assert infer_genre("CYBERPULSE", NameStyle.MIXED) == "Cyberpunk"
        assert infer_genre("GLITTERCORE") == "Sparklepop"

    def test_default(self):
        assert infer_genre("ZZZQ") == "Electronic"
