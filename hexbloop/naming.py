"""
hexbloop/naming.py
Mystical single-name generation and filename sanitization

Name rules:
- characters:   [A-Za-z0-9_\\-.()\\[\\]] plus the witch-house glyphs
- length:       3..50 after sanitization
- letters:      at least one ASCII letter
- fallback:     hexbloop_<epoch-ms> when a candidate cannot be repaired

Style choice is a weighted draw: base weights per time of day multiplied by
a lunar factor (new moon pulls dark, full moon pulls bright).
"""

import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .errors import NamingError
from .lunar import PhaseName, TemporalInfluence, TimeCategory, compute_temporal_influence
from .seeds import SeededRandom


class NameStyle(str, Enum):
    SPARKLEPOP = "sparklepop"   # bright
    BLACKMETAL = "blackmetal"   # dark/occult
    WITCHHOUSE = "witchhouse"   # glitch-occult
    MIXED = "mixed"


# Validation
SAFE_CHAR_REGEX = re.compile(r"[A-Za-z0-9_\-.()\[\]]")
LETTER_REGEX = re.compile(r"[A-Za-z]")
SEPARATOR_RUN_REGEX = re.compile(r"([_\-.])[_\-.]+")
SEPARATOR_CHARS = "_-."

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 50

# Intentional decorative glyphs, allowed only for witch-house names
WITCHHOUSE_SYMBOLS = ("✧", "◆", "▲", "●", "◇", "△", "†")
WITCHHOUSE_GLITCH = {"A": "∆", "E": "∃", "O": "◯"}
STYLE_GLYPHS: Dict[NameStyle, str] = {
    NameStyle.WITCHHOUSE: "".join(WITCHHOUSE_SYMBOLS) + "".join(WITCHHOUSE_GLITCH.values()),
}

NUMBER_PROBABILITY = 0.5
SYMBOL_PROBABILITY = 0.2
GLITCH_PROBABILITY = 0.25

# =============================================================================
# Word pools
# =============================================================================

PREFIXES: Dict[NameStyle, tuple] = {
    NameStyle.SPARKLEPOP: (
        "GLITTER", "STAR", "RAINBOW", "BUBBLE", "CANDY",
        "DREAM", "MAGIC", "FAIRY", "CRYSTAL", "PRISM",
        "SHINE", "SPARKLE", "GLOW", "BEAM", "LIGHT",
    ),
    NameStyle.BLACKMETAL: (
        "DARK", "SHADOW", "DEATH", "VOID", "CHAOS",
        "CRYPT", "FROST", "DOOM", "HELL", "NIGHT",
        "BLOOD", "BONE", "GRAVE", "WITCH", "DEMON",
    ),
    NameStyle.WITCHHOUSE: (
        "WITCH", "COVEN", "LUNAR", "MYSTIC", "OCCULT",
        "ACID", "CYBER", "NEON", "PLASMA", "GHOST",
        "ASTRAL", "PSYCHIC", "COSMIC", "ETHEREAL", "SPIRIT",
    ),
    NameStyle.MIXED: (
        "GLITTER", "CRYPT", "LUNAR", "SHADOW", "FROST",
        "VOID", "NEON", "ACID", "PLASMA", "GHOST",
        "CYBER", "MYSTIC", "WITCH", "DARK", "CHAOS",
    ),
}

MIDDLES: Dict[NameStyle, tuple] = {
    NameStyle.BLACKMETAL: (
        "MOON", "ASH", "IRON", "STORM", "WOLF",
        "RAVEN", "CHAIN", "FIRE", "THORN", "SERPENT",
    ),
    NameStyle.WITCHHOUSE: (
        "VV", "XX", "ZZ", "TRI", "HEX",
        "NULL", "DRIP", "MIST", "SIGIL", "VEIL",
    ),
}

SUFFIXES: Dict[NameStyle, tuple] = {
    NameStyle.SPARKLEPOP: (
        "WAVE", "BEAM", "DREAM", "MAGIC", "SPELL",
        "CORE", "PULSE", "GLOW", "SHINE", "STAR",
        "FLUX", "VECTOR", "PRISM", "CRYSTAL", "DUST",
    ),
    NameStyle.BLACKMETAL: (
        "RITUAL", "CULT", "SPELL", "GATE", "VOID",
        "TOMB", "RUNE", "CURSE", "OATH", "PACT",
        "RITE", "ALTAR", "THRONE", "CROWN", "SWORD",
    ),
    NameStyle.WITCHHOUSE: (
        "MACHINE", "VECTOR", "CIPHER", "NOISE", "PULSE",
        "CORE", "FLUX", "NETWORK", "PROTOCOL", "MATRIX",
        "RITUAL", "SPELL", "CHARM", "HEX", "CURSE",
    ),
    NameStyle.MIXED: (
        "RITUAL", "MACHINE", "VECTOR", "CIPHER", "NOISE",
        "PULSE", "WAVE", "SPELL", "CULT", "DREAM",
        "CORE", "FLUX", "RUNE", "GATE", "VOID",
    ),
}

# =============================================================================
# Style selection table
# =============================================================================

TIME_STYLE_WEIGHTS: Dict[TimeCategory, Dict[NameStyle, float]] = {
    TimeCategory.DEEP_NIGHT: {
        NameStyle.BLACKMETAL: 0.45, NameStyle.WITCHHOUSE: 0.35,
        NameStyle.MIXED: 0.15, NameStyle.SPARKLEPOP: 0.05,
    },
    TimeCategory.MORNING: {
        NameStyle.SPARKLEPOP: 0.45, NameStyle.MIXED: 0.35,
        NameStyle.WITCHHOUSE: 0.10, NameStyle.BLACKMETAL: 0.10,
    },
    TimeCategory.AFTERNOON: {
        NameStyle.SPARKLEPOP: 0.35, NameStyle.MIXED: 0.40,
        NameStyle.WITCHHOUSE: 0.15, NameStyle.BLACKMETAL: 0.10,
    },
    TimeCategory.EVENING: {
        NameStyle.WITCHHOUSE: 0.50, NameStyle.MIXED: 0.25,
        NameStyle.BLACKMETAL: 0.15, NameStyle.SPARKLEPOP: 0.10,
    },
}

# Missing entries multiply by 1.0
LUNAR_STYLE_FACTORS: Dict[PhaseName, Dict[NameStyle, float]] = {
    PhaseName.NEW_MOON: {
        NameStyle.BLACKMETAL: 3.0, NameStyle.WITCHHOUSE: 1.5, NameStyle.SPARKLEPOP: 0.3,
    },
    PhaseName.FULL_MOON: {
        NameStyle.SPARKLEPOP: 2.5, NameStyle.WITCHHOUSE: 1.2, NameStyle.BLACKMETAL: 0.5,
    },
    PhaseName.WAXING_CRESCENT: {NameStyle.BLACKMETAL: 1.3, NameStyle.WITCHHOUSE: 1.2},
    PhaseName.WANING_CRESCENT: {NameStyle.BLACKMETAL: 1.3, NameStyle.WITCHHOUSE: 1.2},
}

# Style order used for the cumulative draw; stable so seeds stay reproducible
STYLE_ORDER = (NameStyle.SPARKLEPOP, NameStyle.BLACKMETAL, NameStyle.WITCHHOUSE, NameStyle.MIXED)

# =============================================================================
# Genre inference (metadata)
# =============================================================================

STYLE_GENRES: Dict[NameStyle, str] = {
    NameStyle.SPARKLEPOP: "Sparklepop",
    NameStyle.BLACKMETAL: "Black Metal",
    NameStyle.WITCHHOUSE: "Witch House",
}

GENRE_KEYWORDS = (
    (("BLACK", "DEATH", "DOOM", "CRYPT", "GRAVE"), "Black Metal"),
    (("SPARKLE", "RAINBOW", "FAIRY", "GLITTER", "CANDY"), "Sparklepop"),
    (("WITCH", "OCCULT", "RITUAL", "COVEN", "HEX"), "Witch House"),
    (("CYBER", "DIGITAL", "NEURAL", "MATRIX", "NEON"), "Cyberpunk"),
)
DEFAULT_GENRE = "Electronic"


@dataclass(frozen=True)
class NameRecord:
    text: str
    style: NameStyle
    numbering_token: Optional[str] = None


def timestamp_name() -> str:
    return f"hexbloop_{int(time.time() * 1000)}"


def is_valid_name(text: str, style: Optional[NameStyle] = None) -> bool:
    try:
        validate_name(text, style)
    except NamingError:
        return False
    return True


def validate_name(text: str, style: Optional[NameStyle] = None) -> None:
    """
    Validate a name or raise NamingError.

    Rules:
    - Length 3..50
    - At least one ASCII letter
    - Only whitelisted characters (plus the style's decorative glyphs)
    """
    if not text:
        raise NamingError("name cannot be empty")
    if len(text) < MIN_NAME_LENGTH:
        raise NamingError(f"name '{text}' is shorter than {MIN_NAME_LENGTH} characters")
    if len(text) > MAX_NAME_LENGTH:
        raise NamingError(f"name '{text}' exceeds {MAX_NAME_LENGTH} characters")
    if not LETTER_REGEX.search(text):
        raise NamingError(f"name '{text}' has no letters")
    glyphs = STYLE_GLYPHS.get(style, "")
    bad = sorted({c for c in text if not SAFE_CHAR_REGEX.match(c) and c not in glyphs})
    if bad:
        raise NamingError(f"name '{text}' contains unsafe characters: {''.join(bad)!r}")


def sanitize_name(text: str, style: Optional[NameStyle] = None,
                  max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Make text safe for use as a file name.

    - Whitespace runs become underscores
    - Characters outside the whitelist are dropped
    - Runs of separators collapse to the first one
    - Leading/trailing separators are stripped
    - Truncate to max_length
    - Fall back to a timestamp name if the result is still invalid
    """
    glyphs = STYLE_GLYPHS.get(style, "")
    cleaned = re.sub(r"\s+", "_", (text or "").strip())
    cleaned = "".join(c for c in cleaned if SAFE_CHAR_REGEX.match(c) or c in glyphs)
    cleaned = SEPARATOR_RUN_REGEX.sub(r"\1", cleaned)
    cleaned = cleaned.strip(SEPARATOR_CHARS)

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length].rstrip(SEPARATOR_CHARS)

    if not is_valid_name(cleaned, style):
        return timestamp_name()
    return cleaned


def style_weights(influence: TemporalInfluence) -> Dict[NameStyle, float]:
    base = TIME_STYLE_WEIGHTS[influence.time_category]
    factors = LUNAR_STYLE_FACTORS.get(influence.phase_name, {})
    return {style: base[style] * factors.get(style, 1.0) for style in STYLE_ORDER}


def choose_style(influence: TemporalInfluence, rng: SeededRandom) -> NameStyle:
    weights = style_weights(influence)
    return STYLE_ORDER[rng.weighted_choice([weights[s] for s in STYLE_ORDER])]


def infer_genre(name: str, style: Optional[NameStyle] = None) -> str:
    """Genre tag for a generated name: the style decides, then keywords."""
    if style in STYLE_GENRES:
        return STYLE_GENRES[style]
    upper = name.upper()
    for keywords, genre in GENRE_KEYWORDS:
        if any(k in upper for k in keywords):
            return genre
    return DEFAULT_GENRE


class NameGenerator:
    """
    Builds style-tagged names from the word pools.

    All draws come from the injected SeededRandom; pass a seeded instance for
    reproducible names. The draw order is fixed so a seed always maps to
    the same name.
    """

    def __init__(self, rng: Optional[SeededRandom] = None):
        self.rng = rng or SeededRandom()

    def generate(self, influence: Optional[TemporalInfluence] = None,
                 style: Optional[NameStyle] = None) -> NameRecord:
        if style is None:
            if influence is None:
                influence = compute_temporal_influence()
            style = choose_style(influence, self.rng)
        raw = self.assemble(style)
        return NameRecord(text=sanitize_name(raw, style), style=style)

    def assemble(self, style: NameStyle) -> str:
        rng = self.rng
        parts = [rng.choice(PREFIXES[style])]
        if style in MIDDLES:
            parts.append(rng.choice(MIDDLES[style]))
        parts.append(rng.choice(SUFFIXES[style]))
        if rng.chance(NUMBER_PROBABILITY):
            parts.append(str(rng.randint(1000, 9999)))
        name = "".join(parts)

        if style is NameStyle.WITCHHOUSE:
            if rng.chance(GLITCH_PROBABILITY):
                for plain, glyph in WITCHHOUSE_GLITCH.items():
                    name = name.replace(plain, glyph)
            if rng.chance(SYMBOL_PROBABILITY):
                symbol = rng.choice(WITCHHOUSE_SYMBOLS)
                name = f"{symbol}{name}{symbol}"
        return name


def generate_name(seed: Optional[int] = None,
                  influence: Optional[TemporalInfluence] = None,
                  style: Optional[NameStyle] = None) -> NameRecord:
    """One-shot helper: a seeded name when seed is given, random otherwise."""
    return NameGenerator(SeededRandom(seed)).generate(influence=influence, style=style)
