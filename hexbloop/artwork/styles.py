"""
hexbloop/artwork/styles.py
Style registry - the catalogue of artwork recipes

Each style defines:
- Three 5-colour palette variations (bright, dark, alternate)
- Background stops and the background recipes it may use
- Metaball count/size ranges
- Overlay kind (flow field, particles, both, none)
- Post-filter name (see generator.POST_FILTERS)
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..seeds import SeededRandom
from .canvas import Color, hex_to_rgb

PALETTE_RANDOM_PICK = 0.3
PALETTE_ACCENT_CHANCE = 0.1
FAST_TEMPO_BPM = 140.0


@dataclass(frozen=True)
class StyleRecipe:
    name: str
    palettes: Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]
    glow: str
    background_stops: Tuple[str, ...]
    backgrounds: Tuple[str, ...]
    blob_count: Tuple[int, int]
    blob_radius: Tuple[float, float]  # fraction of canvas size
    overlay: str                      # flow | particles | both | none
    post_filter: str
    grain_scale: float = 1.0

    def choose_palette(self, rng: SeededRandom, energy: float, tempo_bpm: float) -> List[Color]:
        """
        Palette for one image.

        Energy picks the variation (high: bright, low: dark, else alternate),
        with a 30% chance of a random variation instead. Fast tempos shuffle
        the order; 10% of images swap one colour for the glow accent.
        """
        if rng.chance(PALETTE_RANDOM_PICK):
            index = rng.randint(0, len(self.palettes) - 1)
        elif energy > 0.7:
            index = 0
        elif energy < 0.3:
            index = 1
        else:
            index = 2
        colors = list(self.palettes[index])
        if tempo_bpm > FAST_TEMPO_BPM:
            colors = rng.shuffled(colors)
        if rng.chance(PALETTE_ACCENT_CHANCE):
            colors[rng.randint(0, len(colors) - 1)] = self.glow
        return [hex_to_rgb(c) for c in colors]

    def background_colors(self) -> List[Color]:
        return [hex_to_rgb(c) for c in self.background_stops]


# Global registry
_REGISTRY: Dict[str, StyleRecipe] = {}


def register_style(recipe: StyleRecipe) -> None:
    """Register a style recipe."""
    if recipe.name in _REGISTRY:
        raise ValueError(f"Style {recipe.name} already registered")
    _REGISTRY[recipe.name] = recipe


def get_style(name: str) -> Optional[StyleRecipe]:
    """Get a registered style by name."""
    return _REGISTRY.get(name)


def list_styles() -> List[str]:
    """List all registered style names, in registration order."""
    return list(_REGISTRY.keys())


# =============================================================================
# "auto" selection table
# =============================================================================

# style -> (weight at energy 0, weight at energy 1); linear in between
AUTO_STYLE_WEIGHTS: Dict[str, Tuple[float, float]] = {
    "neon-plasma": (0.5, 1.6),
    "cosmic-flow": (1.2, 0.8),
    "vapor-dream": (1.6, 0.4),
    "cyber-matrix": (0.6, 1.4),
    "sunset-liquid": (1.0, 1.0),
    "electric-storm": (0.3, 1.8),
    "crystal-prism": (0.8, 1.2),
    "ocean-aurora": (1.6, 0.5),
}


def auto_style_weights(energy: float) -> Dict[str, float]:
    return {
        name: low + (high - low) * energy
        for name, (low, high) in AUTO_STYLE_WEIGHTS.items()
        if name in _REGISTRY
    }


def choose_auto_style(rng: SeededRandom, energy: float) -> StyleRecipe:
    weights = auto_style_weights(energy)
    names = list(weights)
    return _REGISTRY[names[rng.weighted_choice([weights[n] for n in names])]]


# =============================================================================
# Built-in catalogue
# =============================================================================

def _register_builtins():
    register_style(StyleRecipe(
        name="neon-plasma",
        palettes=(
            ("#FF00FF", "#00FFFF", "#FFFF00", "#FF00AA", "#00FF00"),
            ("#AA00AA", "#00AAAA", "#AAAA00", "#AA0066", "#00AA00"),
            ("#FF10F0", "#00FFF0", "#FF00AA", "#7700FF", "#FF7700"),
        ),
        glow="#FFFFFF",
        background_stops=("#0A0E27", "#1A0B5B", "#3D087B"),
        backgrounds=("radial", "mesh"),
        blob_count=(8, 14),
        blob_radius=(0.06, 0.16),
        overlay="particles",
        post_filter="bloom",
    ))
    register_style(StyleRecipe(
        name="cosmic-flow",
        palettes=(
            ("#FFD700", "#FF69B4", "#00CED1", "#FF4500", "#9370DB"),
            ("#4B0082", "#191970", "#000080", "#2F4F4F", "#483D8B"),
            ("#E0FFFF", "#9370DB", "#FF69B4", "#00CED1", "#FFD700"),
        ),
        glow="#E0FFFF",
        background_stops=("#000428", "#0B1A4A", "#004E92"),
        backgrounds=("radial", "burst"),
        blob_count=(4, 8),
        blob_radius=(0.05, 0.12),
        overlay="both",
        post_filter="bloom",
    ))
    register_style(StyleRecipe(
        name="vapor-dream",
        palettes=(
            ("#FF6AD5", "#C774E8", "#AD8CFF", "#8795E8", "#94D0FF"),
            ("#FFB3E6", "#D4A5FF", "#B8E7FC", "#C8B6FF", "#FFDEE9"),
            ("#FFC6FF", "#BDB2FF", "#A0C4FF", "#CAFFBF", "#FDFFB6"),
        ),
        glow="#FFFFFF",
        background_stops=("#FFB3E6", "#C8B6FF", "#B8E7FC"),
        backgrounds=("linear", "wave"),
        blob_count=(6, 10),
        blob_radius=(0.08, 0.18),
        overlay="none",
        post_filter="dream",
        grain_scale=0.7,
    ))
    register_style(StyleRecipe(
        name="cyber-matrix",
        palettes=(
            ("#00FF00", "#00FF88", "#00FFFF", "#88FF00", "#00FF44"),
            ("#003300", "#004400", "#005500", "#00AA44", "#00FF00"),
            ("#00FFFF", "#FF00FF", "#00FF00", "#FFFF00", "#FF0080"),
        ),
        glow="#00FF00",
        background_stops=("#000000", "#001100", "#002200"),
        backgrounds=("linear", "mesh"),
        blob_count=(3, 6),
        blob_radius=(0.04, 0.10),
        overlay="flow",
        post_filter="scanlines",
    ))
    register_style(StyleRecipe(
        name="sunset-liquid",
        palettes=(
            ("#FFD60A", "#FEB237", "#FD6A6A", "#9B5DE5", "#00BBF9"),
            ("#FF6B6B", "#4ECDC4", "#45B7D1", "#F7DC6F", "#BB8FCE"),
            ("#FFE5B4", "#FFCAB0", "#FF8C94", "#8E7CC3", "#FEB237"),
        ),
        glow="#FFAA00",
        background_stops=("#FFE5B4", "#FF8C94", "#8E7CC3"),
        backgrounds=("wave", "linear"),
        blob_count=(6, 12),
        blob_radius=(0.07, 0.17),
        overlay="flow",
        post_filter="dream",
    ))
    register_style(StyleRecipe(
        name="electric-storm",
        palettes=(
            ("#FFFF00", "#00FFFF", "#FF00FF", "#FFFFFF", "#8888FF"),
            ("#000033", "#000066", "#330066", "#003366", "#8888FF"),
            ("#DFFF00", "#FF1493", "#00CED1", "#FF4500", "#9370DB"),
        ),
        glow="#FFFFFF",
        background_stops=("#000033", "#1A0B5B", "#000000"),
        backgrounds=("burst", "radial"),
        blob_count=(4, 9),
        blob_radius=(0.04, 0.11),
        overlay="both",
        post_filter="chromatic",
        grain_scale=1.3,
    ))
    register_style(StyleRecipe(
        name="crystal-prism",
        palettes=(
            ("#FF0080", "#8000FF", "#0080FF", "#00FF80", "#FFFF00"),
            ("#FF80C0", "#C080FF", "#80C0FF", "#80FFC0", "#FFFF80"),
            ("#FF0000", "#00FF00", "#0000FF", "#FFFF00", "#FF00FF"),
        ),
        glow="#FFFFFF",
        background_stops=("#240046", "#3C096C", "#7209B7"),
        backgrounds=("burst", "mesh"),
        blob_count=(5, 10),
        blob_radius=(0.05, 0.13),
        overlay="particles",
        post_filter="chromatic",
    ))
    register_style(StyleRecipe(
        name="ocean-aurora",
        palettes=(
            ("#00F5FF", "#00FA9A", "#40E0D0", "#48D1CC", "#00CED1"),
            ("#006994", "#004466", "#003355", "#00FA9A", "#001133"),
            ("#94D0FF", "#00FFAA", "#8795E8", "#40E0D0", "#C774E8"),
        ),
        glow="#00FFAA",
        background_stops=("#001133", "#003355", "#006994"),
        backgrounds=("wave", "radial"),
        blob_count=(5, 9),
        blob_radius=(0.08, 0.18),
        overlay="flow",
        post_filter="bloom",
    ))


_register_builtins()
