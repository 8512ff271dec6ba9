"""
hexbloop/artwork/generator.py
Seeded procedural cover art

Render order:
1. background (style recipe: linear / radial / wave / mesh / burst) + moon glow
2. metaballs on an intermediate surface, glow-filtered onto a second one,
   then screen-composited
3. flow field and/or particle field, density from energy, length from tempo
4. style post-filter (two-surface)
5. luminance grain
6. optional title label

Every call builds its own SeededRandom from inputs.seed, so identical inputs
give byte-identical images and concurrent calls never share state.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image

from ..config import ARTWORK_CONFIG
from ..errors import ArtworkGenerationFailed
from ..seeds import SeededRandom
from . import canvas
from .canvas import Color
from .styles import StyleRecipe, choose_auto_style, get_style, list_styles

logger = logging.getLogger(__name__)

TEMPO_MIN = 60.0
TEMPO_MAX = 200.0
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
MIN_SIZE = 64
MAX_SIZE = 4096

BLOB_GLOW_CONTRAST = 2.0
BLOB_GLOW_BRIGHTNESS = 1.5


def _clamp(name: str, value, lo: float, hi: float, default: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        logger.warning(f"{name}={value!r} is not a number, using {default}")
        return default
    if math.isnan(v):
        logger.warning(f"{name} is NaN, using {default}")
        return default
    if v < lo or v > hi:
        clamped = min(hi, max(lo, v))
        logger.warning(f"{name}={v} outside [{lo}, {hi}], clamped to {clamped}")
        return clamped
    return v


@dataclass
class GenerationInputs:
    """
    Numeric inputs for one image. Values are coerced on construction:
    out-of-range numbers are clamped and unknown styles become "auto".
    """
    style: str = "auto"
    seed: int = 0
    audio_energy: float = 0.5
    tempo_bpm: float = 120.0
    moon_phase: float = 0.5
    title: Optional[str] = None
    size: int = ARTWORK_CONFIG.size

    def __post_init__(self):
        self.audio_energy = _clamp("audio_energy", self.audio_energy, 0.0, 1.0, 0.5)
        self.tempo_bpm = _clamp("tempo_bpm", self.tempo_bpm, TEMPO_MIN, TEMPO_MAX, 120.0)
        self.moon_phase = _clamp("moon_phase", self.moon_phase, 0.0, 1.0, 0.5)
        self.size = int(_clamp("size", self.size, MIN_SIZE, MAX_SIZE, ARTWORK_CONFIG.size))

        try:
            seed = int(self.seed)
        except (TypeError, ValueError):
            logger.warning(f"seed={self.seed!r} is not an integer, using 0")
            seed = 0
        if not INT64_MIN <= seed <= INT64_MAX:
            logger.warning(f"seed {seed} outside int64, wrapped")
            seed = (seed - INT64_MIN) % 2 ** 64 + INT64_MIN
        self.seed = seed

        if self.style != "auto" and get_style(self.style) is None:
            logger.warning(f"Unknown artwork style '{self.style}', using auto")
            self.style = "auto"

    @property
    def tempo_norm(self) -> float:
        return (self.tempo_bpm - TEMPO_MIN) / (TEMPO_MAX - TEMPO_MIN)

    @property
    def illumination(self) -> float:
        return (1.0 - math.cos(self.moon_phase * 2 * math.pi)) / 2.0


FilterPair = Tuple[Callable[[Image.Image], Image.Image],
                   Callable[[Image.Image, Image.Image], Image.Image]]


def post_filter_for(name: str, size: int) -> FilterPair:
    """(filter, composite) pair for a style's post-filter."""
    scale = size / 800.0
    filters: Dict[str, FilterPair] = {
        "bloom": (canvas.glow_filter(12 * scale, 1.2, 1.1), canvas.screen_mix(0.4)),
        "dream": (canvas.soft_filter(6 * scale, 1.3), canvas.mix_blend(0.45)),
        "scanlines": (canvas.scanline_filter(3, 0.35), canvas.mix_blend(0.6)),
        "chromatic": (canvas.chromatic_filter(max(2, round(4 * scale))), canvas.lighten_blend(0.5)),
    }
    if name not in filters:
        raise ValueError(f"Unknown post-filter: {name}")
    return filters[name]


class ArtworkGenerator:
    """Renders GenerationInputs to a PIL RGB image."""

    def __init__(self, grain_amount: float = ARTWORK_CONFIG.grain_amount):
        self.grain_amount = grain_amount

    def resolve_style(self, inputs: GenerationInputs, rng: SeededRandom) -> StyleRecipe:
        if inputs.style == "auto":
            return choose_auto_style(rng, inputs.audio_energy)
        return get_style(inputs.style)

    def generate(self, inputs: GenerationInputs) -> Image.Image:
        """
        Render one image.

        Raises:
            ArtworkGenerationFailed: On any rendering error
        """
        image, _style = self.generate_with_style(inputs)
        return image

    def generate_with_style(self, inputs: GenerationInputs) -> Tuple[Image.Image, str]:
        """Like generate(), also returning the resolved style name."""
        try:
            image, recipe = self._render(inputs)
        except Exception as e:
            raise ArtworkGenerationFailed(f"Artwork rendering failed: {e}") from e
        logger.debug(f"Rendered {recipe.name} seed={inputs.seed} size={inputs.size}")
        return image, recipe.name

    def _render(self, inputs: GenerationInputs) -> Tuple[Image.Image, StyleRecipe]:
        rng = SeededRandom(inputs.seed)
        recipe = self.resolve_style(inputs, rng)
        palette = recipe.choose_palette(rng, inputs.audio_energy, inputs.tempo_bpm)

        img = self._background(recipe, palette, rng, inputs)
        img = self._metaballs(img, recipe, palette, rng, inputs)
        if recipe.overlay in ("flow", "both"):
            img = self._flow_field(img, palette, rng, inputs)
        if recipe.overlay in ("particles", "both"):
            img = self._particles(img, palette, rng, inputs)

        filter_fn, blend_fn = post_filter_for(recipe.post_filter, inputs.size)
        img = canvas.two_pass(img, filter_fn, blend_fn)

        img = canvas.add_grain(img, self.grain_amount * recipe.grain_scale, rng.numpy_generator())
        if inputs.title:
            img = canvas.draw_label(img, inputs.title)
        return img, recipe

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _background(self, recipe: StyleRecipe, palette: List[Color], rng: SeededRandom,
                    inputs: GenerationInputs) -> Image.Image:
        size = inputs.size
        stops = canvas.even_stops(recipe.background_colors())
        kind = rng.choice(recipe.backgrounds)

        if kind == "linear":
            img = canvas.linear_gradient(size, stops, rng.uniform(0, 2 * math.pi))
        elif kind == "radial":
            cx = round(size * rng.uniform(0.3, 0.7))
            cy = round(size * rng.uniform(0.3, 0.7))
            img = canvas.radial_gradient(size, stops, cx, cy, size * rng.uniform(0.7, 1.1))
        elif kind == "wave":
            img = canvas.wave_gradient(size, stops, rng.uniform(1.0, 3.0),
                                       rng.uniform(0.03, 0.08), rng.uniform(0, 2 * math.pi))
        elif kind == "mesh":
            img = canvas.linear_gradient(size, stops, rng.uniform(0, 2 * math.pi))
            for _ in range(3):
                img = canvas.overlay_radial_glow(
                    img,
                    round(size * rng.random()), round(size * rng.random()),
                    size * rng.uniform(0.3, 0.7),
                    rng.choice(palette), rng.choice(palette),
                    0.3, 0.1,
                )
        elif kind == "burst":
            half = size // 2
            img = canvas.radial_gradient(size, stops, half, half, size * 0.75)
            img = canvas.draw_rays(img, half, half, rng.randint(12, 24),
                                   rng.uniform(0, 2 * math.pi), rng.choice(palette), 28)
        else:
            raise ValueError(f"Unknown background recipe: {kind}")

        # Moon glow, brighter and larger towards full moon
        mx = round(size * rng.uniform(0.2, 0.8))
        my = round(size * rng.uniform(0.1, 0.35))
        illum = inputs.illumination
        if illum > 0.05:
            glow = canvas.hex_to_rgb(recipe.glow)
            img = canvas.overlay_radial_glow(img, mx, my, size * (0.08 + 0.12 * illum),
                                             glow, glow, 0.5 * illum, 0.0)
        return img

    def _metaballs(self, img: Image.Image, recipe: StyleRecipe, palette: List[Color],
                   rng: SeededRandom, inputs: GenerationInputs) -> Image.Image:
        size = inputs.size
        energy = inputs.audio_energy
        lo, hi = recipe.blob_count
        count = round(lo + (hi - lo) * energy) + rng.randint(0, 2)

        layer = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        skipped = 0
        for i in range(count):
            radius = size * rng.uniform(*recipe.blob_radius) * (0.8 + 0.4 * energy)
            cx = round(size * rng.uniform(-0.25, 1.25))
            cy = round(size * rng.uniform(-0.25, 1.25))
            if not canvas.stamp_radial_disc(layer, cx, cy, radius, palette[i % len(palette)]):
                skipped += 1
        if skipped:
            logger.debug(f"Skipped {skipped}/{count} off-canvas metaballs")

        surface = canvas.flatten_on_black(layer)
        glow = canvas.glow_filter(20 * size / 1000.0, BLOB_GLOW_CONTRAST, BLOB_GLOW_BRIGHTNESS)(surface)
        return canvas.screen_blend(img, glow)

    def _flow_field(self, img: Image.Image, palette: List[Color], rng: SeededRandom,
                    inputs: GenerationInputs) -> Image.Image:
        size = inputs.size
        area = (size / 800.0) ** 2
        density = max(1, round((60 + 140 * inputs.audio_energy) * area))
        ox, oy = rng.uniform(0, 1000), rng.uniform(0, 1000)
        length_scale = 0.5 + inputs.tempo_norm
        curl = 0.5 + inputs.tempo_norm

        layer = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        for _ in range(density):
            x = rng.uniform(0, size)
            y = rng.uniform(0, size)
            angle = canvas.noise2d(x * 4.0 / size, y * 4.0 / size, ox, oy) * math.pi * 2
            length = size * (0.06 + 0.12 * rng.random()) * length_scale
            width = 1 + int(rng.random() * 3)
            color = rng.choice(palette)
            points = canvas.flow_stroke_points(x, y, angle, length, curl)
            canvas.draw_stroke(layer, points, color, width, 200)
        return canvas.screen_blend(img, canvas.flatten_on_black(layer))

    def _particles(self, img: Image.Image, palette: List[Color], rng: SeededRandom,
                   inputs: GenerationInputs) -> Image.Image:
        size = inputs.size
        area = (size / 800.0) ** 2
        count = max(1, round((80 + 220 * inputs.audio_energy) * area))

        layer = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        for _ in range(count):
            x = round(rng.uniform(0, size))
            y = round(rng.uniform(0, size))
            radius = (1 + rng.random() * 4) * size / 800.0
            canvas.stamp_radial_disc(layer, x, y, radius, rng.choice(palette),
                                     canvas.PARTICLE_ALPHA_STOPS, extent=3.0)
        return canvas.screen_blend(img, canvas.flatten_on_black(layer))


def generate(inputs: GenerationInputs) -> Image.Image:
    """Module-level convenience: render with default settings."""
    return ArtworkGenerator().generate(inputs)


def available_styles() -> List[str]:
    return ["auto"] + list_styles()
