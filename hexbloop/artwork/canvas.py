"""
hexbloop/artwork/canvas.py
Raster primitives for the artwork renderer

Everything here is a pure function of its arguments: randomness is passed in
as values (or a numpy Generator for grain), never drawn from global state.
Shape coordinates are rounded to whole pixels before drawing.
"""

import math
from typing import Callable, List, Sequence, Tuple

import numpy as np
from PIL import Image, ImageChops, ImageDraw, ImageEnhance, ImageFilter, ImageFont

Color = Tuple[int, int, int]
Stops = Sequence[Tuple[float, Color]]

# Alpha profile of one metaball (position along 2x radius -> opacity)
METABALL_ALPHA_STOPS = ((0.0, 1.0), (0.3, 0.9), (0.5, 0.5), (1.0, 0.0))
PARTICLE_ALPHA_STOPS = ((0.0, 1.0), (0.3, 0.8), (1.0, 0.0))


# =============================================================================
# Color Utilities
# =============================================================================

def hex_to_rgb(value: str) -> Color:
    value = value.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def mix(c1: Color, c2: Color, t: float) -> Color:
    return tuple(int(round(a + (b - a) * t)) for a, b in zip(c1, c2))


def even_stops(colors: Sequence[Color]) -> List[Tuple[float, Color]]:
    if len(colors) == 1:
        return [(0.0, colors[0]), (1.0, colors[0])]
    n = len(colors) - 1
    return [(i / n, c) for i, c in enumerate(colors)]


def _interp_stops(t: np.ndarray, stops: Stops) -> np.ndarray:
    """Map a float field t (0..1) through color stops to an HxWx3 uint8 array."""
    positions = [p for p, _ in stops]
    out = np.empty(t.shape + (3,), dtype=np.float32)
    for ch in range(3):
        out[..., ch] = np.interp(t, positions, [c[ch] for _, c in stops])
    return np.clip(out + 0.5, 0, 255).astype(np.uint8)


# =============================================================================
# Backgrounds
# =============================================================================

def linear_gradient(size: int, stops: Stops, angle: float) -> Image.Image:
    """Full-canvas linear gradient along `angle` (radians)."""
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float32)
    dx, dy = math.cos(angle), math.sin(angle)
    proj = (xx - size / 2) * dx + (yy - size / 2) * dy
    half = (abs(dx) + abs(dy)) * size / 2
    t = np.clip((proj + half) / (2 * half), 0.0, 1.0)
    return Image.fromarray(_interp_stops(t, stops))


def radial_gradient(size: int, stops: Stops, cx: int, cy: int, radius: float) -> Image.Image:
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float32)
    t = np.clip(np.hypot(xx - cx, yy - cy) / max(radius, 1.0), 0.0, 1.0)
    return Image.fromarray(_interp_stops(t, stops))


def wave_gradient(size: int, stops: Stops, frequency: float, amplitude: float,
                  phase: float) -> Image.Image:
    """Vertical gradient whose bands ripple horizontally."""
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float32)
    t = yy / size + amplitude * np.sin(xx / size * frequency * 2 * math.pi + phase)
    return Image.fromarray(_interp_stops(np.clip(t, 0.0, 1.0), stops))


def overlay_radial_glow(base: Image.Image, cx: int, cy: int, radius: float,
                        inner: Color, outer: Color, inner_alpha: float,
                        outer_alpha: float) -> Image.Image:
    """Alpha-blend a soft two-colour radial gradient over base."""
    size = base.size[0]
    yy, xx = np.mgrid[0:size, 0:size].astype(np.float32)
    t = np.clip(np.hypot(xx - cx, yy - cy) / max(radius, 1.0), 0.0, 1.0)
    rgb = _interp_stops(t, ((0.0, inner), (1.0, outer)))
    alpha = np.where(
        t < 1.0,
        inner_alpha + (outer_alpha - inner_alpha) * t,
        0.0,
    )
    layer = np.dstack([rgb, (alpha * 255 + 0.5).astype(np.uint8)])
    out = base.convert("RGBA")
    out.alpha_composite(Image.fromarray(layer))
    return out.convert("RGB")


def draw_rays(base: Image.Image, cx: int, cy: int, count: int, start_angle: float,
              color: Color, alpha: int) -> Image.Image:
    """Thin translucent wedges radiating from (cx, cy)."""
    size = base.size[0]
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    reach = size * 1.5
    spread = math.pi / count / 2
    for i in range(count):
        a = start_angle + i * 2 * math.pi / count
        pts = [
            (cx, cy),
            (round(cx + math.cos(a - spread / 2) * reach), round(cy + math.sin(a - spread / 2) * reach)),
            (round(cx + math.cos(a + spread / 2) * reach), round(cy + math.sin(a + spread / 2) * reach)),
        ]
        draw.polygon(pts, fill=color + (alpha,))
    out = base.convert("RGBA")
    out.alpha_composite(layer)
    return out.convert("RGB")


# =============================================================================
# Discs (metaballs, particles)
# =============================================================================

def stamp_radial_disc(layer: Image.Image, cx: int, cy: int, radius: float, color: Color,
                      alpha_stops=METABALL_ALPHA_STOPS, extent: float = 2.0) -> bool:
    """
    Composite one radial-gradient disc onto an RGBA layer.

    The gradient runs out to extent x radius. Discs lying entirely more than
    that far outside the canvas are skipped.

    Returns:
        True if drawn, False if skipped
    """
    w, h = layer.size
    reach = radius * extent
    if cx < -reach or cy < -reach or cx > w + reach or cy > h + reach:
        return False

    x0, y0 = max(0, int(cx - reach)), max(0, int(cy - reach))
    x1, y1 = min(w, int(cx + reach) + 1), min(h, int(cy + reach) + 1)
    if x1 <= x0 or y1 <= y0:
        return False

    yy, xx = np.mgrid[y0:y1, x0:x1].astype(np.float32)
    t = np.hypot(xx - cx, yy - cy) / max(reach, 1.0)
    alpha = np.interp(t, [p for p, _ in alpha_stops], [a for _, a in alpha_stops])
    patch = np.empty((y1 - y0, x1 - x0, 4), dtype=np.uint8)
    patch[..., 0], patch[..., 1], patch[..., 2] = color
    patch[..., 3] = np.clip(alpha * 255 + 0.5, 0, 255).astype(np.uint8)
    layer.alpha_composite(Image.fromarray(patch), dest=(x0, y0))
    return True


def flatten_on_black(layer: Image.Image) -> Image.Image:
    """RGBA layer -> RGB with transparency as black (neutral for screen)."""
    out = Image.new("RGB", layer.size, (0, 0, 0))
    out.paste(layer, mask=layer.getchannel("A"))
    return out


# =============================================================================
# Strokes
# =============================================================================

def noise2d(x: float, y: float, ox: float, oy: float) -> float:
    """Smooth deterministic pseudo-noise in [-1, 1]."""
    v = (math.sin(x * 1.7 + ox) * math.cos(y * 1.3 + oy)
         + 0.5 * math.sin((x + y) * 2.9 + ox * 0.5)
         + 0.25 * math.cos((x - y) * 4.3 + oy * 0.7))
    return v / 1.75


def flow_stroke_points(x: float, y: float, angle: float, length: float, curl: float,
                       steps: int = 20) -> List[Tuple[int, int]]:
    pts = []
    for j in range(steps + 1):
        t = j / steps
        pts.append((
            round(x + math.cos(angle + t * curl) * length * t),
            round(y + math.sin(angle + t * curl) * length * t),
        ))
    return pts


def draw_stroke(layer: Image.Image, points: List[Tuple[int, int]], color: Color,
                width: int, alpha: int) -> None:
    """Polyline fading in and out along its length."""
    draw = ImageDraw.Draw(layer)
    n = len(points) - 1
    for i in range(n):
        # Triangle envelope: 0 at the ends, full in the middle
        env = 1.0 - abs((i + 0.5) / n * 2 - 1.0)
        a = int(alpha * env)
        if a <= 0:
            continue
        draw.line([points[i], points[i + 1]], fill=color + (a,), width=width)


# =============================================================================
# Filters
# =============================================================================

def css_contrast(img: Image.Image, factor: float) -> Image.Image:
    """Contrast around mid-grey (not the image mean)."""
    lut = [max(0, min(255, int(round((v - 128) * factor + 128)))) for v in range(256)]
    return img.point(lut * len(img.getbands()))


def two_pass(base: Image.Image,
             filter_fn: Callable[[Image.Image], Image.Image],
             blend_fn: Callable[[Image.Image, Image.Image], Image.Image]) -> Image.Image:
    """
    Render -> copy -> filter -> composite.

    The copy is the first intermediate surface, the filter output is the
    second; base is only touched by the final composite.
    """
    first = base.copy()
    second = filter_fn(first)
    return blend_fn(base, second)


def glow_filter(blur_radius: float, contrast: float, brightness: float):
    def apply(img: Image.Image) -> Image.Image:
        img = img.filter(ImageFilter.GaussianBlur(blur_radius))
        img = css_contrast(img, contrast)
        return ImageEnhance.Brightness(img).enhance(brightness)
    return apply


def screen_blend(base: Image.Image, top: Image.Image) -> Image.Image:
    return ImageChops.screen(base, top)


def mix_blend(amount: float):
    def apply(base: Image.Image, top: Image.Image) -> Image.Image:
        return Image.blend(base, top, amount)
    return apply


def scanline_filter(period: int, darken: float):
    def apply(img: Image.Image) -> Image.Image:
        arr = np.asarray(img, dtype=np.float32).copy()
        arr[::period] *= (1.0 - darken)
        return Image.fromarray(np.clip(arr, 0, 255).astype(np.uint8)).filter(
            ImageFilter.GaussianBlur(0.6))
    return apply


def chromatic_filter(shift: int):
    def apply(img: Image.Image) -> Image.Image:
        r, g, b = img.split()
        return Image.merge("RGB", (
            ImageChops.offset(r, shift, 0),
            g,
            ImageChops.offset(b, -shift, 0),
        ))
    return apply


def lighten_blend(amount: float):
    def apply(base: Image.Image, top: Image.Image) -> Image.Image:
        return Image.blend(base, ImageChops.lighter(base, top), amount)
    return apply


def screen_mix(amount: float):
    def apply(base: Image.Image, top: Image.Image) -> Image.Image:
        return Image.blend(base, ImageChops.screen(base, top), amount)
    return apply


def soft_filter(blur_radius: float, saturation: float):
    def apply(img: Image.Image) -> Image.Image:
        img = img.filter(ImageFilter.GaussianBlur(blur_radius))
        return ImageEnhance.Color(img).enhance(saturation)
    return apply


# =============================================================================
# Finishing
# =============================================================================

def add_grain(img: Image.Image, amount: float, gen: np.random.Generator) -> Image.Image:
    """Per-pixel luminance noise of +/- amount (fraction of full scale)."""
    arr = np.asarray(img, dtype=np.float32)
    noise = gen.uniform(-1.0, 1.0, size=arr.shape[:2] + (1,)).astype(np.float32)
    arr = arr + noise * (amount * 255.0)
    return Image.fromarray(np.clip(arr + 0.5, 0, 255).astype(np.uint8))


def draw_label(img: Image.Image, text: str, color: Color = (255, 255, 255)) -> Image.Image:
    """Small title in the lower-left corner with a drop shadow."""
    # The default font only covers ASCII reliably
    text = text.encode("ascii", "ignore").decode("ascii").strip()
    if not text:
        return img
    out = img.copy()
    draw = ImageDraw.Draw(out)
    font = ImageFont.load_default()
    margin = round(img.size[1] * 0.04)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = margin
    y = img.size[1] - margin - (bottom - top)
    draw.text((x + 1, y + 1), text, font=font, fill=(0, 0, 0))
    draw.text((x, y), text, font=font, fill=color)
    return out
