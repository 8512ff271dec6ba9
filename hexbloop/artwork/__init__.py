"""
hexbloop/artwork
Seeded procedural cover art: style registry, renderer and export
"""

from .export import image_to_bytes, mime_type, save_image, stream_image
from .generator import ArtworkGenerator, GenerationInputs, available_styles, generate
from .styles import StyleRecipe, get_style, list_styles, register_style

__all__ = [
    "ArtworkGenerator",
    "GenerationInputs",
    "StyleRecipe",
    "available_styles",
    "generate",
    "get_style",
    "image_to_bytes",
    "list_styles",
    "mime_type",
    "register_style",
    "save_image",
    "stream_image",
]
