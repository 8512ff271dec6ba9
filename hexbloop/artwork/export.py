"""
hexbloop/artwork/export.py
Writing rendered artwork to disk or memory

Three paths:
- save_image:     whole file, format from extension or argument
- image_to_bytes: whole buffer in memory (for tag embedding)
- stream_image:   encoder output forwarded to any writable in fixed chunks,
                  so large canvases never sit fully encoded in memory
"""

import io
from pathlib import Path
from typing import BinaryIO, Optional

from PIL import Image

from ..config import ARTWORK_CONFIG
from ..errors import ArtworkGenerationFailed

FORMAT_ALIASES = {"jpg": "jpeg", "jpeg": "jpeg", "png": "png"}
MIME_TYPES = {"png": "image/png", "jpeg": "image/jpeg"}


def _normalize_format(image_format: str) -> str:
    fmt = FORMAT_ALIASES.get(image_format.lower().lstrip("."))
    if fmt is None:
        raise ValueError(f"Unsupported artwork format: {image_format}")
    return fmt


def _save_kwargs(fmt: str, quality: Optional[int], compress_level: Optional[int]) -> dict:
    if fmt == "jpeg":
        return {"quality": quality if quality is not None else ARTWORK_CONFIG.jpeg_quality,
                "optimize": True}
    return {"compress_level": compress_level if compress_level is not None
            else ARTWORK_CONFIG.png_compress_level}


def mime_type(image_format: str) -> str:
    return MIME_TYPES[_normalize_format(image_format)]


def save_image(image: Image.Image, path, image_format: Optional[str] = None,
               quality: Optional[int] = None, compress_level: Optional[int] = None) -> Path:
    """
    Write image to path.

    Args:
        image_format: png or jpeg; defaults to the path's extension
        quality: JPEG quality (1-95)
        compress_level: PNG zlib level (0-9)
    """
    path = Path(path)
    fmt = _normalize_format(image_format or path.suffix or ARTWORK_CONFIG.image_format)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        image.convert("RGB").save(path, format=fmt.upper(), **_save_kwargs(fmt, quality, compress_level))
    except OSError as e:
        raise ArtworkGenerationFailed(f"Failed to save artwork {path}: {e}") from e
    return path


def image_to_bytes(image: Image.Image, image_format: str = ARTWORK_CONFIG.image_format,
                   quality: Optional[int] = None, compress_level: Optional[int] = None) -> bytes:
    fmt = _normalize_format(image_format)
    buf = io.BytesIO()
    image.convert("RGB").save(buf, format=fmt.upper(), **_save_kwargs(fmt, quality, compress_level))
    return buf.getvalue()


class _ChunkedWriter:
    """Buffers encoder output and forwards it in chunk_size blocks."""

    def __init__(self, target: BinaryIO, chunk_size: int):
        self.target = target
        self.chunk_size = chunk_size
        self.written = 0
        self._pending = bytearray()

    def write(self, data) -> int:
        self._pending.extend(data)
        while len(self._pending) >= self.chunk_size:
            self._emit(bytes(self._pending[:self.chunk_size]))
            del self._pending[:self.chunk_size]
        return len(data)

    def flush(self) -> None:
        if self._pending:
            self._emit(bytes(self._pending))
            self._pending.clear()
        if hasattr(self.target, "flush"):
            self.target.flush()

    def _emit(self, chunk: bytes) -> None:
        self.target.write(chunk)
        self.written += len(chunk)


def stream_image(image: Image.Image, fileobj: BinaryIO,
                 image_format: str = ARTWORK_CONFIG.image_format,
                 quality: Optional[int] = None, compress_level: Optional[int] = None,
                 chunk_size: int = ARTWORK_CONFIG.stream_chunk_size) -> int:
    """
    Encode image straight into fileobj.

    Returns:
        Number of bytes written
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    fmt = _normalize_format(image_format)
    writer = _ChunkedWriter(fileobj, chunk_size)
    image.convert("RGB").save(writer, format=fmt.upper(), **_save_kwargs(fmt, quality, compress_level))
    writer.flush()
    return writer.written
