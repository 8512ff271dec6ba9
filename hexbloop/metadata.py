"""
hexbloop/metadata.py
Tag and cover-art embedding (mutagen)

Supported containers: MP3 (ID3), WAV (ID3 chunk), FLAC (Vorbis comments +
PICTURE block), M4A (MP4 atoms), OGG Vorbis (Vorbis comments with a
base64 METADATA_BLOCK_PICTURE).

Embedding is done on a temporary copy that replaces the target only after
mutagen has saved successfully, so a failure leaves the target untouched.
"""

import base64
import os
import shutil
import tempfile
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from mutagen import MutagenError
from mutagen.flac import FLAC, Picture
from mutagen.id3 import APIC, COMM, ID3, ID3NoHeaderError, TALB, TCON, TDRC, TIT2, TPE1
from mutagen.mp4 import MP4, MP4Cover
from mutagen.oggvorbis import OggVorbis
from mutagen.wave import WAVE

from .config import MetadataSettings
from .errors import MetadataEmbedFailed
from .logger import logger
from .lunar import TemporalInfluence
from .naming import NameStyle, infer_genre

ALBUM_SUFFIX = "Chaos Magic Audio"
COVER_DESCRIPTION = "Hexbloop Artwork"
FRONT_COVER = 3  # APIC / FLAC picture type


@dataclass
class TrackMetadata:
    title: str
    artist: str
    album: str
    genre: str
    year: str
    comment: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class CoverArt:
    data: bytes
    mime: str = "image/png"
    width: int = 0
    height: int = 0


def generate_metadata(
    generated_name: str,
    original_path,
    settings: Optional[MetadataSettings] = None,
    influence: Optional[TemporalInfluence] = None,
    style: Optional[NameStyle] = None,
    now: Optional[datetime] = None,
) -> TrackMetadata:
    """
    Tags for one processed file.

    The generated name is the artist, the original file stem the title.
    Non-empty settings fields take precedence.
    """
    settings = settings or MetadataSettings()
    now = now or datetime.now()
    comment = f"Processed with Hexbloop on {now:%Y-%m-%d %H:%M:%S}"
    if influence is not None:
        comment += f" ({influence.describe()})"
    return TrackMetadata(
        title=Path(original_path).stem or "Hexbloop Transform",
        artist=settings.artist or generated_name,
        album=settings.album or f"{generated_name} - {ALBUM_SUFFIX}",
        genre=settings.genre or infer_genre(generated_name, style),
        year=settings.year or str(now.year),
        comment=comment,
    )


# =============================================================================
# Per-container writers
# =============================================================================

def _id3_frames(meta: TrackMetadata, cover: Optional[CoverArt]) -> list:
    frames = [
        TIT2(encoding=3, text=[meta.title]),
        TPE1(encoding=3, text=[meta.artist]),
        TALB(encoding=3, text=[meta.album]),
        TCON(encoding=3, text=[meta.genre]),
        TDRC(encoding=3, text=[meta.year]),
        COMM(encoding=3, lang="eng", desc="", text=[meta.comment]),
    ]
    if cover is not None:
        frames.append(APIC(encoding=3, mime=cover.mime, type=FRONT_COVER,
                           desc=COVER_DESCRIPTION, data=cover.data))
    return frames


def _write_mp3(path: Path, meta: TrackMetadata, cover: Optional[CoverArt]) -> None:
    try:
        tags = ID3(path)
    except ID3NoHeaderError:
        tags = ID3()
    tags.delall("APIC")
    for frame in _id3_frames(meta, cover):
        tags.add(frame)
    tags.save(path)


def _write_wav(path: Path, meta: TrackMetadata, cover: Optional[CoverArt]) -> None:
    audio = WAVE(path)
    if audio.tags is None:
        audio.add_tags()
    audio.tags.delall("APIC")
    for frame in _id3_frames(meta, cover):
        audio.tags.add(frame)
    audio.save()


def _flac_picture(cover: CoverArt) -> Picture:
    pic = Picture()
    pic.data = cover.data
    pic.type = FRONT_COVER
    pic.mime = cover.mime
    pic.desc = COVER_DESCRIPTION
    pic.width = cover.width
    pic.height = cover.height
    pic.depth = 24
    return pic


def _vorbis_fields(meta: TrackMetadata) -> Dict[str, list]:
    return {
        "title": [meta.title],
        "artist": [meta.artist],
        "album": [meta.album],
        "genre": [meta.genre],
        "date": [meta.year],
        "comment": [meta.comment],
    }


def _write_flac(path: Path, meta: TrackMetadata, cover: Optional[CoverArt]) -> None:
    audio = FLAC(path)
    if audio.tags is None:
        audio.add_tags()
    for key, values in _vorbis_fields(meta).items():
        audio[key] = values
    if cover is not None:
        audio.clear_pictures()
        audio.add_picture(_flac_picture(cover))
    audio.save()


def _write_ogg(path: Path, meta: TrackMetadata, cover: Optional[CoverArt]) -> None:
    audio = OggVorbis(path)
    for key, values in _vorbis_fields(meta).items():
        audio[key] = values
    if cover is not None:
        encoded = base64.b64encode(_flac_picture(cover).write()).decode("ascii")
        audio["metadata_block_picture"] = [encoded]
    audio.save()


def _write_m4a(path: Path, meta: TrackMetadata, cover: Optional[CoverArt]) -> None:
    audio = MP4(path)
    if audio.tags is None:
        audio.add_tags()
    audio["\xa9nam"] = [meta.title]
    audio["\xa9ART"] = [meta.artist]
    audio["\xa9alb"] = [meta.album]
    audio["\xa9gen"] = [meta.genre]
    audio["\xa9day"] = [meta.year]
    audio["\xa9cmt"] = [meta.comment]
    if cover is not None:
        fmt = MP4Cover.FORMAT_JPEG if cover.mime == "image/jpeg" else MP4Cover.FORMAT_PNG
        audio["covr"] = [MP4Cover(cover.data, imageformat=fmt)]
    audio.save()


WRITERS: Dict[str, Callable[[Path, TrackMetadata, Optional[CoverArt]], None]] = {
    ".mp3": _write_mp3,
    ".wav": _write_wav,
    ".flac": _write_flac,
    ".ogg": _write_ogg,
    ".m4a": _write_m4a,
}


def supports(path) -> bool:
    return Path(path).suffix.lower() in WRITERS


def embed_metadata(path, meta: TrackMetadata, cover: Optional[CoverArt] = None) -> Path:
    """
    Write tags (and cover art, when given) into the file at path.

    Raises:
        MetadataEmbedFailed: Unsupported container or mutagen error. The file
            at path is left as it was.
    """
    path = Path(path)
    writer = WRITERS.get(path.suffix.lower())
    if writer is None:
        raise MetadataEmbedFailed(f"No tag writer for {path.suffix or 'extensionless'} files")

    fd, tmp = tempfile.mkstemp(prefix=".tagging_", suffix=path.suffix, dir=path.parent)
    os.close(fd)
    tmp_path = Path(tmp)
    try:
        shutil.copyfile(path, tmp_path)
        writer(tmp_path, meta, cover)
        os.replace(tmp_path, path)
    except (MutagenError, OSError, ValueError) as e:
        tmp_path.unlink(missing_ok=True)
        raise MetadataEmbedFailed(f"Could not tag {path.name}: {e}") from e

    logger.debug(f"Tagged {path.name}: {meta.artist} - {meta.title}"
                 f"{' (with cover)' if cover else ''}", component="META")
    return path


def read_metadata(path) -> Dict[str, Optional[str]]:
    """
    Read back the common fields plus whether a cover is present.

    Used by the CLI `inspect` command and the tests.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    out: Dict[str, Optional[str]] = {k: None for k in ("title", "artist", "album", "genre", "year", "comment")}
    has_cover = False
    try:
        if suffix in (".mp3", ".wav"):
            tags = ID3(path) if suffix == ".mp3" else WAVE(path).tags
            if tags is not None:
                for key, frame_id in (("title", "TIT2"), ("artist", "TPE1"), ("album", "TALB"),
                                      ("genre", "TCON"), ("year", "TDRC")):
                    frame = tags.get(frame_id)
                    out[key] = str(frame.text[0]) if frame else None
                comments = tags.getall("COMM")
                out["comment"] = str(comments[0].text[0]) if comments else None
                has_cover = bool(tags.getall("APIC"))
        elif suffix in (".flac", ".ogg"):
            audio = FLAC(path) if suffix == ".flac" else OggVorbis(path)
            for key, field_name in (("title", "title"), ("artist", "artist"), ("album", "album"),
                                    ("genre", "genre"), ("year", "date"), ("comment", "comment")):
                values = audio.get(field_name)
                out[key] = values[0] if values else None
            if suffix == ".flac":
                has_cover = bool(audio.pictures)
            else:
                has_cover = bool(audio.get("metadata_block_picture"))
        elif suffix == ".m4a":
            audio = MP4(path)
            tags = audio.tags or {}
            for key, atom in (("title", "\xa9nam"), ("artist", "\xa9ART"), ("album", "\xa9alb"),
                              ("genre", "\xa9gen"), ("year", "\xa9day"), ("comment", "\xa9cmt")):
                values = tags.get(atom)
                out[key] = values[0] if values else None
            has_cover = bool(tags.get("covr"))
    except ID3NoHeaderError:
        pass
    except MutagenError as e:
        logger.warning(f"Could not read tags from {path.name}", component="META", details=str(e))
    out["cover"] = "yes" if has_cover else "no"
    return out
