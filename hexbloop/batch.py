"""
hexbloop/batch.py
Batch naming: schemes, numbering and session folders

Schemes:
- mystical:    independent mystical name per file
- sequential:  fixed base (prefix or "track") + counter
- timestamp:   one session timestamp shared by the whole batch
- hybrid:      mystical base + counter
- preserve:    original stem, optionally + "hexblooped" marker

Session folders are claimed through a CounterStore so two sessions with the
same key never share a folder, even across runs.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .config import BatchNamingSettings
from .counters import CounterStore
from .logger import logger
from .lunar import TemporalInfluence, compute_temporal_influence
from .naming import MAX_NAME_LENGTH, NameGenerator, NameRecord, NameStyle, sanitize_name
from .seeds import SeededRandom

PRESERVE_MARKER = "hexblooped"
SEQUENTIAL_BASE = "track"

ROMAN_NUMERALS = (
    ("m", 1000), ("cm", 900), ("d", 500), ("cd", 400),
    ("c", 100), ("xc", 90), ("l", 50), ("xl", 40),
    ("x", 10), ("ix", 9), ("v", 5), ("iv", 4), ("i", 1),
)


def to_alpha(n: int) -> str:
    """Bijective base-26: 1 -> A, 26 -> Z, 27 -> AA."""
    if n < 1:
        raise ValueError(f"to_alpha needs a positive integer, got {n}")
    out = ""
    while n > 0:
        n -= 1
        out = chr(ord("A") + n % 26) + out
        n //= 26
    return out


def to_roman(n: int) -> str:
    """Lower-case subtractive roman numerals: 4 -> iv, 1994 -> mcmxciv."""
    if n < 1:
        raise ValueError(f"to_roman needs a positive integer, got {n}")
    out = []
    for numeral, value in ROMAN_NUMERALS:
        count, n = divmod(n, value)
        out.append(numeral * count)
    return "".join(out)


def format_number(position: int, style: str, padding: int = 3) -> Optional[str]:
    """Numbering token for a 1-based position, or None for style 'none'."""
    if style == "numeric":
        return str(position).zfill(padding)
    if style == "alpha":
        return to_alpha(position)
    if style == "roman":
        return to_roman(position)
    return None


@dataclass
class BatchPreview:
    original: str
    generated: str
    folder: Optional[str] = None


class BatchNamingEngine:
    """
    Names every file of one batch.

    One engine instance is one session: the session timestamp, temporal
    influence and session folder are fixed when it is created or first used.
    """

    def __init__(
        self,
        settings: Optional[BatchNamingSettings] = None,
        counters: Optional[CounterStore] = None,
        rng: Optional[SeededRandom] = None,
        now: Optional[datetime] = None,
        influence: Optional[TemporalInfluence] = None,
    ):
        self.settings = settings or BatchNamingSettings()
        self.counters = counters or CounterStore()
        self.generator = NameGenerator(rng or SeededRandom())
        self.session_time = now or datetime.now()
        self.influence = influence or compute_temporal_influence(self.session_time)
        self._used = set()
        self._lock = threading.Lock()
        self._session_folder: Optional[str] = None
        self._session_claimed = False

    # -------------------------------------------------------------------------
    # Names
    # -------------------------------------------------------------------------

    def numbering_style(self, total: int) -> str:
        s = self.settings
        if s.numbering != "none":
            return s.numbering
        if s.scheme in ("sequential", "hybrid"):
            return "numeric"
        if s.scheme == "timestamp" and total > 1:
            # A shared timestamp alone cannot tell the files apart
            return "numeric"
        return "none"

    def generate_name(self, original_path, index: int = 0, total: int = 1) -> NameRecord:
        """Name for file `index` (0-based) of `total`, before uniqueness checks."""
        s = self.settings
        sep = s.separator
        style = NameStyle.MIXED
        token = format_number(index + 1, self.numbering_style(total), s.numbering_padding)

        if s.scheme in ("mystical", "hybrid"):
            record = self.generator.generate(influence=self.influence)
            base, style = record.text, record.style
        elif s.scheme == "sequential":
            base = s.prefix or SEQUENTIAL_BASE
        elif s.scheme == "timestamp":
            t = self.session_time
            base = f"hexbloop{sep}{t:%Y%m%d}{sep}{t:%H%M%S}"
        elif s.scheme == "preserve":
            base = Path(original_path).stem
            if s.preserve_original:
                base = f"{base}{sep}{PRESERVE_MARKER}"
        else:
            raise ValueError(f"Unknown naming scheme: {s.scheme}")

        parts = []
        if s.prefix and s.scheme != "sequential":
            parts.append(s.prefix)
        parts.append(base)
        if token:
            parts.append(token)
        if s.suffix:
            parts.append(s.suffix)

        text = sanitize_name(sep.join(parts), style)
        return NameRecord(text=text, style=style, numbering_token=token)

    def make_unique(self, record: NameRecord, output_dir=None, extension: str = "") -> NameRecord:
        """
        Reserve record.text for this batch, appending <sep>2, <sep>3, ... on collision
        with names already handed out or files already in output_dir.
        """
        sep = self.settings.separator or "_"
        with self._lock:
            candidate = record.text
            n = 2
            while self._taken(candidate, output_dir, extension):
                tail = f"{sep}{n}"
                candidate = sanitize_name(record.text[: MAX_NAME_LENGTH - len(tail)] + tail, record.style)
                n += 1
            self._used.add(candidate.lower())
        if candidate == record.text:
            return record
        logger.debug(f"Renamed duplicate {record.text} -> {candidate}", component="NAMING")
        return NameRecord(text=candidate, style=record.style, numbering_token=record.numbering_token)

    def _taken(self, name: str, output_dir, extension: str) -> bool:
        # Case-insensitive: several target filesystems are
        if name.lower() in self._used:
            return True
        return output_dir is not None and (Path(output_dir) / f"{name}{extension}").exists()

    def name_batch(self, paths: Sequence, output_dir=None,
                   extension: Union[str, Sequence[str]] = "") -> List[NameRecord]:
        """Unique names for every path, in input order. extension may be per path."""
        total = len(paths)
        extensions = [extension] * total if isinstance(extension, str) else list(extension)
        if self.settings.scheme == "timestamp" and self.settings.numbering == "none" and total > 1:
            logger.warning("Timestamp names need numbering to stay unique, using numeric",
                           component="NAMING")
        return [
            self.make_unique(self.generate_name(p, i, total), output_dir, extensions[i])
            for i, p in enumerate(paths)
        ]

    # -------------------------------------------------------------------------
    # Session folders
    # -------------------------------------------------------------------------

    def _folder_key(self) -> str:
        scheme = self.settings.folder_scheme
        if scheme == "date":
            return f"date:{self.session_time:%Y-%m-%d}"
        if scheme == "lunar":
            return f"lunar:{self.influence.phase_name.value}"
        if scheme == "counter":
            return "global"
        raise ValueError(f"Unknown folder scheme: {scheme}")

    def _folder_name(self, n: int) -> str:
        scheme = self.settings.folder_scheme
        if scheme == "date":
            return f"{self.session_time:%Y-%m-%d}_session_{n:02d}"
        if scheme == "lunar":
            return f"lunar_{self.influence.phase_name.value}_{n:03d}"
        return f"session_{n:03d}"

    def claim_session_folder(self) -> Optional[str]:
        """
        Folder name for this session, claimed once from the counter store.

        Returns None when session folders are disabled.
        """
        if not self.settings.session_folders:
            return None
        with self._lock:
            if not self._session_claimed:
                n = self.counters.next(self._folder_key())
                self._session_folder = self._folder_name(n)
                self._session_claimed = True
                logger.info(f"Session folder: {self._session_folder}", component="NAMING")
            return self._session_folder

    def peek_session_folder(self) -> Optional[str]:
        """Folder a claim would return now, without consuming a counter."""
        if not self.settings.session_folders:
            return None
        if self._session_claimed:
            return self._session_folder
        return self._folder_name(self.counters.peek(self._folder_key()) + 1)

    # -------------------------------------------------------------------------
    # Preview
    # -------------------------------------------------------------------------

    def preview_batch(self, paths: Sequence,
                      output_format: Union[str, Sequence[str]] = "mp3") -> List[BatchPreview]:
        """
        What a batch would be called, without touching counters or the disk.

        output_format is one extension for every file, or one per path.
        Mystical names are random per call unless the engine was given a
        seeded generator.
        """
        folder = self.peek_session_folder()
        total = len(paths)
        if isinstance(output_format, str):
            extensions = [output_format] * total
        else:
            extensions = list(output_format)
        seen = set()
        previews = []
        for i, p in enumerate(paths):
            name = self.generate_name(p, i, total).text
            base, n = name, 2
            while name.lower() in seen:
                name = f"{base}{self.settings.separator or '_'}{n}"
                n += 1
            seen.add(name.lower())
            previews.append(BatchPreview(
                original=Path(p).name,
                generated=f"{name}.{extensions[i].lstrip('.')}",
                folder=folder,
            ))
        return previews
