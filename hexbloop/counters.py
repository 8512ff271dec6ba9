"""
hexbloop/counters.py
Persisted session counters

A tiny key -> int store with atomic read-modify-write. Keys look like
"date:2026-10-17", "lunar:full_moon" or "global". The backend is pluggable;
the JSON file backend writes via temp file + os.replace and treats a missing
or corrupt file as empty counters.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from .logger import logger


class CounterBackend:
    """Storage for the counter mapping. load() must never raise."""

    def load(self) -> Dict[str, int]:
        raise NotImplementedError

    def save(self, counters: Dict[str, int]) -> None:
        raise NotImplementedError


class MemoryCounterBackend(CounterBackend):
    """In-process backend (tests, dry runs)."""

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self._data = dict(initial or {})

    def load(self) -> Dict[str, int]:
        return dict(self._data)

    def save(self, counters: Dict[str, int]) -> None:
        self._data = dict(counters)


class JsonFileCounterBackend(CounterBackend):
    """
    JSON object on disk.

    Writes go to a temp file in the same directory and are committed with
    os.replace, so readers see either the old or the new mapping.
    """

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Dict[str, int]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Counter store unreadable, starting empty: {self.path}",
                           component="COUNTERS", details=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Counter store is not a mapping, starting empty: {self.path}",
                           component="COUNTERS")
            return {}
        counters = {}
        for key, value in data.items():
            if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
                counters[str(key)] = value
        return counters

    def save(self, counters: Dict[str, int]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=".counters_",
            dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(counters, f, indent=2, sort_keys=True)
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise


class CounterStore:
    """
    Session counters shared by every batch in the process.

    next() re-reads the backend, increments and writes back under one lock,
    so two claims on the same key can never return the same value.
    """

    def __init__(self, backend: Optional[CounterBackend] = None):
        self.backend = backend or MemoryCounterBackend()
        self._lock = threading.Lock()

    @classmethod
    def at_path(cls, path) -> "CounterStore":
        return cls(JsonFileCounterBackend(path))

    @classmethod
    def default(cls) -> "CounterStore":
        from .app_paths import get_counter_store_path
        return cls.at_path(get_counter_store_path())

    def next(self, key: str) -> int:
        """Claim and return the next value for key (first claim is 1)."""
        with self._lock:
            counters = self.backend.load()
            value = counters.get(key, 0) + 1
            counters[key] = value
            self.backend.save(counters)
        logger.debug(f"Claimed {key} = {value}", component="COUNTERS")
        return value

    def peek(self, key: str) -> int:
        """Last claimed value for key (0 if never claimed)."""
        with self._lock:
            return self.backend.load().get(key, 0)

    def reset(self, key: Optional[str] = None) -> None:
        """Explicit user reset: one key, or everything when key is None."""
        with self._lock:
            if key is None:
                counters = {}
            else:
                counters = self.backend.load()
                counters.pop(key, None)
            self.backend.save(counters)
        logger.info(f"Reset session counter {key or '(all)'}", component="COUNTERS")

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return self.backend.load()
