"""App path helpers (cross-platform).

Single place for Hexbloop data/state/output paths.

Environment overrides (useful for portable/dev launches and tests):
- HEXBLOOP_DATA_DIR: base dir containing state/
- HEXBLOOP_STATE_DIR: explicit state dir (overrides HEXBLOOP_DATA_DIR/state)
- HEXBLOOP_OUTPUT_DIR: default output directory for processed files
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir, user_music_dir

APP_NAME = "Hexbloop"


def _env_path(name: str) -> Path | None:
    v = os.environ.get(name)
    if not v:
        return None
    return Path(os.path.expanduser(v)).resolve()


def get_app_data_dir() -> Path:
    """Base app data dir."""
    data_dir = _env_path("HEXBLOOP_DATA_DIR")
    if data_dir is not None:
        return data_dir
    return Path(user_data_dir(APP_NAME, appauthor=False, roaming=True)).resolve()


def get_app_state_dir() -> Path:
    """State dir under the app data dir."""
    state_dir = _env_path("HEXBLOOP_STATE_DIR")
    if state_dir is None:
        state_dir = get_app_data_dir() / "state"
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def get_counter_store_path() -> Path:
    return get_app_state_dir() / "session_counters.json"


def get_default_output_dir() -> Path:
    out_dir = _env_path("HEXBLOOP_OUTPUT_DIR")
    if out_dir is not None:
        return out_dir
    return Path(user_music_dir()).resolve() / APP_NAME
