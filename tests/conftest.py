"""Pytest configuration - consistent CWD, isolated state dirs and shared fixtures.

Nothing here needs sox or ffmpeg: pipeline tests run against FakeRunner,
which stands in for the external engines by copying input to output.
"""
from __future__ import annotations

import os
import shutil
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from hexbloop.errors import ExternalToolFailed, ExternalToolUnavailable

ROOT = Path(__file__).resolve().parents[1]


def pytest_sessionstart(session):
    os.chdir(ROOT)


@pytest.fixture(autouse=True)
def isolated_app_dirs(tmp_path, monkeypatch):
    """Keep the counter store and default output dir out of the user's home."""
    monkeypatch.setenv("HEXBLOOP_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("HEXBLOOP_OUTPUT_DIR", str(tmp_path / "default_out"))


@pytest.fixture
def project_root():
    """Return path to project root."""
    return ROOT


def write_wav(path: Path, seconds: float = 0.5, sr: int = 44100, freq: float = 220.0) -> Path:
    t = np.arange(int(seconds * sr)) / sr
    tone = 0.3 * np.sin(2 * np.pi * freq * t)
    sf.write(str(path), np.column_stack([tone, tone]).astype(np.float32), sr, subtype="PCM_16")
    return path


@pytest.fixture
def wav_file(tmp_path):
    """Half a second of stereo sine."""
    src = tmp_path / "input"
    src.mkdir()
    return write_wav(src / "my_song.wav")


@pytest.fixture
def make_wav(tmp_path):
    """Factory: make_wav("name.wav") -> path of a short sine file."""
    src = tmp_path / "inputs"
    src.mkdir(exist_ok=True)

    def _make(name: str, **kwargs) -> Path:
        return write_wav(src / name, **kwargs)
    return _make


class FakeRunner:
    """
    ProcessRunner stand-in.

    Copies command.input_path to command.output_path. Tools listed in
    `unavailable` raise ExternalToolUnavailable, tools in `failing` raise
    ExternalToolFailed. Every command is recorded.
    """

    def __init__(self, unavailable=(), failing=()):
        self.unavailable = set(unavailable)
        self.failing = set(failing)
        self.commands = []

    def run(self, command, cancel=None):
        if cancel is not None:
            cancel.raise_if_cancelled()
        self.commands.append(command)
        if command.tool in self.unavailable:
            raise ExternalToolUnavailable(command.tool)
        if command.tool in self.failing:
            raise ExternalToolFailed(command.tool, f"{command.tool} exited with code 1", returncode=1)
        shutil.copyfile(command.input_path, command.output_path)

    def tools_run(self):
        return [c.tool for c in self.commands]


@pytest.fixture
def fake_runner():
    return FakeRunner()
