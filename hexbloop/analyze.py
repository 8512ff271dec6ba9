"""
hexbloop/analyze.py
Audio-feature estimates for artwork modulation

Energy, tempo and brightness are rough, cheap estimates over the first
minute of the file. Analysis is optional: any failure returns None and the
artwork falls back to neutral inputs.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)

ANALYSIS_SECONDS = 60.0
TEMPO_RANGE = (60.0, 180.0)
DEFAULT_TEMPO = 120.0
# Spectral centroid (Hz) mapped linearly onto 0..1 brightness
CENTROID_RANGE = (500.0, 5000.0)


@dataclass(frozen=True)
class AudioFeatures:
    energy: float        # 0-1
    tempo_bpm: float     # TEMPO_RANGE
    brightness: float    # 0-1
    duration_sec: float


def load_mono(path: Path, max_seconds: float = ANALYSIS_SECONDS) -> Tuple[np.ndarray, int]:
    """Load up to max_seconds of audio as float32 mono."""
    try:
        info = sf.info(str(path))
        frames = int(min(info.frames, max_seconds * info.samplerate))
        data, sr = sf.read(str(path), frames=frames, dtype="float32", always_2d=True)
        return data.mean(axis=1), sr
    except RuntimeError:  # soundfile.LibsndfileError
        # Containers libsndfile cannot open (m4a, some mp3) go through librosa
        import librosa
        data, sr = librosa.load(str(path), sr=None, mono=True, duration=max_seconds)
        return data.astype(np.float32), sr


def estimate_energy(mono: np.ndarray) -> float:
    if mono.size == 0:
        return 0.0
    return float(min(1.0, np.mean(np.abs(mono)) * 2.0))


def estimate_tempo(mono: np.ndarray, sr: int) -> float:
    import librosa

    if mono.size < sr:  # under a second: nothing to track
        return DEFAULT_TEMPO
    tempo, _beats = librosa.beat.beat_track(y=mono, sr=sr)
    bpm = float(np.atleast_1d(tempo)[0])
    if not np.isfinite(bpm) or bpm <= 0:
        return DEFAULT_TEMPO
    return float(np.clip(bpm, *TEMPO_RANGE))


def estimate_brightness(mono: np.ndarray, sr: int) -> float:
    import librosa

    if mono.size == 0:
        return 0.5
    centroid = float(np.mean(librosa.feature.spectral_centroid(y=mono, sr=sr)[0]))
    lo, hi = CENTROID_RANGE
    return float(np.clip((centroid - lo) / (hi - lo), 0.0, 1.0))


def estimate_features(path) -> Optional[AudioFeatures]:
    """
    Estimate features for a file.

    Returns:
        AudioFeatures, or None if the file could not be analysed
    """
    path = Path(path)
    try:
        mono, sr = load_mono(path)
        features = AudioFeatures(
            energy=estimate_energy(mono),
            tempo_bpm=estimate_tempo(mono, sr),
            brightness=estimate_brightness(mono, sr),
            duration_sec=len(mono) / float(sr),
        )
    except Exception as e:
        logger.warning(f"Audio analysis failed for {path.name}: {e}")
        return None

    logger.debug(
        f"{path.name}: energy={features.energy:.2f} tempo={features.tempo_bpm:.0f} "
        f"brightness={features.brightness:.2f}"
    )
    return features
