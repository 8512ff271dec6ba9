"""
hexbloop/config.py
Configuration constants and the caller-supplied settings object

Fixed processing constants live in module-level dataclass instances
(MASTERING_CONFIG, ARTWORK_CONFIG, ...). User-facing settings are a
HexbloopConfig tree that can be built from a plain dict, merged with
defaults, validated and loaded from JSON.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .errors import ConfigError
from .logger import logger
from .params import ParameterOverrides

# =============================================================================
# Input / Output formats
# =============================================================================

# Order is the order shown in help output
AUDIO_EXTENSIONS: Tuple[str, ...] = (
    ".mp3", ".wav", ".m4a", ".aiff", ".aif", ".flac", ".ogg", ".aac",
)

# format key -> (file extension, ffmpeg codec)
OUTPUT_FORMATS: Dict[str, Tuple[str, str]] = {
    "mp3": (".mp3", "libmp3lame"),
    "wav": (".wav", "pcm_s16le"),
    "flac": (".flac", "flac"),
    "aac": (".m4a", "aac"),
    "ogg": (".ogg", "libvorbis"),
}

# input extension -> output format key, used by format "original"
ORIGINAL_FORMAT_BY_EXTENSION: Dict[str, str] = {
    ".mp3": "mp3",
    ".wav": "wav",
    ".aiff": "wav",
    ".aif": "wav",
    ".flac": "flac",
    ".m4a": "aac",
    ".aac": "aac",
    ".ogg": "ogg",
}

# Bitrates (kbps) for lossy formats other than mp3, which uses mp3_bitrate
QUALITY_BITRATES: Dict[str, int] = {
    "low": 128,
    "medium": 192,
    "high": 256,
    "maximum": 320,
}

NAMING_MODES = ("mystical", "custom", "original")
BATCH_SCHEMES = ("mystical", "sequential", "timestamp", "hybrid", "preserve")
NUMBERING_STYLES = ("none", "numeric", "alpha", "roman")
FOLDER_SCHEMES = ("date", "lunar", "counter")
SEPARATORS = ("_", "-", ".", "")

MAX_WORKERS_LIMIT = 8

# =============================================================================
# Effects engine (sox) fixed arguments
# =============================================================================

@dataclass
class EffectsEngineConfig:
    """Parts of the effects chain that do not depend on lunar state."""
    input_gain_db: float = -1.5
    overdrive_colour: float = 2.5
    echo_gain_in: float = 0.8
    echo_gain_out: float = 0.88
    compand_decay_sec: float = 0.6
    compand_transfer: str = "6:-70,-60,-20"
    compand_gain_db: float = -2.0
    compand_initial_db: float = -90.0
    compand_delay_sec: float = 0.25
    sample_rate: int = 44100
    intermediate_suffix: str = ".wav"


EFFECTS_CONFIG = EffectsEngineConfig()

# =============================================================================
# Mastering chain (ffmpeg)
# =============================================================================

@dataclass
class MasteringChainConfig:
    """EQ -> compression -> peak limiting."""
    # (frequency Hz, width q, gain dB)
    eq_bands: List[Tuple[int, float, float]] = field(default_factory=lambda: [
        (100, 1.0, 0.3),
        (800, 1.2, 0.5),
        (1600, 1.0, 0.4),
        (5000, 1.0, 0.3),
    ])
    comp_threshold_db: float = -12.0
    comp_ratio: float = 2.0
    comp_attack_ms: int = 100
    comp_release_ms: int = 1000
    comp_makeup: float = 1.5
    limiter_limit: float = 0.97
    channels: int = 2


MASTERING_CONFIG = MasteringChainConfig()

# =============================================================================
# Artwork
# =============================================================================

@dataclass
class ArtworkConfig:
    """Cover art canvas and export settings."""
    size: int = 800
    image_format: str = "png"
    png_compress_level: int = 6
    jpeg_quality: int = 92
    grain_amount: float = 0.06
    stream_chunk_size: int = 64 * 1024


ARTWORK_CONFIG = ArtworkConfig()

# =============================================================================
# User settings
# =============================================================================

@dataclass
class ProcessingSettings:
    effects: bool = True
    mastering: bool = True
    artwork: bool = True
    naming: str = "mystical"  # mystical | custom | original


@dataclass
class MetadataSettings:
    """Empty strings mean 'derive from the generated name'."""
    artist: str = ""
    album: str = ""
    year: str = ""
    genre: str = ""


@dataclass
class BatchNamingSettings:
    scheme: str = "mystical"
    prefix: str = ""
    suffix: str = ""
    separator: str = "_"
    numbering: str = "none"
    numbering_padding: int = 3
    preserve_original: bool = True
    session_folders: bool = False
    folder_scheme: str = "date"


@dataclass
class OutputSettings:
    directory: str = ""  # empty: app_paths default
    format: str = "mp3"  # mp3 | wav | flac | aac | ogg | original
    quality: str = "high"
    mp3_bitrate: int = 320
    sample_rate: int = 44100  # 0 keeps the input rate
    save_artwork: bool = True
    artwork_size: int = 800  # pixels, square


@dataclass
class PerformanceSettings:
    parallel_processing: bool = False
    max_workers: int = 2


@dataclass
class AdvancedSettings:
    lunar_influence: bool = True
    preserve_temp_files: bool = False
    debug: bool = False
    # Field name -> value, applied after synthesis (see params.ParameterOverrides)
    effects_overrides: Dict[str, float] = field(default_factory=dict)


@dataclass
class HexbloopConfig:
    """Validated configuration handed to the pipeline by the caller."""
    processing: ProcessingSettings = field(default_factory=ProcessingSettings)
    metadata: MetadataSettings = field(default_factory=MetadataSettings)
    batch: BatchNamingSettings = field(default_factory=BatchNamingSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    performance: PerformanceSettings = field(default_factory=PerformanceSettings)
    advanced: AdvancedSettings = field(default_factory=AdvancedSettings)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HexbloopConfig":
        """Build from a (possibly partial) dict. Unknown keys are ignored."""
        merged = merge_with_defaults(data)
        sections = {}
        for f in fields(cls):
            section_cls = type(getattr(cls(), f.name))
            sections[f.name] = section_cls(**merged[f.name])
        return cls(**sections)


def default_config_dict() -> Dict[str, Any]:
    return HexbloopConfig().to_dict()


def merge_with_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay a partial settings dict onto the defaults.

    Sections missing from data keep their defaults; keys not in the schema
    are dropped with a debug log line.
    """
    merged = default_config_dict()
    if not data:
        return merged
    for section, values in data.items():
        if section not in merged:
            logger.debug(f"Ignoring unknown config section '{section}'", component="CONFIG")
            continue
        if not isinstance(values, dict):
            logger.debug(f"Ignoring non-mapping config section '{section}'", component="CONFIG")
            continue
        for key, value in values.items():
            if key not in merged[section]:
                logger.debug(f"Ignoring unknown config key '{section}.{key}'", component="CONFIG")
                continue
            merged[section][key] = value
    return merged


def validate_config(config: HexbloopConfig) -> List[str]:
    """
    Validate a config object.

    Returns:
        List of error strings (empty when valid)
    """
    errors = []
    p, b, o, perf = config.processing, config.batch, config.output, config.performance

    if p.naming not in NAMING_MODES:
        errors.append(f"processing.naming must be one of {NAMING_MODES}, got '{p.naming}'")
    for flag in ("effects", "mastering", "artwork"):
        if not isinstance(getattr(p, flag), bool):
            errors.append(f"processing.{flag} must be a boolean")

    if b.scheme not in BATCH_SCHEMES:
        errors.append(f"batch.scheme must be one of {BATCH_SCHEMES}, got '{b.scheme}'")
    if b.numbering not in NUMBERING_STYLES:
        errors.append(f"batch.numbering must be one of {NUMBERING_STYLES}, got '{b.numbering}'")
    if b.folder_scheme not in FOLDER_SCHEMES:
        errors.append(f"batch.folder_scheme must be one of {FOLDER_SCHEMES}, got '{b.folder_scheme}'")
    if b.separator not in SEPARATORS:
        errors.append(f"batch.separator must be one of {SEPARATORS!r}")
    if not isinstance(b.numbering_padding, int) or not 1 <= b.numbering_padding <= 6:
        errors.append("batch.numbering_padding must be an integer in 1..6")

    if o.format != "original" and o.format not in OUTPUT_FORMATS:
        errors.append(f"output.format must be 'original' or one of {tuple(OUTPUT_FORMATS)}")
    if o.quality not in QUALITY_BITRATES:
        errors.append(f"output.quality must be one of {tuple(QUALITY_BITRATES)}")
    if not isinstance(o.mp3_bitrate, int) or not 64 <= o.mp3_bitrate <= 320:
        errors.append("output.mp3_bitrate must be an integer in 64..320")
    if not isinstance(o.sample_rate, int) or (o.sample_rate != 0 and not 8000 <= o.sample_rate <= 192000):
        errors.append("output.sample_rate must be 0 or an integer in 8000..192000")
    if not isinstance(o.artwork_size, int) or not 64 <= o.artwork_size <= 4096:
        errors.append("output.artwork_size must be an integer in 64..4096")

    if not isinstance(perf.max_workers, int) or not 1 <= perf.max_workers <= MAX_WORKERS_LIMIT:
        errors.append(f"performance.max_workers must be an integer in 1..{MAX_WORKERS_LIMIT}")

    if not isinstance(config.advanced.effects_overrides, dict):
        errors.append("advanced.effects_overrides must be a mapping")
    else:
        try:
            ParameterOverrides.from_mapping(config.advanced.effects_overrides)
        except (TypeError, ValueError) as e:
            errors.append(f"advanced.effects_overrides: {e}")

    return errors


def load_config(path) -> HexbloopConfig:
    """
    Load settings from a JSON file.

    Raises:
        ConfigError: If the file is unreadable, not JSON, or fails validation
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")

    try:
        config = HexbloopConfig.from_dict(data)
    except TypeError as e:
        raise ConfigError(f"Config {path} has invalid structure: {e}")

    errors = validate_config(config)
    if errors:
        raise ConfigError("; ".join(errors))
    return config


def save_config(config: HexbloopConfig, path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
