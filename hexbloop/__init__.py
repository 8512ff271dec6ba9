"""
Hexbloop - Lunar-influenced audio mastering

Takes audio files through an effects chain whose parameters follow the
moon phase and time of day, masters them, gives each a generated band
name and renders matching cover art.

Usage:
    python -m hexbloop process track.wav --output out/
    python -m hexbloop name --count 5
    python -m hexbloop moon
"""

__version__ = "0.4.0"

from .errors import (
    ArtworkGenerationFailed,
    Cancelled,
    ConfigError,
    ExternalToolFailed,
    ExternalToolUnavailable,
    HexbloopError,
    InvalidInput,
    MetadataEmbedFailed,
    NamingError,
)
from .config import HexbloopConfig, load_config, validate_config
from .lunar import TemporalInfluence, compute_temporal_influence
from .params import EffectsParameters, synthesize
from .naming import NameGenerator, NameRecord, NameStyle, generate_name, sanitize_name
from .batch import BatchNamingEngine, to_alpha, to_roman
from .counters import CounterStore
from .engines import CancellationToken, ProcessRunner
from .models import BatchResult, ProcessingResult, ProgressEvent, Stage
from .pipeline import PipelineOrchestrator, process_files

__all__ = [
    # Version
    "__version__",
    # Errors
    "HexbloopError",
    "InvalidInput",
    "ConfigError",
    "NamingError",
    "ExternalToolUnavailable",
    "ExternalToolFailed",
    "ArtworkGenerationFailed",
    "MetadataEmbedFailed",
    "Cancelled",
    # Config
    "HexbloopConfig",
    "load_config",
    "validate_config",
    # Temporal influence / parameters
    "TemporalInfluence",
    "compute_temporal_influence",
    "EffectsParameters",
    "synthesize",
    # Naming
    "NameGenerator",
    "NameRecord",
    "NameStyle",
    "generate_name",
    "sanitize_name",
    "BatchNamingEngine",
    "to_alpha",
    "to_roman",
    "CounterStore",
    # Pipeline
    "CancellationToken",
    "ProcessRunner",
    "PipelineOrchestrator",
    "process_files",
    "ProcessingResult",
    "BatchResult",
    "ProgressEvent",
    "Stage",
]
