"""
hexbloop/models.py
Result records and progress events exchanged with the caller
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class Stage(str, Enum):
    """Pipeline states, in order."""
    VALIDATING = "validating"
    EFFECTS = "effects"
    MASTERING = "mastering"
    ARTWORK = "artwork"
    METADATA = "metadata"
    CLEANING_UP = "cleaning_up"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProcessingStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted on every stage transition of every file."""
    current_index: int
    total: int
    file_name: str
    stage: Stage


@dataclass
class ArtworkInfo:
    style: str
    seed: int
    path: Optional[Path] = None  # None when only embedded

    def to_dict(self) -> dict:
        return {
            "style": self.style,
            "seed": self.seed,
            "path": str(self.path) if self.path else None,
        }


@dataclass
class ProcessingResult:
    """Outcome for one input file."""
    original_path: Path
    status: ProcessingStatus = ProcessingStatus.FAILED
    output_path: Optional[Path] = None
    generated_name: Optional[str] = None
    artwork: Optional[ArtworkInfo] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    effects_strategy: Optional[str] = None
    notes: List[str] = field(default_factory=list)
    duration_sec: float = 0.0

    @property
    def success(self) -> bool:
        return self.status is ProcessingStatus.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        return self.status is ProcessingStatus.CANCELLED

    def note(self, message: str) -> None:
        self.notes.append(message)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "status": self.status.value,
            "original_path": str(self.original_path),
            "output_path": str(self.output_path) if self.output_path else None,
            "generated_name": self.generated_name,
            "artwork": self.artwork.to_dict() if self.artwork else None,
            "error": self.error,
            "error_kind": self.error_kind,
            "effects_strategy": self.effects_strategy,
            "notes": list(self.notes),
            "duration_sec": round(self.duration_sec, 3),
        }


@dataclass
class BatchResult:
    """Ordered results of a batch, one per input."""
    results: List[ProcessingResult]
    output_dir: Optional[Path] = None
    session_folder: Optional[str] = None

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status is ProcessingStatus.FAILED)

    @property
    def cancelled(self) -> int:
        return sum(1 for r in self.results if r.cancelled)
