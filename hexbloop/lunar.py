"""
hexbloop/lunar.py
Temporal influence: lunar phase and time-of-day category

Pure functions of a clock reading. Nothing here raises.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

SYNODIC_MONTH_DAYS = 29.530588853
# Reference new moon: 2000-01-06 18:14 UTC
REFERENCE_NEW_MOON = datetime(2000, 1, 6, 18, 14, tzinfo=timezone.utc)


class PhaseName(str, Enum):
    NEW_MOON = "new_moon"
    WAXING_CRESCENT = "waxing_crescent"
    FIRST_QUARTER = "first_quarter"
    WAXING_GIBBOUS = "waxing_gibbous"
    FULL_MOON = "full_moon"
    WANING_GIBBOUS = "waning_gibbous"
    LAST_QUARTER = "last_quarter"
    WANING_CRESCENT = "waning_crescent"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class TimeCategory(str, Enum):
    DEEP_NIGHT = "deep_night"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


# Upper bounds of each bucket; anything at or above the last bound wraps to new moon
PHASE_BOUNDARIES = (
    (0.03, PhaseName.NEW_MOON),
    (0.22, PhaseName.WAXING_CRESCENT),
    (0.28, PhaseName.FIRST_QUARTER),
    (0.47, PhaseName.WAXING_GIBBOUS),
    (0.53, PhaseName.FULL_MOON),
    (0.72, PhaseName.WANING_GIBBOUS),
    (0.78, PhaseName.LAST_QUARTER),
    (0.97, PhaseName.WANING_CRESCENT),
)


@dataclass(frozen=True)
class TemporalInfluence:
    lunar_phase: float
    illumination: float
    phase_name: PhaseName
    time_category: TimeCategory

    @property
    def lunar_day(self) -> int:
        """Day of the lunar cycle, 0..29."""
        return int(self.lunar_phase * SYNODIC_MONTH_DAYS)

    def describe(self) -> str:
        return (f"{self.phase_name.label} ({self.illumination * 100:.0f}% lit), "
                f"{self.time_category.value.replace('_', ' ')}")


def lunar_phase_at(moment: datetime) -> float:
    """Fraction of the synodic month elapsed at moment, in [0, 1)."""
    if moment.tzinfo is None:
        try:
            moment = moment.astimezone()  # naive means local time
        except (OverflowError, OSError, ValueError):
            # Outside the platform's local-time range
            moment = moment.replace(tzinfo=timezone.utc)
    days = (moment - REFERENCE_NEW_MOON).total_seconds() / 86400.0
    phase = (days % SYNODIC_MONTH_DAYS) / SYNODIC_MONTH_DAYS
    # Float rounding can land exactly on 1.0 for tiny negative remainders
    return phase if phase < 1.0 else 0.0


def illumination_for(phase: float) -> float:
    return (1.0 - math.cos(phase * 2.0 * math.pi)) / 2.0


def phase_name_for(phase: float) -> PhaseName:
    for bound, name in PHASE_BOUNDARIES:
        if phase < bound:
            return name
    return PhaseName.NEW_MOON


def time_category_for(hour: int) -> TimeCategory:
    if hour < 6:
        return TimeCategory.DEEP_NIGHT
    if hour < 12:
        return TimeCategory.MORNING
    if hour < 18:
        return TimeCategory.AFTERNOON
    return TimeCategory.EVENING


def compute_temporal_influence(now: Optional[datetime] = None) -> TemporalInfluence:
    """
    Lunar and time-of-day state for a moment (default: now, local time).

    Aware datetimes keep their own wall-clock hour for the time category.
    """
    if now is None:
        now = datetime.now()
    phase = lunar_phase_at(now)
    return TemporalInfluence(
        lunar_phase=phase,
        illumination=illumination_for(phase),
        phase_name=phase_name_for(phase),
        time_category=time_category_for(now.hour),
    )


def neutral_influence() -> TemporalInfluence:
    """Fixed influence used when lunar processing is switched off."""
    phase = 0.25
    return TemporalInfluence(
        lunar_phase=phase,
        illumination=illumination_for(phase),
        phase_name=PhaseName.FIRST_QUARTER,
        time_category=TimeCategory.AFTERNOON,
    )
