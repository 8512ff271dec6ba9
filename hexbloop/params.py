"""
hexbloop/params.py
Effects-parameter synthesis from temporal influence

Each of the 8 lunar phases has a hand-tuned base tuple running from
dark/heavy at new moon to bright/ethereal at full moon. The time of day
then scales overdrive and echo and shifts the bass/treble balance.
"""

from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional, Union

from .lunar import PhaseName, TemporalInfluence, TimeCategory

OVERDRIVE_FLOOR = 1.0


@dataclass(frozen=True)
class EchoParams:
    delay_sec: float
    decay: float


@dataclass(frozen=True)
class CompandParams:
    attack_sec: float
    ratio: float


@dataclass(frozen=True)
class EffectsParameters:
    overdrive: float
    bass_gain_db: float
    treble_gain_db: float
    echo: EchoParams
    compand: CompandParams
    description: str = ""


@dataclass(frozen=True)
class PhaseBase:
    overdrive: float
    bass: float
    treble: float
    echo_delay: float
    echo_decay: float
    compand_attack: float
    compand_ratio: float


@dataclass(frozen=True)
class TimeModifier:
    overdrive_mult: float
    echo_mult: float
    bass_shift: float = 0.0
    treble_shift: float = 0.0


PHASE_BASES: Dict[PhaseName, PhaseBase] = {
    PhaseName.NEW_MOON:        PhaseBase(6.0, 4.0, -0.5, 0.50, 0.10, 0.30, 8.0),
    PhaseName.WAXING_CRESCENT: PhaseBase(3.5, 2.0, 0.5, 0.40, 0.06, 0.25, 6.0),
    PhaseName.FIRST_QUARTER:   PhaseBase(4.0, 2.5, 1.0, 0.35, 0.07, 0.20, 6.0),
    PhaseName.WAXING_GIBBOUS:  PhaseBase(3.0, 1.5, 1.5, 0.30, 0.05, 0.15, 4.0),
    PhaseName.FULL_MOON:       PhaseBase(2.0, 1.0, 2.5, 0.25, 0.04, 0.10, 3.0),
    PhaseName.WANING_GIBBOUS:  PhaseBase(3.5, 2.0, 1.0, 0.40, 0.06, 0.20, 5.0),
    PhaseName.LAST_QUARTER:    PhaseBase(4.5, 3.0, 0.0, 0.45, 0.08, 0.25, 7.0),
    PhaseName.WANING_CRESCENT: PhaseBase(5.0, 3.5, -1.0, 0.50, 0.09, 0.30, 7.0),
}

TIME_MODIFIERS: Dict[TimeCategory, TimeModifier] = {
    TimeCategory.DEEP_NIGHT: TimeModifier(1.3, 1.4, bass_shift=0.5),
    TimeCategory.MORNING:    TimeModifier(0.8, 0.7, bass_shift=-0.3, treble_shift=0.5),
    TimeCategory.AFTERNOON:  TimeModifier(1.0, 1.0),
    TimeCategory.EVENING:    TimeModifier(1.1, 1.2, bass_shift=0.2, treble_shift=-0.2),
}


@dataclass(frozen=True)
class ParameterOverrides:
    """Per-run replacements; None leaves the synthesized value alone."""
    overdrive: Optional[float] = None
    bass_gain_db: Optional[float] = None
    treble_gain_db: Optional[float] = None
    echo_delay_sec: Optional[float] = None
    echo_decay: Optional[float] = None
    compand_attack_sec: Optional[float] = None
    compand_ratio: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, float]) -> "ParameterOverrides":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown effects override(s): {', '.join(sorted(unknown))}")
        return cls(**{k: float(v) for k, v in data.items()})

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


def _describe(influence: TemporalInfluence, base: PhaseBase) -> str:
    # Heavy phases read as "dark", light ones as "ethereal"
    if base.overdrive >= 4.5:
        character = "dark"
    elif base.overdrive <= 2.5:
        character = "ethereal"
    else:
        character = "balanced"
    time_label = influence.time_category.value.replace("_", " ")
    return f"{influence.phase_name.label} {time_label} processing ({character})"


def synthesize(influence: TemporalInfluence,
               overrides: Union[ParameterOverrides, Mapping[str, float], None] = None
               ) -> EffectsParameters:
    """
    Map temporal influence (plus optional overrides) to effects parameters.

    Deterministic: the same influence and overrides always give the same
    result. Overdrive never drops below 1.0, overridden or not.
    """
    base = PHASE_BASES[influence.phase_name]
    mod = TIME_MODIFIERS[influence.time_category]

    params = EffectsParameters(
        overdrive=max(OVERDRIVE_FLOOR, base.overdrive * mod.overdrive_mult),
        bass_gain_db=base.bass + mod.bass_shift,
        treble_gain_db=base.treble + mod.treble_shift,
        echo=EchoParams(
            delay_sec=base.echo_delay * mod.echo_mult,
            decay=base.echo_decay * mod.echo_mult,
        ),
        compand=CompandParams(attack_sec=base.compand_attack, ratio=base.compand_ratio),
        description=_describe(influence, base),
    )

    if overrides is None:
        return params
    if not isinstance(overrides, ParameterOverrides):
        overrides = ParameterOverrides.from_mapping(overrides)
    return apply_overrides(params, overrides)


def apply_overrides(params: EffectsParameters, overrides: ParameterOverrides) -> EffectsParameters:
    if overrides.is_empty():
        return params
    o = overrides
    echo = EchoParams(
        delay_sec=params.echo.delay_sec if o.echo_delay_sec is None else o.echo_delay_sec,
        decay=params.echo.decay if o.echo_decay is None else o.echo_decay,
    )
    compand = CompandParams(
        attack_sec=params.compand.attack_sec if o.compand_attack_sec is None else o.compand_attack_sec,
        ratio=params.compand.ratio if o.compand_ratio is None else o.compand_ratio,
    )
    return replace(
        params,
        overdrive=params.overdrive if o.overdrive is None else max(OVERDRIVE_FLOOR, o.overdrive),
        bass_gain_db=params.bass_gain_db if o.bass_gain_db is None else o.bass_gain_db,
        treble_gain_db=params.treble_gain_db if o.treble_gain_db is None else o.treble_gain_db,
        echo=echo,
        compand=compand,
        description=params.description + " [overridden]",
    )
