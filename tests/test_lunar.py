"""
tests/test_lunar.py
Tests for hexbloop/lunar.py temporal influence
"""

from datetime import datetime, timedelta, timezone

import pytest

from hexbloop.lunar import (
    REFERENCE_NEW_MOON,
    SYNODIC_MONTH_DAYS,
    PhaseName,
    TimeCategory,
    compute_temporal_influence,
    illumination_for,
    lunar_phase_at,
    neutral_influence,
    phase_name_for,
    time_category_for,
)


def _phase_distance(a: float, b: float) -> float:
    d = abs(a - b)
    return min(d, 1.0 - d)


class TestLunarPhase:
    """Tests for lunar_phase_at"""

    def test_reference_is_new_moon(self):
        assert lunar_phase_at(REFERENCE_NEW_MOON) == pytest.approx(0.0, abs=1e-9)

    def test_half_cycle_is_full(self):
        moment = REFERENCE_NEW_MOON + timedelta(days=SYNODIC_MONTH_DAYS / 2)
        assert lunar_phase_at(moment) == pytest.approx(0.5, abs=1e-6)

    def test_periodicity(self):
        start = datetime(2024, 5, 17, 13, 45, tzinfo=timezone.utc)
        for cycles in (1, 3, 12, 100):
            later = start + timedelta(days=SYNODIC_MONTH_DAYS * cycles)
            assert _phase_distance(lunar_phase_at(start), lunar_phase_at(later)) < 1e-6

    def test_range_including_before_reference(self):
        for year in (1900, 1969, 1999, 2000, 2024, 2100):
            phase = lunar_phase_at(datetime(year, 3, 14, 12, 0, tzinfo=timezone.utc))
            assert 0.0 <= phase < 1.0

    def test_naive_and_aware_same_instant(self):
        aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        naive_local = aware.astimezone().replace(tzinfo=None)
        assert _phase_distance(lunar_phase_at(aware), lunar_phase_at(naive_local)) < 1e-9

    def test_illumination(self):
        assert illumination_for(0.0) == pytest.approx(0.0)
        assert illumination_for(0.5) == pytest.approx(1.0)
        assert illumination_for(0.25) == pytest.approx(0.5)


class TestPhaseBuckets:
    """Tests for phase_name_for boundaries"""

    @pytest.mark.parametrize("phase,expected", [
        (0.0, PhaseName.NEW_MOON),
        (0.029, PhaseName.NEW_MOON),
        (0.03, PhaseName.WAXING_CRESCENT),
        (0.21, PhaseName.WAXING_CRESCENT),
        (0.25, PhaseName.FIRST_QUARTER),
        (0.4, PhaseName.WAXING_GIBBOUS),
        (0.5, PhaseName.FULL_MOON),
        (0.6, PhaseName.WANING_GIBBOUS),
        (0.75, PhaseName.LAST_QUARTER),
        (0.9, PhaseName.WANING_CRESCENT),
        (0.97, PhaseName.NEW_MOON),
        (0.999, PhaseName.NEW_MOON),
    ])
    def test_bucket(self, phase, expected):
        assert phase_name_for(phase) is expected

    def test_label(self):
        assert PhaseName.WAXING_GIBBOUS.label == "Waxing Gibbous"


class TestTimeCategory:
    """Tests for time_category_for"""

    @pytest.mark.parametrize("hour,expected", [
        (0, TimeCategory.DEEP_NIGHT),
        (5, TimeCategory.DEEP_NIGHT),
        (6, TimeCategory.MORNING),
        (11, TimeCategory.MORNING),
        (12, TimeCategory.AFTERNOON),
        (17, TimeCategory.AFTERNOON),
        (18, TimeCategory.EVENING),
        (23, TimeCategory.EVENING),
    ])
    def test_hour(self, hour, expected):
        assert time_category_for(hour) is expected

    def test_aware_datetime_uses_own_wall_clock(self):
        tz = timezone(timedelta(hours=-8))
        influence = compute_temporal_influence(datetime(2024, 6, 1, 3, 30, tzinfo=tz))
        assert influence.time_category is TimeCategory.DEEP_NIGHT


class TestComputeTemporalInfluence:
    """Tests for compute_temporal_influence"""

    def test_default_now(self):
        influence = compute_temporal_influence()
        assert 0.0 <= influence.lunar_phase < 1.0
        assert 0.0 <= influence.illumination <= 1.0

    def test_consistent_fields(self):
        influence = compute_temporal_influence(datetime(2024, 2, 24, 20, 0))
        assert influence.phase_name is phase_name_for(influence.lunar_phase)
        assert influence.illumination == pytest.approx(illumination_for(influence.lunar_phase))
        assert influence.time_category is TimeCategory.EVENING

    def test_never_raises_far_dates(self):
        for moment in (datetime(1800, 1, 1, 0, 0), datetime(2999, 12, 31, 23, 59)):
            influence = compute_temporal_influence(moment)
            assert 0.0 <= influence.lunar_phase < 1.0

    def test_lunar_day_and_describe(self):
        influence = compute_temporal_influence(REFERENCE_NEW_MOON + timedelta(days=10.5))
        assert influence.lunar_day == 10
        assert "lit" in influence.describe()

    def test_frozen(self):
        influence = neutral_influence()
        with pytest.raises(Exception):
            influence.lunar_phase = 0.9

    def test_neutral(self):
        influence = neutral_influence()
        assert influence.phase_name is PhaseName.FIRST_QUARTER
        assert influence.time_category is TimeCategory.AFTERNOON
