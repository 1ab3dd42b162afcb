"""Tests for the daily contribution aggregator."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from pacing.domains.load.domain_logic.aggregator import (
    ACTIVITY_CEILING,
    activity_contribution,
    aggregate_day,
    meal_contribution,
    raw_contribution,
    sleep_contribution,
    symptom_load,
)
from pacing.domains.load.domain_logic.load_models import (
    ActivityObservation,
    LoadBreakdown,
    MealObservation,
    ObservationBatch,
    ObservationError,
    Polarity,
    SleepObservation,
    SymptomObservation,
    local_day,
)

DAY = date(2025, 3, 10)


def _symptom(severity: int, polarity: Polarity = Polarity.NEGATIVE) -> SymptomObservation:
    return SymptomObservation(timestamp=DAY, severity=severity, polarity=polarity)


def _activity(p: int, c: int, e: int, minutes: int | None = None) -> ActivityObservation:
    return ActivityObservation(
        timestamp=DAY,
        physical_exertion=p,
        cognitive_exertion=c,
        emotional_load=e,
        duration_minutes=minutes,
    )


class TestObservationValidation:
    @pytest.mark.parametrize("severity", [0, 6, -1])
    def test_symptom_severity_out_of_range(self, severity):
        with pytest.raises(ObservationError):
            _symptom(severity)

    def test_activity_exertion_out_of_range(self):
        with pytest.raises(ObservationError, match="cognitive_exertion"):
            _activity(3, 9, 3)

    def test_negative_duration(self):
        with pytest.raises(ObservationError):
            _activity(3, 3, 3, minutes=-5)

    def test_meal_exertion_optional(self):
        meal = MealObservation(timestamp=DAY)
        assert not meal.has_exertion_data

    def test_sleep_quality_out_of_range(self):
        with pytest.raises(ObservationError):
            SleepObservation(timestamp=DAY, quality=0)


class TestEffectiveDate:
    def test_backdated_wins(self):
        obs = SymptomObservation(
            timestamp=DAY, severity=2, backdated_at=DAY - timedelta(days=2)
        )
        assert obs.effective_date == date(2025, 3, 8)

    def test_naive_datetime_is_local(self):
        obs = SymptomObservation(timestamp=datetime(2025, 3, 10, 23, 59), severity=2)
        assert obs.effective_date == DAY

    def test_aware_datetime_uses_local_calendar(self):
        moment = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert local_day(moment) == moment.astimezone().date()


class TestSymptomLoad:
    def test_negative_symptom(self):
        assert symptom_load([_symptom(3)], 1.0) == pytest.approx(12.0)

    def test_sensitivity_scales(self):
        assert symptom_load([_symptom(3)], 1.5) == pytest.approx(18.0)
        assert symptom_load([_symptom(5)], 0.7) == pytest.approx(14.0)

    def test_positive_symptom_adds_nothing(self):
        assert symptom_load([_symptom(5, Polarity.POSITIVE)], 1.5) == 0.0

    def test_positive_never_reduces(self):
        mixed = [_symptom(2), _symptom(5, Polarity.POSITIVE)]
        assert symptom_load(mixed, 1.0) == symptom_load([_symptom(2)], 1.0)


class TestActivityContribution:
    def test_default_duration_weight(self):
        assert activity_contribution(_activity(3, 3, 3)) == pytest.approx(18.0)

    def test_short_activity(self):
        assert activity_contribution(_activity(4, 4, 4, minutes=30)) == pytest.approx(12.0)

    def test_duration_weight_capped_at_two_hours(self):
        two_hours = activity_contribution(_activity(2, 2, 2, minutes=120))
        long = activity_contribution(_activity(2, 2, 2, minutes=600))
        assert long == two_hours == pytest.approx(24.0)

    def test_ceiling(self):
        assert ACTIVITY_CEILING == 30.0
        assert activity_contribution(_activity(5, 5, 5, minutes=120)) == ACTIVITY_CEILING

    def test_zero_minutes(self):
        assert activity_contribution(_activity(5, 5, 5, minutes=0)) == 0.0


class TestMealAndSleep:
    def test_meal_without_exertion(self):
        assert meal_contribution(MealObservation(timestamp=DAY)) == 0.0

    def test_meal_unset_dimensions_count_as_one(self):
        meal = MealObservation(timestamp=DAY, physical_exertion=3)
        assert meal_contribution(meal) == pytest.approx(2.5)

    @pytest.mark.parametrize("quality,expected", [(1, 10.0), (2, 5.0), (3, 0.0), (5, 0.0)])
    def test_main_sleep(self, quality, expected):
        assert sleep_contribution(SleepObservation(timestamp=DAY, quality=quality)) == expected

    def test_nap_adds_nothing(self):
        nap = SleepObservation(timestamp=DAY, quality=1, is_main_sleep=False)
        assert sleep_contribution(nap) == 0.0


class TestAggregateDay:
    def test_empty_day_is_zero(self):
        breakdown = aggregate_day(ObservationBatch(), 1.5)
        assert breakdown == LoadBreakdown()
        assert breakdown.total == 0.0
        assert breakdown.percentages() == {"symptom": 0.0, "activity": 0.0, "meal": 0.0, "sleep": 0.0}

    def test_breakdown_sums(self):
        day = ObservationBatch(
            symptoms=[_symptom(3)],
            activities=[_activity(3, 3, 3)],
            meals=[MealObservation(timestamp=DAY, physical_exertion=3)],
            sleep=[SleepObservation(timestamp=DAY, quality=1)],
        )
        breakdown = aggregate_day(day, 1.0)
        assert breakdown.symptom_load == pytest.approx(12.0)
        assert breakdown.activity_load == pytest.approx(18.0)
        assert breakdown.meal_load == pytest.approx(2.5)
        assert breakdown.sleep_load == pytest.approx(10.0)
        assert raw_contribution(day, 1.0) == pytest.approx(42.5)
        assert sum(breakdown.percentages().values()) == pytest.approx(100.0, abs=0.05)

    @pytest.mark.parametrize("multiplier", [0.7, 1.0, 1.5])
    def test_never_negative(self, multiplier):
        day = ObservationBatch(
            symptoms=[_symptom(s, p) for s in range(1, 6) for p in Polarity],
            activities=[_activity(1, 1, 1, minutes=0)],
            sleep=[SleepObservation(timestamp=DAY, quality=5)],
        )
        assert raw_contribution(day, multiplier) >= 0.0

    def test_by_day_groups_on_effective_date(self):
        batch = ObservationBatch(
            symptoms=[
                _symptom(2),
                SymptomObservation(timestamp=DAY, severity=4, backdated_at=DAY - timedelta(days=1)),
            ],
            activities=[_activity(1, 1, 1)],
        )
        days = batch.by_day()
        assert set(days) == {DAY, DAY - timedelta(days=1)}
        assert len(days[DAY]) == 2
        assert days[DAY - timedelta(days=1)].symptoms[0].severity == 4
