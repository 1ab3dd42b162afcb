"""Tests for the SQLite-backed collaborators."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta

import pytest

from pacing.domains.load.connectors import (
    ConfigurationStore,
    ObservationSource,
    PhysiologicalSampleSource,
)
from pacing.domains.load.connectors.stored import (
    StoredConfigurationStore,
    StoredObservationSource,
    StoredSampleSource,
)
from pacing.domains.load.domain_logic.baseline import (
    CalibrationSnapshot,
    CalibrationState,
    PersonalBaseline,
)
from pacing.domains.load.domain_logic.configuration import (
    CustomConfiguration,
    PresetConfiguration,
)
from pacing.domains.load.domain_logic.engine import LoadEngine
from pacing.domains.load.domain_logic.load_models import (
    ActivityObservation,
    MealObservation,
    PhysiologicalSample,
    Polarity,
    SignalKind,
    SleepObservation,
    SymptomObservation,
)
from pacing.domains.load.domain_logic.parameters import (
    ConditionPreset,
    LoadParameters,
    RecoveryWindow,
    ThresholdProfile,
)

DAY = date(2025, 3, 10)


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def observations(load_repository) -> StoredObservationSource:
    return StoredObservationSource(load_repository)


@pytest.fixture
def samples(load_repository) -> StoredSampleSource:
    return StoredSampleSource(load_repository, today=DAY)


class TestProtocols:
    def test_satisfied(self, load_repository, observations, samples):
        assert isinstance(observations, ObservationSource)
        assert isinstance(samples, PhysiologicalSampleSource)
        assert isinstance(StoredConfigurationStore(load_repository), ConfigurationStore)


class TestStoredObservationSource:
    def test_symptom_round_trip(self, observations):
        logged = SymptomObservation(
            timestamp=datetime(2025, 3, 10, 9, 30),
            severity=4,
            polarity=Polarity.POSITIVE,
            name="energy",
        )
        observations.save_symptom(logged)
        batch = _run(observations.get_observations(DAY, DAY))
        assert batch.symptoms == [logged]

    def test_date_timestamps_stay_dates(self, observations):
        observations.save_sleep(SleepObservation(DAY, quality=3, duration_hours=7.5))
        sleep = _run(observations.get_observations(DAY, DAY)).sleep[0]
        assert type(sleep.timestamp) is date
        assert sleep.duration_hours == 7.5
        assert sleep.is_main_sleep

    def test_backdated_entry_lands_on_its_day(self, observations):
        yesterday = DAY - timedelta(days=1)
        observations.save_activity(
            ActivityObservation(DAY, 3, 1, 2, duration_minutes=45, backdated_at=yesterday)
        )
        assert len(_run(observations.get_observations(DAY, DAY))) == 0
        activity = _run(observations.get_observations(yesterday, yesterday)).activities[0]
        assert activity.backdated_at == yesterday
        assert activity.duration_minutes == 45
        assert activity.effective_date == yesterday

    def test_meal_optional_ratings(self, observations):
        observations.save_meal(MealObservation(DAY, physical_exertion=2, meal_type="lunch"))
        meal = _run(observations.get_observations(DAY, DAY)).meals[0]
        assert meal.physical_exertion == 2
        assert meal.cognitive_exertion is None
        assert meal.meal_type == "lunch"

    def test_feeds_the_engine(self, observations):
        observations.save_symptom(SymptomObservation(DAY, 5))
        engine = LoadEngine(observations)
        scores = _run(engine.daily_load_scores(DAY, DAY))
        assert scores[0].decayed_load == pytest.approx(20.0)
        assert observations.data_source == "stored"


class TestStoredSampleSource:
    def test_save_and_lookback(self, samples):
        samples.save_sample(SignalKind.HRV, PhysiologicalSample(DAY - timedelta(days=40), 70.0))
        samples.save_sample(SignalKind.HRV, PhysiologicalSample(DAY, 52.0), source="wearable")
        samples.save_sample(SignalKind.HRV, PhysiologicalSample(DAY - timedelta(days=2), 48.0))
        result = _run(samples.get_samples(SignalKind.HRV, 30))
        assert [s.value for s in result] == [48.0, 52.0]
        assert result[0].timestamp == DAY - timedelta(days=2)

    def test_load_rejected(self, samples):
        with pytest.raises(ValueError, match="derived"):
            samples.save_sample(SignalKind.LOAD, PhysiologicalSample(DAY, 10.0))


class TestStoredConfigurationStore:
    def test_preset_round_trip(self, load_repository):
        store = StoredConfigurationStore(load_repository)
        assert store.load_configuration() is None
        store.save_configuration(PresetConfiguration(ConditionPreset.LONG_COVID))
        assert store.load_configuration() == PresetConfiguration(ConditionPreset.LONG_COVID)

    def test_custom_round_trip(self, load_repository):
        store = StoredConfigurationStore(load_repository)
        custom = CustomConfiguration(
            parameters=LoadParameters(recovery=RecoveryWindow.SLOW),
            thresholds=ThresholdProfile(safe=10, caution=20, high=30),
        )
        store.save_configuration(custom)
        assert store.load_configuration() == custom

    def test_calibration_round_trip(self, load_repository):
        store = StoredConfigurationStore(load_repository)
        snapshot = CalibrationSnapshot(
            SignalKind.LOAD,
            CalibrationState.CALIBRATED,
            (8.0, 10.0, 12.0),
            PersonalBaseline(SignalKind.LOAD, 3, 10.0, 1.633),
        )
        store.save_calibration(snapshot)
        assert store.load_calibration(SignalKind.LOAD) == snapshot
        assert store.load_calibration(SignalKind.HRV) is None

    def test_engine_state_survives_reopen(self, load_repository, observations):
        store = StoredConfigurationStore(load_repository)
        engine = LoadEngine(observations, store=store)
        engine.select_preset("fibromyalgia")
        engine.start_calibration()
        engine.record_sample(6.0)

        reopened = LoadEngine(observations, store=StoredConfigurationStore(load_repository))
        assert reopened.configuration.selected_preset is ConditionPreset.FIBROMYALGIA
        assert reopened.calibrator(SignalKind.LOAD).samples == [6.0]
