"""SQLite-backed collaborators built on the encrypted LoadRepository."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from pacing.core.storage.models import ObservationKind, StoredObservation
from pacing.core.storage.repository import LoadRepository
from pacing.domains.load.domain_logic.baseline import CalibrationSnapshot
from pacing.domains.load.domain_logic.configuration import (
    LoadConfiguration,
    configuration_from_dict,
)
from pacing.domains.load.domain_logic.load_models import (
    ActivityObservation,
    MealObservation,
    ObservationBatch,
    PhysiologicalSample,
    Polarity,
    SignalKind,
    SleepObservation,
    SymptomObservation,
)

logger = logging.getLogger(__name__)


def _moment_to_text(moment: date | datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


def _text_to_moment(text: str | None) -> date | datetime | None:
    if not text:
        return None
    if "T" in text:
        return datetime.fromisoformat(text)
    return date.fromisoformat(text)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------

class StoredObservationSource:
    """ObservationSource over the ``observations`` table.

    Also the write path for the logging tools: each ``save_*`` method
    persists one observation and returns its ID.
    """

    def __init__(self, repository: LoadRepository) -> None:
        self._repo = repository

    def save_symptom(self, observation: SymptomObservation) -> str:
        return self._save(ObservationKind.SYMPTOM, observation, {
            "name": observation.name,
            "severity": observation.severity,
            "polarity": observation.polarity.value,
        })

    def save_activity(self, observation: ActivityObservation) -> str:
        return self._save(ObservationKind.ACTIVITY, observation, {
            "name": observation.name,
            "physical_exertion": observation.physical_exertion,
            "cognitive_exertion": observation.cognitive_exertion,
            "emotional_load": observation.emotional_load,
            "duration_minutes": observation.duration_minutes,
        })

    def save_meal(self, observation: MealObservation) -> str:
        return self._save(ObservationKind.MEAL, observation, {
            "meal_type": observation.meal_type,
            "physical_exertion": observation.physical_exertion,
            "cognitive_exertion": observation.cognitive_exertion,
            "emotional_load": observation.emotional_load,
        })

    def save_sleep(self, observation: SleepObservation) -> str:
        return self._save(ObservationKind.SLEEP, observation, {
            "quality": observation.quality,
            "duration_hours": observation.duration_hours,
            "is_main_sleep": observation.is_main_sleep,
        })

    def _save(self, kind: ObservationKind, observation: Any, fields: dict[str, Any]) -> str:
        payload = {
            "timestamp": _moment_to_text(observation.timestamp),
            "backdated_at": _moment_to_text(observation.backdated_at),
            **fields,
        }
        return self._repo.save_observation(
            kind, observation.effective_date, _now_iso(), payload
        )

    async def get_observations(self, start: date, end: date) -> ObservationBatch:
        rows = self._repo.get_observations(since=start.isoformat(), until=end.isoformat())
        batch = ObservationBatch()
        for row in rows:
            self._add(batch, row)
        return batch

    @staticmethod
    def _add(batch: ObservationBatch, row: StoredObservation) -> None:
        p = row.payload
        timestamp = _text_to_moment(p.get("timestamp")) or date.fromisoformat(row.effective_date)
        backdated_at = _text_to_moment(p.get("backdated_at"))

        if row.kind is ObservationKind.SYMPTOM:
            batch.symptoms.append(SymptomObservation(
                timestamp=timestamp,
                severity=p["severity"],
                polarity=Polarity(p.get("polarity", "negative")),
                backdated_at=backdated_at,
                name=p.get("name", ""),
            ))
        elif row.kind is ObservationKind.ACTIVITY:
            batch.activities.append(ActivityObservation(
                timestamp=timestamp,
                physical_exertion=p["physical_exertion"],
                cognitive_exertion=p["cognitive_exertion"],
                emotional_load=p["emotional_load"],
                duration_minutes=p.get("duration_minutes"),
                backdated_at=backdated_at,
                name=p.get("name", ""),
            ))
        elif row.kind is ObservationKind.MEAL:
            batch.meals.append(MealObservation(
                timestamp=timestamp,
                physical_exertion=p.get("physical_exertion"),
                cognitive_exertion=p.get("cognitive_exertion"),
                emotional_load=p.get("emotional_load"),
                backdated_at=backdated_at,
                meal_type=p.get("meal_type", ""),
            ))
        else:
            batch.sleep.append(SleepObservation(
                timestamp=timestamp,
                quality=p["quality"],
                duration_hours=p.get("duration_hours", 0.0),
                is_main_sleep=p.get("is_main_sleep", True),
                backdated_at=backdated_at,
            ))

    @property
    def data_source(self) -> str:
        return "stored"


# ---------------------------------------------------------------------------
# Physiological samples
# ---------------------------------------------------------------------------

class StoredSampleSource:
    """PhysiologicalSampleSource over the ``physiological_samples`` table."""

    def __init__(self, repository: LoadRepository, *, today: date | None = None) -> None:
        self._repo = repository
        self._today = today

    def save_sample(
        self, signal: SignalKind, sample: PhysiologicalSample, *, source: str = "manual"
    ) -> str:
        if signal is SignalKind.LOAD:
            raise ValueError("Load is derived from observations, not stored as a sample")
        return self._repo.save_sample(
            signal.value, sample.effective_date, sample.value, source=source
        )

    async def get_samples(
        self, signal: SignalKind, lookback_days: int
    ) -> list[PhysiologicalSample]:
        today = self._today or date.today()
        since = today - timedelta(days=lookback_days)
        rows = self._repo.get_samples(
            signal.value, since=since.isoformat(), until=today.isoformat()
        )
        return [
            PhysiologicalSample(timestamp=date.fromisoformat(r.sample_date), value=r.value)
            for r in rows
        ]

    @property
    def data_source(self) -> str:
        return "stored"


# ---------------------------------------------------------------------------
# Configuration and calibration state
# ---------------------------------------------------------------------------

class StoredConfigurationStore:
    """ConfigurationStore over the encrypted engine-state tables."""

    def __init__(self, repository: LoadRepository) -> None:
        self._repo = repository

    def load_configuration(self) -> LoadConfiguration | None:
        data = self._repo.get_configuration_data()
        return configuration_from_dict(data) if data else None

    def save_configuration(self, configuration: LoadConfiguration) -> None:
        self._repo.save_configuration_data(configuration.as_dict())

    def load_calibration(self, signal: SignalKind) -> CalibrationSnapshot | None:
        data = self._repo.get_calibration_data(signal.value)
        return CalibrationSnapshot.from_dict(data) if data else None

    def save_calibration(self, snapshot: CalibrationSnapshot) -> None:
        self._repo.save_calibration_data(
            snapshot.signal.value, snapshot.state.value, snapshot.as_dict()
        )
