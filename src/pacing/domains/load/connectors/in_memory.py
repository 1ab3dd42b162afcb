"""In-memory collaborator implementations. Always available; nothing persists."""

from __future__ import annotations

from datetime import date, timedelta

from pacing.domains.load.domain_logic.baseline import CalibrationSnapshot
from pacing.domains.load.domain_logic.configuration import LoadConfiguration
from pacing.domains.load.domain_logic.load_models import (
    ActivityObservation,
    MealObservation,
    ObservationBatch,
    PhysiologicalSample,
    SignalKind,
    SleepObservation,
    SymptomObservation,
)


def _in_range(day: date, start: date, end: date) -> bool:
    return start <= day <= end


class InMemoryObservationSource:
    """Holds observations in lists and filters them by effective date."""

    def __init__(self, batch: ObservationBatch | None = None) -> None:
        self._batch = batch or ObservationBatch()

    def add_symptom(self, observation: SymptomObservation) -> None:
        self._batch.symptoms.append(observation)

    def add_activity(self, observation: ActivityObservation) -> None:
        self._batch.activities.append(observation)

    def add_meal(self, observation: MealObservation) -> None:
        self._batch.meals.append(observation)

    def add_sleep(self, observation: SleepObservation) -> None:
        self._batch.sleep.append(observation)

    async def get_observations(self, start: date, end: date) -> ObservationBatch:
        key = lambda o: o.effective_date  # noqa: E731
        return ObservationBatch(
            symptoms=sorted(
                (o for o in self._batch.symptoms if _in_range(o.effective_date, start, end)), key=key
            ),
            activities=sorted(
                (o for o in self._batch.activities if _in_range(o.effective_date, start, end)), key=key
            ),
            meals=sorted(
                (o for o in self._batch.meals if _in_range(o.effective_date, start, end)), key=key
            ),
            sleep=sorted(
                (o for o in self._batch.sleep if _in_range(o.effective_date, start, end)), key=key
            ),
        )

    @property
    def data_source(self) -> str:
        return "memory"


class InMemorySampleSource:
    """Physiological readings keyed by signal."""

    def __init__(
        self,
        samples: dict[SignalKind, list[PhysiologicalSample]] | None = None,
        *,
        today: date | None = None,
    ) -> None:
        self._samples = {k: list(v) for k, v in (samples or {}).items()}
        self._today = today

    def add_sample(self, signal: SignalKind, sample: PhysiologicalSample) -> None:
        self._samples.setdefault(signal, []).append(sample)

    async def get_samples(
        self, signal: SignalKind, lookback_days: int
    ) -> list[PhysiologicalSample]:
        today = self._today or date.today()
        cutoff = today - timedelta(days=lookback_days)
        return sorted(
            (s for s in self._samples.get(signal, []) if cutoff <= s.effective_date <= today),
            key=lambda s: s.effective_date,
        )

    @property
    def data_source(self) -> str:
        return "memory"


class InMemoryConfigurationStore:
    """Keeps the configuration and calibration snapshots in a dict."""

    def __init__(self) -> None:
        self._configuration: LoadConfiguration | None = None
        self._calibrations: dict[SignalKind, CalibrationSnapshot] = {}

    def load_configuration(self) -> LoadConfiguration | None:
        return self._configuration

    def save_configuration(self, configuration: LoadConfiguration) -> None:
        self._configuration = configuration

    def load_calibration(self, signal: SignalKind) -> CalibrationSnapshot | None:
        return self._calibrations.get(signal)

    def save_calibration(self, snapshot: CalibrationSnapshot) -> None:
        self._calibrations[snapshot.signal] = snapshot
