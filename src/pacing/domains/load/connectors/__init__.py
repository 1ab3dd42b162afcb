"""Load engine collaborators — where observations, samples and settings live."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pacing.domains.load.domain_logic.baseline import CalibrationSnapshot
    from pacing.domains.load.domain_logic.configuration import LoadConfiguration
    from pacing.domains.load.domain_logic.load_models import (
        ObservationBatch,
        PhysiologicalSample,
        SignalKind,
    )


@runtime_checkable
class ObservationSource(Protocol):
    """Symptom, activity, meal and sleep observations by effective date."""

    async def get_observations(self, start: date, end: date) -> ObservationBatch:
        """All observations whose effective date is in ``[start, end]``, ascending."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the source: 'stored', 'memory', ..."""
        ...


@runtime_checkable
class PhysiologicalSampleSource(Protocol):
    """Dated readings for physiological signals (HRV, resting HR, ...)."""

    async def get_samples(
        self, signal: SignalKind, lookback_days: int
    ) -> list[PhysiologicalSample]:
        """Readings from the last *lookback_days* days, oldest first."""
        ...

    @property
    def data_source(self) -> str:
        ...


@runtime_checkable
class ConfigurationStore(Protocol):
    """Durable home of the active configuration and calibrator state."""

    def load_configuration(self) -> LoadConfiguration | None:
        ...

    def save_configuration(self, configuration: LoadConfiguration) -> None:
        ...

    def load_calibration(self, signal: SignalKind) -> CalibrationSnapshot | None:
        ...

    def save_calibration(self, snapshot: CalibrationSnapshot) -> None:
        ...
