"""Load engine — the explicitly constructed entry point to load scoring.

Holds the active configuration, the good-day load calibrator and one
calibrator per physiological signal. Observations, physiological samples
and persisted state come from injected collaborators; nothing here is a
process-wide singleton.

Pipeline for ``daily_load_scores(start, end)``::

    observations [start - lookback, end]
      → aggregate per day (missing days = 0)
      → decay chain
      → classify
      → trim to [start, end]
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable

from pacing.domains.load.connectors import (
    ConfigurationStore,
    ObservationSource,
    PhysiologicalSampleSource,
)
from pacing.domains.load.domain_logic.aggregator import aggregate_day
from pacing.domains.load.domain_logic.baseline import (
    LOAD_MINIMUM_SAMPLES,
    PHYSIOLOGICAL_MINIMUM_SAMPLES,
    BaselineCalibrator,
    CalibrationResult,
    PersonalBaseline,
)
from pacing.domains.load.domain_logic.configuration import (
    DEFAULT_CONFIGURATION,
    ConfigurationChange,
    LoadConfiguration,
    select_preset,
    update_parameters,
)
from pacing.domains.load.domain_logic.decay import (
    date_range,
    decay_chain,
    fill_calendar_gaps,
    minimum_lookback_days,
)
from pacing.domains.load.domain_logic.load_models import (
    DailyLoadScore,
    LoadBreakdown,
    ObservationBatch,
    RiskLevel,
    SignalKind,
)
from pacing.domains.load.domain_logic.parameters import (
    CapacityLevel,
    ConditionPreset,
    ConfigurationError,
    RecoveryWindow,
    SensitivityProfile,
    ThresholdProfile,
    parse_enum,
)
from pacing.domains.load.domain_logic.risk import classify_load
from pacing.domains.load.domain_logic.thresholds import ResolvedProfile, resolve_profile

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 90
PHYSIOLOGICAL_SAMPLE_CAP = 30
PHYSIOLOGICAL_LOOKBACK_DAYS = 30

PHYSIOLOGICAL_SIGNALS = tuple(s for s in SignalKind if s is not SignalKind.LOAD)


def compute_daily_load_scores(
    batch: ObservationBatch,
    start: date,
    end: date,
    profile: ResolvedProfile,
    baseline: PersonalBaseline | None = None,
    *,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> list[DailyLoadScore]:
    """Score every day in ``[start, end]`` from an already-fetched batch.

    The chain starts ``lookback_days`` before *start* so the first displayed
    day carries decayed history. Observations outside
    ``[start - lookback_days, end]`` are ignored.

    Raises:
        ValueError: If ``end < start`` or ``lookback_days`` is negative.
    """
    if lookback_days < 0:
        raise ValueError(f"lookback_days must be non-negative, got {lookback_days}")
    history_start = start - timedelta(days=lookback_days)

    breakdowns: dict[date, LoadBreakdown] = {
        day: aggregate_day(observations, profile.symptom_multiplier)
        for day, observations in batch.by_day().items()
        if history_start <= day <= end
    }
    contributions = fill_calendar_gaps(
        {day: b.total for day, b in breakdowns.items()}, history_start, end
    )
    decayed = decay_chain(contributions, profile.half_life_days)

    scores: list[DailyLoadScore] = []
    for (day, raw), load in zip(contributions, decayed):
        if day < start:
            continue
        scores.append(DailyLoadScore(
            date=day,
            raw_contribution=raw,
            decayed_load=load,
            risk_level=classify_load(load, profile.thresholds, baseline),
            breakdown=breakdowns.get(day, LoadBreakdown()),
        ))
    return scores


class LoadEngine:
    """Configuration, calibrators and scoring for one user.

    Usage::

        engine = LoadEngine(InMemoryObservationSource(), store=InMemoryConfigurationStore())
        engine.select_preset("mecfs")
        scores = await engine.daily_load_scores(date(2025, 3, 1), date(2025, 3, 7))
    """

    def __init__(
        self,
        observation_source: ObservationSource,
        *,
        sample_source: PhysiologicalSampleSource | None = None,
        store: ConfigurationStore | None = None,
        configuration: LoadConfiguration | None = None,
        default_lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        load_min_samples: int = LOAD_MINIMUM_SAMPLES,
        physiological_min_samples: int = PHYSIOLOGICAL_MINIMUM_SAMPLES,
        physiological_sample_cap: int = PHYSIOLOGICAL_SAMPLE_CAP,
        physiological_lookback_days: int = PHYSIOLOGICAL_LOOKBACK_DAYS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._observations = observation_source
        self._samples = sample_source
        self._store = store
        self._default_lookback = default_lookback_days
        self._physiological_lookback = physiological_lookback_days

        stored = store.load_configuration() if store is not None else None
        self._configuration: LoadConfiguration = (
            stored or configuration or DEFAULT_CONFIGURATION
        )

        limits = {SignalKind.LOAD: (load_min_samples, load_min_samples)}
        for signal in PHYSIOLOGICAL_SIGNALS:
            limits[signal] = (physiological_min_samples, physiological_sample_cap)

        self._calibrators: dict[SignalKind, BaselineCalibrator] = {}
        for signal, (minimum, cap) in limits.items():
            snapshot = store.load_calibration(signal) if store is not None else None
            if snapshot is not None:
                calibrator = BaselineCalibrator.restore(
                    snapshot, minimum_samples=minimum, sample_cap=cap, clock=clock
                )
                logger.info("Restored %s calibrator in state %s",
                            signal.value, calibrator.state.value)
            else:
                calibrator = BaselineCalibrator(
                    signal, minimum_samples=minimum, sample_cap=cap, clock=clock
                )
            self._calibrators[signal] = calibrator

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> LoadConfiguration:
        return self._configuration

    @property
    def resolved_profile(self) -> ResolvedProfile:
        return resolve_profile(self._configuration)

    @property
    def default_lookback_days(self) -> int:
        return self._default_lookback

    def select_preset(self, preset: ConditionPreset | str) -> ConfigurationChange:
        """Activate a named preset (or switch to custom with current values)."""
        change = select_preset(self._configuration, preset)
        self._apply(change)
        return change

    def set_parameters(
        self,
        *,
        capacity: CapacityLevel | str | None = None,
        sensitivity: SensitivityProfile | str | None = None,
        recovery: RecoveryWindow | str | None = None,
        thresholds: ThresholdProfile | None = None,
        clear_thresholds: bool = False,
    ) -> ConfigurationChange:
        """Change individual parameters; a differing value leaves the preset."""
        change = update_parameters(
            self._configuration,
            capacity=capacity,
            sensitivity=sensitivity,
            recovery=recovery,
            thresholds=thresholds,
            clear_thresholds=clear_thresholds,
        )
        self._apply(change)
        return change

    def _apply(self, change: ConfigurationChange) -> None:
        self._configuration = change.configuration
        if self._store is not None:
            self._store.save_configuration(change.configuration)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def daily_load_scores(
        self,
        start: date,
        end: date,
        lookback_days: int | None = None,
    ) -> list[DailyLoadScore]:
        """Decayed, classified load for every calendar day in ``[start, end]``.

        Raises:
            ValueError: If ``end < start`` or the lookback is negative.
        """
        lookback = self._default_lookback if lookback_days is None else lookback_days
        if end < start:
            raise ValueError(f"end {end} is before start {start}")
        if lookback < 0:
            raise ValueError(f"lookback_days must be non-negative, got {lookback}")

        profile = self.resolved_profile
        needed = minimum_lookback_days(profile.half_life_days)
        if lookback < needed:
            logger.warning(
                "Lookback of %d days is below %d for a %.0f-day half-life; "
                "early scores may under-count history",
                lookback, needed, profile.half_life_days,
            )

        history_start = start - timedelta(days=lookback)
        batch = await self._observations.get_observations(history_start, end)
        logger.debug("Scoring %d observations from %s over %d days",
                     len(batch), self._observations.data_source,
                     len(date_range(start, end)))
        return compute_daily_load_scores(
            batch, start, end, profile, self.load_baseline, lookback_days=lookback
        )

    def classify(self, load: float) -> RiskLevel:
        """Classify a single decayed load against the active profile."""
        return classify_load(load, self.resolved_profile.thresholds, self.load_baseline)

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def calibrator(self, signal: SignalKind | str = SignalKind.LOAD) -> BaselineCalibrator:
        return self._calibrators[self._signal(signal)]

    @property
    def load_baseline(self) -> PersonalBaseline | None:
        return self._calibrators[SignalKind.LOAD].baseline

    def start_calibration(self, signal: SignalKind | str = SignalKind.LOAD) -> CalibrationResult:
        return self._persisting(signal, lambda c: c.start_calibration())

    def record_sample(
        self,
        value: float,
        signal: SignalKind | str = SignalKind.LOAD,
        *,
        label: str | None = None,
    ) -> CalibrationResult:
        return self._persisting(signal, lambda c: c.record_sample(value, label=label))

    def cancel_calibration(self, signal: SignalKind | str = SignalKind.LOAD) -> CalibrationResult:
        return self._persisting(signal, lambda c: c.cancel_calibration())

    def reset_baseline(self, signal: SignalKind | str = SignalKind.LOAD) -> CalibrationResult:
        return self._persisting(signal, lambda c: c.reset_baseline())

    def threshold(
        self, deviations: float, signal: SignalKind | str = SignalKind.LOAD
    ) -> float | None:
        return self.calibrator(signal).threshold(deviations)

    async def record_good_day(
        self, day: date | None = None
    ) -> tuple[DailyLoadScore, CalibrationResult]:
        """Record the decayed load of *day* (default today) as a good-day sample.

        Each date counts once per calibration session; a repeat comes back
        rejected with reason ``duplicate_day``.
        """
        day = day or date.today()
        scores = await self.daily_load_scores(day, day)
        score = scores[-1]
        result = self.record_sample(score.decayed_load, SignalKind.LOAD, label=day.isoformat())
        return score, result

    async def calibrate_physiological(
        self,
        signal: SignalKind | str,
        lookback_days: int | None = None,
    ) -> CalibrationResult:
        """Build a physiological baseline from the sample source's history.

        Raises:
            ConfigurationError: If the signal is ``load`` or no sample
                source is configured.
        """
        signal = self._physiological(signal)
        if self._samples is None:
            raise ConfigurationError("No physiological sample source is configured")
        lookback = self._physiological_lookback if lookback_days is None else lookback_days
        samples = await self._samples.get_samples(signal, lookback)
        logger.info("Calibrating %s from %d samples (%s)",
                    signal.value, len(samples), self._samples.data_source)
        return self._persisting(
            signal, lambda c: c.calibrate_from_history(s.value for s in samples)
        )

    def evaluate_physiological(self, signal: SignalKind | str, value: float) -> int | None:
        """-1 / 0 / 1 for below / within / above the normal range, or None."""
        return self.calibrator(self._physiological(signal)).evaluate(value)

    def baseline_status(self) -> dict[SignalKind, CalibrationResult]:
        """Current state of every calibrator, as accepted no-op results."""
        status = {}
        for signal, calibrator in self._calibrators.items():
            snapshot = calibrator.snapshot()
            count = (
                snapshot.baseline.sample_count
                if calibrator.is_calibrated and snapshot.baseline is not None
                else len(snapshot.samples)
            )
            status[signal] = CalibrationResult(
                accepted=True,
                state=snapshot.state,
                sample_count=count,
                baseline=snapshot.baseline,
            )
        return status

    def _persisting(
        self,
        signal: SignalKind | str,
        operation: Callable[[BaselineCalibrator], CalibrationResult],
    ) -> CalibrationResult:
        calibrator = self.calibrator(signal)
        result = operation(calibrator)
        if result.accepted and self._store is not None:
            self._store.save_calibration(calibrator.snapshot())
        return result

    @staticmethod
    def _signal(signal: SignalKind | str) -> SignalKind:
        return parse_enum(SignalKind, signal, "signal")

    def _physiological(self, signal: SignalKind | str) -> SignalKind:
        signal = self._signal(signal)
        if signal is SignalKind.LOAD:
            raise ConfigurationError(
                "Load baselines are calibrated from good days, not physiological samples"
            )
        return signal
