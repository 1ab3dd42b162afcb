"""Personal baseline calibration.

One implementation serves every scalar signal: good-day load values as well
as physiological readings such as HRV or resting heart rate. Each signal
gets its own ``BaselineCalibrator`` instance.

State machine::

    idle ──start──▶ collecting ──record × minimum_samples──▶ calibrated
                        │                                       │
                      cancel                                  reset
                        ▼                                       │
                    cancelled ──▶ idle ◀────────────────────────┘

Operations invoked in the wrong state are rejected with an explicit
``CalibrationResult(accepted=False, reason=...)``. A wrong baseline drives
health-risk messaging, so nothing is computed from a partial sample set.
"""

from __future__ import annotations

import logging
import math
import statistics
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable

from pacing.domains.load.domain_logic.load_models import SignalKind

logger = logging.getLogger(__name__)

LOAD_MINIMUM_SAMPLES = 3
PHYSIOLOGICAL_MINIMUM_SAMPLES = 10

# Half a standard deviation either side of the mean counts as "normal"
EVALUATION_DEVIATIONS = 0.5

REASON_ALREADY_COLLECTING = "already_collecting"
REASON_ALREADY_CALIBRATED = "already_calibrated"
REASON_NOT_COLLECTING = "not_collecting"
REASON_NOT_CALIBRATED = "not_calibrated"
REASON_INVALID_VALUE = "invalid_value"
REASON_INSUFFICIENT_SAMPLES = "insufficient_samples"
REASON_DUPLICATE_DAY = "duplicate_day"


class CalibrationState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    CALIBRATED = "calibrated"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PersonalBaseline:
    """Mean and spread of a signal's reference samples."""

    signal: SignalKind
    sample_count: int
    mean: float
    spread: float
    minimum_samples: int = LOAD_MINIMUM_SAMPLES
    established_at: str = ""

    @property
    def is_calibrated(self) -> bool:
        return self.sample_count >= self.minimum_samples

    def threshold(self, deviations: float) -> float | None:
        """``mean + deviations × spread``, or None if not calibrated."""
        if not self.is_calibrated:
            return None
        return self.mean + deviations * self.spread

    def as_dict(self) -> dict[str, Any]:
        return {
            "signal": self.signal.value,
            "sample_count": self.sample_count,
            "mean": self.mean,
            "spread": self.spread,
            "minimum_samples": self.minimum_samples,
            "established_at": self.established_at,
            "is_calibrated": self.is_calibrated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PersonalBaseline:
        return cls(
            signal=SignalKind(data["signal"]),
            sample_count=int(data["sample_count"]),
            mean=float(data["mean"]),
            spread=float(data["spread"]),
            minimum_samples=int(data.get("minimum_samples", LOAD_MINIMUM_SAMPLES)),
            established_at=data.get("established_at", ""),
        )


def compute_baseline(
    signal: SignalKind,
    samples: Iterable[float],
    *,
    minimum_samples: int,
    established_at: str = "",
) -> PersonalBaseline:
    """Population mean and standard deviation of *samples*."""
    values = list(samples)
    if not values:
        raise ValueError("At least one sample is required")
    return PersonalBaseline(
        signal=signal,
        sample_count=len(values),
        mean=statistics.fmean(values),
        spread=statistics.pstdev(values),
        minimum_samples=minimum_samples,
        established_at=established_at,
    )


@dataclass(frozen=True)
class CalibrationResult:
    """Outcome of a calibrator operation."""

    accepted: bool
    state: CalibrationState
    sample_count: int
    reason: str = ""
    baseline: PersonalBaseline | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "accepted": self.accepted,
            "state": self.state.value,
            "sample_count": self.sample_count,
            "reason": self.reason or None,
            "baseline": self.baseline.as_dict() if self.baseline else None,
        }


@dataclass(frozen=True)
class CalibrationSnapshot:
    """Persistable state of one calibrator."""

    signal: SignalKind
    state: CalibrationState
    samples: tuple[float, ...] = ()
    baseline: PersonalBaseline | None = None
    labels: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "signal": self.signal.value,
            "state": self.state.value,
            "samples": list(self.samples),
            "baseline": self.baseline.as_dict() if self.baseline else None,
            "labels": list(self.labels),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CalibrationSnapshot:
        baseline = data.get("baseline")
        return cls(
            signal=SignalKind(data["signal"]),
            state=CalibrationState(data.get("state", "idle")),
            samples=tuple(float(v) for v in data.get("samples", [])),
            baseline=PersonalBaseline.from_dict(baseline) if baseline else None,
            labels=tuple(str(v) for v in data.get("labels", [])),
        )


class BaselineCalibrator:
    """Collects reference samples for one signal and holds its baseline.

    Thread-safe: all mutation happens under an internal lock, so concurrent
    ``record_sample`` calls promote to calibrated exactly once.

    Usage::

        calibrator = BaselineCalibrator(SignalKind.LOAD, minimum_samples=3)
        calibrator.start_calibration()
        for load in good_day_loads:
            calibrator.record_sample(load)
        calibrator.threshold(1.0)   # mean + 1 spread, or None
    """

    def __init__(
        self,
        signal: SignalKind,
        *,
        minimum_samples: int = LOAD_MINIMUM_SAMPLES,
        sample_cap: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if minimum_samples < 1:
            raise ValueError(f"minimum_samples must be at least 1, got {minimum_samples}")
        cap = sample_cap if sample_cap is not None else minimum_samples
        if cap < minimum_samples:
            raise ValueError(
                f"sample_cap ({cap}) must not be below minimum_samples ({minimum_samples})"
            )
        self._signal = signal
        self._minimum = minimum_samples
        self._cap = cap
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._state = CalibrationState.IDLE
        self._samples: list[float] = []
        # Labels (e.g. ISO dates) already recorded in the open session
        self._labels: set[str] = set()
        self._baseline: PersonalBaseline | None = None

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @property
    def signal(self) -> SignalKind:
        return self._signal

    @property
    def minimum_samples(self) -> int:
        return self._minimum

    @property
    def sample_cap(self) -> int:
        return self._cap

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def baseline(self) -> PersonalBaseline | None:
        return self._baseline

    @property
    def samples(self) -> list[float]:
        with self._lock:
            return list(self._samples)

    @property
    def is_calibrated(self) -> bool:
        baseline = self._baseline
        return baseline is not None and baseline.is_calibrated

    def threshold(self, deviations: float) -> float | None:
        """``mean + deviations × spread`` of the calibrated baseline, else None."""
        baseline = self._baseline
        if baseline is None:
            return None
        return baseline.threshold(deviations)

    def evaluate(self, value: float) -> int | None:
        """Compare a reading with the baseline's normal range.

        Returns:
            -1 below, 0 within, 1 above ``mean ± 0.5 × spread``; None if
            there is no calibrated baseline.
        """
        upper = self.threshold(EVALUATION_DEVIATIONS)
        lower = self.threshold(-EVALUATION_DEVIATIONS)
        if upper is None or lower is None:
            return None
        if value > upper:
            return 1
        if value < lower:
            return -1
        return 0

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_calibration(self) -> CalibrationResult:
        """idle → collecting. Rejected while collecting or calibrated."""
        with self._lock:
            if self._state is CalibrationState.COLLECTING:
                return self._reject(REASON_ALREADY_COLLECTING, "start")
            if self._state is CalibrationState.CALIBRATED:
                return self._reject(REASON_ALREADY_CALIBRATED, "start")
            self._clear_session()
            self._transition(CalibrationState.COLLECTING)
            return self._accept()

    def record_sample(self, value: float, *, label: str | None = None) -> CalibrationResult:
        """Append a sample while collecting.

        ``label`` names what the sample stands for (the good day's ISO date
        for load); a label already recorded in this session is rejected as
        ``duplicate_day``. Reaching ``minimum_samples`` promotes to
        calibrated and snapshots the baseline in the same call.
        """
        with self._lock:
            if self._state is not CalibrationState.COLLECTING:
                return self._reject(REASON_NOT_COLLECTING, "record_sample")
            if value is None or not math.isfinite(value):
                return self._reject(REASON_INVALID_VALUE, "record_sample")
            if label is not None and label in self._labels:
                return self._reject(REASON_DUPLICATE_DAY, "record_sample")

            if label is not None:
                self._labels.add(label)
            self._samples.append(float(value))
            if len(self._samples) > self._cap:
                self._samples.pop(0)

            if len(self._samples) >= self._minimum:
                self._promote(self._samples)
            return self._accept()

    def cancel_calibration(self) -> CalibrationResult:
        """collecting → cancelled → idle, discarding the partial samples."""
        with self._lock:
            if self._state is not CalibrationState.COLLECTING:
                return self._reject(REASON_NOT_COLLECTING, "cancel")
            discarded = len(self._samples)
            self._clear_session()
            self._transition(CalibrationState.CANCELLED)
            self._transition(CalibrationState.IDLE)
            logger.info("Calibration for %s cancelled (%d samples discarded)",
                        self._signal.value, discarded)
            return self._accept()

    def reset_baseline(self) -> CalibrationResult:
        """calibrated → idle, discarding the baseline."""
        with self._lock:
            if self._state is not CalibrationState.CALIBRATED:
                return self._reject(REASON_NOT_CALIBRATED, "reset")
            self._baseline = None
            self._clear_session()
            self._transition(CalibrationState.IDLE)
            return self._accept()

    def calibrate_from_history(self, samples: Iterable[float]) -> CalibrationResult:
        """Compute a baseline directly from historical readings.

        Uses the most recent ``sample_cap`` finite values (input is taken to
        be oldest first). Allowed from idle, or from calibrated to refresh
        the baseline; never while a collection session is open.
        """
        values = [float(v) for v in samples if v is not None and math.isfinite(v)]
        with self._lock:
            if self._state is CalibrationState.COLLECTING:
                return self._reject(REASON_ALREADY_COLLECTING, "calibrate_from_history")
            if len(values) < self._minimum:
                return self._reject(REASON_INSUFFICIENT_SAMPLES, "calibrate_from_history")
            self._promote(values[-self._cap:])
            return self._accept()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> CalibrationSnapshot:
        with self._lock:
            return CalibrationSnapshot(
                signal=self._signal,
                state=self._state,
                samples=tuple(self._samples),
                baseline=self._baseline,
                labels=tuple(sorted(self._labels)),
            )

    @classmethod
    def restore(
        cls,
        snapshot: CalibrationSnapshot,
        *,
        minimum_samples: int = LOAD_MINIMUM_SAMPLES,
        sample_cap: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> BaselineCalibrator:
        """Rebuild a calibrator from a stored snapshot.

        A snapshot left in the transient ``cancelled`` state, or claiming
        ``calibrated`` without a usable baseline, restores as idle.
        """
        calibrator = cls(
            snapshot.signal,
            minimum_samples=minimum_samples,
            sample_cap=sample_cap,
            clock=clock,
        )
        state = snapshot.state
        baseline = snapshot.baseline
        if state is CalibrationState.CANCELLED:
            state = CalibrationState.IDLE
        if state is CalibrationState.CALIBRATED and (baseline is None or not baseline.is_calibrated):
            logger.warning("Stored %s baseline is not calibrated; restoring as idle",
                           snapshot.signal.value)
            state, baseline = CalibrationState.IDLE, None

        calibrator._state = state
        calibrator._baseline = baseline if state is CalibrationState.CALIBRATED else None
        if state is CalibrationState.COLLECTING:
            calibrator._samples = list(snapshot.samples)[-calibrator._cap:]
            calibrator._labels = set(snapshot.labels)
        return calibrator

    # ------------------------------------------------------------------
    # Internal helpers (callers hold the lock)
    # ------------------------------------------------------------------

    def _promote(self, values: list[float]) -> None:
        self._baseline = compute_baseline(
            self._signal,
            values,
            minimum_samples=self._minimum,
            established_at=self._clock().isoformat(),
        )
        self._clear_session()
        self._transition(CalibrationState.CALIBRATED)

    def _clear_session(self) -> None:
        self._samples = []
        self._labels = set()

    def _transition(self, new_state: CalibrationState) -> None:
        logger.info("Calibration %s: %s -> %s",
                    self._signal.value, self._state.value, new_state.value)
        self._state = new_state

    def _accept(self) -> CalibrationResult:
        return CalibrationResult(
            accepted=True,
            state=self._state,
            sample_count=self._sample_count(),
            baseline=self._baseline,
        )

    def _reject(self, reason: str, operation: str) -> CalibrationResult:
        logger.warning("Calibration %s rejected for %s in state %s (%s)",
                       operation, self._signal.value, self._state.value, reason)
        return CalibrationResult(
            accepted=False,
            state=self._state,
            sample_count=self._sample_count(),
            reason=reason,
            baseline=self._baseline,
        )

    def _sample_count(self) -> int:
        if self._state is CalibrationState.CALIBRATED and self._baseline is not None:
            return self._baseline.sample_count
        return len(self._samples)
