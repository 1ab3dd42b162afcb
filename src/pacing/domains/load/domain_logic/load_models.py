"""Observation and score models for the load-capacity engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum


class ObservationError(ValueError):
    """Raised when an observation carries an out-of-range rating."""


# ---------------------------------------------------------------------------
# Rating scales
# ---------------------------------------------------------------------------

RATING_MIN = 1
RATING_MAX = 5


def _check_rating(name: str, value: int | None, *, optional: bool = False) -> None:
    if value is None and optional:
        return
    if value is None or not RATING_MIN <= value <= RATING_MAX:
        raise ObservationError(
            f"{name} must be between {RATING_MIN} and {RATING_MAX}, got {value!r}"
        )


def local_day(moment: date | datetime) -> date:
    """Calendar day of *moment* on the device-local calendar.

    Aware datetimes are converted to local time first; naive datetimes are
    taken to be local already.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone()
        return moment.date()
    return moment


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Polarity(str, Enum):
    """Whether a symptom measures strain (negative) or wellbeing (positive)."""

    NEGATIVE = "negative"
    POSITIVE = "positive"


class RiskLevel(IntEnum):
    """Ordered risk tiers. Integer values give the ordering."""

    SAFE = 0
    CAUTION = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return _RISK_LABELS[self]


_RISK_LABELS = {
    RiskLevel.SAFE: "Safe",
    RiskLevel.CAUTION: "Caution",
    RiskLevel.HIGH: "High risk",
    RiskLevel.CRITICAL: "Rest needed",
}


class SignalKind(str, Enum):
    """Scalar signals that can carry a personal baseline."""

    LOAD = "load"
    HRV = "hrv"
    RESTING_HEART_RATE = "resting_heart_rate"
    SLEEP_HOURS = "sleep_hours"


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SymptomObservation:
    """A logged symptom rating.

    The effective date is ``backdated_at`` when the entry was backdated,
    otherwise ``timestamp``.
    """

    timestamp: date | datetime
    severity: int
    polarity: Polarity = Polarity.NEGATIVE
    backdated_at: date | datetime | None = None
    name: str = ""

    def __post_init__(self) -> None:
        _check_rating("severity", self.severity)

    @property
    def effective_date(self) -> date:
        return local_day(self.backdated_at or self.timestamp)


@dataclass(frozen=True)
class ActivityObservation:
    """A logged activity with three exertion ratings."""

    timestamp: date | datetime
    physical_exertion: int
    cognitive_exertion: int
    emotional_load: int
    duration_minutes: int | None = None
    backdated_at: date | datetime | None = None
    name: str = ""

    def __post_init__(self) -> None:
        _check_rating("physical_exertion", self.physical_exertion)
        _check_rating("cognitive_exertion", self.cognitive_exertion)
        _check_rating("emotional_load", self.emotional_load)
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ObservationError(
                f"duration_minutes must be non-negative, got {self.duration_minutes}"
            )

    @property
    def effective_date(self) -> date:
        return local_day(self.backdated_at or self.timestamp)


@dataclass(frozen=True)
class MealObservation:
    """A logged meal. Exertion ratings are optional."""

    timestamp: date | datetime
    physical_exertion: int | None = None
    cognitive_exertion: int | None = None
    emotional_load: int | None = None
    backdated_at: date | datetime | None = None
    meal_type: str = ""

    def __post_init__(self) -> None:
        _check_rating("physical_exertion", self.physical_exertion, optional=True)
        _check_rating("cognitive_exertion", self.cognitive_exertion, optional=True)
        _check_rating("emotional_load", self.emotional_load, optional=True)

    @property
    def has_exertion_data(self) -> bool:
        return any(
            v is not None
            for v in (self.physical_exertion, self.cognitive_exertion, self.emotional_load)
        )

    @property
    def effective_date(self) -> date:
        return local_day(self.backdated_at or self.timestamp)


@dataclass(frozen=True)
class SleepObservation:
    """A logged sleep period."""

    timestamp: date | datetime
    quality: int
    duration_hours: float = 0.0
    is_main_sleep: bool = True
    backdated_at: date | datetime | None = None

    def __post_init__(self) -> None:
        _check_rating("quality", self.quality)
        if self.duration_hours < 0:
            raise ObservationError(
                f"duration_hours must be non-negative, got {self.duration_hours}"
            )

    @property
    def effective_date(self) -> date:
        return local_day(self.backdated_at or self.timestamp)


@dataclass
class ObservationBatch:
    """Everything an observation source returns for a date range."""

    symptoms: list[SymptomObservation] = field(default_factory=list)
    activities: list[ActivityObservation] = field(default_factory=list)
    meals: list[MealObservation] = field(default_factory=list)
    sleep: list[SleepObservation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.symptoms) + len(self.activities) + len(self.meals) + len(self.sleep)

    def by_day(self) -> dict[date, ObservationBatch]:
        """Group observations by effective date."""
        days: dict[date, ObservationBatch] = {}
        for s in self.symptoms:
            days.setdefault(s.effective_date, ObservationBatch()).symptoms.append(s)
        for a in self.activities:
            days.setdefault(a.effective_date, ObservationBatch()).activities.append(a)
        for m in self.meals:
            days.setdefault(m.effective_date, ObservationBatch()).meals.append(m)
        for z in self.sleep:
            days.setdefault(z.effective_date, ObservationBatch()).sleep.append(z)
        return days


@dataclass(frozen=True)
class PhysiologicalSample:
    """A dated reading from a wearable or manual entry."""

    timestamp: date | datetime
    value: float

    @property
    def effective_date(self) -> date:
        return local_day(self.timestamp)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LoadBreakdown:
    """Per-category share of one day's raw contribution."""

    symptom_load: float = 0.0
    activity_load: float = 0.0
    meal_load: float = 0.0
    sleep_load: float = 0.0

    @property
    def total(self) -> float:
        return self.symptom_load + self.activity_load + self.meal_load + self.sleep_load

    def percentages(self) -> dict[str, float]:
        """Return each category as a percentage of the total (0 when empty)."""
        total = self.total
        parts = {
            "symptom": self.symptom_load,
            "activity": self.activity_load,
            "meal": self.meal_load,
            "sleep": self.sleep_load,
        }
        if total <= 0:
            return {k: 0.0 for k in parts}
        return {k: round(v / total * 100, 2) for k, v in parts.items()}


@dataclass(frozen=True)
class DailyLoadScore:
    """Computed load for one calendar day."""

    date: date
    raw_contribution: float
    decayed_load: float
    risk_level: RiskLevel
    breakdown: LoadBreakdown = field(default_factory=LoadBreakdown)

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "raw_contribution": round(self.raw_contribution, 4),
            "decayed_load": round(self.decayed_load, 4),
            "risk_level": self.risk_level.name.lower(),
            "risk_label": self.risk_level.label,
            "breakdown": self.breakdown.percentages(),
        }
