"""Row models for the load persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ObservationKind(str, Enum):
    SYMPTOM = "symptom"
    ACTIVITY = "activity"
    MEAL = "meal"
    SLEEP = "sleep"


@dataclass
class StoredObservation:
    """One persisted observation.

    The ratings live in ``payload`` (encrypted at rest). The effective date
    is stored in clear text for indexed range queries.
    """

    id: str
    kind: ObservationKind
    effective_date: str  # YYYY-MM-DD
    recorded_at: str  # ISO 8601
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""


@dataclass
class StoredSample:
    """A persisted physiological reading."""

    id: str
    signal: str  # 'hrv', 'resting_heart_rate', 'sleep_hours'
    sample_date: str  # YYYY-MM-DD
    value: float
    source: str = "manual"
    created_at: str = ""
