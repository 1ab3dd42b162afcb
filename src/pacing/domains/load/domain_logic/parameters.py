"""Load parameter enumerations, threshold profiles and their numeric tables.

Weights and tables are calibrated so that a typical day stays well inside
the 0-100 threshold scale:

* capacity selects the risk boundaries;
* sensitivity scales how much a negative symptom adds to the day's load;
* recovery window selects the decay half-life.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ConfigurationError(ValueError):
    """Raised when a load configuration is internally inconsistent."""


class CapacityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SensitivityProfile(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecoveryWindow(str, Enum):
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


class ConditionPreset(str, Enum):
    """Named parameter bundles offered as shortcuts, plus ``custom``."""

    STANDARD = "standard"
    MECFS = "mecfs"
    FIBROMYALGIA = "fibromyalgia"
    PCOS = "pcos"
    PTSD = "ptsd"
    LONG_COVID = "long_covid"
    AUTOIMMUNE = "autoimmune"
    CUSTOM = "custom"


def parse_enum(enum_cls: type[Enum], value: str | Enum, field_name: str):
    """Coerce *value* into *enum_cls*, raising ConfigurationError if unknown."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        valid = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(
            f"Unknown {field_name} {value!r}. Valid: {valid}"
        ) from exc


@dataclass(frozen=True)
class ThresholdProfile:
    """Three ascending boundaries splitting load into four risk tiers.

    Each boundary is the inclusive lower bound of the next tier, so a load
    equal to ``high`` is critical.
    """

    safe: float
    caution: float
    high: float

    def __post_init__(self) -> None:
        if not 0 < self.safe < self.caution < self.high < 100:
            raise ConfigurationError(
                "Threshold boundaries must satisfy 0 < safe < caution < high < 100, "
                f"got safe={self.safe}, caution={self.caution}, high={self.high}"
            )

    def as_dict(self) -> dict[str, float]:
        return {"safe": self.safe, "caution": self.caution, "high": self.high}


@dataclass(frozen=True)
class LoadParameters:
    """The three user-tunable load parameters."""

    capacity: CapacityLevel = CapacityLevel.MEDIUM
    sensitivity: SensitivityProfile = SensitivityProfile.MEDIUM
    recovery: RecoveryWindow = RecoveryWindow.FAST

    def as_dict(self) -> dict[str, str]:
        return {
            "capacity": self.capacity.value,
            "sensitivity": self.sensitivity.value,
            "recovery": self.recovery.value,
        }


# ---------------------------------------------------------------------------
# Numeric tables
# ---------------------------------------------------------------------------

CAPACITY_THRESHOLDS: dict[CapacityLevel, ThresholdProfile] = {
    CapacityLevel.LOW: ThresholdProfile(safe=20.0, caution=40.0, high=60.0),
    CapacityLevel.MEDIUM: ThresholdProfile(safe=25.0, caution=50.0, high=75.0),
    CapacityLevel.HIGH: ThresholdProfile(safe=30.0, caution=60.0, high=80.0),
}

SYMPTOM_MULTIPLIERS: dict[SensitivityProfile, float] = {
    SensitivityProfile.LOW: 0.7,
    SensitivityProfile.MEDIUM: 1.0,
    SensitivityProfile.HIGH: 1.5,
}

# Days for decayed load to halve with no new input
HALF_LIFE_DAYS: dict[RecoveryWindow, float] = {
    RecoveryWindow.FAST: 1.0,
    RecoveryWindow.MEDIUM: 2.0,
    RecoveryWindow.SLOW: 3.0,
}
