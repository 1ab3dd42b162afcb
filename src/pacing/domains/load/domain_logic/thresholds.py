"""Threshold profile resolution.

Maps the active configuration to the concrete numbers the rest of the
engine runs on. Resolution is pure and total: every enumerated parameter
combination resolves, and no I/O happens here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pacing.domains.load.domain_logic.configuration import LoadConfiguration
from pacing.domains.load.domain_logic.parameters import (
    CAPACITY_THRESHOLDS,
    HALF_LIFE_DAYS,
    SYMPTOM_MULTIPLIERS,
    LoadParameters,
    ThresholdProfile,
)


@dataclass(frozen=True)
class ResolvedProfile:
    """Everything the aggregator, decay chain and classifier need."""

    thresholds: ThresholdProfile
    half_life_days: float
    symptom_multiplier: float

    @property
    def decay_factor(self) -> float:
        return decay_factor(self.half_life_days)

    def as_dict(self) -> dict:
        return {
            "thresholds": self.thresholds.as_dict(),
            "half_life_days": self.half_life_days,
            "decay_factor": round(self.decay_factor, 6),
            "symptom_multiplier": self.symptom_multiplier,
        }


def decay_factor(half_life_days: float) -> float:
    """Per-day carry-over so that load halves every *half_life_days* days."""
    if half_life_days <= 0 or not math.isfinite(half_life_days):
        raise ValueError(f"half_life_days must be positive and finite, got {half_life_days}")
    return 0.5 ** (1.0 / half_life_days)


def resolve_parameters(
    parameters: LoadParameters,
    thresholds: ThresholdProfile | None = None,
) -> ResolvedProfile:
    """Resolve a parameter set, with an optional explicit threshold override."""
    return ResolvedProfile(
        thresholds=thresholds or CAPACITY_THRESHOLDS[parameters.capacity],
        half_life_days=HALF_LIFE_DAYS[parameters.recovery],
        symptom_multiplier=SYMPTOM_MULTIPLIERS[parameters.sensitivity],
    )


def resolve_profile(configuration: LoadConfiguration) -> ResolvedProfile:
    """Resolve the active configuration to thresholds, half-life and multiplier."""
    return resolve_parameters(configuration.parameters, configuration.thresholds)
