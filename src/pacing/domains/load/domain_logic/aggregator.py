"""Daily contribution aggregation.

Turns one calendar day's observations into a single non-negative raw load
contribution, plus a per-category breakdown.

Weights:
  * negative symptom  — severity × 4.0 × sensitivity multiplier
  * positive symptom  — 0 (wellbeing never adds load)
  * activity          — mean exertion × duration weight × 6.0, capped at 30.0
                        (duration weight = minutes / 60, max 2.0, default 1.0)
  * meal              — mean exertion × 0.5 duration × 0.5 weight × 6.0,
                        only if any exertion is recorded
  * sleep             — (3 - quality) × 5.0 for a poor main sleep
"""

from __future__ import annotations

from typing import Iterable

from pacing.domains.load.domain_logic.load_models import (
    RATING_MAX,
    ActivityObservation,
    LoadBreakdown,
    MealObservation,
    ObservationBatch,
    Polarity,
    SleepObservation,
    SymptomObservation,
)
from pacing.domains.load.domain_logic.parameters import (
    SYMPTOM_MULTIPLIERS,
    SensitivityProfile,
)

SEVERITY_UNIT_LOAD = 4.0

EXERTION_MULTIPLIER = 6.0
EXERTION_WEIGHTS = {"physical": 1 / 3, "cognitive": 1 / 3, "emotional": 1 / 3}
DEFAULT_DURATION_WEIGHT = 1.0
MAX_DURATION_WEIGHT = 2.0

# A single activity never outweighs a maximum-severity symptom at high sensitivity
ACTIVITY_CEILING = RATING_MAX * SEVERITY_UNIT_LOAD * SYMPTOM_MULTIPLIERS[SensitivityProfile.HIGH]

MEAL_DURATION_WEIGHT = 0.5
MEAL_EXERTION_WEIGHT = 0.5

POOR_SLEEP_QUALITY = 2
POOR_SLEEP_LOAD_PER_STEP = 5.0


def _weighted_exertion(physical: float, cognitive: float, emotional: float) -> float:
    return (
        physical * EXERTION_WEIGHTS["physical"]
        + cognitive * EXERTION_WEIGHTS["cognitive"]
        + emotional * EXERTION_WEIGHTS["emotional"]
    )


def symptom_load(symptoms: Iterable[SymptomObservation], symptom_multiplier: float) -> float:
    """Sum of negative-symptom severities, weighted by sensitivity."""
    total = 0.0
    for s in symptoms:
        if s.polarity is Polarity.NEGATIVE:
            total += s.severity * SEVERITY_UNIT_LOAD * symptom_multiplier
    return total


def activity_contribution(activity: ActivityObservation) -> float:
    """Load added by one activity, after the duration cap and the ceiling."""
    exertion = _weighted_exertion(
        activity.physical_exertion, activity.cognitive_exertion, activity.emotional_load
    )
    if activity.duration_minutes is None:
        duration_weight = DEFAULT_DURATION_WEIGHT
    else:
        duration_weight = min(activity.duration_minutes / 60.0, MAX_DURATION_WEIGHT)
    return min(exertion * duration_weight * EXERTION_MULTIPLIER, ACTIVITY_CEILING)


def meal_contribution(meal: MealObservation) -> float:
    if not meal.has_exertion_data:
        return 0.0
    exertion = _weighted_exertion(
        meal.physical_exertion or 1,
        meal.cognitive_exertion or 1,
        meal.emotional_load or 1,
    )
    return exertion * MEAL_DURATION_WEIGHT * MEAL_EXERTION_WEIGHT * EXERTION_MULTIPLIER


def sleep_contribution(sleep: SleepObservation) -> float:
    # Only a poor main sleep is a burden; naps never add load
    if sleep.is_main_sleep and sleep.quality <= POOR_SLEEP_QUALITY:
        return (POOR_SLEEP_QUALITY + 1 - sleep.quality) * POOR_SLEEP_LOAD_PER_STEP
    return 0.0


def aggregate_day(day: ObservationBatch, symptom_multiplier: float) -> LoadBreakdown:
    """Aggregate one day's observations into a LoadBreakdown.

    Args:
        day: Observations whose effective date is the day being scored.
        symptom_multiplier: From the resolved profile's sensitivity.

    Returns:
        Breakdown whose ``total`` is the day's raw contribution (0 for an
        empty day, never negative).
    """
    return LoadBreakdown(
        symptom_load=symptom_load(day.symptoms, symptom_multiplier),
        activity_load=sum(activity_contribution(a) for a in day.activities),
        meal_load=sum(meal_contribution(m) for m in day.meals),
        sleep_load=sum(sleep_contribution(z) for z in day.sleep),
    )


def raw_contribution(day: ObservationBatch, symptom_multiplier: float) -> float:
    return aggregate_day(day, symptom_multiplier).total
