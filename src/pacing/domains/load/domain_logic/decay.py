"""Exponential decay chain over daily raw contributions.

    decayed[0] = raw[0]
    decayed[i] = raw[i] + decayed[i-1] * 0.5 ** (1 / half_life_days)

The chain is a strict left-to-right recurrence, so the input must hold one
entry per calendar day. Missing days are zero-contribution days and have to
be filled in before the chain runs, or decay steps would be skipped.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Mapping, Sequence

from pacing.domains.load.domain_logic.thresholds import decay_factor


class ContributionSequenceError(ValueError):
    """Raised when the decay input is not ascending and contiguous."""


def date_range(start: date, end: date) -> list[date]:
    """Every calendar day from *start* to *end* inclusive."""
    if end < start:
        raise ValueError(f"end {end} is before start {start}")
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def fill_calendar_gaps(
    contributions: Mapping[date, float],
    start: date,
    end: date,
) -> list[tuple[date, float]]:
    """Expand a sparse day → contribution mapping to a contiguous sequence.

    Days outside ``[start, end]`` are ignored; missing days get 0.0.
    """
    return [(day, float(contributions.get(day, 0.0))) for day in date_range(start, end)]


def decay_chain(
    contributions: Sequence[tuple[date, float]],
    half_life_days: float,
    *,
    seed: float = 0.0,
) -> list[float]:
    """Run the decay recurrence over a contiguous daily sequence.

    Args:
        contributions: ``(date, raw_contribution)`` pairs, ascending, one per day.
        half_life_days: Days for load to halve without new input.
        seed: Decayed load carried in from the day before the first entry.
            The default of 0 means ``decayed[0] == raw[0]``.

    Returns:
        Decayed load for each entry, same length as the input.

    Raises:
        ContributionSequenceError: If dates skip or repeat a day, or a
            contribution is negative.
    """
    factor = decay_factor(half_life_days)
    decayed: list[float] = []
    previous = seed
    prev_day: date | None = None

    for day, raw in contributions:
        if prev_day is not None and day != prev_day + timedelta(days=1):
            raise ContributionSequenceError(
                f"Contributions must cover consecutive days: {prev_day} is followed by {day}"
            )
        if raw < 0:
            raise ContributionSequenceError(f"Negative raw contribution {raw} on {day}")
        previous = raw + previous * factor
        decayed.append(previous)
        prev_day = day

    return decayed


def steady_state_load(daily_contribution: float, half_life_days: float) -> float:
    """Asymptote of the chain under a constant daily contribution."""
    return daily_contribution / (1.0 - decay_factor(half_life_days))


def minimum_lookback_days(half_life_days: float, residual: float = 0.001) -> int:
    """Days of history after which a unit of load decays below *residual*.

    With a lookback of at least this many days, history before the lookback
    start changes the first displayed value by less than
    ``residual × (largest decayed load at the lookback start)``.
    """
    if not 0 < residual < 1:
        raise ValueError(f"residual must be in (0, 1), got {residual}")
    return math.ceil(half_life_days * math.log2(1.0 / residual))
