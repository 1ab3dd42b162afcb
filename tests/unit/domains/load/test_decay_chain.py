"""Tests for the decay chain and gap filling."""

from __future__ import annotations

import math
from datetime import date, timedelta

import pytest

from pacing.domains.load.domain_logic.decay import (
    ContributionSequenceError,
    date_range,
    decay_chain,
    fill_calendar_gaps,
    minimum_lookback_days,
    steady_state_load,
)

START = date(2025, 1, 1)


def _days(values: list[float], start: date = START) -> list[tuple[date, float]]:
    return [(start + timedelta(days=i), v) for i, v in enumerate(values)]


class TestDecayChain:
    def test_first_value_is_raw(self):
        assert decay_chain(_days([7.5]), 2.0) == [7.5]

    def test_three_day_half_life_scenario(self):
        decayed = decay_chain(_days([10, 0, 0, 0, 0, 0]), 3.0)
        assert [round(v, 2) for v in decayed] == [10.0, 7.94, 6.30, 5.0, 3.97, 3.15]

    @pytest.mark.parametrize("half_life", [1, 2, 3])
    def test_halves_after_one_half_life(self, half_life):
        values = [16.0] + [0.0] * half_life
        decayed = decay_chain(_days(values), half_life)
        assert decayed[half_life] == pytest.approx(8.0)

    def test_strictly_decreasing_without_input(self):
        decayed = decay_chain(_days([20.0] + [0.0] * 10), 2.0)
        assert all(b < a for a, b in zip(decayed, decayed[1:]))

    def test_new_contribution_adds_to_carry_over(self):
        decayed = decay_chain(_days([10.0, 10.0]), 1.0)
        assert decayed == [10.0, 15.0]

    def test_seed_carries_in(self):
        assert decay_chain(_days([0.0]), 1.0, seed=8.0) == [4.0]

    def test_no_upper_cap(self):
        decayed = decay_chain(_days([60.0] * 10), 3.0)
        assert decayed[-1] > 100.0

    def test_empty_input(self):
        assert decay_chain([], 1.0) == []

    def test_gap_rejected(self):
        seq = [(START, 1.0), (START + timedelta(days=2), 1.0)]
        with pytest.raises(ContributionSequenceError, match="consecutive"):
            decay_chain(seq, 1.0)

    def test_repeated_day_rejected(self):
        with pytest.raises(ContributionSequenceError):
            decay_chain([(START, 1.0), (START, 2.0)], 1.0)

    def test_descending_rejected(self):
        with pytest.raises(ContributionSequenceError):
            decay_chain([(START, 1.0), (START - timedelta(days=1), 2.0)], 1.0)

    def test_negative_contribution_rejected(self):
        with pytest.raises(ContributionSequenceError, match="Negative"):
            decay_chain(_days([1.0, -0.5]), 1.0)

    def test_sequence_error_is_value_error(self):
        assert issubclass(ContributionSequenceError, ValueError)


class TestGapFilling:
    def test_date_range_inclusive(self):
        days = date_range(START, START + timedelta(days=3))
        assert len(days) == 4
        assert days[-1] == date(2025, 1, 4)

    def test_date_range_rejects_reversed(self):
        with pytest.raises(ValueError):
            date_range(START, START - timedelta(days=1))

    def test_missing_days_become_zero(self):
        filled = fill_calendar_gaps({START: 5.0, START + timedelta(days=3): 2.0},
                                    START, START + timedelta(days=4))
        assert [v for _, v in filled] == [5.0, 0.0, 0.0, 2.0, 0.0]

    def test_out_of_range_days_ignored(self):
        filled = fill_calendar_gaps({START - timedelta(days=1): 9.0}, START, START)
        assert filled == [(START, 0.0)]

    def test_filled_sequence_feeds_chain(self):
        sparse = {START: 10.0, START + timedelta(days=5): 10.0}
        decayed = decay_chain(fill_calendar_gaps(sparse, START, START + timedelta(days=5)), 1.0)
        assert decayed[-1] == pytest.approx(10.0 + 10.0 * 0.5 ** 5)


class TestLookback:
    @pytest.mark.parametrize("half_life,expected", [(1, 10), (2, 20), (3, 30)])
    def test_minimum_lookback(self, half_life, expected):
        assert minimum_lookback_days(half_life) == expected

    def test_unit_decays_below_residual(self):
        for h in (1.0, 2.0, 3.0):
            n = minimum_lookback_days(h)
            assert 0.5 ** (n / h) <= 0.001

    def test_invalid_residual(self):
        with pytest.raises(ValueError):
            minimum_lookback_days(1.0, residual=1.5)

    @pytest.mark.parametrize("half_life", [1.0, 2.0, 3.0])
    def test_truncated_history_converges(self, half_life):
        """A lookback of minimum_lookback_days reproduces the full-history value."""
        full = decay_chain(_days([12.0] * 400), half_life)[-1]
        n = minimum_lookback_days(half_life)
        truncated = decay_chain(_days([12.0] * (n + 1)), half_life)[-1]
        assert abs(full - truncated) <= 0.001 * full

    def test_steady_state(self):
        decayed = decay_chain(_days([5.0] * 200), 2.0)
        assert decayed[-1] == pytest.approx(steady_state_load(5.0, 2.0))
        assert math.isclose(steady_state_load(5.0, 1.0), 10.0)
