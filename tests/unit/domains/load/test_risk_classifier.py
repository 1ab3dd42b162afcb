"""Tests for risk classification."""

from __future__ import annotations

import pytest

from pacing.domains.load.domain_logic.baseline import PersonalBaseline
from pacing.domains.load.domain_logic.load_models import RiskLevel, SignalKind
from pacing.domains.load.domain_logic.parameters import CAPACITY_THRESHOLDS, ThresholdProfile
from pacing.domains.load.domain_logic.risk import (
    baseline_offset,
    classify_load,
    effective_boundaries,
)

PROFILE = ThresholdProfile(safe=25, caution=50, high=75)


def _baseline(mean: float, samples: int = 3) -> PersonalBaseline:
    return PersonalBaseline(signal=SignalKind.LOAD, sample_count=samples, mean=mean, spread=2.0)


class TestClassifyLoad:
    @pytest.mark.parametrize("load,expected", [
        (0.0, RiskLevel.SAFE),
        (24.99, RiskLevel.SAFE),
        (25.0, RiskLevel.CAUTION),
        (49.99, RiskLevel.CAUTION),
        (50.0, RiskLevel.HIGH),
        (74.99, RiskLevel.HIGH),
        (75.0, RiskLevel.CRITICAL),
        (500.0, RiskLevel.CRITICAL),
    ])
    def test_boundaries_are_inclusive_lower_bounds(self, load, expected):
        assert classify_load(load, PROFILE) is expected

    def test_negative_load_is_safe(self):
        assert classify_load(-10.0, PROFILE) is RiskLevel.SAFE

    @pytest.mark.parametrize("profile", list(CAPACITY_THRESHOLDS.values()))
    def test_monotonic(self, profile):
        loads = [x * 0.5 for x in range(0, 240)]
        levels = [classify_load(v, profile) for v in loads]
        assert all(a <= b for a, b in zip(levels, levels[1:]))
        assert levels[0] is RiskLevel.SAFE
        assert levels[-1] is RiskLevel.CRITICAL

    def test_labels(self):
        assert RiskLevel.CRITICAL.label == "Rest needed"
        assert RiskLevel.HIGH.label == "High risk"


class TestBaselineShift:
    def test_calibrated_baseline_shifts_boundaries(self):
        baseline = _baseline(mean=10.0)
        assert classify_load(30.0, PROFILE) is RiskLevel.CAUTION
        assert classify_load(30.0, PROFILE, baseline) is RiskLevel.SAFE
        assert classify_load(35.0, PROFILE, baseline) is RiskLevel.CAUTION

    def test_good_day_mean_is_safe(self):
        baseline = _baseline(mean=40.0)
        assert classify_load(40.0, PROFILE, baseline) is RiskLevel.SAFE

    def test_uncalibrated_baseline_ignored(self):
        partial = PersonalBaseline(
            signal=SignalKind.LOAD, sample_count=2, mean=30.0, spread=1.0, minimum_samples=3
        )
        assert baseline_offset(partial) == 0.0
        assert classify_load(30.0, PROFILE, partial) is RiskLevel.CAUTION

    def test_effective_boundaries_keep_spacing(self):
        shifted = effective_boundaries(PROFILE, _baseline(mean=5.0))
        assert shifted == {"safe": 30.0, "caution": 55.0, "high": 80.0}
        assert effective_boundaries(PROFILE) == {"safe": 25.0, "caution": 50.0, "high": 75.0}

    def test_monotonic_with_baseline(self):
        baseline = _baseline(mean=12.5)
        levels = [classify_load(x, PROFILE, baseline) for x in range(0, 120)]
        assert all(a <= b for a, b in zip(levels, levels[1:]))
