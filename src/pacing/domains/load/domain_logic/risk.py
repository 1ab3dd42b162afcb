"""Risk classification of decayed load."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pacing.domains.load.domain_logic.load_models import RiskLevel
from pacing.domains.load.domain_logic.parameters import ThresholdProfile

if TYPE_CHECKING:
    from pacing.domains.load.domain_logic.baseline import PersonalBaseline


def baseline_offset(baseline: PersonalBaseline | None) -> float:
    """Shift applied to the boundaries for a calibrated load baseline.

    The good-day mean maps to the bottom of the safe tier. Uncalibrated
    baselines give no shift.
    """
    if baseline is None or not baseline.is_calibrated:
        return 0.0
    return baseline.mean


def classify_load(
    load: float,
    thresholds: ThresholdProfile,
    baseline: PersonalBaseline | None = None,
) -> RiskLevel:
    """Map a decayed load to a risk tier.

    Boundaries are inclusive lower bounds of the next tier. A calibrated
    baseline shifts every boundary by the same amount, so relative spacing
    is kept.
    """
    adjusted = load - baseline_offset(baseline)
    if adjusted < thresholds.safe:
        return RiskLevel.SAFE
    if adjusted < thresholds.caution:
        return RiskLevel.CAUTION
    if adjusted < thresholds.high:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def effective_boundaries(
    thresholds: ThresholdProfile,
    baseline: PersonalBaseline | None = None,
) -> dict[str, float]:
    """Boundaries as actually applied to raw decayed load values."""
    offset = baseline_offset(baseline)
    return {
        "safe": thresholds.safe + offset,
        "caution": thresholds.caution + offset,
        "high": thresholds.high + offset,
    }
