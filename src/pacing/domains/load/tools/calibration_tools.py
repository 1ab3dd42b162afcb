"""MCP tools for personal baseline calibration.

The load baseline is calibrated from good days: the user starts a session
and marks days that felt good; the third one establishes the baseline,
which then shifts the risk boundaries. Physiological baselines (HRV,
resting heart rate, sleep hours) are computed from stored history.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from pacing.domains.load.domain_logic.baseline import CalibrationResult, EVALUATION_DEVIATIONS
from pacing.domains.load.tools.responses import TOOL_ERRORS, audit_call, error, ok, parse_day

if TYPE_CHECKING:
    from pacing.core.audit.logger import AuditLogger
    from pacing.domains.load.domain_logic.engine import LoadEngine

logger = logging.getLogger(__name__)

_EVALUATION_LABELS = {-1: "below_normal", 0: "normal", 1: "above_normal"}


def register_calibration_tools(
    mcp: FastMCP,
    engine: LoadEngine,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register baseline calibration tools on the MCP server."""

    def _report(
        tool_name: str, signal: str, operation: str, result: CalibrationResult
    ) -> dict:
        if audit_logger is not None:
            audit_logger.log_calibration_event(
                signal,
                operation,
                state=result.state.value,
                accepted=result.accepted,
                reason=result.reason or None,
                tool_name=tool_name,
            )
        return {"signal": signal, **result.as_dict()}

    def _run_operation(tool_name: str, signal: str, operation: str) -> str:
        start_time = time.monotonic()
        try:
            calibrator = engine.calibrator(signal)
            action = {
                "start": engine.start_calibration,
                "cancel": engine.cancel_calibration,
                "reset": engine.reset_baseline,
            }[operation]
            result = action(calibrator.signal)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, tool_name, {"signal": signal}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, tool_name, {"signal": signal}, start_time)
        return ok(_report(tool_name, calibrator.signal.value, operation, result))

    @mcp.tool
    async def start_calibration(ctx: Context, signal: str = "load") -> str:
        """Start collecting baseline samples.

        Args:
            signal: load (default), hrv, resting_heart_rate or sleep_hours.
        """
        return _run_operation("start_calibration", signal, "start")

    @mcp.tool
    async def cancel_calibration(ctx: Context, signal: str = "load") -> str:
        """Abandon an open calibration session and discard its samples.

        Args:
            signal: load (default), hrv, resting_heart_rate or sleep_hours.
        """
        return _run_operation("cancel_calibration", signal, "cancel")

    @mcp.tool
    async def reset_baseline(ctx: Context, signal: str = "load") -> str:
        """Discard a calibrated baseline so calibration can start over.

        Args:
            signal: load (default), hrv, resting_heart_rate or sleep_hours.
        """
        return _run_operation("reset_baseline", signal, "reset")

    @mcp.tool
    async def record_good_day(ctx: Context, day: str = "") -> str:
        """Mark a day as a good day; its decayed load becomes a baseline sample.

        A calibration session must be open (see start_calibration). The
        baseline is established when enough good days are recorded.

        Args:
            day: The good day (YYYY-MM-DD). Defaults to today.
        """
        start_time = time.monotonic()
        try:
            good_day = parse_day(day, "day")
            score, result = await engine.record_good_day(good_day)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "record_good_day", {"day": day}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "record_good_day", {"day": day}, start_time)
        if result.accepted:
            logger.info("Good day %s recorded (%d samples)", good_day, result.sample_count)
        return ok({
            "day": score.date.isoformat(),
            "decayed_load": round(score.decayed_load, 4),
            **_report("record_good_day", "load", "record_sample", result),
        })

    @mcp.tool
    async def baseline_status(ctx: Context) -> str:
        """Show the calibration state and baseline of every signal."""
        status = engine.baseline_status()
        return ok({
            "signals": {
                signal.value: {
                    "state": result.state.value,
                    "sample_count": result.sample_count,
                    "minimum_samples": engine.calibrator(signal).minimum_samples,
                    "baseline": result.baseline.as_dict() if result.baseline else None,
                }
                for signal, result in status.items()
            },
        })

    @mcp.tool
    async def calibrate_physiological_baseline(
        ctx: Context,
        signal: str,
        lookback_days: int | None = None,
    ) -> str:
        """Compute a physiological baseline from recent stored readings.

        Needs at least the configured minimum number of readings (10 by
        default) within the lookback window.

        Args:
            signal: hrv, resting_heart_rate or sleep_hours.
            lookback_days: Days of history to use (default from settings, usually 30).
        """
        start_time = time.monotonic()
        tool_input = {"signal": signal, "lookback_days": lookback_days}
        try:
            result = await engine.calibrate_physiological(signal, lookback_days)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "calibrate_physiological_baseline", tool_input, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "calibrate_physiological_baseline", tool_input, start_time)
        return ok(_report(
            "calibrate_physiological_baseline",
            engine.calibrator(signal).signal.value,
            "calibrate_from_history",
            result,
        ))

    @mcp.tool
    async def evaluate_physiological_reading(ctx: Context, signal: str, value: float) -> str:
        """Compare a reading with its personal baseline.

        Args:
            signal: hrv, resting_heart_rate or sleep_hours.
            value: The reading to evaluate.
        """
        try:
            comparison = engine.evaluate_physiological(signal, value)
            calibrator = engine.calibrator(signal)
        except TOOL_ERRORS as exc:
            return error(exc)
        if comparison is None:
            return ok({
                "signal": calibrator.signal.value,
                "value": value,
                "evaluation": None,
                "message": "No calibrated baseline for this signal yet.",
            })
        return ok({
            "signal": calibrator.signal.value,
            "value": value,
            "evaluation": _EVALUATION_LABELS[comparison],
            "normal_range": {
                "low": calibrator.threshold(-EVALUATION_DEVIATIONS),
                "high": calibrator.threshold(EVALUATION_DEVIATIONS),
            },
        })
