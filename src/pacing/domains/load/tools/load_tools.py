"""MCP tools for load scores and the active load configuration."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from pacing.domains.load.domain_logic.parameters import ConfigurationError, ThresholdProfile
from pacing.domains.load.domain_logic.presets import get_preset_catalogue
from pacing.domains.load.domain_logic.risk import effective_boundaries
from pacing.domains.load.tools.responses import TOOL_ERRORS, audit_call, error, ok, parse_day

if TYPE_CHECKING:
    from pacing.core.audit.logger import AuditLogger
    from pacing.domains.load.domain_logic.engine import LoadEngine

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


def register_load_tools(
    mcp: FastMCP,
    engine: LoadEngine,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register scoring and configuration tools on the MCP server."""

    def _configuration_payload() -> dict:
        return {
            "configuration": engine.configuration.as_dict(),
            "profile": engine.resolved_profile.as_dict(),
        }

    @mcp.tool
    async def load_scores(
        ctx: Context,
        start: str = "",
        end: str = "",
        lookback_days: int | None = None,
    ) -> str:
        """Daily decayed load and risk tier for a date range.

        Load from earlier days carries over with an exponential decay set by
        the recovery window, so each day reflects recent history as well as
        that day's symptoms and activities.

        Args:
            start: First displayed day (YYYY-MM-DD). Defaults to 6 days before end.
            end: Last displayed day (YYYY-MM-DD). Defaults to today.
            lookback_days: Days of history before start fed into the decay
                (default from settings, usually 90).
        """
        start_time = time.monotonic()
        tool_input = {"start": start, "end": end, "lookback_days": lookback_days}
        try:
            end_day = parse_day(end, "end")
            start_day = parse_day(
                start, "start", default=end_day - timedelta(days=DEFAULT_WINDOW_DAYS - 1)
            )
            scores = await engine.daily_load_scores(start_day, end_day, lookback_days)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "load_scores", tool_input, start_time, exc)
            return error(exc)

        audit_call(audit_logger, "load_scores", tool_input, start_time)
        baseline = engine.load_baseline
        return ok({
            **_configuration_payload(),
            "lookback_days": engine.default_lookback_days if lookback_days is None else lookback_days,
            "baseline_applied": baseline is not None and baseline.is_calibrated,
            "boundaries": effective_boundaries(engine.resolved_profile.thresholds, baseline),
            "scores": [s.as_dict() for s in scores],
        })

    @mcp.tool
    async def classify_load(ctx: Context, load: float) -> str:
        """Classify a decayed load value against the active thresholds.

        Args:
            load: Decayed load value (same scale as load_scores).
        """
        level = engine.classify(load)
        return ok({
            "load": load,
            "risk_level": level.name.lower(),
            "risk_label": level.label,
            "boundaries": effective_boundaries(
                engine.resolved_profile.thresholds, engine.load_baseline
            ),
        })

    @mcp.tool
    async def load_configuration(ctx: Context) -> str:
        """Show the active preset, parameters and resolved thresholds."""
        return ok(_configuration_payload())

    @mcp.tool
    async def list_condition_presets(ctx: Context) -> str:
        """List the condition presets and the parameters each one applies."""
        return ok({
            "active_preset": engine.configuration.selected_preset.value,
            "presets": [d.as_dict() for d in get_preset_catalogue().all()],
        })

    @mcp.tool
    async def select_condition_preset(ctx: Context, preset: str) -> str:
        """Activate a condition preset.

        Args:
            preset: One of standard, mecfs, fibromyalgia, pcos, ptsd,
                long_covid, autoimmune, or custom (keeps current values).
        """
        start_time = time.monotonic()
        try:
            change = engine.select_preset(preset)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "select_condition_preset", {"preset": preset}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "select_condition_preset", {"preset": preset}, start_time)
        return ok({**change.as_dict(), "profile": engine.resolved_profile.as_dict()})

    @mcp.tool
    async def set_load_parameters(
        ctx: Context,
        capacity: str = "",
        sensitivity: str = "",
        recovery: str = "",
        safe: float | None = None,
        caution: float | None = None,
        high: float | None = None,
        clear_thresholds: bool = False,
    ) -> str:
        """Change individual load parameters.

        Changing a value while a named preset is active switches the
        configuration to custom; the response says so. Changing capacity
        drops any explicit boundaries unless new ones are given.

        Args:
            capacity: low, medium or high (sets the risk boundaries).
            sensitivity: low, medium or high (scales symptom load).
            recovery: fast, medium or slow (sets the decay half-life).
            safe: Explicit safe/caution boundary. Give all three boundaries or none.
            caution: Explicit caution/high boundary.
            high: Explicit high/critical boundary.
            clear_thresholds: Drop explicit boundaries and use the capacity defaults.
        """
        start_time = time.monotonic()
        tool_input = {
            "capacity": capacity, "sensitivity": sensitivity, "recovery": recovery,
            "thresholds": [safe, caution, high], "clear_thresholds": clear_thresholds,
        }
        try:
            bounds = (safe, caution, high)
            if any(b is not None for b in bounds) and not all(b is not None for b in bounds):
                raise ConfigurationError("Give all three boundaries (safe, caution, high) or none")
            thresholds = (
                ThresholdProfile(safe=safe, caution=caution, high=high)
                if safe is not None else None
            )
            change = engine.set_parameters(
                capacity=capacity or None,
                sensitivity=sensitivity or None,
                recovery=recovery or None,
                thresholds=thresholds,
                clear_thresholds=clear_thresholds,
            )
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "set_load_parameters", tool_input, start_time, exc)
            return error(exc)

        audit_call(audit_logger, "set_load_parameters", tool_input, start_time)
        payload = {**change.as_dict(), "profile": engine.resolved_profile.as_dict()}
        if change.reclassified_as_custom:
            payload["note"] = (
                f"Parameters no longer match the {change.previous_preset.value} preset; "
                "the configuration is now custom."
            )
        if change.thresholds_cleared:
            payload["thresholds_note"] = (
                "Explicit boundaries were removed; risk levels now follow the "
                f"{change.configuration.parameters.capacity.value} capacity defaults."
            )
        return ok(payload)
