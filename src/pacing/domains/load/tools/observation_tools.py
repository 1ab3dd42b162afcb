"""MCP tools for logging observations and physiological readings.

Entries are persisted to the encrypted data store and feed the next
load_scores call. Registered only when storage is enabled.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from pacing.domains.load.domain_logic.load_models import (
    ActivityObservation,
    MealObservation,
    PhysiologicalSample,
    Polarity,
    SignalKind,
    SleepObservation,
    SymptomObservation,
)
from pacing.domains.load.domain_logic.parameters import parse_enum
from pacing.domains.load.tools.responses import (
    TOOL_ERRORS,
    audit_call,
    error,
    ok,
    parse_day,
    parse_moment,
)

if TYPE_CHECKING:
    from pacing.core.audit.logger import AuditLogger
    from pacing.domains.load.connectors.stored import (
        StoredObservationSource,
        StoredSampleSource,
    )

logger = logging.getLogger(__name__)


def register_observation_tools(
    mcp: FastMCP,
    observations: StoredObservationSource,
    samples: StoredSampleSource,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register observation logging tools on the MCP server."""

    def _backdate(text: str):
        return parse_moment(text, "backdated_to") if text else None

    @mcp.tool
    async def log_symptom(
        ctx: Context,
        severity: int,
        name: str = "",
        polarity: str = "negative",
        timestamp: str = "",
        backdated_to: str = "",
    ) -> str:
        """Log a symptom rating.

        Args:
            severity: 1 (mild) to 5 (severe).
            name: Symptom name, e.g. 'fatigue' or 'brain fog'.
            polarity: 'negative' for strain, 'positive' for wellbeing
                (positive entries never add load).
            timestamp: When it was logged (ISO 8601). Defaults to now.
            backdated_to: Date or time the symptom actually applies to, if earlier.
        """
        start_time = time.monotonic()
        try:
            observation = SymptomObservation(
                timestamp=parse_moment(timestamp, "timestamp"),
                severity=severity,
                polarity=parse_enum(Polarity, polarity, "polarity"),
                backdated_at=_backdate(backdated_to),
                name=name,
            )
            oid = observations.save_symptom(observation)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "log_symptom", {"severity": severity}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "log_symptom", {"severity": severity}, start_time)
        return ok({
            "observation_id": oid,
            "kind": "symptom",
            "effective_date": observation.effective_date.isoformat(),
        })

    @mcp.tool
    async def log_activity(
        ctx: Context,
        physical_exertion: int,
        cognitive_exertion: int,
        emotional_load: int,
        duration_minutes: int | None = None,
        name: str = "",
        timestamp: str = "",
        backdated_to: str = "",
    ) -> str:
        """Log an activity with its exertion ratings.

        Args:
            physical_exertion: 1 (minimal) to 5 (maximal).
            cognitive_exertion: 1 to 5.
            emotional_load: 1 to 5.
            duration_minutes: How long it lasted. Unknown duration counts as one hour.
            name: Activity name, e.g. 'grocery shopping'.
            timestamp: When it was logged (ISO 8601). Defaults to now.
            backdated_to: Date or time the activity happened, if earlier.
        """
        start_time = time.monotonic()
        tool_input = {
            "physical_exertion": physical_exertion,
            "cognitive_exertion": cognitive_exertion,
            "emotional_load": emotional_load,
            "duration_minutes": duration_minutes,
        }
        try:
            observation = ActivityObservation(
                timestamp=parse_moment(timestamp, "timestamp"),
                physical_exertion=physical_exertion,
                cognitive_exertion=cognitive_exertion,
                emotional_load=emotional_load,
                duration_minutes=duration_minutes,
                backdated_at=_backdate(backdated_to),
                name=name,
            )
            oid = observations.save_activity(observation)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "log_activity", tool_input, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "log_activity", tool_input, start_time)
        return ok({
            "observation_id": oid,
            "kind": "activity",
            "effective_date": observation.effective_date.isoformat(),
        })

    @mcp.tool
    async def log_meal(
        ctx: Context,
        meal_type: str = "",
        physical_exertion: int | None = None,
        cognitive_exertion: int | None = None,
        emotional_load: int | None = None,
        timestamp: str = "",
        backdated_to: str = "",
    ) -> str:
        """Log a meal. Preparing and eating a meal only adds load if rated.

        Args:
            meal_type: e.g. 'breakfast', 'dinner'.
            physical_exertion: Optional 1 to 5.
            cognitive_exertion: Optional 1 to 5.
            emotional_load: Optional 1 to 5.
            timestamp: When it was logged (ISO 8601). Defaults to now.
            backdated_to: Date or time of the meal, if earlier.
        """
        start_time = time.monotonic()
        try:
            observation = MealObservation(
                timestamp=parse_moment(timestamp, "timestamp"),
                physical_exertion=physical_exertion,
                cognitive_exertion=cognitive_exertion,
                emotional_load=emotional_load,
                backdated_at=_backdate(backdated_to),
                meal_type=meal_type,
            )
            oid = observations.save_meal(observation)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "log_meal", {"meal_type": meal_type}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "log_meal", {"meal_type": meal_type}, start_time)
        return ok({
            "observation_id": oid,
            "kind": "meal",
            "effective_date": observation.effective_date.isoformat(),
            "adds_load": observation.has_exertion_data,
        })

    @mcp.tool
    async def log_sleep(
        ctx: Context,
        quality: int,
        duration_hours: float = 0.0,
        is_main_sleep: bool = True,
        timestamp: str = "",
        backdated_to: str = "",
    ) -> str:
        """Log a sleep period. A poor main sleep (quality 1-2) adds load.

        Args:
            quality: 1 (very poor) to 5 (excellent).
            duration_hours: Hours slept.
            is_main_sleep: False for naps.
            timestamp: When it was logged (ISO 8601). Defaults to now.
            backdated_to: Date the sleep belongs to, if earlier.
        """
        start_time = time.monotonic()
        try:
            observation = SleepObservation(
                timestamp=parse_moment(timestamp, "timestamp"),
                quality=quality,
                duration_hours=duration_hours,
                is_main_sleep=is_main_sleep,
                backdated_at=_backdate(backdated_to),
            )
            oid = observations.save_sleep(observation)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "log_sleep", {"quality": quality}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "log_sleep", {"quality": quality}, start_time)
        return ok({
            "observation_id": oid,
            "kind": "sleep",
            "effective_date": observation.effective_date.isoformat(),
        })

    @mcp.tool
    async def record_physiological_sample(
        ctx: Context,
        signal: str,
        value: float,
        sample_date: str = "",
        source: str = "manual",
    ) -> str:
        """Store a physiological reading for later baseline calibration.

        Args:
            signal: hrv (ms), resting_heart_rate (bpm) or sleep_hours.
            value: The reading.
            sample_date: Date of the reading (YYYY-MM-DD). Defaults to today.
            source: Where the reading came from, e.g. 'manual' or 'wearable'.
        """
        start_time = time.monotonic()
        tool_input = {"signal": signal, "sample_date": sample_date, "source": source}
        try:
            kind = parse_enum(SignalKind, signal, "signal")
            day = parse_day(sample_date, "sample_date")
            sid = samples.save_sample(
                kind, PhysiologicalSample(timestamp=day, value=value), source=source
            )
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "record_physiological_sample", tool_input, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "record_physiological_sample", tool_input, start_time)
        return ok({"sample_id": sid, "signal": kind.value, "sample_date": day.isoformat()})
