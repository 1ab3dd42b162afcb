"""MCP tools for managing stored entries and reviewing the audit trail.

Deletions are permanent and audit-logged. Registered only when storage is
enabled.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from pacing.core.audit.logger import ACTION_CALIBRATION, ACTION_DELETE, ACTION_TOOL
from pacing.domains.load.tools.responses import TOOL_ERRORS, audit_call, error, ok

if TYPE_CHECKING:
    from pacing.core.audit.logger import AuditLogger
    from pacing.core.storage.repository import LoadRepository

logger = logging.getLogger(__name__)

RECENT_EVENT_LIMIT = 20


def register_data_tools(
    mcp: FastMCP,
    repository: LoadRepository,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register deletion and audit tools on the MCP server."""

    @mcp.tool
    async def delete_observation(ctx: Context, observation_id: str) -> str:
        """Permanently delete one logged observation.

        Args:
            observation_id: The ID returned when the observation was logged.
        """
        start_time = time.monotonic()
        try:
            deleted = repository.delete_observation(observation_id)
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "delete_observation", {"id": observation_id}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "delete_observation", {"id": observation_id}, start_time)

        if not deleted:
            return ok({
                "deleted": False,
                "observation_id": observation_id,
                "message": "No observation found with that ID.",
            })
        if audit_logger is not None:
            audit_logger.log_data_delete(tool_name="delete_observation", count=1)
        return ok({"deleted": True, "observation_id": observation_id})

    @mcp.tool
    async def purge_old_entries(ctx: Context, older_than_days: int = 365) -> str:
        """Delete observations and readings dated before a retention window.

        Args:
            older_than_days: Keep entries from this many recent days (default 365).
        """
        start_time = time.monotonic()
        try:
            if older_than_days < 1:
                raise ValueError("older_than_days must be at least 1")
            cutoff = date.today() - timedelta(days=older_than_days)
            count = repository.purge_before(cutoff.isoformat())
        except TOOL_ERRORS as exc:
            audit_call(audit_logger, "purge_old_entries", {"days": older_than_days}, start_time, exc)
            return error(exc)
        audit_call(audit_logger, "purge_old_entries", {"days": older_than_days}, start_time)

        if audit_logger is not None and count:
            audit_logger.log_data_delete(
                tool_name="purge_old_entries",
                count=count,
                metadata={"older_than_days": older_than_days},
            )
        if count:
            logger.warning("Purged %d entries dated before %s", count, cutoff)
        return ok({"records_deleted": count, "cutoff": cutoff.isoformat()})

    if audit_logger is None:
        return

    @mcp.tool
    async def audit_summary(ctx: Context, days: int = 30) -> str:
        """Recent tool calls, calibration changes and deletions.

        The audit trail holds no ratings or readings, only which tools ran,
        when, and how calibration state changed.

        Args:
            days: Days to look back (default 30).
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        events = audit_logger.get_events(since=since, limit=RECENT_EVENT_LIMIT)
        return ok({
            "period_days": days,
            "total_events": audit_logger.count_events(since=since),
            "by_action": {
                action: audit_logger.count_events(action=action, since=since)
                for action in (ACTION_TOOL, ACTION_CALIBRATION, ACTION_DELETE)
            },
            "recent_events": [
                {
                    "timestamp": e["timestamp"],
                    "action": e["action"],
                    "tool_name": e["tool_name"],
                    "signal": e["signal"],
                    "status": e["status"],
                    "duration_ms": e["duration_ms"],
                }
                for e in events
            ],
        })
