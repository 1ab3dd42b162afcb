"""Audit trail for the load data store.

Every tool call, calibrator transition and deletion becomes one row in
``audit_log``. Rows never carry ratings or readings: tool arguments are
reduced to a SHA-256 digest and calibration rows only name the signal,
the operation and the resulting state.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pacing.core.storage.database import DatabaseError, LoadDatabase

logger = logging.getLogger(__name__)

ACTION_TOOL = "tool_invocation"
ACTION_CALIBRATION = "calibration"
ACTION_DELETE = "data_delete"

_COLUMNS = (
    "id", "timestamp", "action", "tool_name", "tool_input_hash", "signal",
    "duration_ms", "status", "error_type", "metadata_json",
)
_INSERT = (
    f"INSERT INTO audit_log ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)})"
)


def _hash_input(data: Any) -> str:
    """Digest of *data* as sorted compact JSON; empty if it cannot be encoded."""
    try:
        encoded = json.dumps(data, sort_keys=True, separators=(",", ":")).encode()
    except (TypeError, ValueError):
        return ""
    return hashlib.sha256(encoded).hexdigest()


@dataclass
class AuditEvent:
    """One row of the audit trail, before it is written."""

    action: str
    tool_name: str = ""
    tool_input_hash: str = ""
    signal: str | None = None
    duration_ms: float | None = None
    status: str = "success"  # success | failure | rejected
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def as_row(self, event_id: str, timestamp: str) -> tuple:
        return (
            event_id,
            timestamp,
            self.action,
            self.tool_name or None,
            self.tool_input_hash or None,
            self.signal,
            self.duration_ms,
            self.status,
            self.error_type,
            json.dumps(self.metadata, separators=(",", ":")) if self.metadata else None,
        )


def _where(**filters: str | None) -> tuple[str, list[Any]]:
    """SQL WHERE clause for the non-empty *filters*; ``since`` is a lower bound."""
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in filters.items():
        if not value:
            continue
        if column == "since":
            clauses.append("timestamp >= ?")
        else:
            clauses.append(f"{column} = ?")
        params.append(value)
    return (" WHERE " + " AND ".join(clauses) if clauses else ""), params


class AuditLogger:
    """Writes and queries ``audit_log`` rows.

    A write that fails is logged and reported as an empty event ID so the
    tool that triggered it still answers.

    Usage::

        audit = AuditLogger(load_db)
        audit.log_tool_call("load_scores", {"start": "2025-03-01"}, duration_ms=4.2)
        audit.log_calibration_event("load", "record_sample", state="calibrated")
    """

    def __init__(self, database: LoadDatabase) -> None:
        self._db = database

    def log_event(self, event: AuditEvent) -> str:
        """Write *event*; returns its ID, or ``""`` if the write failed."""
        event_id = str(uuid.uuid4())
        row = event.as_row(event_id, datetime.now(timezone.utc).isoformat())
        try:
            conn = self._db.connection
            conn.execute(_INSERT, row)
            conn.commit()
        except (sqlite3.Error, DatabaseError):
            logger.exception("Audit write failed for %s event", event.action)
            return ""
        return event_id

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        return self.log_event(AuditEvent(
            action=ACTION_TOOL,
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def log_calibration_event(
        self,
        signal: str,
        operation: str,
        *,
        state: str,
        accepted: bool = True,
        reason: str | None = None,
        tool_name: str = "",
    ) -> str:
        """Record a calibrator operation and the state it left behind."""
        details: dict[str, Any] = {"operation": operation, "state": state}
        if reason:
            details["reason"] = reason
        return self.log_event(AuditEvent(
            action=ACTION_CALIBRATION,
            tool_name=tool_name,
            signal=signal,
            status="success" if accepted else "rejected",
            metadata=details,
        ))

    def log_data_delete(
        self,
        *,
        tool_name: str = "",
        count: int = 0,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        return self.log_event(AuditEvent(
            action=ACTION_DELETE,
            tool_name=tool_name,
            metadata={**(metadata or {}), "records_deleted": count},
        ))

    def get_events(
        self,
        *,
        action: str | None = None,
        tool_name: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Matching rows as dicts, newest first."""
        where, params = _where(action=action, tool_name=tool_name, since=since)
        rows = self._db.connection.execute(
            f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?",
            [*params, limit],
        ).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None, since: str | None = None) -> int:
        where, params = _where(action=action, since=since)
        return self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log{where}", params
        ).fetchone()[0]
