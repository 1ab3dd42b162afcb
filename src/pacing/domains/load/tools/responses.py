"""Shared argument parsing and response helpers for the load MCP tools."""

from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from pacing.core.storage.database import DatabaseError
from pacing.core.storage.encryption import EncryptionError
from pacing.core.storage.repository import RepositoryError

if TYPE_CHECKING:
    from pacing.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)

# Errors a tool reports back to the caller as {"status": "error"}
TOOL_ERRORS = (ValueError, RepositoryError, EncryptionError, DatabaseError)


def parse_day(text: str, field_name: str, *, default: date | None = None) -> date:
    """Parse a YYYY-MM-DD string; empty text yields *default* (or today)."""
    if not text:
        return default or date.today()
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be an ISO date (YYYY-MM-DD), got {text!r}") from exc


def parse_moment(text: str, field_name: str) -> date | datetime:
    """Parse an ISO date or datetime; empty text yields the current UTC time."""
    if not text:
        return datetime.now(timezone.utc)
    try:
        if "T" in text or " " in text.strip():
            return datetime.fromisoformat(text)
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be ISO 8601, got {text!r}") from exc


def ok(payload: dict[str, Any]) -> str:
    return json.dumps({"status": "ok", **payload}, indent=2)


def error(exc: Exception) -> str:
    return json.dumps({
        "status": "error",
        "error_type": type(exc).__name__,
        "message": str(exc),
    })


def audit_call(
    audit_logger: AuditLogger | None,
    tool_name: str,
    tool_input: dict[str, Any],
    start_time: float,
    exc: Exception | None = None,
) -> None:
    """Record a finished tool call, if auditing is enabled."""
    if audit_logger is None:
        return
    elapsed_ms = (time.monotonic() - start_time) * 1000
    audit_logger.log_tool_call(
        tool_name=tool_name,
        tool_input=tool_input,
        duration_ms=elapsed_ms,
        status="failure" if exc is not None else "success",
        error_type=type(exc).__name__ if exc is not None else None,
    )
