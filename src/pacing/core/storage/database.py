"""SQLite connection and schema for the load data store.

The schema is applied as an ordered list of migrations; ``schema_version``
records the newest one applied so reopening an existing file only runs
what is missing.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

_BASE_TABLES = """
-- Logged observations. The ratings are an encrypted JSON payload; the
-- effective date stays readable so range queries can use the index.
CREATE TABLE IF NOT EXISTS observations (
    id             TEXT PRIMARY KEY,
    kind           TEXT NOT NULL,
    effective_date TEXT NOT NULL,
    recorded_at    TEXT NOT NULL,
    payload_enc    TEXT NOT NULL,
    created_at     TEXT NOT NULL DEFAULT (datetime('now'))
);

-- HRV, resting heart rate and sleep-hour readings
CREATE TABLE IF NOT EXISTS physiological_samples (
    id          TEXT PRIMARY KEY,
    signal      TEXT NOT NULL,
    sample_date TEXT NOT NULL,
    value       REAL NOT NULL,
    source      TEXT NOT NULL DEFAULT 'manual',
    created_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Single row: the active configuration
CREATE TABLE IF NOT EXISTS load_configuration (
    id          INTEGER PRIMARY KEY CHECK (id = 1),
    config_enc  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

-- One row per calibrator
CREATE TABLE IF NOT EXISTS calibration_state (
    signal       TEXT PRIMARY KEY,
    state        TEXT NOT NULL,
    snapshot_enc TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_observations_date ON observations(effective_date);
CREATE INDEX IF NOT EXISTS idx_observations_kind ON observations(kind);
CREATE INDEX IF NOT EXISTS idx_samples_signal    ON physiological_samples(signal);
CREATE INDEX IF NOT EXISTS idx_samples_date      ON physiological_samples(sample_date);
"""

_AUDIT_TABLE = """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    signal          TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_tool      ON audit_log(tool_name);
"""

# (version, description, DDL), oldest first
_MIGRATIONS: list[tuple[int, str, str]] = [
    (1, "observations, samples and engine state", _BASE_TABLES),
    (2, "audit_log table", _AUDIT_TABLE),
]

SCHEMA_VERSION = _MIGRATIONS[-1][0]


class DatabaseError(Exception):
    """Raised when database operations fail."""


class LoadDatabase:
    """Owns the SQLite connection of the load data store.

    ``db_path`` may be a file path (``~`` is expanded, parent directories
    are created) or ``":memory:"``.

    Usage::

        with LoadDatabase("~/.pacing/load.db") as db:
            db.connection.execute("SELECT COUNT(*) FROM observations")
    """

    def __init__(self, db_path: str = MEMORY) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: Before :meth:`initialize` or after :meth:`close`.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and migrate the schema. A no-op when already open."""
        if self._conn is not None:
            return

        target = self._db_path
        if target != MEMORY:
            path = Path(target).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)

        # Tool handlers can run on worker threads
        conn = sqlite3.connect(target, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        self._conn = conn

        self._migrate()
        logger.info("Load database initialized: %s", self._db_path)

    def _migrate(self) -> None:
        conn = self.connection
        conn.execute(
            """CREATE TABLE IF NOT EXISTS schema_version (
                   version    INTEGER NOT NULL,
                   applied_at TEXT NOT NULL DEFAULT (datetime('now'))
               )"""
        )
        current = self.get_schema_version()
        pending = [m for m in _MIGRATIONS if m[0] > current]
        if not pending:
            return

        for version, description, ddl in pending:
            conn.executescript(ddl)
            logger.info("Applied schema migration V%d: %s", version, description)
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        conn.commit()
        logger.info("Schema updated from version %d to %d", current, SCHEMA_VERSION)

    def get_schema_version(self) -> int:
        version = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
        return version or 0

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.info("Load database closed")

    def __enter__(self) -> LoadDatabase:
        self.initialize()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
