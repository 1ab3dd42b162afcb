"""Load data repository — CRUD operations for the encrypted data store.

The repository mediates between row models and the SQLite database, using
PayloadEncryptor to encrypt/decrypt ratings, configuration and calibration
state. It knows nothing about load scoring; the load domain's stored
connectors translate rows into observations and snapshots.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any

from pacing.core.storage.database import LoadDatabase
from pacing.core.storage.encryption import EncryptionError, PayloadEncryptor
from pacing.core.storage.models import ObservationKind, StoredObservation, StoredSample

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class LoadRepository:
    """CRUD repository for observations, samples and engine state.

    Usage::

        db = LoadDatabase(":memory:")
        db.initialize()
        repo = LoadRepository(db, PayloadEncryptor(key="..."))

        obs_id = repo.save_observation(
            ObservationKind.SYMPTOM, date(2025, 3, 1), "2025-03-01T09:00:00",
            {"severity": 3, "polarity": "negative"},
        )
        rows = repo.get_observations(since="2025-02-01", until="2025-03-01")
    """

    def __init__(self, database: LoadDatabase, encryptor: PayloadEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def database(self) -> LoadDatabase:
        return self._db

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def save_observation(
        self,
        kind: ObservationKind | str,
        effective_date: date,
        recorded_at: str,
        payload: dict[str, Any],
    ) -> str:
        """Persist one observation with an encrypted payload.

        Returns:
            The observation ID.
        """
        kind = self._kind(kind)
        oid = self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO observations
               (id, kind, effective_date, recorded_at, payload_enc, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                oid,
                kind.value,
                effective_date.isoformat(),
                recorded_at,
                self._enc.encrypt(payload),
                self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved %s observation %s for %s", kind.value, oid, effective_date)
        return oid

    def get_observations(
        self,
        *,
        kind: ObservationKind | str | None = None,
        since: str | None = None,
        until: str | None = None,
        limit: int | None = None,
    ) -> list[StoredObservation]:
        """Query observations with optional filters.

        Args:
            kind: Filter by observation kind.
            since: Effective date lower bound (inclusive, YYYY-MM-DD).
            until: Effective date upper bound (inclusive, YYYY-MM-DD).
            limit: Maximum results to return.

        Returns:
            Decrypted observations, oldest effective date first.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if kind:
            conditions.append("kind = ?")
            params.append(self._kind(kind).value)
        if since:
            conditions.append("effective_date >= ?")
            params.append(since)
        if until:
            conditions.append("effective_date <= ?")
            params.append(until)

        query = "SELECT * FROM observations"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY effective_date ASC, recorded_at ASC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_observation(row) for row in rows]

    def count_observations(self, kind: ObservationKind | str | None = None) -> int:
        conn = self._db.connection
        if kind:
            row = conn.execute(
                "SELECT COUNT(*) FROM observations WHERE kind = ?", (self._kind(kind).value,)
            ).fetchone()
        else:
            row = conn.execute("SELECT COUNT(*) FROM observations").fetchone()
        return row[0]

    def delete_observation(self, observation_id: str) -> bool:
        """Delete one observation. Returns False if it did not exist."""
        conn = self._db.connection
        cursor = conn.execute("DELETE FROM observations WHERE id = ?", (observation_id,))
        conn.commit()
        if cursor.rowcount:
            logger.info("Deleted observation %s", observation_id)
        return cursor.rowcount > 0

    def purge_before(self, before_date: str) -> int:
        """Delete observations and samples dated strictly before *before_date*.

        Returns:
            Number of rows deleted across both tables.
        """
        conn = self._db.connection
        observations = conn.execute(
            "DELETE FROM observations WHERE effective_date < ?", (before_date,)
        ).rowcount
        samples = conn.execute(
            "DELETE FROM physiological_samples WHERE sample_date < ?", (before_date,)
        ).rowcount
        conn.commit()
        logger.info("Purged %d observations and %d samples before %s",
                    observations, samples, before_date)
        return observations + samples

    def _row_to_observation(self, row: Any) -> StoredObservation:
        try:
            payload = self._enc.decrypt(row["payload_enc"]) or {}
        except EncryptionError as exc:
            raise RepositoryError(
                f"Failed to decrypt observation {row['id']}: {exc}"
            ) from exc
        return StoredObservation(
            id=row["id"],
            kind=ObservationKind(row["kind"]),
            effective_date=row["effective_date"],
            recorded_at=row["recorded_at"],
            payload=payload,
            created_at=row["created_at"] or "",
        )

    @staticmethod
    def _kind(kind: ObservationKind | str) -> ObservationKind:
        try:
            return ObservationKind(kind)
        except ValueError as exc:
            valid = [k.value for k in ObservationKind]
            raise RepositoryError(f"Invalid observation kind: {kind!r}. Valid: {valid}") from exc

    # ------------------------------------------------------------------
    # Physiological samples (unencrypted, indexed)
    # ------------------------------------------------------------------

    def save_sample(
        self,
        signal: str,
        sample_date: date,
        value: float,
        *,
        source: str = "manual",
    ) -> str:
        sid = self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO physiological_samples
               (id, signal, sample_date, value, source, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (sid, signal, sample_date.isoformat(), float(value), source, self._now_iso()),
        )
        conn.commit()
        logger.info("Saved %s sample %s (source=%s)", signal, sid, source)
        return sid

    def get_samples(
        self,
        signal: str,
        *,
        since: str | None = None,
        until: str | None = None,
    ) -> list[StoredSample]:
        """Readings for *signal* within the optional date bounds, oldest first."""
        conditions = ["signal = ?"]
        params: list[Any] = [signal]
        if since:
            conditions.append("sample_date >= ?")
            params.append(since)
        if until:
            conditions.append("sample_date <= ?")
            params.append(until)

        query = (
            "SELECT id, signal, sample_date, value, source, created_at "
            f"FROM physiological_samples WHERE {' AND '.join(conditions)} "
            "ORDER BY sample_date ASC, created_at ASC"
        )
        rows = self._db.connection.execute(query, params).fetchall()
        return [
            StoredSample(
                id=row[0],
                signal=row[1],
                sample_date=row[2],
                value=row[3],
                source=row[4] or "manual",
                created_at=row[5] or "",
            )
            for row in rows
        ]

    def count_samples(self, signal: str | None = None) -> int:
        conn = self._db.connection
        if signal:
            row = conn.execute(
                "SELECT COUNT(*) FROM physiological_samples WHERE signal = ?", (signal,)
            ).fetchone()
        else:
            row = conn.execute("SELECT COUNT(*) FROM physiological_samples").fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Engine state (encrypted)
    # ------------------------------------------------------------------

    def save_configuration_data(self, data: dict[str, Any]) -> None:
        """Replace the single stored configuration."""
        conn = self._db.connection
        conn.execute(
            """INSERT INTO load_configuration (id, config_enc, updated_at)
               VALUES (1, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   config_enc = excluded.config_enc,
                   updated_at = excluded.updated_at""",
            (self._enc.encrypt(data), self._now_iso()),
        )
        conn.commit()
        logger.info("Saved load configuration")

    def get_configuration_data(self) -> dict[str, Any] | None:
        row = self._db.connection.execute(
            "SELECT config_enc FROM load_configuration WHERE id = 1"
        ).fetchone()
        if row is None:
            return None
        return self._enc.decrypt(row[0])

    def save_calibration_data(self, signal: str, state: str, data: dict[str, Any]) -> None:
        """Replace the stored calibrator state for *signal*."""
        conn = self._db.connection
        conn.execute(
            """INSERT INTO calibration_state (signal, state, snapshot_enc, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(signal) DO UPDATE SET
                   state = excluded.state,
                   snapshot_enc = excluded.snapshot_enc,
                   updated_at = excluded.updated_at""",
            (signal, state, self._enc.encrypt(data), self._now_iso()),
        )
        conn.commit()
        logger.info("Saved %s calibration state (%s)", signal, state)

    def get_calibration_data(self, signal: str) -> dict[str, Any] | None:
        row = self._db.connection.execute(
            "SELECT snapshot_enc FROM calibration_state WHERE signal = ?", (signal,)
        ).fetchone()
        if row is None:
            return None
        return self._enc.decrypt(row[0])
