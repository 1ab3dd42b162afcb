"""Shared test fixtures for the pacing load tests."""

from __future__ import annotations

import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("DEFAULT_CONDITION_PRESET", "standard")
    monkeypatch.setenv("DEFAULT_LOOKBACK_DAYS", "90")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from pacing.domains.load.connectors.in_memory import (  # noqa: E402
    InMemoryConfigurationStore,
    InMemoryObservationSource,
    InMemorySampleSource,
)
from pacing.domains.load.domain_logic.engine import LoadEngine  # noqa: E402

FIXED_NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
TODAY = date(2025, 3, 15)


def fixed_clock() -> datetime:
    return FIXED_NOW


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def observation_source() -> InMemoryObservationSource:
    return InMemoryObservationSource()


@pytest.fixture
def sample_source() -> InMemorySampleSource:
    return InMemorySampleSource(today=TODAY)


@pytest.fixture
def config_store() -> InMemoryConfigurationStore:
    return InMemoryConfigurationStore()


@pytest.fixture
def load_engine(observation_source, sample_source, config_store) -> LoadEngine:
    """A LoadEngine over empty in-memory collaborators with a fixed clock."""
    return LoadEngine(
        observation_source,
        sample_source=sample_source,
        store=config_store,
        clock=fixed_clock,
    )


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def load_db():
    """Create an in-memory LoadDatabase for testing."""
    from pacing.core.storage.database import LoadDatabase

    db = LoadDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def payload_encryptor():
    """Create a PayloadEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from pacing.core.storage.encryption import PayloadEncryptor

    return PayloadEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def load_repository(load_db, payload_encryptor):
    """Create a LoadRepository backed by in-memory SQLite."""
    from pacing.core.storage.repository import LoadRepository

    return LoadRepository(load_db, payload_encryptor)


@pytest.fixture
def audit_logger(load_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from pacing.core.audit.logger import AuditLogger

    return AuditLogger(load_db)
