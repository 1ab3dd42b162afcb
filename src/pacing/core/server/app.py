"""Pacing load MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery (fastmcp.json points here)
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from pacing.core.audit.logger import AuditLogger
from pacing.core.config.settings import get_settings
from pacing.core.storage.database import LoadDatabase
from pacing.core.storage.encryption import EncryptionError, PayloadEncryptor
from pacing.core.storage.repository import LoadRepository
from pacing.domains.load.connectors import (
    ConfigurationStore,
    ObservationSource,
    PhysiologicalSampleSource,
)
from pacing.domains.load.connectors.composite import CompositeSampleSource
from pacing.domains.load.connectors.in_memory import (
    InMemoryConfigurationStore,
    InMemoryObservationSource,
)
from pacing.domains.load.connectors.stored import (
    StoredConfigurationStore,
    StoredObservationSource,
    StoredSampleSource,
)
from pacing.domains.load.domain_logic.configuration import (
    DEFAULT_CONFIGURATION,
    select_preset,
)
from pacing.domains.load.domain_logic.engine import LoadEngine
from pacing.domains.load.domain_logic.presets import get_preset_catalogue
from pacing.domains.load.tools.calibration_tools import register_calibration_tools
from pacing.domains.load.tools.load_tools import register_load_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Pacing Load"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    observation_source_override: ObservationSource | None = None,
    sample_source_override: PhysiologicalSampleSource | None = None,
    repository_override: LoadRepository | None = None,
) -> FastMCP:
    """Create and configure the Pacing load MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the encrypted storage layer (if a key is configured)
    3. Wires the observation source, sample source and configuration store
    4. Builds the load engine
    5. Registers all tools
    """
    settings = get_settings()

    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Energy-envelope pacing server. Turns logged symptoms, activities, "
            "meals and sleep into a daily decayed load, classifies it against "
            "condition-specific thresholds and calibrates personal baselines."
        ),
    )

    # --- Initialize encrypted storage ---
    repository: LoadRepository | None = None
    database: LoadDatabase | None = None
    if repository_override is not None:
        repository = repository_override
        database = repository.database
    elif settings.encryption_key:
        try:
            encryptor = PayloadEncryptor(settings.encryption_key)
            database = LoadDatabase(settings.db_path)
            database.initialize()
            repository = LoadRepository(database, encryptor)
            logger.info(
                "Load data store initialized: %s (schema v%d)",
                settings.db_path,
                database.get_schema_version(),
            )
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence; entries will not be stored")
            database = None
    else:
        logger.info(
            "No ENCRYPTION_KEY configured; running without persistence. "
            "Set ENCRYPTION_KEY to enable the load data store."
        )

    audit_logger = AuditLogger(database) if database is not None else None

    # --- Collaborators ---
    stored_observations: StoredObservationSource | None = None
    stored_samples: StoredSampleSource | None = None
    store: ConfigurationStore
    if repository is not None:
        stored_observations = StoredObservationSource(repository)
        stored_samples = StoredSampleSource(repository)
        store = StoredConfigurationStore(repository)
    else:
        store = InMemoryConfigurationStore()

    if observation_source_override is not None:
        observation_source: ObservationSource = observation_source_override
    elif stored_observations is not None:
        observation_source = stored_observations
    else:
        observation_source = InMemoryObservationSource()
        logger.info("Using in-memory observation source")

    sample_sources = [
        s for s in (sample_source_override, stored_samples) if s is not None
    ]
    sample_source: PhysiologicalSampleSource | None = None
    if len(sample_sources) > 1:
        sample_source = CompositeSampleSource(sample_sources)
    elif sample_sources:
        sample_source = sample_sources[0]

    # --- Load engine ---
    default_configuration = select_preset(
        DEFAULT_CONFIGURATION, settings.default_condition_preset
    ).configuration
    engine = LoadEngine(
        observation_source,
        sample_source=sample_source,
        store=store,
        configuration=default_configuration,
        default_lookback_days=settings.default_lookback_days,
        load_min_samples=settings.load_min_samples,
        physiological_min_samples=settings.physiological_min_samples,
        physiological_sample_cap=settings.physiological_sample_cap,
        physiological_lookback_days=settings.physiological_lookback_days,
    )
    logger.info(
        "Load engine ready (preset=%s, %d presets available)",
        engine.configuration.selected_preset.value,
        len(get_preset_catalogue()),
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "storage_enabled": repository is not None,
            "observation_source": observation_source.data_source,
            "active_preset": engine.configuration.selected_preset.value,
        }
        if repository is not None:
            status["observations_stored"] = repository.count_observations()
            status["samples_stored"] = repository.count_samples()
        return status

    register_load_tools(server, engine, audit_logger)
    register_calibration_tools(server, engine, audit_logger)
    logger.info("Load and calibration tools registered")

    # --- Register observation logging and data tools (requires storage) ---
    if repository is not None and stored_observations is not None and stored_samples is not None:
        from pacing.domains.load.tools.data_tools import register_data_tools
        from pacing.domains.load.tools.observation_tools import register_observation_tools

        register_observation_tools(server, stored_observations, stored_samples, audit_logger)
        register_data_tools(server, repository, audit_logger)
        logger.info("Observation logging and data tools registered")

    return server


# Module-level instance for FastMCP discovery (fastmcp.json: "server": "...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
