"""Pacing server entry point — ``python -m pacing.core.server.main``.

Settings are checked before anything binds: a non-loopback host needs an
explicit opt-in, and an unknown ``DEFAULT_CONDITION_PRESET`` stops startup.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address
from pathlib import Path

from pacing.core.config.settings import Settings, get_settings
from pacing.core.server.app import create_app
from pacing.domains.load.domain_logic.parameters import ConditionPreset, parse_enum

logger = logging.getLogger(__name__)

TRANSPORT = "streamable-http"


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _log_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def check_bind(settings: Settings) -> None:
    """Refuse a non-loopback host unless PACING_ALLOW_INSECURE_BIND is set.

    Raises:
        RuntimeError: If the host is exposed without the opt-in.
    """
    if _is_loopback_host(settings.pacing_host):
        return
    if not settings.pacing_allow_insecure_bind:
        raise RuntimeError(
            f"Refusing to bind the pacing server to {settings.pacing_host}: the load tools "
            "have no auth layer. Set PACING_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.warning("Binding %s without an auth layer (PACING_ALLOW_INSECURE_BIND=true)",
                   settings.pacing_host)


def startup_summary(settings: Settings) -> dict:
    """What the server is about to run with; also validates the default preset.

    Raises:
        ConfigurationError: If ``default_condition_preset`` is not a known preset.
    """
    preset = parse_enum(ConditionPreset, settings.default_condition_preset, "condition preset")
    storage = (
        str(Path(settings.db_path).expanduser()) if settings.db_path != ":memory:" else ":memory:"
    )
    return {
        "address": f"{settings.pacing_host}:{settings.pacing_port}",
        "storage": storage if settings.encryption_key else "disabled",
        "default_preset": preset.value,
        "lookback_days": settings.default_lookback_days,
        "load_min_samples": settings.load_min_samples,
        "physiological_min_samples": settings.physiological_min_samples,
    }


def run() -> None:
    """Start the Pacing MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=_log_level(settings.pacing_log_level))

    check_bind(settings)
    summary = startup_summary(settings)
    if summary["storage"] == "disabled":
        logger.warning("ENCRYPTION_KEY is empty; logged entries will not persist across restarts")
    logger.info(
        "Starting Pacing load server on %s (storage=%s, preset=%s, lookback=%dd, "
        "good days to calibrate=%d)",
        summary["address"],
        summary["storage"],
        summary["default_preset"],
        summary["lookback_days"],
        summary["load_min_samples"],
    )

    mcp = create_app()
    mcp.run(
        transport=TRANSPORT,
        host=settings.pacing_host,
        port=settings.pacing_port,
    )


if __name__ == "__main__":
    run()
