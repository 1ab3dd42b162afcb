"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pacing load server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; there is no auth layer in front of the tools.
    pacing_host: str = "127.0.0.1"
    pacing_port: int = 8001
    pacing_log_level: str = "info"
    # Binding a non-loopback host is refused unless this is set true.
    pacing_allow_insecure_bind: bool = False

    # Storage
    db_path: str = "~/.pacing/load.db"

    # Encryption (storage is disabled without a key)
    encryption_key: str = ""

    # Load engine
    default_lookback_days: int = 90
    default_condition_preset: str = "standard"

    # Calibration
    load_min_samples: int = 3
    physiological_min_samples: int = 10
    physiological_sample_cap: int = 30
    physiological_lookback_days: int = 30


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
