"""Service configuration — env-driven.

Reads from a .env file and MDM_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class MdmConfig(BaseSettings):
    """Runtime configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MDM_DB_PATH=/data/mission-metadata.db
        export MDM_HOT_ROOT=/data/hot
        export MDM_API_KEY=secret123

    Or via .env file::

        MDM_ENVIRONMENT=production
        MDM_PORT=9000
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MDM_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    db_path: Path = Path("data/mission-metadata.db")
    hot_root: Path = Path("data/hot")
    cold_root: Path = Path("data/cold")

    # HTTP
    host: str = "0.0.0.0"
    port: int = 8080

    # Shared secret for the X-API-Key header. Empty disables authorization.
    api_key: str = ""
    # Production refuses to start without api_key unless this is set.
    allow_unauthenticated: bool = False

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_key)
