"""Settings for stemcell_manager.

Values come from STEMCELL_* environment variables, then a local .env
file, then the defaults below.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "stemcell-manager" / "state.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the STEMCELL_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="STEMCELL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Record store
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL for stemcell records",
    )

    # Cloud provider interface
    cpi_path: Path | None = Field(
        default=None,
        description="Path to the CPI executable used for cloud operations",
    )
    cpi_timeout: int = Field(
        default=1800,
        ge=1,
        description="Timeout in seconds for a single CPI call",
    )
    director_uuid: str = Field(
        default="stemcell-manager",
        description="Director UUID passed to the CPI as request context",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
