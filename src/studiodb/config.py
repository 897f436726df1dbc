"""
Settings for studiodb, loaded from environment variables.
"""

from functools import lru_cache
from pathlib import Path

from platformdirs import user_config_dir
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "studiodb"


def _default_config_dir() -> Path:
    return Path(user_config_dir(APP_NAME, appauthor=False))


class Settings(BaseSettings):
    """Runtime configuration. Every field can be overridden with a STUDIODB_ variable."""

    model_config = SettingsConfigDict(
        env_prefix="STUDIODB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Location of the SQLite file inside a WordPress Studio installation
    database_dir: str = Field(default="wp-content/database")
    database_filename: str = Field(default=".ht.sqlite")

    page_size: int = Field(default=50, ge=1)
    query_history_limit: int = Field(default=50, ge=1)
    recent_installations_limit: int = Field(default=5, ge=1)

    # Seconds sqlite3 waits on a locked file before raising "database is locked"
    busy_timeout: float = Field(default=5.0, ge=0)
    # Seconds between file polls in the change watcher
    watch_interval: float = Field(default=0.5, gt=0)

    config_dir: Path = Field(default_factory=_default_config_dir)
    log_level: str = Field(default="INFO")

    @property
    def installations_file(self) -> Path:
        return self.config_dir / "recent_installations.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
