"""Client configuration using pydantic-settings."""
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Client settings loaded from LINKSTACK_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LINKSTACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Base URL of the API; the metadata function is served from the same host
    api_url: str = "http://localhost:8000"
    api_token: str | None = None

    preferences_path: Path = Field(
        default_factory=lambda: Path.home() / ".linkstack" / "preferences.json",
    )

    search_debounce_seconds: float = 0.3
    toast_duration_seconds: float = 5.0


@lru_cache
def get_client_settings() -> ClientSettings:
    """Get cached client settings instance."""
    return ClientSettings()
