"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Paths
    data_dir: Path = Path("data")
    db_path: Path | None = None  # defaults to data_dir / "harusearch.db"

    # Store access
    db_pool_size: int = 4
    db_query_timeout: float = 5.0

    # Result caps per entity
    companion_search_limit: int = 20
    user_search_limit: int = 20
    message_search_limit: int = 50
    chat_search_limit: int = 100
    checkpoint_search_limit: int = 20
    tag_search_limit: int = 10

    # Search history
    search_history_max_entries: int = 20
    search_recent_limit: int = 10

    # Caller identity (bearer token -> userinfo claims)
    auth_userinfo_url: str = "http://localhost:9000/userinfo"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_rate_limit_rpm: int = 120
    api_cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _resolve_db_path(self) -> Settings:
        if self.db_path is None:
            self.db_path = self.data_dir / "harusearch.db"
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
