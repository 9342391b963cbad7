"""
Configuration and settings for the Launchpad backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Environment-backed settings for the FastAPI service.

    Variables are read with the `LAUNCHPAD_` prefix (e.g.
    `LAUNCHPAD_USE_FIRESTORE`), except `DATABASE_URL`.
    """

    model_config = SettingsConfigDict(
        env_prefix="LAUNCHPAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Firestore, using Application Default Credentials
    use_firestore: bool = False

    # Development toggles
    use_in_memory_backends: bool = False

    transaction_max_attempts: int = Field(default=5, ge=1)
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
