"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MAX_UPSTREAM_TIMEOUT = 60.0


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="TV Tracker", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3002, alias="PORT")

    tvmaze_api_url: HttpUrl = Field(
        default="https://api.tvmaze.com", alias="TVMAZE_API_URL"
    )
    catalog_search_timeout: float = Field(
        default=15.0, alias="CATALOG_SEARCH_TIMEOUT"
    )
    catalog_episodes_timeout: float = Field(
        default=20.0, alias="CATALOG_EPISODES_TIMEOUT"
    )
    catalog_connect_timeout: float = Field(
        default=5.0, alias="CATALOG_CONNECT_TIMEOUT"
    )
    catalog_max_retries: int = Field(
        default=2, alias="CATALOG_MAX_RETRIES", ge=0, le=5
    )
    catalog_concurrency: int = Field(
        default=8, alias="CATALOG_CONCURRENCY", ge=1, le=64
    )

    user_header: str = Field(default="X-User-Id", alias="USER_HEADER")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./tvtracker.db", alias="DATABASE_URL"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator(
        "catalog_search_timeout",
        "catalog_episodes_timeout",
        "catalog_connect_timeout",
    )
    @classmethod
    def _bound_timeout(cls, value: float) -> float:
        """Upstream calls must always carry a finite ceiling."""

        if value <= 0:
            raise ValueError("Catalogue timeouts must be positive")
        if value > MAX_UPSTREAM_TIMEOUT:
            raise ValueError(
                f"Catalogue timeouts may not exceed {MAX_UPSTREAM_TIMEOUT:.0f} seconds"
            )
        return value

    @field_validator("user_header")
    @classmethod
    def _clean_user_header(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("USER_HEADER may not be blank")
        return cleaned

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
