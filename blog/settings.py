"""Application settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration with sensible defaults."""

    posts_table_name: str | None = Field(default=None, alias="POSTS_TABLE_NAME")
    store_backend: Literal["dynamodb", "memory"] = Field(default="dynamodb", alias="STORE_BACKEND")
    aws_region: str | None = Field(default=None, alias="AWS_REGION")
    dynamodb_endpoint_url: str | None = Field(default=None, alias="DYNAMODB_ENDPOINT_URL")
    seed_file: Path | None = Field(default=None, alias="SEED_FILE")
    api_stage: str = Field(default="prod", alias="API_STAGE")
    cors_allow_origin: str = Field(default="*", alias="CORS_ALLOW_ORIGIN")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    service_version: str = Field(default="0.1.0", alias="SERVICE_VERSION")
    api_url: str = Field(default="http://localhost:3001", alias="BLOG_API_URL")
    notice_seconds: float = Field(default=3.0, alias="NOTICE_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
