"""
Configuration and settings for the content service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible storage for media uploads
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_bucket: Optional[str] = Field(default=None)
    storage_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Queue (Redis) for notification delivery
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="pulpit:notifications")

    # Access tokens
    jwt_secret_key: str = Field(default="change-me")
    jwt_algorithm: str = Field(default="HS256")
    access_token_exp_minutes: int = Field(default=60 * 24)

    # Expo push gateway
    expo_push_url: str = Field(default="https://exp.host/--/api/v2/push/send")
    expo_access_token: Optional[str] = Field(default=None)
    use_fake_push: bool = Field(default=False)

    # Links handed to members
    app_scheme: str = Field(default="pulpit-app://")
    web_base_url: str = Field(default="https://tvffellowship.com/")
    download_base_url: str = Field(default="https://tvffellowship.com/download")
    invitation_expiry_days: int = Field(default=30)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
