"""
Configuration and settings for the content service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Where content documents live
    document_source: Literal["drive", "cos", "memory"] = Field(default="drive")
    google_drive_key_file: Optional[str] = Field(default=None)

    # Document ids per content domain (Drive file ids or bucket keys)
    programs_file_id: Optional[str] = Field(default=None)
    mood_types_file_id: Optional[str] = Field(default=None)
    onboarding_questions_file_id: Optional[str] = Field(default=None)
    social_networks_file_id: Optional[str] = Field(default=None)
    activity_types_file_id: Optional[str] = Field(default=None)

    # S3-compatible storage (Tencent COS)
    cos_endpoint: Optional[str] = Field(default=None)
    cos_region: Optional[str] = Field(default=None)
    cos_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Sync metadata (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    default_language: str = Field(default="en")

    # Background refresh of every domain; 0 disables it
    content_refresh_interval_seconds: int = Field(default=0, ge=0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    def document_id_for(self, file_id_setting: str) -> str:
        """Document id bound to a domain, looked up by its env var name."""
        return getattr(self, file_id_setting.lower(), None) or ""


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
