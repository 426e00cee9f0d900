"""
Configuration settings for frflow.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with FRFLOW_ (e.g. FRFLOW_CLOUD_USER_ID).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from frflow.core.models import CEFRLevel


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FRFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Local Store
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".frflow",
        description="Directory for device-local data",
    )
    local_db_path: Path | None = Field(
        default=None,
        description="SQLite document store path (defaults to <data_dir>/local.db)",
    )

    # ========================================
    # Remote Store (synced mode)
    # ========================================
    remote_base_url: str = Field(
        default="https://sync.frflow.app",
        description="Base URL of the remote document store",
    )
    remote_timeout_seconds: float = Field(
        default=30.0,
        description="Request timeout for the remote document store",
    )
    cloud_user_id: str | None = Field(
        default=None,
        description="Signed-in user id; synced mode needs this and the token",
    )
    cloud_id_token: str | None = Field(
        default=None,
        description="Bearer token of the signed-in user",
    )

    # ========================================
    # Content Generation
    # ========================================
    gemini_api_key: str = Field(default="", description="Gemini API key (overrides user settings)")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST endpoint",
    )
    gemini_model: str = Field(default="gemini-3-flash-preview", description="Gemini model name")
    openai_api_key: str = Field(default="", description="OpenAI API key (overrides user settings)")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI REST endpoint")
    openai_model: str = Field(default="gpt-5.2", description="OpenAI chat model")
    generation_max_output_tokens: int = Field(
        default=40000,
        description="Output token ceiling for a Gemini section request",
    )
    generation_fallback_output_tokens: int = Field(
        default=20000,
        description="Reduced ceiling used for the single Gemini retry",
    )
    generation_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for one generation request",
    )
    explanation_language: str = Field(
        default="Simplified Chinese",
        description="Language of meanings, explanations and translations",
    )
    default_level: CEFRLevel = Field(
        default=CEFRLevel.A1,
        description="Lesson level used when none is given",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(default="WARNING", description="Log level for the stderr sink")

    @model_validator(mode="after")
    def _default_db_path(self) -> Settings:
        if self.local_db_path is None:
            self.local_db_path = self.data_dir / "local.db"
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
