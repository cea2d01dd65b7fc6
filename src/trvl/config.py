"""
TRVL - Configuration and settings.

CoreSettings contains only what the onboarding engine needs (no credentials).
Settings extends it with the Supabase fields used by the web app and CLI.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """
    Core settings for the onboarding engine.

    Everything here has a default, so scoring and the state machine
    work without a populated .env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    trvl_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Onboarding progress (transient cache)
    onboarding_progress_namespace: str = "onboarding_progress"
    onboarding_progress_backend: Literal["memory", "supabase"] = "supabase"

    # Quiz scoring
    quiz_max_delta_per_question: int = Field(default=5, ge=1)

    # Re-engagement reminder
    quiz_reminder_snooze_hours: int = Field(default=24, ge=1)

    # Analytics JSONL log (TRVL_ANALYTICS_LOG_DIR=analytics_logs)
    trvl_analytics_log_dir: Path | None = None

    @property
    def is_development(self) -> bool:
        return self.trvl_env == "development"

    @property
    def is_production(self) -> bool:
        return self.trvl_env == "production"


class Settings(CoreSettings):
    """Application settings: CoreSettings plus Supabase credentials."""

    supabase_url: str
    supabase_service_role_key: str

    # Dev user for CLI commands that need an identity
    dev_user_id: str = "00000000-0000-0000-0000-000000000001"


@lru_cache
def get_core_settings() -> CoreSettings:
    """Get cached CoreSettings instance (no Supabase fields required)."""
    return CoreSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance."""
    return Settings()


class _CoreSettingsProxy:
    """Lazy proxy for CoreSettings to avoid loading .env at import time."""

    _instance: CoreSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_core_settings()
        return getattr(self._instance, name)


class _SettingsProxy:
    """Lazy proxy for Settings (requires Supabase fields on first access)."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


core_settings = _CoreSettingsProxy()
settings = _SettingsProxy()
