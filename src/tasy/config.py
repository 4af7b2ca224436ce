"""
Tasy - Configuration and settings.

CoreSettings contains only what the onboarding flow needs and has no
required secrets, so the CLI walkthrough runs without a .env file.
Settings adds the Supabase credentials used by the web app.
"""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Settings shared by the CLI and the web app."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    tasy_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Onboarding flow
    onboarding_total_steps: int = 18
    onboarding_flush_max_attempts: int = 3
    onboarding_flush_backoff_seconds: float = 1.0
    onboarding_storage_path: Path = Path(".tasy/onboarding.json")
    # Stored answers never expire unless this is set
    onboarding_ttl_hours: float | None = None
    onboarding_track_events: bool = False

    # Public URLs
    tasy_api_url: str = "http://localhost:8000"
    tasy_site_url: str = "http://localhost:3000"

    @property
    def is_development(self) -> bool:
        return self.tasy_env == "development"

    @property
    def cors_origins(self) -> list[str]:
        """Browser origins allowed to call the API."""
        origins = [self.tasy_site_url]
        if self.is_development:
            for local in ("http://localhost:3000", "http://127.0.0.1:3000"):
                if local not in origins:
                    origins.append(local)
        return origins

    @property
    def onboarding_ttl(self) -> timedelta | None:
        if self.onboarding_ttl_hours is None:
            return None
        return timedelta(hours=self.onboarding_ttl_hours)


class Settings(CoreSettings):
    """Web app settings: CoreSettings plus Supabase."""

    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str


@lru_cache
def get_core_settings() -> CoreSettings:
    """Get cached CoreSettings instance (no Supabase fields required)."""
    return CoreSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached full settings instance."""
    return Settings()


class _CoreSettingsProxy:
    """Lazy proxy for CoreSettings."""

    _instance: CoreSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_core_settings()
        return getattr(self._instance, name)


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


core_settings = _CoreSettingsProxy()
settings = _SettingsProxy()
