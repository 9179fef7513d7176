"""
Application configuration using pydantic-settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "inkstudio-analytics"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # API Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Postgres
    database_url: str

    # Redis (real-time channel + Celery broker)
    redis_url: str
    realtime_channel: str = "studio:realtime"

    # Cal.com
    cal_api_url: str = "https://api.cal.com/v2"
    cal_api_key: str = ""
    cal_api_version: str = "2024-08-13"
    cal_webhook_secret: str = ""

    # Booking sync
    sync_batch_size: int = 100

    # Webhook event retention
    webhook_retention_days: int = 90

    # Admin
    admin_api_key: str

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
