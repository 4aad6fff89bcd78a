"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from water_tracker.services.reminders import MAX_INTERVAL_HOURS, ReschedulePolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    supabase_url: str
    supabase_service_key: str
    admin_token: str
    telegram_allowed_user_ids: str | None = None
    environment: str = _ENVIRONMENT
    log_level: str = "INFO"
    timezone: str = "UTC"
    default_daily_goal: int = Field(default=2000, gt=0)
    reminder_choices: str = "1,2,3"
    reschedule_policy: ReschedulePolicy = ReschedulePolicy.FROM_DISPATCH
    sweep_enabled: bool = True
    # Must stay below one hour, the shortest reminder interval.
    sweep_interval_seconds: float = Field(default=60, gt=0, lt=3600)
    save_retry_attempts: int = Field(default=3, ge=1)
    notification_timeout_seconds: float = Field(default=10, gt=0)
    profile_ttl_seconds: int = Field(default=86400, ge=0)

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_allowed_user_ids(raw: str | None) -> set[int] | None:
    """Parse allowed Telegram user IDs from env."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    ids = {int(chunk) for chunk in _chunks(cleaned) if chunk.isdigit()}
    return ids or None


def parse_reminder_choices(raw: str) -> list[int]:
    """Parse the reminder menu intervals, dropping anything out of range."""
    choices = sorted(
        {
            int(chunk)
            for chunk in _chunks(raw)
            if chunk.isascii()
            and chunk.isdigit()
            and 0 < int(chunk) <= MAX_INTERVAL_HOURS
        }
    )
    return choices or [1, 2, 3]


def _chunks(raw: str) -> list[str]:
    return [chunk.strip() for chunk in raw.split(",") if chunk.strip()]
