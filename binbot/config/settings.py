"""
Configuration management with Pydantic settings.
Values come from environment variables or a local .env file.
"""
from datetime import time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from binbot.core.models import OverduePolicy
from binbot.errors import ConfigMissing

REQUIRED_SETTINGS = ("telegram_token", "calendar_url")


class Settings(BaseSettings):
    """Application settings with validation and type safety."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram Bot API
    telegram_token: str = Field(..., min_length=1, description="Bot token from @BotFather")
    poll_timeout: int = Field(default=60, ge=0, le=600, description="Long-poll timeout in seconds")
    poll_limit: Optional[int] = Field(default=None, ge=1, le=100)

    # Calendar source
    calendar_url: str = Field(..., min_length=1, description="URL of the iCalendar document")

    # Notifications
    notification_time: time = Field(default=time(8, 0))
    timezone: str = Field(default="Europe/Amsterdam")
    notification_text: str = Field(default="notification !!", min_length=1)
    overdue_policy: OverduePolicy = Field(default=OverduePolicy.SKIP)
    min_sleep: float = Field(default=1.0, gt=0)

    # Fan-out
    channel_capacity: int = Field(default=16, ge=1, le=10000)
    contacts_report_interval: float = Field(default=10.0, gt=0)

    # Logging Configuration
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    debug_mode: bool = Field(default=False)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("overdue_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject zone names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone: {v}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_settings(**overrides) -> Settings:
    """Build settings, turning absent required values into ConfigMissing."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = {
            str(error["loc"][0])
            for error in e.errors()
            if error["loc"]
            and error["loc"][0] in REQUIRED_SETTINGS
            and error["type"] in ("missing", "string_too_short")
        }
        if missing:
            raise ConfigMissing(name.upper() for name in missing) from e
        raise

