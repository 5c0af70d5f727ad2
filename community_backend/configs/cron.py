"""
Scheduled job configuration.

Shared secret presented by the scheduler when calling cron endpoints.

Dependencies: pydantic_settings
System role: Cron endpoint authentication configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from community_backend.configs.base import BaseSettings


class CronSettings(BaseSettings):
    """Cron endpoint authentication."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CRON_",
        case_sensitive=False,
        extra="ignore",
    )

    secret: str | None = Field(
        default=None,
        description="Bearer token required on cron endpoints; cron routes reject all calls when unset",
    )
