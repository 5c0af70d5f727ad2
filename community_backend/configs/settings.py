"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from community_backend.configs.base import BaseSettings
from community_backend.configs.cron import CronSettings
from community_backend.configs.database import DatabaseSettings
from community_backend.configs.membership import MembershipSettings
from community_backend.configs.payments import StripeSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    stripe: StripeSettings = Field(default_factory=StripeSettings)
    membership: MembershipSettings = Field(default_factory=MembershipSettings)
    cron: CronSettings = Field(default_factory=CronSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from community_backend.configs import get_settings
        settings = get_settings()
    """
    return Settings()
