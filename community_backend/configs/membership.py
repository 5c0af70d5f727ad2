"""
Membership fee configuration.

Platform fee tiers and the promotional window granted to members
joining a newly created community.

Dependencies: pydantic_settings
System role: Business rule configuration for platform fees
"""

from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from community_backend.configs.base import BaseSettings


class MembershipSettings(BaseSettings):
    """Platform fee schedule and promotional window."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MEMBERSHIP_",
        case_sensitive=False,
        extra="ignore",
    )

    promotional_period_days: int = Field(
        default=30,
        ge=0,
        description="Days after community creation during which new members pay no platform fee",
    )
    small_community_max_members: int = Field(default=50, ge=0)
    medium_community_max_members: int = Field(default=100, ge=0)
    small_community_fee_percentage: float = Field(default=8.0, ge=0, le=100)
    medium_community_fee_percentage: float = Field(default=6.0, ge=0, le=100)
    large_community_fee_percentage: float = Field(default=4.0, ge=0, le=100)
    default_currency: str = Field(default="eur", description="Currency for new communities")

    @model_validator(mode="after")
    def check_tier_bounds(self) -> "MembershipSettings":
        if self.medium_community_max_members < self.small_community_max_members:
            raise ValueError("medium tier bound must not be below the small tier bound")
        return self
