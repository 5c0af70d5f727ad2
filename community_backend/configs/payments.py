"""
Stripe Connect configuration settings.

Credentials and client behaviour for the platform Stripe account that
acts on behalf of each community's connected account.

Dependencies: pydantic_settings
System role: Payment provider configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from community_backend.configs.base import BaseSettings


class StripeSettings(BaseSettings):
    """Stripe platform account configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STRIPE_",
        case_sensitive=False,
        extra="ignore",
    )

    secret_key: str = Field(default="", description="Platform secret API key")
    webhook_secret: str = Field(default="", description="Signing secret for webhook events")
    api_version: str | None = Field(
        default=None,
        description="Pinned Stripe API version (account default when unset)",
    )
    max_network_retries: int = Field(
        default=2,
        description="Retries performed by the Stripe SDK on network failures",
    )
    read_retry_attempts: int = Field(
        default=3,
        description="Attempts for idempotent reads on connection or rate-limit errors",
    )
