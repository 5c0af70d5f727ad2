"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    get_fee_history_service,
    get_fee_schedule,
    get_membership_service,
    get_pre_registration_service,
    get_promotion_service,
    get_promotional_window,
    get_settings_dependency,
    get_stripe_client,
    get_webhook_service,
    verify_cron_secret,
)

__all__ = [
    "get_fee_history_service",
    "get_fee_schedule",
    "get_membership_service",
    "get_pre_registration_service",
    "get_promotion_service",
    "get_promotional_window",
    "get_settings_dependency",
    "get_stripe_client",
    "get_webhook_service",
    "verify_cron_secret",
]
