"""Payment provider boundary (Stripe Connect)."""

from community_backend.boundary.payments.stripe_client import (
    StripeConnectClient,
    subscription_client_secret,
    subscription_period_end,
)

__all__ = [
    "StripeConnectClient",
    "subscription_client_secret",
    "subscription_period_end",
]
