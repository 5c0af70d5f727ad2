"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: community_backend.configs, community_backend.application, community_backend.boundary
System role: DI container for service injection
"""

from datetime import timedelta
from functools import lru_cache
import hmac

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.configs import Settings, get_settings
from community_backend.boundary.db import get_async_db
from community_backend.boundary.payments import StripeConnectClient
from community_backend.application.services import (
    FeeHistoryService,
    MembershipService,
    PreRegistrationService,
    PromotionService,
    StripeWebhookService,
)
from community_backend.core.fees import FeeSchedule


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


@lru_cache
def get_stripe_client() -> StripeConnectClient:
    """
    Get Stripe Connect client singleton.

    Returns:
        StripeConnectClient: Client configured from StripeSettings
    """
    stripe_settings = get_settings().stripe
    return StripeConnectClient(
        api_key=stripe_settings.secret_key,
        webhook_secret=stripe_settings.webhook_secret,
        api_version=stripe_settings.api_version,
        read_retry_attempts=stripe_settings.read_retry_attempts,
        max_network_retries=stripe_settings.max_network_retries,
    )


def get_fee_schedule(settings: Settings = Depends(get_settings_dependency)) -> FeeSchedule:
    return FeeSchedule.from_settings(settings.membership)


def get_promotional_window(settings: Settings = Depends(get_settings_dependency)) -> timedelta:
    return timedelta(days=settings.membership.promotional_period_days)


def get_membership_service(
    db: AsyncSession = Depends(get_async_db),
    stripe_client: StripeConnectClient = Depends(get_stripe_client),
    fee_schedule: FeeSchedule = Depends(get_fee_schedule),
    promotional_window: timedelta = Depends(get_promotional_window),
) -> MembershipService:
    """
    Get membership service instance.

    Args:
        db: Async database session (injected via Depends)
        stripe_client: Stripe Connect client (injected)
        fee_schedule: Fee tiers from settings (injected)
        promotional_window: Promotional window from settings (injected)

    Returns:
        MembershipService: Membership service instance
    """
    return MembershipService(
        db=db,
        stripe_client=stripe_client,
        fee_schedule=fee_schedule,
        promotional_window=promotional_window,
    )


def get_pre_registration_service(
    db: AsyncSession = Depends(get_async_db),
    stripe_client: StripeConnectClient = Depends(get_stripe_client),
    fee_schedule: FeeSchedule = Depends(get_fee_schedule),
    promotional_window: timedelta = Depends(get_promotional_window),
) -> PreRegistrationService:
    """Get pre-registration service instance."""
    return PreRegistrationService(
        db=db,
        stripe_client=stripe_client,
        fee_schedule=fee_schedule,
        promotional_window=promotional_window,
    )


def get_promotion_service(
    db: AsyncSession = Depends(get_async_db),
    stripe_client: StripeConnectClient = Depends(get_stripe_client),
    fee_schedule: FeeSchedule = Depends(get_fee_schedule),
) -> PromotionService:
    """Get promotional expiry service instance."""
    return PromotionService(db=db, stripe_client=stripe_client, fee_schedule=fee_schedule)


def get_fee_history_service(db: AsyncSession = Depends(get_async_db)) -> FeeHistoryService:
    """Get fee history service instance."""
    return FeeHistoryService(db=db)


def get_webhook_service(db: AsyncSession = Depends(get_async_db)) -> StripeWebhookService:
    """Get Stripe webhook service instance."""
    return StripeWebhookService(db=db)


def verify_cron_secret(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings_dependency),
) -> None:
    """
    Require ``Authorization: Bearer <CRON_SECRET>`` on scheduled job routes.

    Requests are rejected when no secret is configured.

    Raises:
        HTTPException(401): Missing, unconfigured or mismatching secret
    """
    secret = settings.cron.secret
    expected = f"Bearer {secret}" if secret else None
    if not expected or not authorization or not hmac.compare_digest(
        authorization.encode(), expected.encode()
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
