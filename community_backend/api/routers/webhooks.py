"""
Stripe webhook endpoint.

Routes:
- POST /webhooks/stripe - Verified Stripe Connect events

Dependencies: community_backend.application.services, community_backend.boundary.payments
System role: Payment provider callback HTTP API
"""

import json
import logging

from fastapi import APIRouter, Depends, Header, Request

from community_backend.application.services import StripeWebhookService
from community_backend.api.deps.dependencies import get_stripe_client, get_webhook_service
from community_backend.boundary.payments import StripeConnectClient
from community_backend.models.jobs import WebhookAck

from .membership.membership_error_handling import handle_membership_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe", response_model=WebhookAck)
@handle_membership_errors
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    stripe_client: StripeConnectClient = Depends(get_stripe_client),
    webhook_service: StripeWebhookService = Depends(get_webhook_service),
) -> WebhookAck:
    """
    Receive a Stripe event.

    The raw body is verified against the Stripe-Signature header before
    any processing.

    Raises:
        HTTPException(400): Signature verification failed
        HTTPException(500): Event could not be applied (Stripe retries)
    """
    payload = await request.body()
    stripe_client.construct_event(payload, stripe_signature)
    event = json.loads(payload)

    logger.info(
        "Stripe webhook received",
        extra={"event_type": event.get("type"), "event_id": event.get("id"), "account": event.get("account")},
    )
    result = await webhook_service.handle_event(event)
    return WebhookAck(**result)
