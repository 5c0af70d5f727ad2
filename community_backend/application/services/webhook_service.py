"""
Stripe webhook event handling.

Applies subscription and pre-registration invoice events from connected
accounts to membership rows and the community member counter. Payloads
arrive already verified; events that do not concern memberships are
acknowledged without changes.

Dependencies: community_backend.boundary.db.CRUD, community_backend.boundary.payments
System role: Asynchronous membership state sync from Stripe
"""

import logging
from typing import Any, Awaitable, Callable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.boundary.db.CRUD.community_crud import community_crud
from community_backend.boundary.db.CRUD.member_crud import member_crud
from community_backend.boundary.db.models.member_model import (
    CommunityMemberModel,
    MemberStatus,
    SubscriptionStatus,
)
from community_backend.boundary.payments.stripe_client import subscription_period_end

logger = logging.getLogger(__name__)

PAID_SUBSCRIPTION_STATES = ("active", "trialing")
ENDED_SUBSCRIPTION_STATES = ("incomplete_expired", "canceled", "unpaid")


def _is_pre_registration_charge(invoice: Mapping[str, Any]) -> bool:
    metadata = invoice.get("metadata") or {}
    return str(metadata.get("is_pre_registration_charge", "")).lower() == "true"


class StripeWebhookService:
    """Dispatches verified Stripe events to membership updates."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._handlers: dict[str, Callable[[Mapping[str, Any]], Awaitable[bool]]] = {
            "customer.subscription.updated": self._on_subscription_updated,
            "customer.subscription.deleted": self._on_subscription_deleted,
            "invoice.paid": self._on_invoice_paid,
            "invoice.payment_failed": self._on_invoice_payment_failed,
        }

    async def handle_event(self, event: Mapping[str, Any]) -> dict:
        """
        Apply one event.

        Args:
            event: Parsed Stripe event payload

        Returns:
            dict: received, event_type, handled
        """
        event_type = event.get("type", "")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.debug("Ignoring Stripe event", extra={"event_type": event_type})
            return {"received": True, "event_type": event_type, "handled": False}

        data_object = event["data"]["object"]
        try:
            handled = await handler(data_object)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to process Stripe event",
                extra={"event_type": event_type, "event_id": event.get("id"), "error": str(e)},
            )
            raise

        logger.info(
            "Stripe event processed",
            extra={"event_type": event_type, "event_id": event.get("id"), "handled": handled},
        )
        return {"received": True, "event_type": event_type, "handled": handled}

    async def _member_for_subscription(self, subscription_id: str) -> CommunityMemberModel | None:
        member = await member_crud.get_by_subscription_id(self.db, subscription_id)
        if member is None:
            logger.warning(
                "No member for subscription",
                extra={"subscription_id": subscription_id},
            )
        return member

    async def _adjust_count(self, member: CommunityMemberModel, delta: int) -> None:
        if delta > 0:
            result = await community_crud.increment_members_count(self.db, member.community_id)
        else:
            result = await community_crud.decrement_members_count(self.db, member.community_id)
        if result is None:
            logger.warning(
                "Member count not updated",
                extra={"community_id": str(member.community_id), "delta": delta},
            )

    async def _on_subscription_updated(self, subscription: Mapping[str, Any]) -> bool:
        member = await self._member_for_subscription(subscription["id"])
        if member is None:
            return False

        stripe_status = subscription.get("status")
        updates: dict[str, Any] = {}
        period_end = subscription_period_end(subscription)
        if period_end is not None:
            updates["current_period_end"] = period_end

        if stripe_status in PAID_SUBSCRIPTION_STATES:
            if member.status != MemberStatus.ACTIVE:
                updates["status"] = MemberStatus.ACTIVE
                await self._adjust_count(member, +1)
            updates["subscription_status"] = (
                SubscriptionStatus.CANCELING
                if subscription.get("cancel_at_period_end")
                else SubscriptionStatus.ACTIVE
            )
        elif stripe_status in ENDED_SUBSCRIPTION_STATES:
            if member.status == MemberStatus.ACTIVE:
                await self._adjust_count(member, -1)
            updates["status"] = MemberStatus.INACTIVE
            updates["subscription_status"] = SubscriptionStatus.CANCELED

        if updates:
            await member_crud.update_by_id(self.db, member.id, **updates)
        return True

    async def _on_subscription_deleted(self, subscription: Mapping[str, Any]) -> bool:
        member = await self._member_for_subscription(subscription["id"])
        if member is None:
            return False

        if member.status == MemberStatus.ACTIVE:
            await self._adjust_count(member, -1)
        await member_crud.update_by_id(
            self.db,
            member.id,
            status=MemberStatus.INACTIVE,
            subscription_status=SubscriptionStatus.CANCELED,
        )
        return True

    async def _on_invoice_paid(self, invoice: Mapping[str, Any]) -> bool:
        if not _is_pre_registration_charge(invoice):
            return False
        member = await member_crud.get_by_invoice_id(self.db, invoice["id"])
        if member is None or member.status != MemberStatus.PRE_REGISTERED:
            logger.warning("No pre-registered member for invoice", extra={"invoice_id": invoice["id"]})
            return False

        await member_crud.update_by_id(self.db, member.id, status=MemberStatus.ACTIVE)
        await self._adjust_count(member, +1)
        return True

    async def _on_invoice_payment_failed(self, invoice: Mapping[str, Any]) -> bool:
        if not _is_pre_registration_charge(invoice):
            return False
        member = await member_crud.get_by_invoice_id(self.db, invoice["id"])
        if member is None:
            logger.warning("No member for invoice", extra={"invoice_id": invoice["id"]})
            return False

        await member_crud.update_by_id(self.db, member.id, status=MemberStatus.INACTIVE)
        return True
