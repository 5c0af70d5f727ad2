"""
Pre-registration service.

Lets users reserve a membership in a community before its opening date:
a card is saved through a SetupIntent, a draft invoice is scheduled to be
charged at opening, and the opening job finalizes outstanding invoices.

Dependencies: community_backend.boundary.db.CRUD, community_backend.boundary.payments,
    community_backend.core
System role: Pre-registration use case orchestration
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.application.services.membership_service import member_to_dict
from community_backend.boundary.db.CRUD.community_crud import community_crud
from community_backend.boundary.db.CRUD.member_crud import member_crud
from community_backend.boundary.db.models.community_model import CommunityModel, CommunityStatus
from community_backend.boundary.db.models.member_model import MemberRole, MemberStatus
from community_backend.boundary.payments.stripe_client import StripeConnectClient
from community_backend.core.exceptions import (
    AlreadyMemberError,
    CommunityNotFoundError,
    MemberNotFoundError,
    MembershipOperationError,
    MembershipStateError,
    PaymentProviderError,
)
from community_backend.core.fees import (
    DEFAULT_PROMOTIONAL_WINDOW,
    FeeSchedule,
    ensure_utc,
    resolve_join_fee,
)

logger = logging.getLogger(__name__)

PRE_REGISTRATION_STATUSES = (MemberStatus.PENDING_PRE_REGISTRATION, MemberStatus.PRE_REGISTERED)


def _object_id(value: Any) -> str | None:
    """Id of a Stripe reference that may be expanded or a bare id."""
    if value is None or isinstance(value, str):
        return value
    return value["id"]


class PreRegistrationService:
    """Pre-registration lifecycle orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        stripe_client: StripeConnectClient,
        fee_schedule: FeeSchedule | None = None,
        promotional_window: timedelta = DEFAULT_PROMOTIONAL_WINDOW,
    ) -> None:
        self.db = db
        self.stripe = stripe_client
        self.fee_schedule = fee_schedule or FeeSchedule()
        self.promotional_window = promotional_window

    async def _get_community(self, slug: str) -> CommunityModel:
        community = await community_crud.get_by_slug(self.db, slug)
        if community is None:
            raise CommunityNotFoundError(slug)
        return community

    async def start(
        self,
        slug: str,
        user_id: str,
        email: str,
        idempotency_key: str | None = None,
        now: datetime | None = None,
    ) -> dict:
        """
        Begin a pre-registration by saving a card for the opening charge.

        Args:
            slug: Community slug
            user_id: Pre-registering user
            email: Billing email
            idempotency_key: Client attempt key (random when omitted)
            now: Reference time

        Returns:
            dict: client_secret, stripe_account_id, setup_intent_id, customer_id,
                opening_date, platform_fee_percentage, is_promotional_member

        Raises:
            CommunityNotFoundError: Unknown slug
            MembershipStateError: Community not in pre-registration, opening date
                passed or missing, or payments not configured
            AlreadyMemberError: User already has a membership row
            PaymentProviderError: Stripe call failed
            MembershipOperationError: Row could not be stored
        """
        now = now or datetime.now(timezone.utc)
        community = await self._get_community(slug)
        community_id = community.id
        account_id = community.stripe_account_id
        opening_date = community.opening_date

        if community.status != CommunityStatus.PRE_REGISTRATION:
            raise MembershipStateError(
                "Community is not accepting pre-registrations",
                {"community_id": str(community_id), "status": community.status},
            )
        if opening_date is None or ensure_utc(opening_date) <= now:
            raise MembershipStateError(
                "Community opening date has passed or is not set",
                {"community_id": str(community_id)},
            )
        if not community.accepts_payments:
            raise MembershipStateError(
                "Community membership price not configured",
                {"community_id": str(community_id)},
            )
        if await member_crud.get_membership(self.db, community_id, user_id):
            raise AlreadyMemberError(user_id, str(community_id))

        fee = resolve_join_fee(
            community.created_at,
            community.members_count,
            now,
            self.fee_schedule,
            self.promotional_window,
        )
        metadata = {
            "user_id": user_id,
            "community_id": str(community_id),
            "is_pre_registration": "true",
        }
        key = idempotency_key or uuid.uuid4().hex

        customer = await self.stripe.create_customer(
            account_id, email, metadata, idempotency_key=f"pre-registration-customer-{key}"
        )
        setup_intent = await self.stripe.create_setup_intent(account_id, customer["id"], metadata)

        try:
            await member_crud.create(
                self.db,
                community_id=community_id,
                user_id=user_id,
                role=MemberRole.MEMBER,
                status=MemberStatus.PENDING_PRE_REGISTRATION,
                stripe_customer_id=customer["id"],
                platform_fee_percentage=fee.fee_percentage,
                is_promotional_member=fee.is_promotional,
                promotional_period_end=fee.promotional_period_end,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to store pre-registration",
                extra={"error": str(e), "community_id": str(community_id), "user_id": user_id},
            )
            await self._best_effort(
                "delete_customer", self.stripe.delete_customer(account_id, customer["id"])
            )
            raise MembershipOperationError(
                "Failed to start pre-registration",
                {"community_id": str(community_id), "user_id": user_id},
            ) from e

        logger.info(
            "Pre-registration started",
            extra={"community_id": str(community_id), "user_id": user_id},
        )
        return {
            "client_secret": setup_intent["client_secret"],
            "stripe_account_id": account_id,
            "setup_intent_id": setup_intent["id"],
            "customer_id": customer["id"],
            "opening_date": opening_date,
            "platform_fee_percentage": fee.fee_percentage,
            "is_promotional_member": fee.is_promotional,
        }

    async def confirm(
        self,
        slug: str,
        user_id: str,
        setup_intent_id: str,
        now: datetime | None = None,
    ) -> dict:
        """
        Confirm a pre-registration once the card has been saved.

        Creates the opening invoice with the saved payment method and lets
        Stripe finalize it automatically at the opening date.

        Raises:
            CommunityNotFoundError: Unknown slug
            MemberNotFoundError: No pre-registration for the user
            MembershipStateError: Already confirmed or setup not succeeded
            PaymentProviderError: Stripe call failed
            MembershipOperationError: Row could not be updated (invoice voided)
        """
        now = now or datetime.now(timezone.utc)
        community = await self._get_community(slug)
        community_id = community.id
        account_id = community.stripe_account_id
        price_id = community.stripe_price_id
        opening_date = community.opening_date

        member = await member_crud.get_membership(self.db, community_id, user_id)
        if member is None:
            raise MemberNotFoundError(
                user_id, str(community_id), message="Pre-registration not found"
            )
        if member.status != MemberStatus.PENDING_PRE_REGISTRATION:
            raise MembershipStateError(
                "Pre-registration is not awaiting confirmation",
                {"community_id": str(community_id), "user_id": user_id, "status": member.status},
            )
        member_id = member.id
        customer_id = member.stripe_customer_id

        setup_intent = await self.stripe.retrieve_setup_intent(account_id, setup_intent_id)
        if setup_intent["status"] != "succeeded":
            raise MembershipStateError(
                "Payment method setup has not succeeded",
                {"setup_intent_id": setup_intent_id, "status": setup_intent["status"]},
            )
        payment_method_id = _object_id(setup_intent["payment_method"])

        metadata = {
            "user_id": user_id,
            "community_id": str(community_id),
            "is_pre_registration_charge": "true",
        }
        invoice = await self.stripe.create_invoice(account_id, customer_id, payment_method_id, metadata)
        invoice_id = invoice["id"]
        await self.stripe.add_invoice_item(account_id, customer_id, invoice_id, price_id, metadata)
        if opening_date is not None and ensure_utc(opening_date) > now:
            await self.stripe.schedule_invoice_finalization(
                account_id, invoice_id, ensure_utc(opening_date)
            )

        try:
            updated = await member_crud.update_by_id(
                self.db,
                member_id,
                status=MemberStatus.PRE_REGISTERED,
                pre_registration_payment_method_id=payment_method_id,
                stripe_invoice_id=invoice_id,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to confirm pre-registration; voiding invoice",
                extra={"error": str(e), "community_id": str(community_id), "user_id": user_id},
            )
            await self._best_effort("void_invoice", self.stripe.void_invoice(account_id, invoice_id))
            raise MembershipOperationError(
                "Failed to confirm pre-registration",
                {"community_id": str(community_id), "user_id": user_id},
            ) from e

        logger.info(
            "Pre-registration confirmed",
            extra={"community_id": str(community_id), "user_id": user_id, "invoice_id": invoice_id},
        )
        return {**member_to_dict(updated), "invoice_id": invoice_id}

    async def cancel(self, slug: str, user_id: str) -> dict:
        """
        Withdraw a pre-registration.

        Stripe cleanup (void invoice, detach card, delete customer) is best
        effort; the membership row is always removed.
        """
        community = await self._get_community(slug)
        community_id = community.id
        account_id = community.stripe_account_id

        member = await member_crud.get_membership(self.db, community_id, user_id)
        if member is None:
            raise MemberNotFoundError(
                user_id, str(community_id), message="Pre-registration not found"
            )
        if member.status not in PRE_REGISTRATION_STATUSES:
            raise MembershipStateError(
                "Membership is not a pre-registration",
                {"community_id": str(community_id), "user_id": user_id, "status": member.status},
            )
        member_id = member.id

        if account_id:
            if member.stripe_invoice_id:
                await self._best_effort(
                    "void_invoice", self.stripe.void_invoice(account_id, member.stripe_invoice_id)
                )
            if member.pre_registration_payment_method_id:
                await self._best_effort(
                    "detach_payment_method",
                    self.stripe.detach_payment_method(
                        account_id, member.pre_registration_payment_method_id
                    ),
                )
            if member.stripe_customer_id:
                await self._best_effort(
                    "delete_customer",
                    self.stripe.delete_customer(account_id, member.stripe_customer_id),
                )

        try:
            await member_crud.delete_by_id(self.db, member_id)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to delete pre-registration",
                extra={"error": str(e), "community_id": str(community_id), "user_id": user_id},
            )
            raise

        logger.info(
            "Pre-registration cancelled",
            extra={"community_id": str(community_id), "user_id": user_id},
        )
        return {"cancelled": True}

    async def _best_effort(self, operation: str, call) -> None:
        try:
            await call
        except PaymentProviderError as e:
            logger.warning(
                f"Stripe cleanup {operation} failed",
                extra={"operation": operation, "error": str(e)},
            )

    async def process_openings(self, now: datetime | None = None) -> dict:
        """
        Open every pre-registration community whose opening date has come.

        For each pre-registered member the scheduled invoice is finalized if
        Stripe has not done it yet; members without an invoice become
        inactive. Each community is committed on its own.

        Returns:
            dict: message, communities_processed, communities_opened,
                invoices_finalized, members_failed, failed_communities
        """
        now = now or datetime.now(timezone.utc)
        communities = await community_crud.get_ready_to_open(self.db, now)
        targets = [(c.id, c.slug, c.stripe_account_id) for c in communities]

        if not targets:
            return {
                "message": "No communities ready to open",
                "communities_processed": 0,
                "communities_opened": 0,
                "invoices_finalized": 0,
                "members_failed": 0,
                "failed_communities": [],
            }

        opened = 0
        invoices_finalized = 0
        members_failed = 0
        failed_communities: list[dict] = []
        for community_id, slug, account_id in targets:
            try:
                finalized, failed = await self._open_community(community_id, account_id)
                await self.db.commit()
                opened += 1
                invoices_finalized += finalized
                members_failed += failed
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    "Failed to open community",
                    extra={"community_id": str(community_id), "slug": slug, "error": str(e)},
                )
                failed_communities.append({"slug": slug, "error": str(e)})

        logger.info(
            "Community openings processed",
            extra={
                "processed": len(targets),
                "opened": opened,
                "invoices_finalized": invoices_finalized,
                "members_failed": members_failed,
            },
        )
        return {
            "message": "Community openings processed",
            "communities_processed": len(targets),
            "communities_opened": opened,
            "invoices_finalized": invoices_finalized,
            "members_failed": members_failed,
            "failed_communities": failed_communities,
        }

    async def _open_community(self, community_id, account_id: str | None) -> tuple[int, int]:
        members = await member_crud.get_by_status(self.db, community_id, MemberStatus.PRE_REGISTERED)
        pending = [(m.id, m.user_id, m.stripe_invoice_id) for m in members]

        finalized = 0
        failed = 0
        for member_id, user_id, invoice_id in pending:
            if not invoice_id or not account_id:
                logger.warning(
                    "Pre-registered member has no invoice",
                    extra={"community_id": str(community_id), "user_id": user_id},
                )
                await member_crud.update_by_id(self.db, member_id, status=MemberStatus.INACTIVE)
                failed += 1
                continue
            try:
                invoice = await self.stripe.retrieve_invoice(account_id, invoice_id)
                if invoice["status"] == "draft":
                    await self.stripe.finalize_invoice(account_id, invoice_id)
                    finalized += 1
            except PaymentProviderError as e:
                logger.error(
                    "Failed to finalize pre-registration invoice",
                    extra={"community_id": str(community_id), "user_id": user_id, "error": str(e)},
                )
                failed += 1

        await community_crud.set_status(self.db, community_id, CommunityStatus.ACTIVE)
        logger.info(
            "Community opened",
            extra={"community_id": str(community_id), "members": len(pending)},
        )
        return finalized, failed
