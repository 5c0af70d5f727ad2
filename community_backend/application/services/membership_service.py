"""
Membership service orchestrator.

Coordinates the membership lifecycle of a community: free and paid joins,
leaving (cancel at period end for paid members, removal for free ones),
reactivation and subscription checks.

Dependencies: community_backend.boundary.db.CRUD, community_backend.boundary.payments,
    community_backend.core
System role: Membership use case orchestration
"""

import enum
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.boundary.db.CRUD.community_crud import community_crud
from community_backend.boundary.db.CRUD.member_crud import member_crud
from community_backend.boundary.db.models.community_model import CommunityModel, CommunityStatus
from community_backend.boundary.db.models.member_model import (
    CommunityMemberModel,
    MemberRole,
    MemberStatus,
    SubscriptionStatus,
)
from community_backend.boundary.payments.stripe_client import (
    StripeConnectClient,
    subscription_client_secret,
    subscription_period_end,
)
from community_backend.core.access import NOT_A_MEMBER, evaluate_access
from community_backend.core.exceptions import (
    AlreadyMemberError,
    CommunityNotFoundError,
    MemberCountError,
    MemberNotFoundError,
    MembershipOperationError,
    MembershipStateError,
)
from community_backend.core.fees import DEFAULT_PROMOTIONAL_WINDOW, FeeSchedule, resolve_join_fee

logger = logging.getLogger(__name__)


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def member_to_dict(member: CommunityMemberModel) -> dict[str, Any]:
    """Serialize a membership row for API responses."""
    return {
        "id": member.id,
        "community_id": member.community_id,
        "user_id": member.user_id,
        "role": _enum_value(member.role),
        "status": _enum_value(member.status),
        "subscription_status": _enum_value(member.subscription_status),
        "current_period_end": member.current_period_end,
        "platform_fee_percentage": member.platform_fee_percentage,
        "is_promotional_member": member.is_promotional_member,
        "promotional_period_end": member.promotional_period_end,
        "joined_at": member.created_at,
    }


class MembershipService:
    """Membership lifecycle orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        stripe_client: StripeConnectClient,
        fee_schedule: FeeSchedule | None = None,
        promotional_window: timedelta = DEFAULT_PROMOTIONAL_WINDOW,
    ) -> None:
        """
        Initialize membership service.

        Args:
            db: Async SQLAlchemy session
            stripe_client: Stripe Connect facade
            fee_schedule: Platform fee tiers
            promotional_window: Fee waiver window after community creation
        """
        self.db = db
        self.stripe = stripe_client
        self.fee_schedule = fee_schedule or FeeSchedule()
        self.promotional_window = promotional_window

    async def _get_community(self, slug: str) -> CommunityModel:
        community = await community_crud.get_by_slug(self.db, slug)
        if community is None:
            raise CommunityNotFoundError(slug)
        return community

    async def _get_member(self, community: CommunityModel, user_id: str) -> CommunityMemberModel:
        member = await member_crud.get_membership(self.db, community.id, user_id)
        if member is None:
            raise MemberNotFoundError(user_id, str(community.id))
        return member

    async def join(self, slug: str, user_id: str) -> dict:
        """
        Join a free community.

        Args:
            slug: Community slug
            user_id: Joining user

        Returns:
            dict: Membership data

        Raises:
            CommunityNotFoundError: Unknown slug
            MembershipStateError: Paid or not yet open community
            AlreadyMemberError: User already has a membership row
        """
        community = await self._get_community(slug)
        community_id = community.id

        if community.membership_enabled:
            raise MembershipStateError(
                "Community requires a paid membership",
                {"community_id": str(community_id)},
            )
        if community.status != CommunityStatus.ACTIVE:
            raise MembershipStateError(
                "Community is not open yet",
                {"community_id": str(community_id), "status": community.status},
            )
        if await member_crud.get_membership(self.db, community_id, user_id):
            raise AlreadyMemberError(user_id, str(community_id))

        try:
            member = await member_crud.create(
                self.db,
                community_id=community_id,
                user_id=user_id,
                role=MemberRole.MEMBER,
                status=MemberStatus.ACTIVE,
                platform_fee_percentage=0.0,
            )
            if await community_crud.increment_members_count(self.db, community_id) is None:
                raise MemberCountError(str(community_id), "increment")
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyMemberError(user_id, str(community_id)) from e
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to join community",
                extra={"error": str(e), "community_id": str(community_id), "user_id": user_id},
            )
            raise

        logger.info(
            "Member joined community",
            extra={"community_id": str(community_id), "user_id": user_id},
        )
        return member_to_dict(member)

    async def join_paid(
        self,
        slug: str,
        user_id: str,
        email: str,
        idempotency_key: str | None = None,
        now: datetime | None = None,
    ) -> dict:
        """
        Start a paid membership on the community's connected account.

        The member is stored as pending with an incomplete subscription;
        the subscription webhook activates it once the first invoice is paid.

        Args:
            slug: Community slug
            user_id: Joining user
            email: Billing email for the Stripe customer
            idempotency_key: Client checkout attempt key (random when omitted)
            now: Reference time for the promotional window

        Returns:
            dict: client_secret, stripe_account_id, subscription_id, customer_id,
                platform_fee_percentage, is_promotional_member, promotional_period_end

        Raises:
            CommunityNotFoundError: Unknown slug
            MembershipStateError: Community not open or not configured for payments
            AlreadyMemberError: User already has a live membership
            PaymentProviderError: Stripe call failed
            MembershipOperationError: Membership could not be stored (subscription canceled)
        """
        now = now or datetime.now(timezone.utc)
        community = await self._get_community(slug)
        community_id = community.id
        account_id = community.stripe_account_id
        price_id = community.stripe_price_id

        if not community.membership_enabled:
            raise MembershipStateError(
                "Community does not offer paid membership",
                {"community_id": str(community_id)},
            )
        if community.status != CommunityStatus.ACTIVE:
            raise MembershipStateError(
                "Community is not open yet",
                {"community_id": str(community_id), "status": community.status},
            )
        if not community.accepts_payments:
            raise MembershipStateError(
                "Community membership price not configured",
                {"community_id": str(community_id)},
            )

        existing = await member_crud.get_membership(self.db, community_id, user_id)
        if existing is not None and existing.status != MemberStatus.INACTIVE:
            raise AlreadyMemberError(user_id, str(community_id))
        existing_id = existing.id if existing is not None else None

        fee = resolve_join_fee(
            community.created_at,
            community.members_count,
            now,
            self.fee_schedule,
            self.promotional_window,
        )
        key = idempotency_key or uuid.uuid4().hex
        metadata = {"user_id": user_id, "community_id": str(community_id)}

        customer = await self.stripe.create_customer(
            account_id, email, metadata, idempotency_key=f"customer-{key}"
        )
        subscription = await self.stripe.create_subscription(
            account_id,
            customer["id"],
            price_id,
            fee.fee_percentage,
            {
                **metadata,
                "platform_fee_percentage": str(fee.fee_percentage),
                "is_promotional": str(fee.is_promotional).lower(),
            },
            idempotency_key=f"subscription-{key}",
        )
        subscription_id = subscription["id"]

        try:
            client_secret = subscription_client_secret(subscription)
            fields = {
                "status": MemberStatus.PENDING,
                "subscription_status": SubscriptionStatus.INCOMPLETE,
                "stripe_customer_id": customer["id"],
                "stripe_subscription_id": subscription_id,
                "current_period_end": subscription_period_end(subscription),
                "platform_fee_percentage": fee.fee_percentage,
                "is_promotional_member": fee.is_promotional,
                "promotional_period_end": fee.promotional_period_end,
            }
            if existing_id is not None:
                await member_crud.update_by_id(self.db, existing_id, **fields)
            else:
                await member_crud.create(
                    self.db,
                    community_id=community_id,
                    user_id=user_id,
                    role=MemberRole.MEMBER,
                    **fields,
                )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to store paid membership; canceling subscription",
                extra={"error": str(e), "community_id": str(community_id), "user_id": user_id},
            )
            await self._cancel_orphan_subscription(account_id, subscription_id)
            raise MembershipOperationError(
                "Failed to create membership",
                {"community_id": str(community_id), "user_id": user_id},
            ) from e

        logger.info(
            "Paid membership started",
            extra={
                "community_id": str(community_id),
                "user_id": user_id,
                "subscription_id": subscription_id,
                "platform_fee_percentage": fee.fee_percentage,
                "is_promotional": fee.is_promotional,
            },
        )
        return {
            "client_secret": client_secret,
            "stripe_account_id": account_id,
            "subscription_id": subscription_id,
            "customer_id": customer["id"],
            "platform_fee_percentage": fee.fee_percentage,
            "is_promotional_member": fee.is_promotional,
            "promotional_period_end": fee.promotional_period_end,
        }

    async def _cancel_orphan_subscription(self, account_id: str, subscription_id: str) -> None:
        try:
            await self.stripe.cancel_subscription(account_id, subscription_id)
        except Exception:
            logger.exception(
                "Failed to cancel orphaned subscription",
                extra={"stripe_account": account_id, "subscription_id": subscription_id},
            )

    async def leave(self, slug: str, user_id: str) -> dict:
        """
        Leave a community.

        Paid members are canceled at period end and keep access until then.
        Pending paid members have their incomplete subscription canceled and
        are removed. Free members are removed and the member count is decremented; if the
        decrement fails the membership row is restored.

        Args:
            slug: Community slug
            user_id: Leaving user

        Returns:
            dict: mode ("canceling" or "removed") and access_until

        Raises:
            CommunityNotFoundError: Unknown slug
            MemberNotFoundError: User is not a member
            MembershipStateError: Owner leaving, or cancellation already scheduled
            PaymentProviderError: Stripe call failed
            MembershipOperationError: Flow failed after partial work
        """
        community = await self._get_community(slug)
        member = await self._get_member(community, user_id)

        if member.role == MemberRole.OWNER or community.created_by == user_id:
            raise MembershipStateError(
                "Community owner cannot leave the community",
                {"community_id": str(community.id), "user_id": user_id},
            )
        if member.subscription_status == SubscriptionStatus.CANCELING:
            raise MembershipStateError(
                "Membership is already scheduled to end",
                {
                    "community_id": str(community.id),
                    "user_id": user_id,
                    "current_period_end": str(member.current_period_end),
                },
            )

        has_stripe_subscription = (
            member.has_subscription
            and community.stripe_account_id is not None
            and member.subscription_status != SubscriptionStatus.CANCELED
        )
        if has_stripe_subscription and member.status == MemberStatus.ACTIVE:
            return await self._cancel_at_period_end(community, member)
        if has_stripe_subscription and member.status == MemberStatus.PENDING:
            await self.stripe.cancel_subscription(
                community.stripe_account_id, member.stripe_subscription_id
            )
            logger.info(
                "Incomplete subscription canceled",
                extra={
                    "community_id": str(community.id),
                    "user_id": user_id,
                    "subscription_id": member.stripe_subscription_id,
                },
            )
        return await self._remove_member(community, member)

    async def _cancel_at_period_end(
        self,
        community: CommunityModel,
        member: CommunityMemberModel,
    ) -> dict:
        account_id = community.stripe_account_id
        subscription_id = member.stripe_subscription_id
        member_id = member.id
        log_context = {
            "community_id": str(community.id),
            "user_id": member.user_id,
            "subscription_id": subscription_id,
        }

        known_period_end = member.current_period_end

        subscription = await self.stripe.set_cancel_at_period_end(
            account_id, subscription_id, cancel=True
        )

        try:
            period_end = subscription_period_end(subscription) or known_period_end
            await member_crud.update_by_id(
                self.db,
                member_id,
                subscription_status=SubscriptionStatus.CANCELING,
                current_period_end=period_end,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("Failed to record cancellation; reverting", extra={**log_context, "error": str(e)})
            try:
                await self.stripe.set_cancel_at_period_end(account_id, subscription_id, cancel=False)
            except Exception:
                logger.exception("Failed to revert subscription cancellation", extra=log_context)
            raise MembershipOperationError("Failed to leave community", log_context) from e

        logger.info(
            "Subscription set to cancel at period end",
            extra={**log_context, "current_period_end": str(period_end)},
        )
        return {"mode": "canceling", "access_until": period_end}

    async def _remove_member(
        self,
        community: CommunityModel,
        member: CommunityMemberModel,
    ) -> dict:
        community_id = community.id
        counted = member.status == MemberStatus.ACTIVE
        snapshot = member_crud.snapshot(member)
        log_context = {"community_id": str(community_id), "user_id": member.user_id}

        try:
            await self.db.delete(member)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("Failed to delete membership", extra={**log_context, "error": str(e)})
            raise

        if counted:
            try:
                if await community_crud.decrement_members_count(self.db, community_id) is None:
                    raise MemberCountError(str(community_id), "decrement")
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    "Member count decrement failed; restoring membership",
                    extra={**log_context, "error": str(e)},
                )
                await self._restore_membership(snapshot)
                raise MembershipOperationError("Failed to leave community", log_context) from e

        logger.info("Member left community", extra=log_context)
        return {"mode": "removed", "access_until": None}

    async def _restore_membership(self, snapshot: dict[str, Any]) -> None:
        """Re-insert a deleted membership row; failures are logged only."""
        try:
            await member_crud.create(self.db, **snapshot)
            await self.db.commit()
            logger.warning(
                "Membership restored after failed leave",
                extra={"member_id": str(snapshot["id"]), "user_id": snapshot["user_id"]},
            )
        except Exception:
            await self.db.rollback()
            logger.exception(
                "Compensating insert failed; membership row lost",
                extra={
                    "member_id": str(snapshot["id"]),
                    "community_id": str(snapshot["community_id"]),
                    "user_id": snapshot["user_id"],
                },
            )

    async def reactivate(self, slug: str, user_id: str) -> dict:
        """
        Withdraw a scheduled cancellation.

        Args:
            slug: Community slug
            user_id: Member user id

        Returns:
            dict: Updated membership data

        Raises:
            CommunityNotFoundError: Unknown slug
            MemberNotFoundError: User is not a member
            MembershipStateError: No subscription, subscription already ended, or
                no cancellation scheduled
            PaymentProviderError: Stripe call failed
            MembershipOperationError: Reactivation could not be stored (Stripe reverted)
        """
        community = await self._get_community(slug)
        member = await self._get_member(community, user_id)
        account_id = community.stripe_account_id
        member_id = member.id

        if not (member.has_subscription and account_id):
            raise MembershipStateError(
                "No subscription found to reactivate",
                {"community_id": str(community.id), "user_id": user_id},
            )
        if member.subscription_status == SubscriptionStatus.CANCELED:
            raise MembershipStateError(
                "Subscription has already ended",
                {"community_id": str(community.id), "user_id": user_id},
            )
        if member.subscription_status != SubscriptionStatus.CANCELING:
            raise MembershipStateError(
                "Membership is not scheduled for cancellation",
                {
                    "community_id": str(community.id),
                    "user_id": user_id,
                    "subscription_status": _enum_value(member.subscription_status),
                },
            )

        subscription_id = member.stripe_subscription_id
        known_period_end = member.current_period_end
        log_context = {
            "community_id": str(community.id),
            "user_id": user_id,
            "subscription_id": subscription_id,
        }

        subscription = await self.stripe.set_cancel_at_period_end(
            account_id, subscription_id, cancel=False
        )

        try:
            updated = await member_crud.update_by_id(
                self.db,
                member_id,
                status=MemberStatus.ACTIVE,
                subscription_status=SubscriptionStatus.ACTIVE,
                current_period_end=subscription_period_end(subscription) or known_period_end,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("Failed to record reactivation; reverting", extra={**log_context, "error": str(e)})
            try:
                await self.stripe.set_cancel_at_period_end(account_id, subscription_id, cancel=True)
            except Exception:
                logger.exception("Failed to restore scheduled cancellation", extra=log_context)
            raise MembershipOperationError("Failed to reactivate membership", log_context) from e

        logger.info(
            "Membership reactivated",
            extra={"community_id": str(community.id), "user_id": user_id},
        )
        return member_to_dict(updated)

    async def check_subscription(
        self,
        slug: str,
        user_id: str,
        now: datetime | None = None,
    ) -> dict:
        """
        Report whether the user currently has access to the community.

        Args:
            slug: Community slug
            user_id: User id
            now: Reference time for the grace period

        Returns:
            dict: has_subscription, is_member, status, subscription_status,
                current_period_end, message

        Raises:
            CommunityNotFoundError: Unknown slug
        """
        now = now or datetime.now(timezone.utc)
        community = await self._get_community(slug)
        member = await member_crud.get_membership(self.db, community.id, user_id)

        if member is None:
            decision = NOT_A_MEMBER
        else:
            decision = evaluate_access(
                member.status,
                member.subscription_status,
                member.current_period_end,
                now,
            )

        return {
            "has_subscription": decision.has_access,
            "is_member": decision.is_member,
            "status": _enum_value(decision.status),
            "subscription_status": _enum_value(decision.subscription_status),
            "current_period_end": decision.current_period_end,
            "message": decision.message,
        }
