"""
Test suite for MembershipService.

Runs the join / leave / reactivate / check flows against the in-memory
database with a mocked Stripe client, including the compensating restore
when a free member's leave cannot decrement the member counter. Paid joins
are also driven through the real Stripe facade with SDK resource objects.

System role: Verification of membership use case orchestration
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest
import stripe
from sqlalchemy.exc import SQLAlchemyError

from community_backend.application.services.membership_service import MembershipService
from community_backend.boundary.db.CRUD.community_crud import community_crud
from community_backend.boundary.db.CRUD.member_crud import member_crud
from community_backend.boundary.db.models import MemberRole, MemberStatus, SubscriptionStatus
from community_backend.boundary.payments import StripeConnectClient
from community_backend.core.exceptions import (
    AlreadyMemberError,
    CommunityNotFoundError,
    MemberNotFoundError,
    MembershipOperationError,
    MembershipStateError,
    PaymentProviderError,
)


@pytest.fixture
def service(test_async_db, mock_stripe_client) -> MembershipService:
    """Provide MembershipService wired to the test database."""
    return MembershipService(db=test_async_db, stripe_client=mock_stripe_client)


class TestJoin:
    """Test suite for free joins."""

    @pytest.mark.asyncio
    async def test_join_free_community(self, service, test_async_db, make_community) -> None:
        # Arrange
        community = await make_community(slug="free", membership_enabled=False, members_count=2)

        # Act
        result = await service.join("free", "u1")
        await test_async_db.refresh(community)

        # Assert
        assert result["status"] == "active"
        assert result["platform_fee_percentage"] == 0.0
        assert community.members_count == 3

    @pytest.mark.asyncio
    async def test_join_twice_is_rejected(self, service, make_community) -> None:
        await make_community(slug="free", membership_enabled=False)
        await service.join("free", "u1")

        with pytest.raises(AlreadyMemberError):
            await service.join("free", "u1")

    @pytest.mark.asyncio
    async def test_join_paid_community_requires_payment(self, service, make_community) -> None:
        await make_community(slug="paid")

        with pytest.raises(MembershipStateError):
            await service.join("paid", "u1")

    @pytest.mark.asyncio
    async def test_unknown_community(self, service) -> None:
        with pytest.raises(CommunityNotFoundError):
            await service.join("missing", "u1")


class TestJoinPaid:
    """Test suite for paid joins."""

    @pytest.mark.asyncio
    async def test_join_paid_after_promotional_window(
        self, service, test_async_db, make_community, mock_stripe_client, now
    ) -> None:
        # Arrange
        community = await make_community(slug="paid", members_count=60)

        # Act
        result = await service.join_paid("paid", "u1", "u1@example.com", idempotency_key="attempt-123", now=now)

        # Assert
        assert result["client_secret"] == "pi_secret_test"
        assert result["platform_fee_percentage"] == 6.0
        assert result["is_promotional_member"] is False
        args, kwargs = mock_stripe_client.create_subscription.call_args
        assert args[:4] == ("acct_test", "cus_test", "price_test", 6.0)
        assert kwargs["idempotency_key"] == "subscription-attempt-123"

        member = await member_crud.get_membership(test_async_db, community.id, "u1")
        assert member.status == MemberStatus.PENDING
        assert member.subscription_status == SubscriptionStatus.INCOMPLETE
        assert member.stripe_subscription_id == "sub_test"

    @pytest.mark.asyncio
    async def test_join_paid_inside_promotional_window(self, service, make_community, now) -> None:
        # Arrange
        await make_community(slug="new", created_at=now - timedelta(days=2))

        # Act
        result = await service.join_paid("new", "u1", "u1@example.com", now=now)

        # Assert
        assert result["platform_fee_percentage"] == 0.0
        assert result["is_promotional_member"] is True
        assert result["promotional_period_end"] is not None

    @pytest.mark.asyncio
    async def test_join_paid_requires_connected_account(self, service, make_community) -> None:
        await make_community(slug="paid", stripe_account_id=None)

        with pytest.raises(MembershipStateError):
            await service.join_paid("paid", "u1", "u1@example.com")

    @pytest.mark.asyncio
    async def test_stripe_failure_stores_nothing(
        self, service, test_async_db, make_community, mock_stripe_client
    ) -> None:
        # Arrange
        community = await make_community(slug="paid")
        mock_stripe_client.create_subscription.side_effect = PaymentProviderError("card declined")

        # Act
        with pytest.raises(PaymentProviderError):
            await service.join_paid("paid", "u1", "u1@example.com")

        # Assert
        assert await member_crud.get_membership(test_async_db, community.id, "u1") is None

    @pytest.mark.asyncio
    async def test_failed_insert_cancels_subscription(
        self, service, test_async_db, make_community, mock_stripe_client
    ) -> None:
        # Arrange
        community = await make_community(slug="paid")
        community_id = community.id

        # Act
        with patch.object(member_crud, "create", AsyncMock(side_effect=SQLAlchemyError("db down"))):
            with pytest.raises(MembershipOperationError):
                await service.join_paid("paid", "u1", "u1@example.com")

        # Assert
        mock_stripe_client.cancel_subscription.assert_awaited_once_with("acct_test", "sub_test")
        assert await member_crud.get_membership(test_async_db, community_id, "u1") is None

    @pytest.mark.asyncio
    async def test_join_paid_with_sdk_resource_responses(self, test_async_db, make_community, now) -> None:
        # Arrange
        community = await make_community(slug="paid", members_count=60)
        customer = stripe.Customer.construct_from({"id": "cus_sdk", "object": "customer"}, "sk_test")
        subscription = stripe.Subscription.construct_from(
            {
                "id": "sub_sdk",
                "object": "subscription",
                "status": "incomplete",
                "items": {
                    "object": "list",
                    "data": [{"id": "si_sdk", "object": "subscription_item", "current_period_end": 1775001600}],
                },
                "latest_invoice": {
                    "id": "in_sdk",
                    "object": "invoice",
                    "confirmation_secret": {"client_secret": "cs_secret_sdk", "type": "payment_intent"},
                },
            },
            "sk_test",
        )
        service = MembershipService(db=test_async_db, stripe_client=StripeConnectClient(api_key="sk_test"))

        # Act
        with patch.object(stripe.Customer, "create", MagicMock(return_value=customer)), patch.object(
            stripe.Subscription, "create", MagicMock(return_value=subscription)
        ) as create_subscription:
            result = await service.join_paid("paid", "u1", "u1@example.com", now=now)

        # Assert
        assert result["client_secret"] == "cs_secret_sdk"
        assert result["customer_id"] == "cus_sdk"
        assert result["subscription_id"] == "sub_sdk"
        assert create_subscription.call_args.kwargs["expand"] == ["latest_invoice.confirmation_secret"]
        assert create_subscription.call_args.kwargs["stripe_account"] == "acct_test"

        member = await member_crud.get_membership(test_async_db, community.id, "u1")
        assert member.status == MemberStatus.PENDING
        assert member.stripe_customer_id == "cus_sdk"
        assert member.current_period_end.replace(tzinfo=None) == datetime(2026, 4, 1)


class TestLeave:
    """Test suite for leaving a community."""

    @pytest.mark.asyncio
    async def test_paid_member_cancels_at_period_end(
        self, service, test_async_db, make_community, make_member, mock_stripe_client
    ) -> None:
        # Arrange
        community = await make_community(slug="paid", members_count=1)
        await make_member(
            community,
            user_id="u1",
            stripe_subscription_id="sub_test",
            subscription_status=SubscriptionStatus.ACTIVE,
        )

        # Act
        result = await service.leave("paid", "u1")

        # Assert
        mock_stripe_client.set_cancel_at_period_end.assert_awaited_once_with(
            "acct_test", "sub_test", cancel=True
        )
        assert result["mode"] == "canceling"
        assert result["access_until"] is not None
        member = await member_crud.get_membership(test_async_db, community.id, "u1")
        await test_async_db.refresh(member)
        assert member.status == MemberStatus.ACTIVE
        assert member.subscription_status == SubscriptionStatus.CANCELING

    @pytest.mark.asyncio
    async def test_free_member_is_removed(
        self, service, test_async_db, make_community, make_member, mock_stripe_client
    ) -> None:
        # Arrange
        community = await make_community(slug="free", membership_enabled=False, members_count=2)
        await make_member(community, user_id="u1", platform_fee_percentage=0.0)

        # Act
        result = await service.leave("free", "u1")
        await test_async_db.refresh(community)

        # Assert
        assert result == {"mode": "removed", "access_until": None}
        assert community.members_count == 1
        assert await member_crud.get_membership(test_async_db, community.id, "u1") is None
        mock_stripe_client.set_cancel_at_period_end.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_decrement_restores_membership(
        self, service, test_async_db, make_community, make_member
    ) -> None:
        # Arrange
        community = await make_community(slug="free", membership_enabled=False, members_count=0)
        community_id = community.id
        member = await make_member(community, user_id="u1", platform_fee_percentage=0.0)
        member_id = member.id

        # Act
        with pytest.raises(MembershipOperationError):
            await service.leave("free", "u1")

        # Assert
        restored = await member_crud.get_membership(test_async_db, community_id, "u1")
        assert restored is not None
        assert restored.id == member_id
        assert restored.status == MemberStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_decrement_database_error_restores_membership(
        self, service, test_async_db, make_community, make_member
    ) -> None:
        # Arrange
        community = await make_community(slug="free", membership_enabled=False, members_count=2)
        community_id = community.id
        member = await make_member(community, user_id="u1", platform_fee_percentage=0.0)
        member_id = member.id
        failing_decrement = AsyncMock(side_effect=SQLAlchemyError("db down"))

        # Act
        with patch.object(community_crud, "decrement_members_count", failing_decrement):
            with pytest.raises(MembershipOperationError):
                await service.leave("free", "u1")

        # Assert
        failing_decrement.assert_awaited_once()
        restored = await member_crud.get_membership(test_async_db, community_id, "u1")
        assert restored is not None
        assert restored.id == member_id
        await test_async_db.refresh(community)
        assert community.members_count == 2

    @pytest.mark.asyncio
    async def test_pending_paid_member_cancels_incomplete_subscription(
        self, service, test_async_db, make_community, mock_stripe_client, now
    ) -> None:
        # Arrange
        community = await make_community(slug="paid", members_count=1)
        community_id = community.id
        await service.join_paid("paid", "u1", "u1@example.com", now=now)

        # Act
        result = await service.leave("paid", "u1")

        # Assert
        assert result == {"mode": "removed", "access_until": None}
        mock_stripe_client.cancel_subscription.assert_awaited_once_with("acct_test", "sub_test")
        mock_stripe_client.set_cancel_at_period_end.assert_not_called()
        assert await member_crud.get_membership(test_async_db, community_id, "u1") is None
        await test_async_db.refresh(community)
        assert community.members_count == 1

    @pytest.mark.asyncio
    async def test_pending_member_kept_when_subscription_cancel_fails(
        self, service, test_async_db, make_community, make_member, mock_stripe_client
    ) -> None:
        # Arrange
        community = await make_community(slug="paid")
        community_id = community.id
        await make_member(
            community,
            user_id="u1",
            status=MemberStatus.PENDING,
            stripe_subscription_id="sub_test",
            subscription_status=SubscriptionStatus.INCOMPLETE,
        )
        mock_stripe_client.cancel_subscription.side_effect = PaymentProviderError("stripe down")

        # Act
        with pytest.raises(PaymentProviderError):
            await service.leave("paid", "u1")

        # Assert
        member = await member_crud.get_membership(test_async_db, community_id, "u1")
        assert member is not None
        assert member.status == MemberStatus.PENDING

    @pytest.mark.asyncio
    async def test_failed_restore_still_reports_leave_failure(
        self, service, make_community, make_member
    ) -> None:
        # Arrange
        community = await make_community(slug="free", membership_enabled=False, members_count=0)
        await make_member(community, user_id="u1", platform_fee_percentage=0.0)

        # Act / Assert
        with patch.object(member_crud, "create", AsyncMock(side_effect=RuntimeError("db down"))):
            with pytest.raises(MembershipOperationError):
                await service.leave("free", "u1")

    @pytest.mark.asyncio
    async def test_owner_cannot_leave(self, service, make_community, make_member) -> None:
        community = await make_community(slug="club", created_by="owner-1")
        await make_member(community, user_id="owner-1", role=MemberRole.OWNER)

        with pytest.raises(MembershipStateError):
            await service.leave("club", "owner-1")

    @pytest.mark.asyncio
    async def test_already_canceling_is_rejected(
        self, service, make_community, make_member, mock_stripe_client
    ) -> None:
        community = await make_community(slug="paid")
        await make_member(
            community,
            user_id="u1",
            stripe_subscription_id="sub_test",
            subscription_status=SubscriptionStatus.CANCELING,
        )

        with pytest.raises(MembershipStateError):
            await service.leave("paid", "u1")
        mock_stripe_client.set_cancel_at_period_end.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_member(self, service, make_community) -> None:
        await make_community(slug="paid")

        with pytest.raises(MemberNotFoundError):
            await service.leave("paid", "nobody")


class TestReactivate:
    """Test suite for reactivation."""

    @pytest.mark.asyncio
    async def test_reactivate_canceling_member(
        self, service, make_community, make_member, mock_stripe_client
    ) -> None:
        # Arrange
        community = await make_community(slug="paid")
        await make_member(
            community,
            user_id="u1",
            stripe_subscription_id="sub_test",
            subscription_status=SubscriptionStatus.CANCELING,
        )

        # Act
        result = await service.reactivate("paid", "u1")

        # Assert
        mock_stripe_client.set_cancel_at_period_end.assert_awaited_once_with(
            "acct_test", "sub_test", cancel=False
        )
        assert result["status"] == "active"
        assert result["subscription_status"] == "active"

    @pytest.mark.asyncio
    async def test_reactivate_without_subscription(self, service, make_community, make_member) -> None:
        community = await make_community(slug="paid")
        await make_member(community, user_id="u1")

        with pytest.raises(MembershipStateError, match="No subscription found to reactivate"):
            await service.reactivate("paid", "u1")

    @pytest.mark.asyncio
    async def test_reactivate_ended_subscription(self, service, make_community, make_member) -> None:
        community = await make_community(slug="paid")
        await make_member(
            community,
            user_id="u1",
            status=MemberStatus.INACTIVE,
            stripe_subscription_id="sub_test",
            subscription_status=SubscriptionStatus.CANCELED,
        )

        with pytest.raises(MembershipStateError):
            await service.reactivate("paid", "u1")

    @pytest.mark.asyncio
    async def test_pending_member_cannot_reactivate_without_paying(
        self, service, test_async_db, make_community, mock_stripe_client, now
    ) -> None:
        # Arrange
        community = await make_community(slug="paid")
        community_id = community.id
        await service.join_paid("paid", "u1", "u1@example.com", now=now)

        # Act
        with pytest.raises(MembershipStateError, match="not scheduled for cancellation"):
            await service.reactivate("paid", "u1")

        # Assert
        mock_stripe_client.set_cancel_at_period_end.assert_not_called()
        member = await member_crud.get_membership(test_async_db, community_id, "u1")
        await test_async_db.refresh(member)
        assert member.status == MemberStatus.PENDING
        assert member.subscription_status == SubscriptionStatus.INCOMPLETE

    @pytest.mark.asyncio
    async def test_active_member_reactivation_is_rejected(
        self, service, make_community, make_member, mock_stripe_client
    ) -> None:
        community = await make_community(slug="paid")
        await make_member(
            community,
            user_id="u1",
            stripe_subscription_id="sub_test",
            subscription_status=SubscriptionStatus.ACTIVE,
        )

        with pytest.raises(MembershipStateError, match="not scheduled for cancellation"):
            await service.reactivate("paid", "u1")
        mock_stripe_client.set_cancel_at_period_end.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_update_restores_scheduled_cancellation(
        self, service, test_async_db, make_community, make_member, mock_stripe_client
    ) -> None:
        # Arrange
        community = await make_community(slug="paid")
        community_id = community.id
        await make_member(
            community,
            user_id="u1",
            stripe_subscription_id="sub_test",
            subscription_status=SubscriptionStatus.CANCELING,
        )

        # Act
        with patch.object(member_crud, "update_by_id", AsyncMock(side_effect=SQLAlchemyError("db down"))):
            with pytest.raises(MembershipOperationError):
                await service.reactivate("paid", "u1")

        # Assert
        assert mock_stripe_client.set_cancel_at_period_end.await_args_list == [
            call("acct_test", "sub_test", cancel=False),
            call("acct_test", "sub_test", cancel=True),
        ]
        member = await member_crud.get_membership(test_async_db, community_id, "u1")
        await test_async_db.refresh(member)
        assert member.subscription_status == SubscriptionStatus.CANCELING


class TestCheckSubscription:
    """Test suite for access checks."""

    @pytest.mark.asyncio
    async def test_non_member(self, service, make_community, now) -> None:
        await make_community(slug="paid")

        result = await service.check_subscription("paid", "nobody", now=now)

        assert result["has_subscription"] is False
        assert result["is_member"] is False
        assert result["message"] == "Not a member of this community"

    @pytest.mark.asyncio
    async def test_canceling_member_in_grace_period(self, service, make_community, make_member, now) -> None:
        # Arrange
        community = await make_community(slug="paid")
        await make_member(
            community,
            user_id="u1",
            status=MemberStatus.INACTIVE,
            subscription_status=SubscriptionStatus.CANCELING,
            current_period_end=now + timedelta(days=3),
        )

        # Act
        result = await service.check_subscription("paid", "u1", now=now)

        # Assert
        assert result["has_subscription"] is True
        assert result["subscription_status"] == "canceling"

    @pytest.mark.asyncio
    async def test_unknown_community(self, service) -> None:
        with pytest.raises(CommunityNotFoundError):
            await service.check_subscription("missing", "u1")
