"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory database session, community/member factories, Stripe client mock
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
import uuid

import pytest


@pytest.fixture
async def test_async_db():
    """
    Create in-memory SQLite async database for testing.

    Yields:
        AsyncSession: Test database session with cleanup (lazy imported to avoid settings issues)
    """
    from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
    from sqlalchemy.pool import StaticPool
    from community_backend.boundary.db.base import Base
    import community_backend.boundary.db.models  # noqa: F401  registers tables

    # Use SQLite in-memory database for tests
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session factory
    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Create session for test
    async with async_session() as session:
        yield session
        await session.rollback()

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for time-dependent rules."""
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_community(test_async_db, now):
    """
    Factory inserting a community.

    Defaults describe an open paid community created 60 days before ``now``
    (outside the promotional window) with a connected account and price.
    """
    from community_backend.boundary.db.models import CommunityModel, CommunityStatus

    async def _make(**overrides):
        fields = {
            "slug": f"community-{uuid.uuid4().hex[:8]}",
            "name": "Test Community",
            "created_by": "owner-1",
            "membership_enabled": True,
            "membership_price": 10.0,
            "stripe_account_id": "acct_test",
            "stripe_price_id": "price_test",
            "status": CommunityStatus.ACTIVE,
            "members_count": 0,
            "created_at": now - timedelta(days=60),
        }
        fields.update(overrides)
        community = CommunityModel(**fields)
        test_async_db.add(community)
        await test_async_db.commit()
        return community

    return _make


@pytest.fixture
def make_member(test_async_db):
    """Factory inserting an active membership row."""
    from community_backend.boundary.db.models import (
        CommunityMemberModel,
        MemberRole,
        MemberStatus,
    )

    async def _make(community, **overrides):
        fields = {
            "community_id": community.id,
            "user_id": f"user-{uuid.uuid4().hex[:8]}",
            "role": MemberRole.MEMBER,
            "status": MemberStatus.ACTIVE,
            "platform_fee_percentage": 8.0,
        }
        fields.update(overrides)
        member = CommunityMemberModel(**fields)
        test_async_db.add(member)
        await test_async_db.commit()
        return member

    return _make


@pytest.fixture
def mock_stripe_client():
    """
    Create mock StripeConnectClient for testing.

    Returns:
        MagicMock: Spec'd client whose async methods are AsyncMocks
    """
    from community_backend.boundary.payments import StripeConnectClient

    client = MagicMock(spec=StripeConnectClient)
    client.create_customer.return_value = {"id": "cus_test"}
    client.create_subscription.return_value = {
        "id": "sub_test",
        "status": "incomplete",
        "current_period_end": 1775001600,
        "latest_invoice": {"payment_intent": {"client_secret": "pi_secret_test"}},
    }
    client.set_cancel_at_period_end.return_value = {
        "id": "sub_test",
        "cancel_at_period_end": True,
        "current_period_end": 1775001600,
    }
    client.update_subscription.return_value = {"id": "sub_test"}
    client.create_setup_intent.return_value = {"id": "seti_test", "client_secret": "seti_secret_test"}
    client.retrieve_setup_intent.return_value = {
        "id": "seti_test",
        "status": "succeeded",
        "payment_method": "pm_test",
    }
    client.create_invoice.return_value = {"id": "in_test"}
    client.retrieve_invoice.return_value = {"id": "in_test", "status": "draft"}
    return client
