"""
Test suite for CommunityCRUD.

Tests slug lookup, member counter maintenance and opening queries.

System role: Verification of community persistence operations
"""

from datetime import timedelta

import pytest

from community_backend.boundary.db.CRUD.community_crud import community_crud
from community_backend.boundary.db.models import CommunityStatus


class TestMembersCount:
    """Test suite for increment/decrement of members_count."""

    @pytest.mark.asyncio
    async def test_increment_returns_new_value(self, test_async_db, make_community) -> None:
        community = await make_community(members_count=4)

        assert await community_crud.increment_members_count(test_async_db, community.id) == 5

    @pytest.mark.asyncio
    async def test_decrement_returns_new_value(self, test_async_db, make_community) -> None:
        community = await make_community(members_count=1)

        assert await community_crud.decrement_members_count(test_async_db, community.id) == 0

    @pytest.mark.asyncio
    async def test_decrement_never_goes_below_zero(self, test_async_db, make_community) -> None:
        # Arrange
        community = await make_community(members_count=0)

        # Act
        result = await community_crud.decrement_members_count(test_async_db, community.id)
        await test_async_db.refresh(community)

        # Assert
        assert result is None
        assert community.members_count == 0

    @pytest.mark.asyncio
    async def test_missing_community_returns_none(self, test_async_db) -> None:
        import uuid

        assert await community_crud.increment_members_count(test_async_db, uuid.uuid4()) is None
        assert await community_crud.decrement_members_count(test_async_db, uuid.uuid4()) is None


class TestLookups:
    """Test suite for slug and opening queries."""

    @pytest.mark.asyncio
    async def test_get_by_slug(self, test_async_db, make_community) -> None:
        community = await make_community(slug="chess-club")

        found = await community_crud.get_by_slug(test_async_db, "chess-club")

        assert found is not None and found.id == community.id
        assert await community_crud.get_by_slug(test_async_db, "missing") is None

    @pytest.mark.asyncio
    async def test_get_ready_to_open(self, test_async_db, make_community, now) -> None:
        # Arrange
        due = await make_community(
            slug="due", status=CommunityStatus.PRE_REGISTRATION, opening_date=now - timedelta(hours=1)
        )
        await make_community(
            slug="later", status=CommunityStatus.PRE_REGISTRATION, opening_date=now + timedelta(days=1)
        )
        await make_community(slug="open", opening_date=now - timedelta(days=1))

        # Act
        ready = await community_crud.get_ready_to_open(test_async_db, now)

        # Assert
        assert [c.id for c in ready] == [due.id]

    @pytest.mark.asyncio
    async def test_set_status(self, test_async_db, make_community) -> None:
        community = await make_community(status=CommunityStatus.PRE_REGISTRATION)

        updated = await community_crud.set_status(test_async_db, community.id, CommunityStatus.ACTIVE)

        assert updated.status == CommunityStatus.ACTIVE
