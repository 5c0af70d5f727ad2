"""
Community CRUD operations.

Slug lookup, member counter maintenance and pre-registration queries
for CommunityModel.

Dependencies: sqlalchemy, community_backend.boundary.db.models
System role: Community persistence operations
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.boundary.db.models.community_model import CommunityModel, CommunityStatus
from community_backend.boundary.db.CRUD.base_crud import BaseCRUD


class CommunityCRUD(BaseCRUD[CommunityModel]):
    """
    CRUD operations for CommunityModel.

    The member counter is updated with a single UPDATE ... RETURNING so
    concurrent joins and leaves serialize on the row in the database.
    """

    def __init__(self) -> None:
        super().__init__(CommunityModel)

    async def get_by_slug(self, session: AsyncSession, slug: str) -> CommunityModel | None:
        """
        Retrieve community by URL slug.

        Args:
            session: Async database session
            slug: Community slug

        Returns:
            CommunityModel if found, None otherwise
        """
        stmt = select(CommunityModel).where(CommunityModel.slug == slug)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment_members_count(self, session: AsyncSession, id: UUID) -> int | None:
        """
        Add one to the member counter.

        Returns:
            New counter value, None if the community does not exist
        """
        stmt = (
            update(CommunityModel)
            .where(CommunityModel.id == id)
            .values(members_count=CommunityModel.members_count + 1)
            .returning(CommunityModel.members_count)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def decrement_members_count(self, session: AsyncSession, id: UUID) -> int | None:
        """
        Subtract one from the member counter without going below zero.

        Returns:
            New counter value, None if the community does not exist or the
            counter is already zero
        """
        stmt = (
            update(CommunityModel)
            .where(CommunityModel.id == id, CommunityModel.members_count > 0)
            .values(members_count=CommunityModel.members_count - 1)
            .returning(CommunityModel.members_count)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_ready_to_open(
        self,
        session: AsyncSession,
        now: datetime,
    ) -> Sequence[CommunityModel]:
        """
        Pre-registration communities whose opening date has been reached.

        Args:
            session: Async database session
            now: Reference time

        Returns:
            Sequence of CommunityModels to open
        """
        stmt = (
            select(CommunityModel)
            .where(
                CommunityModel.status == CommunityStatus.PRE_REGISTRATION,
                CommunityModel.opening_date.is_not(None),
                CommunityModel.opening_date <= now,
            )
            .order_by(CommunityModel.opening_date)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def set_status(
        self,
        session: AsyncSession,
        id: UUID,
        status: CommunityStatus,
    ) -> CommunityModel | None:
        """Move a community to a new lifecycle status."""
        return await self.update_by_id(session, id, status=status)


community_crud = CommunityCRUD()
