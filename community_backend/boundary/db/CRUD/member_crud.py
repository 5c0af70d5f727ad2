"""
Community member CRUD operations.

Provides membership lookups used by the join / leave / reactivate flows,
the promotional expiry job, pre-registration processing and webhooks.

Dependencies: sqlalchemy, community_backend.boundary.db.models
System role: Membership persistence operations
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from community_backend.boundary.db.models.member_model import (
    CommunityMemberModel,
    MemberStatus,
)
from community_backend.boundary.db.CRUD.base_crud import BaseCRUD


class MemberCRUD(BaseCRUD[CommunityMemberModel]):
    """CRUD operations for CommunityMemberModel."""

    def __init__(self) -> None:
        super().__init__(CommunityMemberModel)

    async def get_membership(
        self,
        session: AsyncSession,
        community_id: UUID,
        user_id: str,
    ) -> CommunityMemberModel | None:
        """
        Retrieve the membership row of a user in a community.

        Args:
            session: Async database session
            community_id: Community UUID
            user_id: User id

        Returns:
            CommunityMemberModel if found, None otherwise
        """
        stmt = select(CommunityMemberModel).where(
            CommunityMemberModel.community_id == community_id,
            CommunityMemberModel.user_id == user_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_subscription_id(
        self,
        session: AsyncSession,
        subscription_id: str,
    ) -> CommunityMemberModel | None:
        """Retrieve the member owning a Stripe subscription."""
        stmt = select(CommunityMemberModel).where(
            CommunityMemberModel.stripe_subscription_id == subscription_id
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_invoice_id(
        self,
        session: AsyncSession,
        invoice_id: str,
    ) -> CommunityMemberModel | None:
        """Retrieve the member whose pre-registration charge is this invoice."""
        stmt = select(CommunityMemberModel).where(
            CommunityMemberModel.stripe_invoice_id == invoice_id
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_expired_promotional(
        self,
        session: AsyncSession,
        now: datetime,
    ) -> Sequence[CommunityMemberModel]:
        """
        Active promotional members whose promotional period has ended.

        The parent community is eagerly loaded for its member count and
        Stripe account.

        Args:
            session: Async database session
            now: Reference time

        Returns:
            Sequence of CommunityMemberModels with community loaded
        """
        stmt = (
            select(CommunityMemberModel)
            .where(
                CommunityMemberModel.is_promotional_member.is_(True),
                CommunityMemberModel.promotional_period_end.is_not(None),
                CommunityMemberModel.promotional_period_end < now,
                CommunityMemberModel.status == MemberStatus.ACTIVE,
            )
            .options(selectinload(CommunityMemberModel.community))
            .order_by(CommunityMemberModel.promotional_period_end)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_status(
        self,
        session: AsyncSession,
        community_id: UUID,
        status: MemberStatus,
    ) -> Sequence[CommunityMemberModel]:
        """Members of a community in the given status."""
        stmt = select(CommunityMemberModel).where(
            CommunityMemberModel.community_id == community_id,
            CommunityMemberModel.status == status,
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_fee_statistics(
        self,
        session: AsyncSession,
        community_id: UUID,
    ) -> list[tuple[float, int]]:
        """
        Active member count grouped by platform fee percentage.

        Returns:
            List of (platform_fee_percentage, count), highest fee first
        """
        stmt = (
            select(
                CommunityMemberModel.platform_fee_percentage,
                func.count(CommunityMemberModel.id),
            )
            .where(
                CommunityMemberModel.community_id == community_id,
                CommunityMemberModel.status == MemberStatus.ACTIVE,
            )
            .group_by(CommunityMemberModel.platform_fee_percentage)
            .order_by(CommunityMemberModel.platform_fee_percentage.desc())
        )
        result = await session.execute(stmt)
        return [(float(fee), int(count)) for fee, count in result.all()]


member_crud = MemberCRUD()
