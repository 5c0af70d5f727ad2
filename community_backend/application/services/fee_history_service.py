"""
Fee history service.

Read-only view over the fee audit trail and the current fee distribution
of a community's active members.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.boundary.db.CRUD.community_crud import community_crud
from community_backend.boundary.db.CRUD.fee_change_crud import fee_change_crud
from community_backend.boundary.db.CRUD.member_crud import member_crud
from community_backend.core.exceptions import CommunityNotFoundError

logger = logging.getLogger(__name__)


class FeeHistoryService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_fee_history(self, slug: str, limit: int | None = None) -> dict:
        """
        Fee changes (newest first) and active member count per fee.

        Raises:
            CommunityNotFoundError: Unknown slug
        """
        community = await community_crud.get_by_slug(self.db, slug)
        if community is None:
            raise CommunityNotFoundError(slug)

        changes = await fee_change_crud.get_by_community(self.db, community.id, limit=limit)
        stats = await member_crud.get_fee_statistics(self.db, community.id)

        logger.debug(
            "Fee history loaded",
            extra={"community_id": str(community.id), "changes": len(changes)},
        )
        return {
            "community_id": community.id,
            "members_count": community.members_count,
            "fee_history": [
                {
                    "id": change.id,
                    "member_id": change.member_id,
                    "previous_fee_percentage": change.previous_fee_percentage,
                    "new_fee_percentage": change.new_fee_percentage,
                    "reason": change.reason,
                    "changed_at": change.changed_at,
                }
                for change in changes
            ],
            "current_stats": [
                {"fee_percentage": fee, "member_count": count} for fee, count in stats
            ],
        }
