"""
Fee change CRUD operations.

Dependencies: sqlalchemy, community_backend.boundary.db.models
System role: Fee history persistence operations
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.boundary.db.models.fee_change_model import FeeChangeModel
from community_backend.boundary.db.CRUD.base_crud import BaseCRUD


class FeeChangeCRUD(BaseCRUD[FeeChangeModel]):
    """CRUD operations for FeeChangeModel."""

    def __init__(self) -> None:
        super().__init__(FeeChangeModel)

    async def get_by_community(
        self,
        session: AsyncSession,
        community_id: UUID,
        limit: int | None = None,
    ) -> Sequence[FeeChangeModel]:
        """
        Fee changes of a community, newest first.

        Args:
            session: Async database session
            community_id: Community UUID
            limit: Maximum number of rows
        """
        stmt = (
            select(FeeChangeModel)
            .where(FeeChangeModel.community_id == community_id)
            .order_by(FeeChangeModel.changed_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()


fee_change_crud = FeeChangeCRUD()
