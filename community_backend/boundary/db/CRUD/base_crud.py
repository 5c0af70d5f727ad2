"""
Base CRUD operations for SQLAlchemy models.

Provides generic create, update, delete and snapshot operations that can be
inherited and extended by model-specific CRUD classes.

Dependencies: sqlalchemy, uuid
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, inspect, update
from sqlalchemy.ext.asyncio import AsyncSession

from community_backend.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Generic base class for CRUD operations.

    Subclasses pass their model class and add model-specific queries.
    None of these methods commit; the calling service owns the transaction.

    Type Parameters:
        ModelT: SQLAlchemy model class inheriting from Base

    Attributes:
        model: The SQLAlchemy model class to operate on
    """

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    async def create(self, session: AsyncSession, **kwargs) -> ModelT:
        """
        Insert a new row and return it with generated ID and timestamps.

        Args:
            session: Async database session
            **kwargs: Model field values
        """
        instance = self.model(**kwargs)
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        return instance

    async def update_by_id(
        self,
        session: AsyncSession,
        id: UUID,
        **kwargs,
    ) -> ModelT | None:
        """
        Update a record by primary key.

        Returns:
            Updated model instance if found, None otherwise
        """
        stmt = (
            update(self.model)
            .where(self.model.id == id)
            .values(**kwargs)
            .returning(self.model)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_by_id(self, session: AsyncSession, id: UUID) -> bool:
        """Delete a record by primary key; False when nothing matched."""
        stmt = delete(self.model).where(self.model.id == id)
        result = await session.execute(stmt)
        return result.rowcount > 0

    def snapshot(self, instance: ModelT) -> dict[str, Any]:
        """
        Column values of a loaded instance, keyed by attribute name.

        The result can be passed back to create() to re-insert the row
        with the same primary key.
        """
        mapper = inspect(self.model)
        return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}
