"""
Fee change ORM model.

Audit trail of platform fee changes applied to members.

Dependencies: sqlalchemy, community_backend.boundary.db.base
System role: Fee history persistence
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from community_backend.boundary.db.base import Base, UUIDMixin, utcnow


class FeeChangeModel(Base, UUIDMixin):
    """
    Fee change audit row.

    Attributes:
        community_id: Community the change belongs to
        member_id: Affected member (None for community-wide changes)
        previous_fee_percentage: Fee before the change
        new_fee_percentage: Fee after the change
        reason: Machine-readable reason (e.g. promotional_period_ended)
        changed_at: When the change was applied (UTC)
    """

    __tablename__ = "fee_changes"

    community_id: Mapped[UUID] = mapped_column(
        ForeignKey("communities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("community_members.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
    )
    previous_fee_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    new_fee_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[str] = mapped_column(String(64), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
