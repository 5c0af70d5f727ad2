"""
Community ORM model.

Represents a tenant community whose paid memberships are collected on
its own Stripe Connect account.

Dependencies: sqlalchemy, community_backend.boundary.db.base
System role: Community persistence for membership and fee rules
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from community_backend.boundary.db.base import Base, UUIDMixin, TimestampMixin, str_enum


class CommunityStatus(str, enum.Enum):
    """
    Community lifecycle.

    PRE_REGISTRATION: Collecting payment methods ahead of the opening date
    ACTIVE: Open; members join and pay directly
    """

    PRE_REGISTRATION = "pre_registration"
    ACTIVE = "active"


class CommunityModel(Base, UUIDMixin, TimestampMixin):
    """
    Community ORM model.

    created_at anchors the promotional window: members joining within it
    pay no platform fee until it closes. members_count is maintained by
    community_crud increment/decrement and never goes below zero.

    Attributes:
        slug: URL key used by every membership route (unique)
        name: Display name
        created_by: Owner user id
        membership_enabled: True for paid communities
        membership_price: Display price (the charge comes from stripe_price_id)
        currency: ISO currency code
        stripe_account_id: Stripe Connect account receiving payments
        stripe_price_id: Recurring price on the connected account
        status: CommunityStatus
        opening_date: When a pre-registration community opens
        members_count: Active member counter

    Relationships:
        members: One-to-many with CommunityMemberModel (cascade delete)
    """

    __tablename__ = "communities"
    __table_args__ = (
        CheckConstraint("members_count >= 0", name="ck_communities_members_count_non_negative"),
    )

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    membership_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    membership_price: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="eur")

    stripe_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    stripe_price_id: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)

    status: Mapped[CommunityStatus] = mapped_column(
        str_enum(CommunityStatus),
        nullable=False,
        default=CommunityStatus.ACTIVE,
    )
    opening_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )
    members_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    members = relationship(
        "CommunityMemberModel",
        back_populates="community",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def accepts_payments(self) -> bool:
        """True when the community can run Stripe subscriptions."""
        return bool(self.stripe_account_id and self.stripe_price_id)
