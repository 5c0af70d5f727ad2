"""
Community member ORM model.

One row per (community, user). Carries the Stripe identifiers and the
platform fee applied to the member's subscription.

Dependencies: sqlalchemy, community_backend.boundary.db.base
System role: Membership and subscription lifecycle persistence
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from community_backend.boundary.db.base import Base, UUIDMixin, TimestampMixin, str_enum


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class MemberStatus(str, enum.Enum):
    """
    Membership states.

    PENDING: Paid join started, first invoice not yet paid
    PENDING_PRE_REGISTRATION: Payment method collection in progress
    PRE_REGISTERED: Payment method saved, charge scheduled for opening date
    ACTIVE: Full access
    INACTIVE: Subscription ended or charge failed
    """

    PENDING = "pending"
    PENDING_PRE_REGISTRATION = "pending_pre_registration"
    PRE_REGISTERED = "pre_registered"
    ACTIVE = "active"
    INACTIVE = "inactive"


class SubscriptionStatus(str, enum.Enum):
    """
    Stripe subscription state as seen by the platform.

    CANCELING: cancel_at_period_end set; access continues until current_period_end
    """

    INCOMPLETE = "incomplete"
    ACTIVE = "active"
    CANCELING = "canceling"
    CANCELED = "canceled"


class CommunityMemberModel(Base, UUIDMixin, TimestampMixin):
    """
    Community membership ORM model.

    created_at doubles as the join time.

    Attributes:
        community_id: Parent community (cascade delete)
        user_id: Member user id
        role: MemberRole
        status: MemberStatus
        subscription_status: SubscriptionStatus, None for free members
        stripe_customer_id: Customer on the connected account
        stripe_subscription_id: Subscription on the connected account
        stripe_invoice_id: Scheduled pre-registration invoice
        pre_registration_payment_method_id: Card saved during pre-registration
        current_period_end: End of the paid period (grace-period bound)
        platform_fee_percentage: application_fee_percent applied to the subscription
        is_promotional_member: Joined during the promotional window
        promotional_period_end: When the promotional fee waiver ends

    Constraints:
        (community_id, user_id): UNIQUE
    """

    __tablename__ = "community_members"
    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="uq_community_members_community_user"),
    )

    community_id: Mapped[UUID] = mapped_column(
        ForeignKey("communities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[MemberRole] = mapped_column(
        str_enum(MemberRole),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    status: Mapped[MemberStatus] = mapped_column(
        str_enum(MemberStatus),
        nullable=False,
        default=MemberStatus.ACTIVE,
    )
    subscription_status: Mapped[SubscriptionStatus | None] = mapped_column(
        str_enum(SubscriptionStatus),
        nullable=True,
        default=None,
    )

    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    stripe_subscription_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        default=None,
        index=True,
    )
    stripe_invoice_id: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    pre_registration_payment_method_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        default=None,
    )
    current_period_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    platform_fee_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_promotional_member: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    promotional_period_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    community = relationship("CommunityModel", back_populates="members")

    @property
    def has_subscription(self) -> bool:
        return self.stripe_subscription_id is not None
