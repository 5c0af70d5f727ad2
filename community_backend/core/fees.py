"""
Platform fee rules.

Tiered platform fee by community size and the promotional window that
waives the fee for members joining a newly created community.

Dependencies: None (pure domain layer)
System role: Fee calculation for Stripe Connect subscriptions
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

DEFAULT_PROMOTIONAL_WINDOW = timedelta(days=30)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class FeeSchedule:
    """
    Platform fee tiers keyed by active member count.

    Communities with up to ``small_max_members`` members pay ``small_fee``,
    up to ``medium_max_members`` pay ``medium_fee``, larger ones ``large_fee``.
    """

    small_max_members: int = 50
    medium_max_members: int = 100
    small_fee: float = 8.0
    medium_fee: float = 6.0
    large_fee: float = 4.0

    @classmethod
    def from_settings(cls, settings) -> "FeeSchedule":
        """Build a schedule from ``MembershipSettings``."""
        return cls(
            small_max_members=settings.small_community_max_members,
            medium_max_members=settings.medium_community_max_members,
            small_fee=settings.small_community_fee_percentage,
            medium_fee=settings.medium_community_fee_percentage,
            large_fee=settings.large_community_fee_percentage,
        )


@dataclass(frozen=True)
class FeeDecision:
    """Fee applied to a member at join time."""

    fee_percentage: float
    is_promotional: bool
    promotional_period_end: datetime | None


def calculate_platform_fee_percentage(
    member_count: int,
    schedule: FeeSchedule | None = None,
) -> float:
    """
    Platform fee percentage for a community of the given size.

    Args:
        member_count: Current member count of the community
        schedule: Fee tiers (defaults to the standard schedule)

    Returns:
        float: Fee percentage passed to Stripe as application_fee_percent

    Raises:
        ValueError: If member_count is negative
    """
    if member_count < 0:
        raise ValueError(f"member_count must be >= 0, got {member_count}")
    schedule = schedule or FeeSchedule()
    if member_count <= schedule.small_max_members:
        return schedule.small_fee
    if member_count <= schedule.medium_max_members:
        return schedule.medium_fee
    return schedule.large_fee


def promotional_period_end(
    community_created_at: datetime,
    window: timedelta = DEFAULT_PROMOTIONAL_WINDOW,
) -> datetime:
    """End of the promotional window, anchored on community creation."""
    return ensure_utc(community_created_at) + window


def is_promotional(
    community_created_at: datetime,
    now: datetime,
    window: timedelta = DEFAULT_PROMOTIONAL_WINDOW,
) -> bool:
    """True while the community is younger than the promotional window."""
    return ensure_utc(now) - ensure_utc(community_created_at) < window


def resolve_join_fee(
    community_created_at: datetime,
    member_count: int,
    now: datetime,
    schedule: FeeSchedule | None = None,
    window: timedelta = DEFAULT_PROMOTIONAL_WINDOW,
) -> FeeDecision:
    """
    Decide the platform fee for a member joining now.

    Promotional members pay nothing until the window closes; the expiry
    job later moves them onto the tier fee.

    Args:
        community_created_at: Community creation timestamp
        member_count: Current member count of the community
        now: Reference time
        schedule: Fee tiers
        window: Promotional window length

    Returns:
        FeeDecision: Fee, promotional flag and promotional end date
    """
    if is_promotional(community_created_at, now, window):
        return FeeDecision(
            fee_percentage=0.0,
            is_promotional=True,
            promotional_period_end=promotional_period_end(community_created_at, window),
        )
    return FeeDecision(
        fee_percentage=calculate_platform_fee_percentage(member_count, schedule),
        is_promotional=False,
        promotional_period_end=None,
    )
