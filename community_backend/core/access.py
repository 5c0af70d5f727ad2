"""
Membership access evaluation.

A member has access while active, or while a canceled subscription is
still inside its paid period.

Dependencies: community_backend.core.fees
System role: Grace-period access rule shared by routes and services
"""

from dataclasses import dataclass
from datetime import datetime

from community_backend.core.fees import ensure_utc

ACTIVE = "active"
CANCELING = "canceling"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a subscription check."""

    has_access: bool
    is_member: bool
    status: str | None = None
    subscription_status: str | None = None
    current_period_end: datetime | None = None

    @property
    def message(self) -> str:
        if not self.is_member and self.status is None:
            return "Not a member of this community"
        return "Member is active" if self.has_access else "Member is not active"


def in_grace_period(
    subscription_status: str | None,
    current_period_end: datetime | None,
    now: datetime,
) -> bool:
    """True while a canceling subscription has paid time left."""
    if subscription_status != CANCELING or current_period_end is None:
        return False
    return ensure_utc(current_period_end) > ensure_utc(now)


def has_access(
    status: str | None,
    subscription_status: str | None,
    current_period_end: datetime | None,
    now: datetime,
) -> bool:
    """Active members and canceling members inside their period have access."""
    return status == ACTIVE or in_grace_period(subscription_status, current_period_end, now)


def evaluate_access(
    status: str | None,
    subscription_status: str | None,
    current_period_end: datetime | None,
    now: datetime,
) -> AccessDecision:
    """Build the access decision for an existing membership row."""
    allowed = has_access(status, subscription_status, current_period_end, now)
    return AccessDecision(
        has_access=allowed,
        is_member=allowed,
        status=status,
        subscription_status=subscription_status,
        current_period_end=current_period_end,
    )


NOT_A_MEMBER = AccessDecision(has_access=False, is_member=False)
