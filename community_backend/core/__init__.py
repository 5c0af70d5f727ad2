"""
Core business logic module.

Contains domain business logic, exception hierarchy, and core components.
All business rules (platform fee tiers, promotional window, access checks)
reside here.
"""

from community_backend.core.exceptions import (
    CommunityPlatformException,
    CommunityNotFoundError,
    MemberNotFoundError,
    MembershipStateError,
    AlreadyMemberError,
    MemberCountError,
    MembershipOperationError,
    PaymentProviderError,
    WebhookVerificationError,
)

# Business logic modules
from community_backend.core.access import AccessDecision, evaluate_access, has_access
from community_backend.core.fees import (
    FeeDecision,
    FeeSchedule,
    calculate_platform_fee_percentage,
    resolve_join_fee,
)

__all__ = [
    # Exceptions
    "CommunityPlatformException",
    "CommunityNotFoundError",
    "MemberNotFoundError",
    "MembershipStateError",
    "AlreadyMemberError",
    "MemberCountError",
    "MembershipOperationError",
    "PaymentProviderError",
    "WebhookVerificationError",
    # Business logic
    "AccessDecision",
    "evaluate_access",
    "has_access",
    "FeeDecision",
    "FeeSchedule",
    "calculate_platform_fee_percentage",
    "resolve_join_fee",
]
