"""
Membership response mapping utilities.

Transforms service dictionaries into Pydantic response models.

Dependencies: community_backend.models.membership
System role: Membership response transformation
"""

from typing import Any

from community_backend.models.membership import (
    JoinPaidResponse,
    LeaveResponse,
    MembershipResponse,
    SubscriptionCheckResponse,
)

LEAVE_MESSAGES = {
    "canceling": "Subscription will end at the close of the current billing period",
    "removed": "Left community",
}


def map_membership_to_response(member_data: dict[str, Any]) -> MembershipResponse:
    """
    Transform membership data dictionary into MembershipResponse.

    Args:
        member_data: Dictionary from member_to_dict

    Returns:
        MembershipResponse: Pydantic model for API response
    """
    return MembershipResponse(**member_data)


def map_join_paid_to_response(join_data: dict[str, Any]) -> JoinPaidResponse:
    return JoinPaidResponse(**join_data)


def map_leave_to_response(leave_data: dict[str, Any]) -> LeaveResponse:
    """
    Transform a leave outcome into LeaveResponse.

    Args:
        leave_data: Dictionary with mode and access_until

    Returns:
        LeaveResponse: Response with a user-facing message for the mode
    """
    return LeaveResponse(
        mode=leave_data["mode"],
        access_until=leave_data.get("access_until"),
        message=LEAVE_MESSAGES[leave_data["mode"]],
    )


def map_subscription_check_to_response(check_data: dict[str, Any]) -> SubscriptionCheckResponse:
    return SubscriptionCheckResponse(**check_data)
