"""
Community membership API endpoints.

Routes:
- POST /communities/{slug}/join - Join a free community
- POST /communities/{slug}/join-paid - Start a paid membership
- POST /communities/{slug}/leave - Leave (cancel at period end for paid members)
- POST /communities/{slug}/reactivate - Withdraw a scheduled cancellation
- GET /communities/{slug}/check-subscription - Access check (query)
- POST /communities/{slug}/check-subscription - Access check (body)

Dependencies: community_backend.application.services, community_backend.models
System role: Membership HTTP API
"""

import logging

from fastapi import APIRouter, Depends, Query

from community_backend.application.services import MembershipService
from community_backend.api.deps.dependencies import get_membership_service
from community_backend.models.common import COMMON_ERROR_RESPONSES
from community_backend.models.membership import (
    JoinPaidRequest,
    JoinPaidResponse,
    LeaveResponse,
    MembershipRequest,
    MembershipResponse,
    SubscriptionCheckResponse,
)

from .membership_error_handling import handle_membership_errors
from .membership_responses import (
    map_join_paid_to_response,
    map_leave_to_response,
    map_membership_to_response,
    map_subscription_check_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/communities/{slug}",
    tags=["membership"],
    responses=COMMON_ERROR_RESPONSES,
)


@router.post("/join", response_model=MembershipResponse, status_code=201)
@handle_membership_errors
async def join_community(
    slug: str,
    request: MembershipRequest,
    membership_service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    """
    Join a free community.

    Raises:
        HTTPException(404): Community not found
        HTTPException(400): Paid community, not open, or already a member
    """
    logger.info("Joining community", extra={"slug": slug, "user_id": request.user_id})

    member = await membership_service.join(slug, request.user_id)
    return map_membership_to_response(member)


@router.post("/join-paid", response_model=JoinPaidResponse, status_code=201)
@handle_membership_errors
async def join_paid_community(
    slug: str,
    request: JoinPaidRequest,
    membership_service: MembershipService = Depends(get_membership_service),
) -> JoinPaidResponse:
    """
    Start a paid membership.

    Returns the client secret the browser uses to confirm the first payment
    on the community's connected account.

    Raises:
        HTTPException(404): Community not found
        HTTPException(400): Community not accepting paid members, or already a member
        HTTPException(502): Stripe failure
    """
    logger.info("Starting paid membership", extra={"slug": slug, "user_id": request.user_id})

    result = await membership_service.join_paid(
        slug,
        request.user_id,
        request.email,
        idempotency_key=request.idempotency_key,
    )

    logger.info(
        "Paid membership created",
        extra={
            "slug": slug,
            "user_id": request.user_id,
            "subscription_id": result["subscription_id"],
            "is_promotional": result["is_promotional_member"],
        },
    )
    return map_join_paid_to_response(result)


@router.post("/leave", response_model=LeaveResponse)
@handle_membership_errors
async def leave_community(
    slug: str,
    request: MembershipRequest,
    membership_service: MembershipService = Depends(get_membership_service),
) -> LeaveResponse:
    """
    Leave a community.

    Paid members keep access until the end of the billing period; free
    members are removed immediately.

    Raises:
        HTTPException(404): Community or member not found
        HTTPException(400): Owner leaving, or cancellation already scheduled
        HTTPException(500): Leave failed and was rolled back
        HTTPException(502): Stripe failure
    """
    logger.info("Leaving community", extra={"slug": slug, "user_id": request.user_id})

    result = await membership_service.leave(slug, request.user_id)

    logger.info(
        "Left community",
        extra={"slug": slug, "user_id": request.user_id, "mode": result["mode"]},
    )
    return map_leave_to_response(result)


@router.post("/reactivate", response_model=MembershipResponse)
@handle_membership_errors
async def reactivate_membership(
    slug: str,
    request: MembershipRequest,
    membership_service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    """
    Reactivate a membership scheduled for cancellation.

    Raises:
        HTTPException(404): Community or member not found
        HTTPException(400): No subscription, or subscription already ended
        HTTPException(502): Stripe failure
    """
    logger.info("Reactivating membership", extra={"slug": slug, "user_id": request.user_id})

    member = await membership_service.reactivate(slug, request.user_id)
    return map_membership_to_response(member)


@router.get("/check-subscription", response_model=SubscriptionCheckResponse)
@handle_membership_errors
async def check_subscription(
    slug: str,
    user_id: str = Query(..., min_length=1),
    membership_service: MembershipService = Depends(get_membership_service),
) -> SubscriptionCheckResponse:
    """Check whether a user currently has access to the community."""
    result = await membership_service.check_subscription(slug, user_id)
    return map_subscription_check_to_response(result)


@router.post("/check-subscription", response_model=SubscriptionCheckResponse)
@handle_membership_errors
async def check_subscription_body(
    slug: str,
    request: MembershipRequest,
    membership_service: MembershipService = Depends(get_membership_service),
) -> SubscriptionCheckResponse:
    """Check access with the user id in the request body."""
    result = await membership_service.check_subscription(slug, request.user_id)
    return map_subscription_check_to_response(result)
