"""
Pre-registration API endpoints.

Routes:
- POST /communities/{slug}/pre-registration - Save a card ahead of opening
- POST /communities/{slug}/pre-registration/confirm - Schedule the opening charge
- POST /communities/{slug}/pre-registration/cancel - Withdraw the pre-registration

Dependencies: community_backend.application.services, community_backend.models
System role: Pre-registration HTTP API
"""

import logging

from fastapi import APIRouter, Depends

from community_backend.application.services import PreRegistrationService
from community_backend.api.deps.dependencies import get_pre_registration_service
from community_backend.models.common import COMMON_ERROR_RESPONSES
from community_backend.models.membership import MembershipRequest
from community_backend.models.pre_registration import (
    CancelPreRegistrationResponse,
    ConfirmPreRegistrationRequest,
    ConfirmPreRegistrationResponse,
    StartPreRegistrationRequest,
    StartPreRegistrationResponse,
)

from .membership.membership_error_handling import handle_membership_errors

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/communities/{slug}/pre-registration",
    tags=["pre-registration"],
    responses=COMMON_ERROR_RESPONSES,
)


@router.post("", response_model=StartPreRegistrationResponse, status_code=201)
@handle_membership_errors
async def start_pre_registration(
    slug: str,
    request: StartPreRegistrationRequest,
    service: PreRegistrationService = Depends(get_pre_registration_service),
) -> StartPreRegistrationResponse:
    """
    Start a pre-registration.

    Returns the SetupIntent client secret used to save the card.
    """
    logger.info("Starting pre-registration", extra={"slug": slug, "user_id": request.user_id})

    result = await service.start(
        slug,
        request.user_id,
        request.email,
        idempotency_key=request.idempotency_key,
    )
    return StartPreRegistrationResponse(**result)


@router.post("/confirm", response_model=ConfirmPreRegistrationResponse)
@handle_membership_errors
async def confirm_pre_registration(
    slug: str,
    request: ConfirmPreRegistrationRequest,
    service: PreRegistrationService = Depends(get_pre_registration_service),
) -> ConfirmPreRegistrationResponse:
    """Confirm a pre-registration after the SetupIntent succeeded."""
    logger.info(
        "Confirming pre-registration",
        extra={"slug": slug, "user_id": request.user_id, "setup_intent_id": request.setup_intent_id},
    )

    result = await service.confirm(slug, request.user_id, request.setup_intent_id)
    return ConfirmPreRegistrationResponse(**result)


@router.post("/cancel", response_model=CancelPreRegistrationResponse)
@handle_membership_errors
async def cancel_pre_registration(
    slug: str,
    request: MembershipRequest,
    service: PreRegistrationService = Depends(get_pre_registration_service),
) -> CancelPreRegistrationResponse:
    logger.info("Cancelling pre-registration", extra={"slug": slug, "user_id": request.user_id})

    result = await service.cancel(slug, request.user_id)
    return CancelPreRegistrationResponse(**result)
