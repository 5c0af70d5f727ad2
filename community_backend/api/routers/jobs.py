"""
Scheduled job API endpoints.

Routes:
- POST /admin/update-promotional-periods - End expired promotional periods
- POST /cron/process-community-openings - Open pre-registration communities

Both routes require ``Authorization: Bearer <CRON_SECRET>``.

Dependencies: community_backend.application.services, community_backend.models
System role: Cron-triggered maintenance HTTP API
"""

import logging

from fastapi import APIRouter, Depends

from community_backend.application.services import PreRegistrationService, PromotionService
from community_backend.api.deps.dependencies import (
    get_pre_registration_service,
    get_promotion_service,
    verify_cron_secret,
)
from community_backend.models.jobs import CommunityOpeningReport, PromotionalUpdateReport

from .membership.membership_error_handling import handle_membership_errors

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"], dependencies=[Depends(verify_cron_secret)])


@router.post("/admin/update-promotional-periods", response_model=PromotionalUpdateReport)
@handle_membership_errors
async def update_promotional_periods(
    promotion_service: PromotionService = Depends(get_promotion_service),
) -> PromotionalUpdateReport:
    """
    Move members whose promotional period ended onto the tier fee.

    Individual member failures are reported in the response body; the
    request itself succeeds.
    """
    logger.info("Promotional period update triggered")

    report = await promotion_service.expire_promotional_periods()
    return PromotionalUpdateReport(**report)


@router.post("/cron/process-community-openings", response_model=CommunityOpeningReport)
@handle_membership_errors
async def process_community_openings(
    service: PreRegistrationService = Depends(get_pre_registration_service),
) -> CommunityOpeningReport:
    """Open communities whose opening date has come and charge pre-registrations."""
    logger.info("Community opening run triggered")

    report = await service.process_openings()
    return CommunityOpeningReport(**report)
