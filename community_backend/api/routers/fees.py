"""
Fee history API endpoint.

Routes:
- GET /communities/{slug}/fee-history - Fee audit trail and current distribution

Dependencies: community_backend.application.services, community_backend.models
System role: Fee reporting HTTP API
"""

from fastapi import APIRouter, Depends, Query

from community_backend.application.services import FeeHistoryService
from community_backend.api.deps.dependencies import get_fee_history_service
from community_backend.models.common import COMMON_ERROR_RESPONSES
from community_backend.models.fees import FeeHistoryResponse

from .membership.membership_error_handling import handle_membership_errors

router = APIRouter(prefix="/communities/{slug}", tags=["fees"], responses=COMMON_ERROR_RESPONSES)


@router.get("/fee-history", response_model=FeeHistoryResponse)
@handle_membership_errors
async def get_fee_history(
    slug: str,
    limit: int | None = Query(None, ge=1, le=1000),
    fee_history_service: FeeHistoryService = Depends(get_fee_history_service),
) -> FeeHistoryResponse:
    """Fee changes (newest first) and active member count per fee."""
    history = await fee_history_service.get_fee_history(slug, limit=limit)
    return FeeHistoryResponse(**history)
