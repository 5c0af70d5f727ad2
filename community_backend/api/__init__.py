"""
API routes module.

FastAPI routers for all HTTP endpoints.
"""

from fastapi import APIRouter

from .routers import (
    fees_router,
    health_router,
    jobs_router,
    membership_router,
    pre_registration_router,
    webhooks_router,
)

api_router = APIRouter()

# Include all routers
api_router.include_router(health_router)
api_router.include_router(membership_router)
api_router.include_router(pre_registration_router)
api_router.include_router(fees_router)
api_router.include_router(jobs_router)
api_router.include_router(webhooks_router)

__all__ = ["api_router"]
