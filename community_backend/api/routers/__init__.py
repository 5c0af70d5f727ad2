"""API routers."""

from .fees import router as fees_router
from .health import router as health_router
from .jobs import router as jobs_router
from .membership import router as membership_router
from .pre_registration import router as pre_registration_router
from .webhooks import router as webhooks_router

__all__ = [
    "fees_router",
    "health_router",
    "jobs_router",
    "membership_router",
    "pre_registration_router",
    "webhooks_router",
]
