"""Service orchestrators."""

from .fee_history_service import FeeHistoryService
from .membership_service import MembershipService
from .pre_registration_service import PreRegistrationService
from .promotion_service import PromotionService
from .webhook_service import StripeWebhookService

__all__ = [
    "FeeHistoryService",
    "MembershipService",
    "PreRegistrationService",
    "PromotionService",
    "StripeWebhookService",
]
