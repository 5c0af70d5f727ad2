"""
Pre-registration schemas.

Dependencies: pydantic
System role: Pre-registration API contracts
"""

from datetime import datetime

from pydantic import BaseModel, Field

from community_backend.models.membership import MembershipRequest, MembershipResponse


class StartPreRegistrationRequest(MembershipRequest):
    email: str = Field(..., min_length=3, max_length=320, description="Billing email")
    idempotency_key: str | None = Field(None, min_length=8, max_length=200)


class ConfirmPreRegistrationRequest(MembershipRequest):
    setup_intent_id: str = Field(..., min_length=1, description="Confirmed Stripe SetupIntent id")


class StartPreRegistrationResponse(BaseModel):
    client_secret: str
    stripe_account_id: str
    setup_intent_id: str
    customer_id: str
    opening_date: datetime
    platform_fee_percentage: float
    is_promotional_member: bool


class ConfirmPreRegistrationResponse(MembershipResponse):
    invoice_id: str


class CancelPreRegistrationResponse(BaseModel):
    cancelled: bool
    message: str = "Pre-registration cancelled"
