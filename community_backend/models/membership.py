"""
Membership domain models and schemas.

Request/response schemas for join, leave, reactivate and subscription checks.

Dependencies: pydantic
System role: Membership API contracts
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class MembershipRequest(BaseModel):
    """Request schema identifying the acting user."""

    user_id: str = Field(..., min_length=1, max_length=255, description="Acting user id")


class JoinPaidRequest(MembershipRequest):
    """Request schema for starting a paid membership."""

    email: str = Field(..., min_length=3, max_length=320, description="Billing email")
    idempotency_key: str | None = Field(
        None,
        min_length=8,
        max_length=200,
        description="Client checkout attempt key; retries with the same key reuse the subscription",
    )


class MembershipResponse(BaseModel):
    """Response schema for membership rows."""

    id: uuid.UUID
    community_id: uuid.UUID
    user_id: str
    role: str
    status: str
    subscription_status: str | None
    current_period_end: datetime | None
    platform_fee_percentage: float
    is_promotional_member: bool
    promotional_period_end: datetime | None
    joined_at: datetime


class JoinPaidResponse(BaseModel):
    """Response schema for a started paid membership."""

    client_secret: str | None = Field(description="Payment intent secret for the first invoice")
    stripe_account_id: str
    subscription_id: str
    customer_id: str
    platform_fee_percentage: float
    is_promotional_member: bool
    promotional_period_end: datetime | None


class LeaveResponse(BaseModel):
    """Response schema for leaving a community."""

    success: bool = True
    mode: Literal["canceling", "removed"]
    access_until: datetime | None = Field(
        None, description="End of access for canceled paid memberships"
    )
    message: str


class SubscriptionCheckResponse(BaseModel):
    """Response schema for subscription checks."""

    has_subscription: bool
    is_member: bool
    status: str | None = None
    subscription_status: str | None = None
    current_period_end: datetime | None = None
    message: str
