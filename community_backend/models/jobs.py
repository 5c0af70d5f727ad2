"""
Scheduled job report schemas.

Returned by the cron-triggered maintenance endpoints.

Dependencies: pydantic
System role: Cron API contracts
"""

import uuid

from pydantic import BaseModel, Field


class FailedMember(BaseModel):
    member_id: uuid.UUID
    user_id: str
    error: str


class PromotionalUpdateReport(BaseModel):
    """Outcome of a promotional expiry run."""

    message: str
    processed: int
    successful: int
    failed: int
    failed_members: list[FailedMember] = Field(default_factory=list)


class FailedCommunity(BaseModel):
    slug: str
    error: str


class CommunityOpeningReport(BaseModel):
    """Outcome of a community opening run."""

    message: str
    communities_processed: int
    communities_opened: int
    invoices_finalized: int
    members_failed: int
    failed_communities: list[FailedCommunity] = Field(default_factory=list)


class WebhookAck(BaseModel):
    received: bool = True
    event_type: str
    handled: bool
