"""
Fee history schemas.

Dependencies: pydantic
System role: Fee history API contracts
"""

import uuid
from datetime import datetime

from pydantic import BaseModel


class FeeChangeResponse(BaseModel):
    """One fee audit entry."""

    id: uuid.UUID
    member_id: uuid.UUID | None
    previous_fee_percentage: float
    new_fee_percentage: float
    reason: str
    changed_at: datetime


class FeeStatistic(BaseModel):
    """Active members paying a given fee."""

    fee_percentage: float
    member_count: int


class FeeHistoryResponse(BaseModel):
    community_id: uuid.UUID
    members_count: int
    fee_history: list[FeeChangeResponse]
    current_stats: list[FeeStatistic]
