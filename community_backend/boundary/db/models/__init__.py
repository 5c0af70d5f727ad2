"""
Database models package.

Exports:
  - CommunityModel, CommunityStatus: Community ORM model and lifecycle enum
  - CommunityMemberModel, MemberRole, MemberStatus, SubscriptionStatus: Membership model and enums
  - FeeChangeModel: Fee audit trail

Dependencies: sqlalchemy, community_backend.boundary.db.base
System role: Database model definitions for domain entities
"""

from community_backend.boundary.db.models.community_model import CommunityModel, CommunityStatus
from community_backend.boundary.db.models.member_model import (
    CommunityMemberModel,
    MemberRole,
    MemberStatus,
    SubscriptionStatus,
)
from community_backend.boundary.db.models.fee_change_model import FeeChangeModel

__all__ = [
    "CommunityModel",
    "CommunityStatus",
    "CommunityMemberModel",
    "MemberRole",
    "MemberStatus",
    "SubscriptionStatus",
    "FeeChangeModel",
]
