"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, TimestampMixin, UUIDMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - CommunityModel, CommunityMemberModel, FeeChangeModel: Core domain entities
  - CommunityStatus, MemberRole, MemberStatus, SubscriptionStatus: Enum types for state tracking
  - community_crud, member_crud, fee_change_crud: CRUD operation singletons

Dependencies: sqlalchemy, community_backend.configs
System role: Database adapter providing persistent storage for communities,
memberships and fee history.
"""

from community_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin
from community_backend.boundary.db.connection import (
    dispose_engine,
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from community_backend.boundary.db.models import (
    CommunityMemberModel,
    CommunityModel,
    CommunityStatus,
    FeeChangeModel,
    MemberRole,
    MemberStatus,
    SubscriptionStatus,
)
from community_backend.boundary.db.CRUD import (
    BaseCRUD,
    CommunityCRUD,
    FeeChangeCRUD,
    MemberCRUD,
    community_crud,
    fee_change_crud,
    member_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "dispose_engine",
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "CommunityModel",
    "CommunityStatus",
    "CommunityMemberModel",
    "MemberRole",
    "MemberStatus",
    "SubscriptionStatus",
    "FeeChangeModel",
    # CRUD classes
    "BaseCRUD",
    "CommunityCRUD",
    "MemberCRUD",
    "FeeChangeCRUD",
    # CRUD singletons
    "community_crud",
    "member_crud",
    "fee_change_crud",
]
