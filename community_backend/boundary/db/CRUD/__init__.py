"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from community_backend.boundary.db.CRUD import community_crud, member_crud

    community = await community_crud.get_by_slug(db, slug)
    member = await member_crud.get_membership(db, community.id, user_id)
"""

from community_backend.boundary.db.CRUD.base_crud import BaseCRUD
from community_backend.boundary.db.CRUD.community_crud import CommunityCRUD, community_crud
from community_backend.boundary.db.CRUD.member_crud import MemberCRUD, member_crud
from community_backend.boundary.db.CRUD.fee_change_crud import FeeChangeCRUD, fee_change_crud

__all__ = [
    "BaseCRUD",
    "CommunityCRUD",
    "community_crud",
    "MemberCRUD",
    "member_crud",
    "FeeChangeCRUD",
    "fee_change_crud",
]
