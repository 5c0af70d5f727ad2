"""
Membership router package.

Exports the router for community membership endpoints.
"""

from .membership_router import router

__all__ = ["router"]
