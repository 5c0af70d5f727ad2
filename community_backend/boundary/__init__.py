"""
Boundary layer for external system integrations.

Handles all interactions with external systems (PostgreSQL, Stripe Connect).
Provides adapters and clients for infrastructure dependencies.
"""
