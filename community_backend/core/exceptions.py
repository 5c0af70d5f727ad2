"""
Exception hierarchy for the community platform membership backend.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class CommunityPlatformException(Exception):
    """Base exception for all community platform errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class CommunityNotFoundError(CommunityPlatformException):
    """Raised when no community matches the requested slug."""

    def __init__(self, slug: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["slug"] = slug
        super().__init__("Community not found", details)


class MemberNotFoundError(CommunityPlatformException):
    """Raised when the user has no membership row in the community."""

    def __init__(
        self,
        user_id: str,
        community_id: str | None = None,
        message: str = "Member not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["user_id"] = user_id
        if community_id:
            details["community_id"] = community_id
        super().__init__(message, details)


class MembershipStateError(CommunityPlatformException):
    """Raised when a membership operation is not allowed in the current state."""


class AlreadyMemberError(MembershipStateError):
    """Raised when a user tries to join a community they already belong to."""

    def __init__(self, user_id: str, community_id: str) -> None:
        super().__init__(
            "User is already a member or pre-registered",
            {"user_id": user_id, "community_id": community_id},
        )


class MemberCountError(CommunityPlatformException):
    """Raised when the community member counter cannot be updated."""

    def __init__(self, community_id: str, operation: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details.update({"community_id": community_id, "operation": operation})
        super().__init__(f"Failed to {operation} members count", details)


class MembershipOperationError(CommunityPlatformException):
    """Raised when a membership flow fails after partial work and was compensated."""


class PaymentProviderError(CommunityPlatformException):
    """Raised when a Stripe call fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize payment provider error.

        Args:
            message: Error message
            operation: Stripe operation that failed (e.g. update_subscription)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class WebhookVerificationError(CommunityPlatformException):
    """Raised when a webhook payload fails signature verification."""
