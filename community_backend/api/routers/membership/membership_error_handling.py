"""
Membership error handling utilities.

Provides a decorator for consistent error handling across membership,
pre-registration and fee endpoints: domain exceptions raised by the
services are logged with their context and mapped to HTTP status codes.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status

from community_backend.core.exceptions import (
    CommunityNotFoundError,
    CommunityPlatformException,
    MemberNotFoundError,
    MembershipStateError,
    PaymentProviderError,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def handle_membership_errors(func: F) -> F:
    """
    Decorator to transform membership exceptions into HTTPExceptions.

    Mapping:
    - CommunityNotFoundError, MemberNotFoundError -> 404
    - MembershipStateError (incl. AlreadyMemberError), WebhookVerificationError -> 400
    - PaymentProviderError -> 502
    - anything else -> 500
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except HTTPException:
            raise

        except (CommunityNotFoundError, MemberNotFoundError) as e:
            logger.warning("Resource not found", extra={"error": e.message, **e.details})
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

        except (MembershipStateError, WebhookVerificationError) as e:
            logger.warning("Invalid membership request", extra={"error": e.message, **e.details})
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

        except PaymentProviderError as e:
            logger.error(
                "Payment provider failure",
                extra={"error": e.message, **e.details},
            )
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

        except CommunityPlatformException as e:
            logger.error("Membership operation failed", extra={"error": e.message, **e.details})
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=e.message,
            )

        except Exception as e:
            logger.exception(
                "Unexpected failure in membership operation",
                extra={"error": str(e)},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal error occurred during membership operation",
            )

    return wrapper  # type: ignore
