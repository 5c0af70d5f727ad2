"""
Common response models.

Error schema shared by every router for OpenAPI documentation.

Dependencies: pydantic
System role: Common API response structures
"""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error response schema (FastAPI HTTPException body)."""

    detail: str = Field(description="Error message")


COMMON_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid membership state"},
    404: {"model": ErrorResponse, "description": "Community or member not found"},
    500: {"model": ErrorResponse, "description": "Internal error"},
    502: {"model": ErrorResponse, "description": "Payment provider error"},
}
