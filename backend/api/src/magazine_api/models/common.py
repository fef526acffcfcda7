"""Shared API response models.

The standard error body (ErrorResponse) lives in magazine_shared.models and
is produced by the exception handlers. This module holds HTTP-layer shapes
that carry gateway outcomes back to the caller.
"""

from typing import Any

from pydantic import BaseModel, Field

from magazine_shared.models import ErrorCode, ErrorResponse

__all__ = ["ErrorCode", "ErrorResponse", "GatewayFailureResponse"]


class GatewayFailureResponse(BaseModel):
    """Body returned when PortOne rejects a request.

    The HTTP status mirrors the gateway's own status when it returned one.
    """

    success: bool = False
    error_code: ErrorCode
    message: str = Field(..., description="Gateway or fallback error message")
    checklist: dict[str, str] | None = Field(
        default=None,
        description="Step outcomes for multi-step operations",
    )
    details: dict[str, Any] | None = None
