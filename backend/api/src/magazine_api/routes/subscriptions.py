"""Subscription status endpoint.

Identity comes from the `x-user-sub` header set by the upstream
authorizer; the subscriber's customer ID is their user sub.
"""

from fastapi import APIRouter, Depends, Request

from magazine_api.dependencies import get_subscription_status_service
from magazine_api.models.subscriptions import SubscriptionStatusResponse
from magazine_shared.models import ErrorCode, ErrorResponse, SubscriptionError
from magazine_shared.services.subscription_status import SubscriptionStatusService

router = APIRouter(tags=["subscriptions"])


def _require_user_sub(request: Request) -> str:
    user_sub = request.headers.get("x-user-sub")
    if not user_sub:
        raise SubscriptionError(code=ErrorCode.AUTH_REQUIRED)
    return user_sub


@router.get(
    "/subscriptions/status",
    summary="Get subscription status",
    description="""
Derive the caller's subscription status from the payment ledger.

**Requires the `x-user-sub` header.**

A subscriber is active while any charge's latest ledger row is Paid and
the current instant falls between its start and grace end.
""",
    response_model=SubscriptionStatusResponse,
    responses={
        401: {"description": "Caller identity missing", "model": ErrorResponse},
        500: {"description": "Ledger could not be read", "model": ErrorResponse},
    },
)
def get_subscription_status(
    user_sub: str = Depends(_require_user_sub),
    service: SubscriptionStatusService = Depends(get_subscription_status_service),
) -> SubscriptionStatusResponse:
    status, checklist = service.get_status(user_sub)
    return SubscriptionStatusResponse.from_status(status, checklist)
