"""API-specific request/response models.

This package contains Pydantic models specific to the REST API layer.
Domain models (PaymentEvent, SubscriptionStatus, etc.) are in
magazine_shared.models and should be reused here where appropriate.

Modules:
- common: Shared response wrappers
- payments: Charge and cancellation request/response models
- subscriptions: Subscription status response model
"""

from magazine_api.models.common import GatewayFailureResponse
from magazine_api.models.payments import (
    CancelPaymentRequest,
    CancelPaymentResponse,
    ChargeRequest,
    ChargeResponse,
    CustomerRef,
)
from magazine_api.models.subscriptions import SubscriptionStatusResponse

__all__ = [
    "GatewayFailureResponse",
    "CancelPaymentRequest",
    "CancelPaymentResponse",
    "ChargeRequest",
    "ChargeResponse",
    "CustomerRef",
    "SubscriptionStatusResponse",
]
