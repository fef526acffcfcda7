"""API models for payment endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CustomerRef(BaseModel):
    """Gateway customer reference."""

    id: str = Field(..., min_length=1, description="PortOne customer ID")


class ChargeRequest(BaseModel):
    """Request to charge a stored billing key immediately.

    The ledger is not written by this request; the Paid webhook that
    follows records the charge.
    """

    model_config = ConfigDict(
        strict=True,
        json_schema_extra={
            "examples": [
                {
                    "billing_key": "billing-key-abc123",
                    "order_name": "Monthly magazine subscription",
                    "amount": 9900,
                    "customer": {"id": "user-123"},
                }
            ]
        },
    )

    billing_key: str = Field(..., min_length=1, description="Billing key issued to the customer")
    order_name: str = Field(..., min_length=1, description="Order display name")
    amount: int = Field(..., gt=0, description="Charge amount in KRW")
    customer: CustomerRef


class ChargeResponse(BaseModel):
    """Successful charge result."""

    success: bool = True
    payment_id: str = Field(..., description="Generated PortOne payment ID")
    gateway_response: dict[str, Any] = Field(default_factory=dict)


class CancelPaymentRequest(BaseModel):
    """Request to cancel (refund) a charge."""

    model_config = ConfigDict(
        strict=True,
        json_schema_extra={"examples": [{"transaction_key": "payment_1718000000000_ab12cd34ef567"}]},
    )

    transaction_key: str = Field(..., min_length=1, description="PortOne payment ID to cancel")


class CancelPaymentResponse(BaseModel):
    """Successful cancellation result."""

    success: bool = True
    checklist: dict[str, str]
    gateway_response: dict[str, Any] = Field(default_factory=dict)
