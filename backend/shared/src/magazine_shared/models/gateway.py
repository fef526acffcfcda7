"""Models for PortOne V2 API payloads.

Only the fields the billing flow reads are modelled; the untouched
response body is kept in ``raw`` for audit payloads.
"""

from typing import Any

from pydantic import BaseModel, Field


class PaymentDetails(BaseModel):
    """A payment as returned by ``GET /payments/{paymentId}``."""

    payment_id: str = Field(..., description="Gateway payment ID")
    status: str | None = Field(default=None, description="Gateway payment status")
    billing_key: str | None = Field(default=None, description="Billing key used")
    order_name: str | None = Field(default=None, description="Order display name")
    amount: int = Field(default=0, description="Total amount in KRW")
    currency: str = Field(default="KRW", description="Currency code")
    customer_id: str | None = Field(default=None, description="Gateway customer ID")
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @classmethod
    def from_api(cls, payment_id: str, body: dict[str, Any]) -> "PaymentDetails":
        """Build from a PortOne payment response body.

        Args:
            payment_id: ID used for the lookup (fallback when body lacks ``id``)
            body: Decoded JSON response

        Returns:
            PaymentDetails instance
        """
        amount = body.get("amount") or {}
        customer = body.get("customer") or {}
        return cls(
            payment_id=body.get("id") or payment_id,
            status=body.get("status"),
            billing_key=body.get("billingKey"),
            order_name=body.get("orderName"),
            amount=int(amount.get("total") or 0),
            currency=body.get("currency") or "KRW",
            customer_id=customer.get("id"),
            raw=body,
        )

    def summary(self) -> dict[str, Any]:
        """Fields echoed back in webhook responses."""
        return {
            "transaction_key": self.payment_id,
            "amount": self.amount,
            "order_name": self.order_name,
            "customer_id": self.customer_id,
        }


class ScheduleRecord(BaseModel):
    """A payment schedule registered at the gateway.

    ``payment_id`` is the ID we chose when creating the schedule, which is
    how a ledger row's ``next_schedule_id`` is matched back to it.
    """

    id: str = Field(..., description="Gateway-internal schedule ID")
    payment_id: str | None = Field(default=None, description="Payment ID of the scheduled charge")
    status: str | None = Field(default=None, description="Schedule status")
    time_to_pay: str | None = Field(default=None, description="Scheduled charge time")
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @classmethod
    def from_api(cls, body: dict[str, Any]) -> "ScheduleRecord":
        """Build from a PortOne schedule object."""
        return cls(
            id=body["id"],
            payment_id=body.get("paymentId"),
            status=body.get("status"),
            time_to_pay=body.get("timeToPay"),
            raw=body,
        )
