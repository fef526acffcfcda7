"""Payment event model for the append-only subscription ledger."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import PaymentEventStatus


class PaymentEvent(BaseModel):
    """One immutable row of the subscription ledger.

    Rows are never updated or deleted. A cancellation is a new row with
    status CANCEL whose amount negates the paid row it reverses. For a
    given transaction_key the row with the latest created_at is
    authoritative.

    Amounts are signed integers in KRW (minor units).
    """

    model_config = ConfigDict(strict=True, frozen=True)

    transaction_key: str = Field(
        ...,
        description="Gateway payment ID, stable for the lifetime of one charge",
        examples=["payment_1760832000000_k3j9x2m1q8"],
    )
    customer_id: str | None = Field(
        default=None,
        description="Subscriber identity (gateway customer ID); absent when the charge carried none",
        examples=["customer_3f1c2a"],
    )
    amount: int = Field(
        ...,
        description="Signed amount: positive for a charge, negative for its reversal",
    )
    status: PaymentEventStatus = Field(..., description="Ledger status")
    start_at: datetime = Field(..., description="Subscription period start (UTC)")
    end_at: datetime = Field(..., description="Nominal period end (UTC)")
    end_grace_at: datetime = Field(
        ..., description="Access cut-off including grace period (UTC)"
    )
    next_schedule_at: datetime = Field(
        ..., description="When the next recurring charge is due (UTC)"
    )
    next_schedule_id: str = Field(
        ...,
        description="Payment ID reserved for the next scheduled charge at the gateway",
    )
    created_at: datetime = Field(..., description="Ledger insertion time (UTC)")

    def reversal(self, created_at: datetime) -> "PaymentEvent":
        """Build the CANCEL row that reverses this event.

        Period and schedule fields are copied unchanged. Reversing a row that
        is already a CANCEL keeps its (already negated) amount so the
        ledger never flips a reversal back to a positive charge.

        Args:
            created_at: Insertion time for the new row

        Returns:
            New PaymentEvent with status CANCEL
        """
        amount = -self.amount if self.status == PaymentEventStatus.PAID else self.amount
        return self.model_copy(
            update={
                "status": PaymentEventStatus.CANCEL,
                "amount": amount,
                "created_at": created_at,
            }
        )

    def is_active_at(self, moment: datetime) -> bool:
        """Whether this row grants access at the given instant."""
        return (
            self.status == PaymentEventStatus.PAID
            and self.start_at <= moment <= self.end_grace_at
        )

    def to_response(self) -> dict[str, Any]:
        """JSON-friendly view used in API payloads."""
        return self.model_dump(mode="json")
