"""API models for subscription status."""

from datetime import datetime

from pydantic import BaseModel, Field

from magazine_shared.models import SubscriptionState, SubscriptionStatus


class SubscriptionStatusResponse(BaseModel):
    """Subscription status as rendered to the subscriber."""

    is_subscribed: bool
    status: SubscriptionState = Field(..., description="active or free")
    transaction_key: str | None = Field(
        default=None,
        description="Charge to pass to the cancellation endpoint",
    )
    active_count: int = 0
    show_cancel_button: bool
    show_subscribe_button: bool
    evaluated_at: datetime
    checklist: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_status(
        cls, status: SubscriptionStatus, checklist: dict[str, str]
    ) -> "SubscriptionStatusResponse":
        return cls(
            is_subscribed=status.is_subscribed,
            status=status.state,
            transaction_key=status.transaction_key,
            active_count=status.active_count,
            show_cancel_button=status.is_subscribed,
            show_subscribe_button=not status.is_subscribed,
            evaluated_at=status.evaluated_at,
            checklist=checklist,
        )
