"""Subscription period and status projection models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import SubscriptionState


class SubscriptionCycle(BaseModel):
    """Period boundaries computed from a charge timestamp.

    All instants are UTC. ``next_schedule_at`` carries random jitter and is
    not reproducible for the same charge time.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    start_at: datetime
    end_at: datetime
    end_grace_at: datetime
    next_schedule_at: datetime


class SubscriptionStatus(BaseModel):
    """Current subscription state derived from the ledger."""

    model_config = ConfigDict(strict=True)

    state: SubscriptionState = Field(..., description="active or free")
    transaction_key: str | None = Field(
        default=None,
        description="Cancellable charge when active",
    )
    active_count: int = Field(
        default=0,
        ge=0,
        description="Number of transaction keys active at evaluation time",
    )
    evaluated_at: datetime = Field(..., description="Evaluation instant (UTC)")

    @property
    def is_subscribed(self) -> bool:
        return self.state == SubscriptionState.ACTIVE
