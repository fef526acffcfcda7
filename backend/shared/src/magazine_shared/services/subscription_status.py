"""Subscription status projection from ledger history.

A subscriber is active when any of their charges has, as its latest row,
a Paid event whose period (start_at through end_grace_at) contains the
evaluation instant. When several charges qualify, the most recently
created one is reported; ``active_count`` exposes the ambiguity.
"""

import datetime as dt
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from magazine_shared.models import (
    PaymentEvent,
    SubscriptionState,
    SubscriptionStatus,
)
from magazine_shared.utils.logging import get_logger

from .ledger import latest_per_key

if TYPE_CHECKING:
    from .ledger import LedgerStore

logger = get_logger(__name__)


def project_status(
    events: Iterable[PaymentEvent],
    now: dt.datetime,
) -> tuple[SubscriptionStatus, dict[str, str]]:
    """Derive subscription status from a subscriber's events.

    Args:
        events: All ledger rows for one subscriber, any order
        now: Evaluation instant (aware)

    Returns:
        Tuple of (status, checklist)
    """
    rows = list(events)
    checklist: dict[str, str] = {"fetch_events": f"done ({len(rows)} rows)"}

    latest = latest_per_key(rows)
    checklist["group_latest"] = f"done ({len(latest)} transactions)"

    active = [event for event in latest if event.is_active_at(now)]
    checklist["filter_active"] = f"done ({len(active)} active)"

    if not active:
        checklist["resolve_state"] = "free"
        return (
            SubscriptionStatus(state=SubscriptionState.FREE, evaluated_at=now),
            checklist,
        )

    if len(active) > 1:
        logger.warning(
            "Subscriber has %d concurrently active charges; reporting %s",
            len(active),
            active[0].transaction_key,
        )

    checklist["resolve_state"] = f"active ({active[0].transaction_key})"
    return (
        SubscriptionStatus(
            state=SubscriptionState.ACTIVE,
            transaction_key=active[0].transaction_key,
            active_count=len(active),
            evaluated_at=now,
        ),
        checklist,
    )


class SubscriptionStatusService:
    """Reads a subscriber's ledger history and projects their status."""

    def __init__(
        self,
        ledger: "LedgerStore",
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self._ledger = ledger
        self._clock = clock or (lambda: dt.datetime.now(dt.UTC))

    def get_status(
        self, customer_id: str
    ) -> tuple[SubscriptionStatus, dict[str, str]]:
        """Project current status for a subscriber.

        Raises:
            PersistenceError: If the ledger cannot be read
        """
        events = self._ledger.latest_per_transaction(customer_id)
        return project_status(events, self._clock())
