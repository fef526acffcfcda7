"""Enumeration types for subscription billing models."""

from enum import Enum


class PaymentEventStatus(str, Enum):
    """Status stored on a ledger row."""

    PAID = "Paid"
    CANCEL = "Cancel"


class WebhookStatus(str, Enum):
    """Payment status reported by the gateway webhook."""

    PAID = "Paid"
    CANCELLED = "Cancelled"


class SubscriptionState(str, Enum):
    """Projected state of a subscriber."""

    ACTIVE = "active"
    FREE = "free"


class StepOutcome(str, Enum):
    """Terminal outcome of a single pipeline step."""

    OK = "ok"
    WARN = "warn"  # Step failed after the ledger write; request still succeeds
    FAIL = "fail"


class ChecklistMark(str, Enum):
    """Checklist entry shown to API callers."""

    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"
