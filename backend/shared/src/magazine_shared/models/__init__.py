"""Pydantic models for magazine subscription billing entities."""

from .enums import (
    ChecklistMark,
    PaymentEventStatus,
    StepOutcome,
    SubscriptionState,
    WebhookStatus,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ClientInputError,
    ConfigurationError,
    ErrorCode,
    ErrorResponse,
    NotFoundError,
    PersistenceError,
    SubscriptionError,
)
from .gateway import PaymentDetails, ScheduleRecord
from .payment_event import PaymentEvent
from .subscription import SubscriptionCycle, SubscriptionStatus

__all__ = [
    # Enums
    "ChecklistMark",
    "PaymentEventStatus",
    "StepOutcome",
    "SubscriptionState",
    "WebhookStatus",
    # Ledger
    "PaymentEvent",
    # Gateway
    "PaymentDetails",
    "ScheduleRecord",
    # Subscription
    "SubscriptionCycle",
    "SubscriptionStatus",
    # Errors
    "ClientInputError",
    "ConfigurationError",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "NotFoundError",
    "PersistenceError",
    "SubscriptionError",
]
