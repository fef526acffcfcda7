"""Standard error codes for the subscription billing backend.

Every failure that reaches an API caller is expressed as an ErrorCode with
a fixed message and recovery hint. Exceptions carry the code; the API layer
maps codes to HTTP status codes.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Error codes returned in error responses."""

    # Client input errors
    MISSING_WEBHOOK_FIELDS = "ERR_WEBHOOK_001"
    INVALID_WEBHOOK_STATUS = "ERR_WEBHOOK_002"
    INVALID_REQUEST_BODY = "ERR_REQUEST_001"
    AUTH_REQUIRED = "ERR_AUTH_001"

    # Configuration errors
    GATEWAY_NOT_CONFIGURED = "ERR_CONFIG_001"

    # Gateway (upstream) errors
    PAYMENT_QUERY_FAILED = "ERR_GATEWAY_001"
    SCHEDULE_CREATE_FAILED = "ERR_GATEWAY_002"
    SCHEDULE_QUERY_FAILED = "ERR_GATEWAY_003"
    SCHEDULE_CANCEL_FAILED = "ERR_GATEWAY_004"
    CHARGE_FAILED = "ERR_GATEWAY_005"
    PAYMENT_CANCEL_FAILED = "ERR_GATEWAY_006"

    # Ledger errors
    PAYMENT_RECORD_NOT_FOUND = "ERR_LEDGER_001"
    LEDGER_WRITE_FAILED = "ERR_LEDGER_002"
    LEDGER_READ_FAILED = "ERR_LEDGER_003"
    SCHEDULE_NOT_FOUND = "ERR_LEDGER_004"
    DUPLICATE_PAYMENT_EVENT = "ERR_LEDGER_005"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MISSING_WEBHOOK_FIELDS: "Required parameters payment_id and status are missing",
    ErrorCode.INVALID_WEBHOOK_STATUS: 'status must be "Paid" or "Cancelled"',
    ErrorCode.INVALID_REQUEST_BODY: "Request body is missing required fields",
    ErrorCode.AUTH_REQUIRED: "Authentication required to perform this action",
    ErrorCode.GATEWAY_NOT_CONFIGURED: "PortOne API secret is not configured",
    ErrorCode.PAYMENT_QUERY_FAILED: "Failed to retrieve payment details from PortOne",
    ErrorCode.SCHEDULE_CREATE_FAILED: "Failed to register the next subscription charge",
    ErrorCode.SCHEDULE_QUERY_FAILED: "Failed to list payment schedules from PortOne",
    ErrorCode.SCHEDULE_CANCEL_FAILED: "Failed to cancel the scheduled subscription charge",
    ErrorCode.CHARGE_FAILED: "Billing key payment request failed",
    ErrorCode.PAYMENT_CANCEL_FAILED: "Payment cancellation request failed",
    ErrorCode.PAYMENT_RECORD_NOT_FOUND: "No payment record found for this payment_id",
    ErrorCode.LEDGER_WRITE_FAILED: "Failed to record the payment event",
    ErrorCode.LEDGER_READ_FAILED: "Failed to read payment history",
    ErrorCode.SCHEDULE_NOT_FOUND: "No matching scheduled charge was found",
    ErrorCode.DUPLICATE_PAYMENT_EVENT: "Payment event was already recorded",
}

ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.MISSING_WEBHOOK_FIELDS: "Send both payment_id and status in the JSON body",
    ErrorCode.INVALID_WEBHOOK_STATUS: "Only Paid and Cancelled events are processed",
    ErrorCode.INVALID_REQUEST_BODY: "Check the request parameters and try again",
    ErrorCode.AUTH_REQUIRED: "Sign in and retry the request",
    ErrorCode.GATEWAY_NOT_CONFIGURED: "Set PORTONE_API_SECRET or the SSM parameter",
    ErrorCode.PAYMENT_QUERY_FAILED: "Verify the payment_id exists at PortOne and retry",
    ErrorCode.SCHEDULE_CREATE_FAILED: "Register the next charge manually or via reconciliation",
    ErrorCode.SCHEDULE_QUERY_FAILED: "Check the schedule list at PortOne and cancel manually",
    ErrorCode.SCHEDULE_CANCEL_FAILED: "Cancel the schedule manually at PortOne",
    ErrorCode.CHARGE_FAILED: "Try again or use a different payment method",
    ErrorCode.PAYMENT_CANCEL_FAILED: "Try again or contact support",
    ErrorCode.PAYMENT_RECORD_NOT_FOUND: "Verify the payment was recorded by a Paid event",
    ErrorCode.LEDGER_WRITE_FAILED: "Reconcile the charge against PortOne records",
    ErrorCode.LEDGER_READ_FAILED: "Try again later",
    ErrorCode.SCHEDULE_NOT_FOUND: "The schedule has likely already run or was never created",
    ErrorCode.DUPLICATE_PAYMENT_EVENT: "No action needed",
}


class ErrorResponse(BaseModel):
    """Standard error body returned by the API."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, Any]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class SubscriptionError(Exception):
    """Base exception for subscription billing operations.

    Can be caught and converted to an ErrorResponse for API responses.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)


class ClientInputError(SubscriptionError):
    """Malformed or missing request fields. Nothing was processed."""


class ConfigurationError(SubscriptionError):
    """Server-side configuration is missing. Nothing was processed."""


class PersistenceError(SubscriptionError):
    """Ledger read or write failed."""


class NotFoundError(SubscriptionError):
    """A ledger or schedule record does not exist."""
