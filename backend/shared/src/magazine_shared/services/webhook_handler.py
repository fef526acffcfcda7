"""Webhook handler for PortOne subscription payment events.

Reconciles gateway state with the local ledger. Each webhook runs one of
two pipelines:

Paid:       query_payment -> compute_cycle -> record_payment -> create_schedule
Cancelled:  find_payment -> record_reversal -> gateway_cancel -> query_payment
            -> query_schedules -> match_schedule -> cancel_schedule

Steps before the ledger write fail the request. Steps after it degrade to
a warning, because the ledger row is already durable. Nothing is rolled
back. The returned checklist records every step's outcome and never
drives control flow.
"""

import datetime as dt
import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field
from starlette.status import (
    HTTP_200_OK,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from magazine_shared.models import (
    ERROR_MESSAGES,
    ChecklistMark,
    ClientInputError,
    ErrorCode,
    NotFoundError,
    PaymentEvent,
    PaymentEventStatus,
    PersistenceError,
    StepOutcome,
    WebhookStatus,
)
from magazine_shared.utils.logging import get_logger, log_webhook_event

from .billing_cycle import BillingCycleCalculator
from .portone_service import GatewayError

if TYPE_CHECKING:
    from .ledger import LedgerStore
    from .portone_service import PortOneService

logger = get_logger(__name__)

# Pipeline step names
QUERY_PAYMENT = "query_payment"
COMPUTE_CYCLE = "compute_cycle"
RECORD_PAYMENT = "record_payment"
CREATE_SCHEDULE = "create_schedule"
FIND_PAYMENT = "find_payment"
RECORD_REVERSAL = "record_reversal"
GATEWAY_CANCEL = "gateway_cancel"
QUERY_SCHEDULES = "query_schedules"
MATCH_SCHEDULE = "match_schedule"
CANCEL_SCHEDULE = "cancel_schedule"

PAID_STEPS = (QUERY_PAYMENT, COMPUTE_CYCLE, RECORD_PAYMENT, CREATE_SCHEDULE)
CANCELLED_STEPS = (
    FIND_PAYMENT,
    RECORD_REVERSAL,
    GATEWAY_CANCEL,
    QUERY_PAYMENT,
    QUERY_SCHEDULES,
    MATCH_SCHEDULE,
    CANCEL_SCHEDULE,
)

SCHEDULE_SEARCH_WINDOW = dt.timedelta(days=1)

_CHECKLIST_MARKS = {
    StepOutcome.OK: ChecklistMark.DONE,
    StepOutcome.WARN: ChecklistMark.FAILED,
    StepOutcome.FAIL: ChecklistMark.FAILED,
}


class PipelineRun:
    """Outcome record for one execution of a named-step pipeline."""

    def __init__(self, steps: Sequence[str]) -> None:
        self._outcomes: dict[str, StepOutcome | None] = {step: None for step in steps}

    def record(self, step: str, outcome: StepOutcome) -> None:
        if step not in self._outcomes:
            raise KeyError(f"Unknown pipeline step: {step}")
        self._outcomes[step] = outcome

    @property
    def checklist(self) -> dict[str, str]:
        """Step name -> done/failed/skipped, in pipeline order."""
        return {
            step: (_CHECKLIST_MARKS[outcome] if outcome else ChecklistMark.SKIPPED).value
            for step, outcome in self._outcomes.items()
        }


class WebhookResult(BaseModel):
    """Terminal outcome of a webhook invocation."""

    http_status: int = Field(default=HTTP_200_OK, exclude=True)
    success: bool
    checklist: dict[str, str] = Field(default_factory=dict)
    data: dict[str, Any] | None = None
    warning: str | None = None
    error_code: ErrorCode | None = None
    error: str | None = None
    details: Any = None

    def to_body(self) -> dict[str, Any]:
        """JSON body returned to the webhook caller."""
        return self.model_dump(mode="json", exclude_none=True)


def parse_webhook_payload(payload: Any) -> tuple[str, WebhookStatus]:
    """Validate the webhook body.

    Args:
        payload: Decoded JSON body

    Returns:
        Tuple of (payment_id, status)

    Raises:
        ClientInputError: If a field is missing or status is not Paid/Cancelled
    """
    if not isinstance(payload, Mapping):
        raise ClientInputError(ErrorCode.MISSING_WEBHOOK_FIELDS)

    payment_id = payload.get("payment_id")
    status = payload.get("status")

    if not payment_id or not status:
        raise ClientInputError(
            ErrorCode.MISSING_WEBHOOK_FIELDS,
            details={
                "missing": ",".join(
                    name for name, value in (("payment_id", payment_id), ("status", status))
                    if not value
                )
            },
        )

    if not isinstance(payment_id, str):
        raise ClientInputError(
            ErrorCode.MISSING_WEBHOOK_FIELDS,
            details={"payment_id": "must be a string"},
        )

    try:
        return payment_id, WebhookStatus(status)
    except ValueError:
        raise ClientInputError(
            ErrorCode.INVALID_WEBHOOK_STATUS,
            details={"status": str(status)},
        )


class WebhookHandler:
    """Reconciles PortOne Paid/Cancelled webhooks with the ledger.

    Collaborators are injected so each pipeline step can be exercised in
    isolation. Holds no per-request state.
    """

    def __init__(
        self,
        ledger: "LedgerStore",
        gateway: "PortOneService",
        cycle_calculator: BillingCycleCalculator | None = None,
        *,
        clock: Callable[[], dt.datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        dedupe_paid: bool = False,
    ) -> None:
        """Initialize webhook handler.

        Args:
            ledger: Ledger store for PaymentEvent rows
            gateway: PortOne client
            cycle_calculator: Period calculator (random jitter by default)
            clock: Returns "now" as an aware UTC datetime
            id_factory: Generates next_schedule_id values
            dedupe_paid: Skip the Paid insert when the charge is already recorded
        """
        self._ledger = ledger
        self._gateway = gateway
        self._cycles = cycle_calculator or BillingCycleCalculator()
        self._clock = clock or (lambda: dt.datetime.now(dt.UTC))
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._dedupe_paid = dedupe_paid

    def handle(self, payload: Any) -> WebhookResult:
        """Validate and process a webhook body.

        Raises:
            ClientInputError: Malformed body (nothing processed)
            ConfigurationError: Gateway secret missing (nothing processed)
        """
        payment_id, status = parse_webhook_payload(payload)
        self._gateway.ensure_configured()

        log_webhook_event(logger, status.value, payment_id, result="received")

        if status == WebhookStatus.PAID:
            return self.process_paid(payment_id)
        return self.process_cancelled(payment_id)

    # === Paid ===

    def process_paid(self, payment_id: str) -> WebhookResult:
        """Record a successful charge and schedule the next one."""
        run = PipelineRun(PAID_STEPS)
        status = WebhookStatus.PAID.value

        try:
            payment = self._gateway.query_payment(payment_id)
        except GatewayError as e:
            run.record(QUERY_PAYMENT, StepOutcome.FAIL)
            log_webhook_event(
                logger, status, payment_id, step=QUERY_PAYMENT, result="fail", error=e.message
            )
            return WebhookResult(
                http_status=e.http_status or HTTP_502_BAD_GATEWAY,
                success=False,
                checklist=run.checklist,
                error_code=ErrorCode.PAYMENT_QUERY_FAILED,
                error=ERROR_MESSAGES[ErrorCode.PAYMENT_QUERY_FAILED],
                details=e.to_details(),
            )
        run.record(QUERY_PAYMENT, StepOutcome.OK)

        now = self._clock()
        cycle = self._cycles.compute(now)
        next_schedule_id = self._id_factory()
        run.record(COMPUTE_CYCLE, StepOutcome.OK)

        transaction_key = payment.payment_id

        if self._dedupe_paid:
            try:
                existing = self._ledger.latest_for_transaction(transaction_key)
            except PersistenceError as e:
                run.record(RECORD_PAYMENT, StepOutcome.FAIL)
                return self._fatal(run, e)
            if existing is not None:
                log_webhook_event(
                    logger, status, payment_id, step=RECORD_PAYMENT, result="duplicate"
                )
                return WebhookResult(
                    success=True,
                    checklist=run.checklist,
                    warning=ERROR_MESSAGES[ErrorCode.DUPLICATE_PAYMENT_EVENT],
                    data={"payment_event": existing.to_response()},
                )

        event = PaymentEvent(
            transaction_key=transaction_key,
            customer_id=payment.customer_id or None,
            amount=payment.amount,
            status=PaymentEventStatus.PAID,
            start_at=cycle.start_at,
            end_at=cycle.end_at,
            end_grace_at=cycle.end_grace_at,
            next_schedule_at=cycle.next_schedule_at,
            next_schedule_id=next_schedule_id,
            created_at=now,
        )

        try:
            self._ledger.insert(event)
        except PersistenceError as e:
            run.record(RECORD_PAYMENT, StepOutcome.FAIL)
            log_webhook_event(
                logger, status, payment_id, step=RECORD_PAYMENT, result="fail", error=str(e)
            )
            return self._fatal(run, e)
        run.record(RECORD_PAYMENT, StepOutcome.OK)

        data: dict[str, Any] = {
            "payment_info": {**payment.summary(), "status": PaymentEventStatus.PAID.value},
            "subscription": {
                "start_at": event.start_at.isoformat(),
                "end_at": event.end_at.isoformat(),
                "end_grace_at": event.end_grace_at.isoformat(),
                "next_schedule_at": event.next_schedule_at.isoformat(),
                "next_schedule_id": event.next_schedule_id,
            },
        }

        try:
            schedule = self._gateway.create_schedule(
                schedule_id=next_schedule_id,
                payment=payment,
                run_at=cycle.next_schedule_at,
            )
        except GatewayError as e:
            run.record(CREATE_SCHEDULE, StepOutcome.WARN)
            log_webhook_event(
                logger, status, payment_id, step=CREATE_SCHEDULE, result="warn", error=e.message
            )
            return WebhookResult(
                success=True,
                checklist=run.checklist,
                data=data,
                warning=ERROR_MESSAGES[ErrorCode.SCHEDULE_CREATE_FAILED],
                error_code=ErrorCode.SCHEDULE_CREATE_FAILED,
                details=e.to_details(),
            )
        run.record(CREATE_SCHEDULE, StepOutcome.OK)

        data["schedule"] = schedule
        log_webhook_event(logger, status, payment_id, result="ok")
        return WebhookResult(success=True, checklist=run.checklist, data=data)

    # === Cancelled ===

    def process_cancelled(self, payment_id: str) -> WebhookResult:
        """Record a cancellation and revoke the pending renewal schedule."""
        run = PipelineRun(CANCELLED_STEPS)
        status = WebhookStatus.CANCELLED.value

        try:
            previous = self._recorded_payment(payment_id)
        except PersistenceError as e:
            run.record(FIND_PAYMENT, StepOutcome.FAIL)
            return self._fatal(run, e)
        except NotFoundError as e:
            run.record(FIND_PAYMENT, StepOutcome.FAIL)
            log_webhook_event(
                logger, status, payment_id, step=FIND_PAYMENT, result="fail",
                error=e.message,
            )
            return WebhookResult(
                http_status=HTTP_404_NOT_FOUND,
                success=False,
                checklist=run.checklist,
                error_code=e.code,
                error=e.message,
                details=e.details,
            )
        run.record(FIND_PAYMENT, StepOutcome.OK)

        reversal = previous.reversal(created_at=self._clock())
        try:
            self._ledger.insert(reversal)
        except PersistenceError as e:
            run.record(RECORD_REVERSAL, StepOutcome.FAIL)
            log_webhook_event(
                logger, status, payment_id, step=RECORD_REVERSAL, result="fail", error=str(e)
            )
            return self._fatal(run, e)
        run.record(RECORD_REVERSAL, StepOutcome.OK)

        # The charge was already cancelled at the gateway; GATEWAY_CANCEL stays skipped.
        data: dict[str, Any] = {"reversal": reversal.to_response()}

        try:
            payment = self._gateway.query_payment(payment_id)
        except GatewayError as e:
            run.record(QUERY_PAYMENT, StepOutcome.WARN)
            return self._degraded(run, data, ErrorCode.PAYMENT_QUERY_FAILED, payment_id, e)
        run.record(QUERY_PAYMENT, StepOutcome.OK)

        try:
            schedules = self._gateway.query_schedules(
                billing_key=payment.billing_key or "",
                from_time=previous.next_schedule_at - SCHEDULE_SEARCH_WINDOW,
                until_time=previous.next_schedule_at + SCHEDULE_SEARCH_WINDOW,
            )
        except GatewayError as e:
            run.record(QUERY_SCHEDULES, StepOutcome.WARN)
            return self._degraded(run, data, ErrorCode.SCHEDULE_QUERY_FAILED, payment_id, e)
        run.record(QUERY_SCHEDULES, StepOutcome.OK)

        match = next(
            (s for s in schedules if s.payment_id == previous.next_schedule_id),
            None,
        )
        if match is None:
            run.record(MATCH_SCHEDULE, StepOutcome.WARN)
            return self._degraded(
                run,
                data,
                ErrorCode.SCHEDULE_NOT_FOUND,
                payment_id,
                details={
                    "next_schedule_id": previous.next_schedule_id,
                    "schedules_checked": len(schedules),
                },
            )
        run.record(MATCH_SCHEDULE, StepOutcome.OK)

        try:
            revoked = self._gateway.cancel_schedules({match.id})
        except GatewayError as e:
            run.record(CANCEL_SCHEDULE, StepOutcome.WARN)
            return self._degraded(run, data, ErrorCode.SCHEDULE_CANCEL_FAILED, payment_id, e)
        run.record(CANCEL_SCHEDULE, StepOutcome.OK)

        data["schedule_cancellation"] = revoked
        log_webhook_event(logger, status, payment_id, result="ok")
        return WebhookResult(success=True, checklist=run.checklist, data=data)

    def _recorded_payment(self, payment_id: str) -> PaymentEvent:
        """Latest ledger row for a charge.

        Raises:
            NotFoundError: If the charge was never recorded
            PersistenceError: If the ledger cannot be read
        """
        previous = self._ledger.latest_for_transaction(payment_id)
        if previous is None:
            raise NotFoundError(
                ErrorCode.PAYMENT_RECORD_NOT_FOUND, details={"payment_id": payment_id}
            )
        return previous

    # === Terminal responses ===

    def _fatal(self, run: PipelineRun, error: PersistenceError) -> WebhookResult:
        return WebhookResult(
            http_status=HTTP_500_INTERNAL_SERVER_ERROR,
            success=False,
            checklist=run.checklist,
            error_code=error.code,
            error=error.message,
            details=error.details,
        )

    def _degraded(
        self,
        run: PipelineRun,
        data: dict[str, Any],
        code: ErrorCode,
        payment_id: str,
        gateway_error: GatewayError | None = None,
        details: dict[str, Any] | None = None,
    ) -> WebhookResult:
        log_webhook_event(
            logger,
            WebhookStatus.CANCELLED.value,
            payment_id,
            result="warn",
            error=gateway_error.message if gateway_error else ERROR_MESSAGES[code],
        )
        return WebhookResult(
            success=True,
            checklist=run.checklist,
            data=data,
            warning=ERROR_MESSAGES[code],
            error_code=code,
            details=gateway_error.to_details() if gateway_error else details,
        )
