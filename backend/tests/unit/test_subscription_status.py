"""Unit tests for subscription status projection.

Test categories:
- Empty and expired histories (free)
- Latest-row-wins per transaction
- Inclusive period bounds
- Multiple concurrently active charges
- SubscriptionStatusService wiring
"""

import datetime as dt
from unittest.mock import MagicMock

import pytest

from magazine_shared.models import (
    ErrorCode,
    PaymentEventStatus,
    PersistenceError,
    SubscriptionState,
)
from magazine_shared.services.subscription_status import (
    SubscriptionStatusService,
    project_status,
)


# === Test Configuration ===

CUSTOMER_ID = "customer_3f1c2a"
PAYMENT_ID = "payment_1760832000000_k3j9x2m1q8abc"
OTHER_PAYMENT_ID = "payment_1763424000000_z9y8x7w6v5u4t"


class TestProjectStatus:
    """project_status() over in-memory events."""

    def test_no_events_is_free(self, charged_at: dt.datetime):
        status, checklist = project_status([], charged_at)

        assert status.state == SubscriptionState.FREE
        assert status.transaction_key is None
        assert status.active_count == 0
        assert checklist["resolve_state"] == "free"

    def test_paid_within_period_is_active(self, make_event, charged_at: dt.datetime):
        event = make_event()

        status, _ = project_status([event], charged_at + dt.timedelta(days=10))

        assert status.state == SubscriptionState.ACTIVE
        assert status.is_subscribed
        assert status.transaction_key == PAYMENT_ID
        assert status.active_count == 1

    def test_start_and_grace_bounds_are_inclusive(self, make_event):
        event = make_event()

        at_start, _ = project_status([event], event.start_at)
        at_grace, _ = project_status([event], event.end_grace_at)

        assert at_start.is_subscribed
        assert at_grace.is_subscribed

    def test_after_grace_is_free(self, make_event):
        event = make_event()

        status, _ = project_status(
            [event], event.end_grace_at + dt.timedelta(microseconds=1)
        )

        assert status.state == SubscriptionState.FREE

    def test_before_start_is_free(self, make_event):
        event = make_event()

        status, _ = project_status([event], event.start_at - dt.timedelta(seconds=1))

        assert status.state == SubscriptionState.FREE

    def test_cancelled_charge_is_free(self, make_event, charged_at: dt.datetime):
        paid = make_event()
        cancel = paid.reversal(created_at=charged_at + dt.timedelta(days=2))

        status, checklist = project_status(
            [paid, cancel], charged_at + dt.timedelta(days=3)
        )

        assert status.state == SubscriptionState.FREE
        assert checklist["group_latest"] == "done (1 transactions)"

    def test_latest_row_wins_regardless_of_input_order(
        self, make_event, charged_at: dt.datetime
    ):
        paid = make_event()
        cancel = paid.reversal(created_at=charged_at + dt.timedelta(days=2))

        status, _ = project_status([cancel, paid], charged_at + dt.timedelta(days=3))

        assert status.state == SubscriptionState.FREE

    def test_one_cancelled_one_active(self, make_event, charged_at: dt.datetime):
        first = make_event()
        cancel = first.reversal(created_at=charged_at + dt.timedelta(days=1))
        second = make_event(
            transaction_key=OTHER_PAYMENT_ID,
            start_at=charged_at + dt.timedelta(days=2),
        )

        status, _ = project_status(
            [first, cancel, second], charged_at + dt.timedelta(days=5)
        )

        assert status.transaction_key == OTHER_PAYMENT_ID
        assert status.active_count == 1

    def test_multiple_active_reports_newest_and_count(
        self, make_event, charged_at: dt.datetime
    ):
        older = make_event()
        newer = make_event(
            transaction_key=OTHER_PAYMENT_ID,
            start_at=charged_at + dt.timedelta(days=1),
        )

        status, checklist = project_status(
            [older, newer], charged_at + dt.timedelta(days=5)
        )

        assert status.state == SubscriptionState.ACTIVE
        assert status.transaction_key == OTHER_PAYMENT_ID
        assert status.active_count == 2
        assert checklist["filter_active"] == "done (2 active)"

    def test_checklist_records_every_stage(self, make_event, charged_at: dt.datetime):
        _, checklist = project_status([make_event()], charged_at)

        assert list(checklist) == [
            "fetch_events",
            "group_latest",
            "filter_active",
            "resolve_state",
        ]


class TestPaymentEventReversal:
    """PaymentEvent.reversal() amounts."""

    def test_reversal_negates_paid_amount(self, make_event, charged_at: dt.datetime):
        paid = make_event(amount=9900)

        reversal = paid.reversal(created_at=charged_at + dt.timedelta(hours=1))

        assert reversal.status == PaymentEventStatus.CANCEL
        assert reversal.amount == -9900
        assert reversal.next_schedule_id == paid.next_schedule_id
        assert reversal.end_grace_at == paid.end_grace_at

    def test_reversing_a_cancel_keeps_amount_negative(
        self, make_event, charged_at: dt.datetime
    ):
        cancel = make_event(amount=-9900, status=PaymentEventStatus.CANCEL)

        again = cancel.reversal(created_at=charged_at + dt.timedelta(hours=1))

        assert again.amount == -9900


class TestSubscriptionStatusService:
    """Service reads the ledger and projects with its clock."""

    def test_reads_customer_history(self, make_event, charged_at: dt.datetime):
        ledger = MagicMock()
        ledger.latest_per_transaction.return_value = [make_event()]
        service = SubscriptionStatusService(
            ledger, clock=lambda: charged_at + dt.timedelta(days=1)
        )

        status, _ = service.get_status(CUSTOMER_ID)

        ledger.latest_per_transaction.assert_called_once_with(CUSTOMER_ID)
        assert status.is_subscribed
        assert status.evaluated_at == charged_at + dt.timedelta(days=1)

    def test_ledger_failure_propagates(self, charged_at: dt.datetime):
        ledger = MagicMock()
        ledger.latest_per_transaction.side_effect = PersistenceError(
            ErrorCode.LEDGER_READ_FAILED
        )
        service = SubscriptionStatusService(ledger, clock=lambda: charged_at)

        with pytest.raises(PersistenceError) as exc_info:
            service.get_status(CUSTOMER_ID)

        assert exc_info.value.code == ErrorCode.LEDGER_READ_FAILED
