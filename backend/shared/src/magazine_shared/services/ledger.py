"""Append-only ledger of subscription payment events.

Table layout (``{prefix}-payment-events``):
    hash key  transaction_key
    range key created_at (ISO-8601 UTC, microsecond precision)
    GSI customer_id-index: hash customer_id, range created_at (sparse: rows
        without a customer are not indexed)

Rows are only ever inserted. The latest row per transaction_key (by
created_at) is authoritative.
"""

import datetime as dt
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from magazine_shared.models import (
    ErrorCode,
    PaymentEvent,
    PaymentEventStatus,
    PersistenceError,
)
from magazine_shared.utils.logging import get_logger, log_payment_operation

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


def format_timestamp(value: dt.datetime) -> str:
    """Serialize an instant so that lexical order matches time order."""
    return value.astimezone(dt.UTC).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> dt.datetime:
    """Parse a stored ISO-8601 instant into an aware UTC datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


class LedgerStore:
    """Persistence for PaymentEvent rows."""

    EVENTS_TABLE = "payment-events"
    CUSTOMER_INDEX = "customer_id-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize ledger store.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def insert(self, event: PaymentEvent) -> PaymentEvent:
        """Append a row to the ledger.

        Never overwrites: a row with the same transaction_key and created_at
        is rejected.

        Args:
            event: Row to append

        Returns:
            The stored event

        Raises:
            PersistenceError: If the write fails or the row already exists
        """
        try:
            written = self.db.put_item(
                self.EVENTS_TABLE,
                self._event_to_item(event),
                condition_expression="attribute_not_exists(transaction_key)",
            )
        except (ClientError, BotoCoreError) as e:
            log_payment_operation(
                logger,
                "ledger_insert",
                transaction_key=event.transaction_key,
                status=event.status.value,
                error=str(e),
            )
            raise PersistenceError(
                ErrorCode.LEDGER_WRITE_FAILED,
                details={"transaction_key": event.transaction_key, "reason": str(e)},
            ) from e

        if not written:
            raise PersistenceError(
                ErrorCode.DUPLICATE_PAYMENT_EVENT,
                details={
                    "transaction_key": event.transaction_key,
                    "created_at": format_timestamp(event.created_at),
                },
            )

        log_payment_operation(
            logger,
            "ledger_insert",
            transaction_key=event.transaction_key,
            customer_id=event.customer_id,
            amount=event.amount,
            status=event.status.value,
        )
        return event

    def latest_for_transaction(self, transaction_key: str) -> PaymentEvent | None:
        """Get the authoritative (most recent) row for a charge.

        Args:
            transaction_key: Gateway payment ID

        Returns:
            Latest PaymentEvent or None if the charge was never recorded

        Raises:
            PersistenceError: If the read fails
        """
        items = self._read(
            lambda: self.db.query(
                self.EVENTS_TABLE,
                Key("transaction_key").eq(transaction_key),
                limit=1,
                scan_index_forward=False,
            )
        )
        return self._item_to_event(items[0]) if items else None

    def query_by_customer(
        self,
        customer_id: str,
        since: dt.datetime | None = None,
        until: dt.datetime | None = None,
    ) -> list[PaymentEvent]:
        """Get a subscriber's rows, newest first, optionally within a window.

        Args:
            customer_id: Subscriber identity
            since: Inclusive lower bound on created_at
            until: Inclusive upper bound on created_at

        Returns:
            PaymentEvents ordered by created_at descending

        Raises:
            PersistenceError: If the read fails
        """
        sort_condition = None
        if since and until:
            sort_condition = Key("created_at").between(
                format_timestamp(since), format_timestamp(until)
            )
        elif since:
            sort_condition = Key("created_at").gte(format_timestamp(since))
        elif until:
            sort_condition = Key("created_at").lte(format_timestamp(until))

        items = self._read(
            lambda: self.db.query_by_gsi(
                self.EVENTS_TABLE,
                self.CUSTOMER_INDEX,
                "customer_id",
                customer_id,
                sort_key_condition=sort_condition,
                scan_index_forward=False,
            )
        )
        events = [self._item_to_event(item) for item in items]
        events.sort(key=lambda e: e.created_at, reverse=True)
        return events

    def latest_per_transaction(self, customer_id: str) -> list[PaymentEvent]:
        """Get the latest row of every charge belonging to a subscriber.

        Args:
            customer_id: Subscriber identity

        Returns:
            One PaymentEvent per transaction_key, newest first
        """
        return latest_per_key(self.query_by_customer(customer_id))

    def _read(self, query: Any) -> list[dict[str, Any]]:
        try:
            return query()
        except (ClientError, BotoCoreError) as e:
            logger.error("Ledger read failed: %s", e)
            raise PersistenceError(
                ErrorCode.LEDGER_READ_FAILED, details={"reason": str(e)}
            ) from e

    # Conversion helpers

    def _event_to_item(self, event: PaymentEvent) -> dict[str, Any]:
        """Convert PaymentEvent model to DynamoDB item.

        customer_id is omitted when empty so the customer index stays sparse.
        """
        item: dict[str, Any] = {
            "transaction_key": event.transaction_key,
            "amount": event.amount,
            "status": event.status.value,
            "start_at": format_timestamp(event.start_at),
            "end_at": format_timestamp(event.end_at),
            "end_grace_at": format_timestamp(event.end_grace_at),
            "next_schedule_at": format_timestamp(event.next_schedule_at),
            "next_schedule_id": event.next_schedule_id,
            "created_at": format_timestamp(event.created_at),
        }
        if event.customer_id:
            item["customer_id"] = event.customer_id
        return item

    def _item_to_event(self, item: dict[str, Any]) -> PaymentEvent:
        """Convert DynamoDB item to PaymentEvent model."""
        return PaymentEvent(
            transaction_key=item["transaction_key"],
            customer_id=item.get("customer_id"),
            amount=int(item["amount"]),
            status=PaymentEventStatus(item["status"]),
            start_at=parse_timestamp(item["start_at"]),
            end_at=parse_timestamp(item["end_at"]),
            end_grace_at=parse_timestamp(item["end_grace_at"]),
            next_schedule_at=parse_timestamp(item["next_schedule_at"]),
            next_schedule_id=item["next_schedule_id"],
            created_at=parse_timestamp(item["created_at"]),
        )


def latest_per_key(events: list[PaymentEvent]) -> list[PaymentEvent]:
    """Keep the most recent row per transaction_key.

    Args:
        events: Rows in any order

    Returns:
        One row per transaction_key, ordered by created_at descending
    """
    latest: dict[str, PaymentEvent] = {}
    for event in events:
        current = latest.get(event.transaction_key)
        if current is None or event.created_at > current.created_at:
            latest[event.transaction_key] = event
    return sorted(latest.values(), key=lambda e: e.created_at, reverse=True)


def ledger_table_definition(table_name: str) -> dict[str, Any]:
    """CreateTable arguments for the ledger table and its customer index."""
    return {
        "TableName": table_name,
        "KeySchema": [
            {"AttributeName": "transaction_key", "KeyType": "HASH"},
            {"AttributeName": "created_at", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "transaction_key", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
            {"AttributeName": "customer_id", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": LedgerStore.CUSTOMER_INDEX,
                "KeySchema": [
                    {"AttributeName": "customer_id", "KeyType": "HASH"},
                    {"AttributeName": "created_at", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }
