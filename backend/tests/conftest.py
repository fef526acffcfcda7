"""Pytest configuration and fixtures for magazine billing backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (payment-events ledger table)
- Sample ledger rows and gateway payloads
- Singleton resets between tests
"""

import datetime as dt
import os
from typing import Any, Generator

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "ap-northeast-2")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-magazine")
os.environ.setdefault("PORTONE_API_SECRET", "test-portone-secret")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

LEDGER_TABLE = "test-magazine-payment-events"
CUSTOMER_ID = "customer_3f1c2a"
PAYMENT_ID = "payment_1760832000000_k3j9x2m1q8abc"


# === Singleton Resets ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset service singletons before and after each test.

    Tests using mock_aws need a fresh DynamoDBService created inside the
    mock context rather than one left over from a previous test.
    """
    from magazine_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "ap-northeast-2"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="ap-northeast-2")
        yield client


@pytest.fixture
def ledger_table(dynamodb_client: Any) -> str:
    """Create the payment-events ledger table with its customer index."""
    from magazine_shared.services.ledger import ledger_table_definition

    dynamodb_client.create_table(**ledger_table_definition(LEDGER_TABLE))
    return LEDGER_TABLE


@pytest.fixture
def ledger_store(ledger_table: str) -> Any:
    """LedgerStore backed by the moto table."""
    from magazine_shared.services.dynamodb import DynamoDBService
    from magazine_shared.services.ledger import LedgerStore

    return LedgerStore(db=DynamoDBService())


# === Sample Data ===


@pytest.fixture
def charged_at() -> dt.datetime:
    """A fixed charge instant: 2026-01-15 12:00 UTC (21:00 KST)."""
    return dt.datetime(2026, 1, 15, 12, 0, tzinfo=dt.UTC)


@pytest.fixture
def make_event(charged_at: dt.datetime):
    """Factory for PaymentEvent rows with sensible defaults."""
    from magazine_shared.models import PaymentEvent, PaymentEventStatus

    def _make(**overrides: Any) -> PaymentEvent:
        start = overrides.pop("start_at", charged_at)
        fields: dict[str, Any] = {
            "transaction_key": PAYMENT_ID,
            "customer_id": CUSTOMER_ID,
            "amount": 9900,
            "status": PaymentEventStatus.PAID,
            "start_at": start,
            "end_at": start + dt.timedelta(days=30),
            "end_grace_at": start + dt.timedelta(days=31, hours=12),
            "next_schedule_at": start + dt.timedelta(days=30, hours=22),
            "next_schedule_id": "8c1f6a52-5c0d-4f6e-9d55-1b2a3c4d5e6f",
            "created_at": start,
        }
        fields.update(overrides)
        return PaymentEvent(**fields)

    return _make


@pytest.fixture
def portone_payment_body() -> dict[str, Any]:
    """A PortOne GET /payments/{id} response body."""
    return {
        "status": "PAID",
        "id": PAYMENT_ID,
        "billingKey": "billing-key-7d2e",
        "orderName": "Monthly magazine subscription",
        "amount": {"total": 9900, "paid": 9900},
        "currency": "KRW",
        "customer": {"id": CUSTOMER_ID},
    }
