"""Contract tests for POST /api/payments and POST /api/payments/cancel.

The PortOne client is replaced with a mock through dependency overrides.

Test categories:
- Charge success and validation (200, 400)
- Charge gateway failures (propagated status, 502, 500)
- Cancellation success and failures
"""

from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from magazine_api.dependencies import get_portone_service
from magazine_api.main import app
from magazine_shared.models import ConfigurationError, ErrorCode
from magazine_shared.services.portone_service import GatewayError


# === Test Configuration ===

PAYMENT_ID = "payment_1760832000000_k3j9x2m1q8abc"
CHARGE_BODY = {
    "billing_key": "billing-key-7d2e",
    "order_name": "Monthly magazine subscription",
    "amount": 9900,
    "customer": {"id": "customer_3f1c2a"},
}


# === Test Fixtures ===


@pytest.fixture
def gateway() -> MagicMock:
    mock = MagicMock()
    mock.charge_by_billing_key.return_value = {
        "payment_id": PAYMENT_ID,
        "gateway_response": {"payment": {"paidAt": "2026-01-15T12:00:00Z"}},
    }
    mock.cancel_payment.return_value = {"cancellation": {"status": "SUCCEEDED"}}
    return mock


@pytest.fixture
def client(gateway: MagicMock) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_portone_service] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


# === Charge ===


class TestCharge:
    """POST /api/payments."""

    def test_success(self, client: TestClient, gateway: MagicMock):
        response = client.post("/api/payments", json=CHARGE_BODY)

        assert response.status_code == HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["payment_id"] == PAYMENT_ID
        assert body["gateway_response"]["payment"]["paidAt"] == "2026-01-15T12:00:00Z"
        gateway.charge_by_billing_key.assert_called_once_with(
            billing_key="billing-key-7d2e",
            order_name="Monthly magazine subscription",
            amount=9900,
            customer_id="customer_3f1c2a",
        )

    @pytest.mark.parametrize(
        "field", ["billing_key", "order_name", "amount", "customer"]
    )
    def test_missing_field_is_400(
        self, client: TestClient, gateway: MagicMock, field: str
    ):
        body = {k: v for k, v in CHARGE_BODY.items() if k != field}

        response = client.post("/api/payments", json=body)

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == ErrorCode.INVALID_REQUEST_BODY.value
        gateway.charge_by_billing_key.assert_not_called()

    @pytest.mark.parametrize("amount", [0, -100, "9900"])
    def test_invalid_amount_is_400(self, client: TestClient, amount):
        response = client.post("/api/payments", json={**CHARGE_BODY, "amount": amount})

        assert response.status_code == HTTP_400_BAD_REQUEST

    def test_missing_customer_id_is_400(self, client: TestClient):
        response = client.post("/api/payments", json={**CHARGE_BODY, "customer": {}})

        assert response.status_code == HTTP_400_BAD_REQUEST

    def test_gateway_rejection_propagates_status(
        self, client: TestClient, gateway: MagicMock
    ):
        gateway.charge_by_billing_key.side_effect = GatewayError(
            HTTP_409_CONFLICT, "Billing key already deleted", {"type": "BILLING_KEY_ALREADY_DELETED"}
        )

        response = client.post("/api/payments", json=CHARGE_BODY)

        assert response.status_code == HTTP_409_CONFLICT
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == ErrorCode.CHARGE_FAILED.value
        assert body["message"] == "Billing key already deleted"
        assert body["details"]["body"] == {"type": "BILLING_KEY_ALREADY_DELETED"}

    def test_gateway_unreachable_is_502(self, client: TestClient, gateway: MagicMock):
        gateway.charge_by_billing_key.side_effect = GatewayError(None, "timed out")

        response = client.post("/api/payments", json=CHARGE_BODY)

        assert response.status_code == HTTP_502_BAD_GATEWAY

    def test_missing_secret_is_500(self, client: TestClient, gateway: MagicMock):
        gateway.ensure_configured.side_effect = ConfigurationError(
            ErrorCode.GATEWAY_NOT_CONFIGURED
        )

        response = client.post("/api/payments", json=CHARGE_BODY)

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == ErrorCode.GATEWAY_NOT_CONFIGURED.value
        gateway.charge_by_billing_key.assert_not_called()


# === Cancel ===


class TestCancel:
    """POST /api/payments/cancel."""

    def test_success(self, client: TestClient, gateway: MagicMock):
        response = client.post("/api/payments/cancel", json={"transaction_key": PAYMENT_ID})

        assert response.status_code == HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["checklist"] == {"validate_request": "done", "gateway_cancel": "done"}
        assert body["gateway_response"] == {"cancellation": {"status": "SUCCEEDED"}}
        gateway.cancel_payment.assert_called_once_with(PAYMENT_ID)

    def test_missing_transaction_key_is_400(self, client: TestClient, gateway: MagicMock):
        response = client.post("/api/payments/cancel", json={})

        assert response.status_code == HTTP_400_BAD_REQUEST
        gateway.cancel_payment.assert_not_called()

    def test_gateway_rejection(self, client: TestClient, gateway: MagicMock):
        gateway.cancel_payment.side_effect = GatewayError(
            HTTP_409_CONFLICT, "Payment already cancelled"
        )

        response = client.post("/api/payments/cancel", json={"transaction_key": PAYMENT_ID})

        assert response.status_code == HTTP_409_CONFLICT
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == ErrorCode.PAYMENT_CANCEL_FAILED.value
        assert body["checklist"]["gateway_cancel"] == "failed"