"""PortOne V2 payment gateway client.

Wraps the REST calls the subscription flow needs:
- Billing-key charges and payment lookups
- Payment cancellation
- Payment schedule registration, listing and cancellation

Every call authenticates with ``Authorization: PortOne <secret>``. The
secret comes from the PORTONE_API_SECRET environment variable or, when that
is unset, from SSM Parameter Store. No call is retried; a failure is raised
as GatewayError for the caller to decide on.
"""

import datetime as dt
import os
import time
import uuid
from collections.abc import Iterable
from functools import lru_cache
from typing import Any
from urllib.parse import quote

import httpx
from botocore.exceptions import BotoCoreError

from magazine_shared.models import (
    ConfigurationError,
    ErrorCode,
    PaymentDetails,
    ScheduleRecord,
)
from magazine_shared.utils.logging import get_logger, log_payment_operation

from .ssm_service import SSMServiceError, get_ssm_service, parameter_path

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.portone.io"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_CURRENCY = "KRW"
DEFAULT_CANCEL_REASON = "No cancellation reason provided"


class GatewayError(Exception):
    """Raised when a PortOne call fails.

    Attributes:
        http_status: Gateway HTTP status, or None for transport failures
        message: Human-readable message (gateway ``message`` when present)
        raw_body: Decoded response body (dict, text, or None)
    """

    def __init__(
        self,
        http_status: int | None,
        message: str,
        raw_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.http_status = http_status
        self.message = message
        self.raw_body = raw_body

    def to_details(self) -> dict[str, Any]:
        """Serializable error context for API responses."""
        return {
            "http_status": self.http_status,
            "message": self.message,
            "body": self.raw_body,
        }


def generate_payment_id() -> str:
    """Generate a unique payment ID like ``payment_1760832000000_3fa85f64c1d2e``."""
    return f"payment_{int(time.time() * 1000)}_{uuid.uuid4().hex[:13]}"


def _isoformat(value: dt.datetime) -> str:
    return value.astimezone(dt.UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PortOneService:
    """Client for PortOne V2 REST API.

    Usage:
        portone = get_portone_service()
        details = portone.query_payment("payment_1760832000000_abc")
        portone.create_schedule(
            schedule_id=str(uuid.uuid4()),
            payment=details,
            run_at=cycle.next_schedule_at,
        )
    """

    def __init__(
        self,
        environment: str | None = None,
        *,
        api_secret: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize PortOne client.

        Args:
            environment: Environment name (dev, prod). Defaults to ENVIRONMENT env var.
            api_secret: Explicit API secret. Defaults to env var, then SSM.
            base_url: API base URL. Defaults to PORTONE_API_BASE_URL or the public API.
            timeout: Request timeout in seconds. Defaults to PORTONE_TIMEOUT_SECONDS.
            http_client: Preconfigured httpx client (used by tests).
        """
        self._environment = environment or os.environ.get("ENVIRONMENT", "dev")
        self._api_secret = api_secret
        self._base_url = (
            base_url or os.environ.get("PORTONE_API_BASE_URL", DEFAULT_BASE_URL)
        ).rstrip("/")
        self._timeout = timeout or float(
            os.environ.get("PORTONE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
        )
        self._client = http_client

    def _get_secret(self) -> str:
        """Resolve the API secret (lazy).

        Raises:
            ConfigurationError: If no secret is configured anywhere.
        """
        if self._api_secret:
            return self._api_secret

        secret = os.environ.get("PORTONE_API_SECRET")
        if not secret:
            parameter = parameter_path(self._environment, "portone", "api_secret")
            try:
                secret = get_ssm_service().get_parameter(parameter)
            except (SSMServiceError, BotoCoreError) as e:
                logger.error("PortOne API secret unavailable: %s", e)
                raise ConfigurationError(
                    ErrorCode.GATEWAY_NOT_CONFIGURED,
                    details={"parameter": parameter},
                ) from e

        if not secret:
            raise ConfigurationError(ErrorCode.GATEWAY_NOT_CONFIGURED)

        self._api_secret = secret
        return secret

    def ensure_configured(self) -> None:
        """Fail fast with ConfigurationError before any side effect."""
        self._get_secret()

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send an authenticated request and decode the JSON response.

        Raises:
            ConfigurationError: If the secret is missing.
            GatewayError: On transport failure or a non-2xx response.
        """
        headers = {"Authorization": f"PortOne {self._get_secret()}"}
        url = f"{self._base_url}{path}"

        try:
            response = self._get_client().request(method, url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("PortOne %s %s transport error: %s", method, path, e)
            raise GatewayError(None, f"PortOne request failed: {e}") from e

        payload = self._decode(response)

        if not response.is_success:
            message = (
                payload.get("message") if isinstance(payload, dict) else None
            ) or f"PortOne returned HTTP {response.status_code}"
            logger.warning(
                "PortOne %s %s failed with %d: %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise GatewayError(response.status_code, message, payload)

        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    def charge_by_billing_key(
        self,
        *,
        billing_key: str,
        order_name: str,
        amount: int,
        customer_id: str,
        currency: str = DEFAULT_CURRENCY,
        payment_id: str | None = None,
    ) -> dict[str, Any]:
        """Charge a stored payment method immediately.

        Args:
            billing_key: Billing key issued to the customer
            order_name: Order display name
            amount: Amount in KRW
            customer_id: Gateway customer ID
            currency: Currency code
            payment_id: Payment ID to use. Generated when omitted.

        Returns:
            Dict with ``payment_id`` and the raw ``gateway_response``

        Raises:
            GatewayError: If the charge is rejected.
        """
        payment_id = payment_id or generate_payment_id()
        response = self._request(
            "POST",
            f"/payments/{quote(payment_id, safe='')}/billing-key",
            body={
                "billingKey": billing_key,
                "orderName": order_name,
                "amount": {"total": amount},
                "customer": {"id": customer_id},
                "currency": currency,
            },
        )
        log_payment_operation(
            logger,
            "charge_by_billing_key",
            transaction_key=payment_id,
            customer_id=customer_id,
            amount=amount,
        )
        return {"payment_id": payment_id, "gateway_response": response}

    def query_payment(self, payment_id: str) -> PaymentDetails:
        """Retrieve a payment.

        Raises:
            GatewayError: If the payment cannot be retrieved.
        """
        body = self._request("GET", f"/payments/{quote(payment_id, safe='')}")
        return PaymentDetails.from_api(payment_id, body)

    def create_schedule(
        self,
        *,
        schedule_id: str,
        payment: PaymentDetails,
        run_at: dt.datetime,
    ) -> dict[str, Any]:
        """Register a future charge reusing a payment's billing key.

        Args:
            schedule_id: Payment ID reserved for the scheduled charge
            payment: Payment whose billing key, order and amount are reused
            run_at: When the gateway should charge

        Returns:
            Gateway response (contains ``schedule.id``)

        Raises:
            GatewayError: If the schedule is rejected.
        """
        response = self._request(
            "POST",
            f"/payments/{quote(schedule_id, safe='')}/schedule",
            body={
                "payment": {
                    "billingKey": payment.billing_key,
                    "orderName": payment.order_name,
                    "customer": {"id": payment.customer_id},
                    "amount": {"total": payment.amount},
                    "currency": payment.currency or DEFAULT_CURRENCY,
                },
                "timeToPay": _isoformat(run_at),
            },
        )
        log_payment_operation(
            logger,
            "create_schedule",
            transaction_key=payment.payment_id,
            schedule_id=schedule_id,
            run_at=_isoformat(run_at),
        )
        return response

    def query_schedules(
        self,
        *,
        billing_key: str,
        from_time: dt.datetime,
        until_time: dt.datetime,
    ) -> list[ScheduleRecord]:
        """List schedules for a billing key within a time window.

        Raises:
            GatewayError: If the listing fails.
        """
        response = self._request(
            "GET",
            "/payment-schedules",
            body={
                "filter": {
                    "billingKey": billing_key,
                    "from": _isoformat(from_time),
                    "until": _isoformat(until_time),
                }
            },
        )
        return [ScheduleRecord.from_api(item) for item in response.get("items", [])]

    def cancel_schedules(self, schedule_ids: Iterable[str]) -> dict[str, Any]:
        """Revoke schedules by their gateway IDs.

        Returns:
            Gateway response (contains ``revokedScheduleIds``)

        Raises:
            GatewayError: If the revocation fails.
        """
        ids = sorted(set(schedule_ids))
        response = self._request(
            "DELETE",
            "/payment-schedules",
            body={"scheduleIds": ids},
        )
        log_payment_operation(logger, "cancel_schedules", schedule_ids=",".join(ids))
        return response

    def cancel_payment(
        self,
        transaction_id: str,
        reason: str = DEFAULT_CANCEL_REASON,
    ) -> dict[str, Any]:
        """Cancel (refund) a payment in full.

        Raises:
            GatewayError: If the cancellation is rejected.
        """
        response = self._request(
            "POST",
            f"/payments/{quote(transaction_id, safe='')}/cancel",
            body={"reason": reason},
        )
        log_payment_operation(
            logger,
            "cancel_payment",
            transaction_key=transaction_id,
            reason=reason,
        )
        return response


@lru_cache(maxsize=1)
def get_portone_service() -> PortOneService:
    """Get the shared PortOneService instance (singleton pattern)."""
    return PortOneService()
