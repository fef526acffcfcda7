"""Payment endpoints for billing-key charges and cancellations.

Provides REST endpoints for:
- Charging a stored billing key immediately
- Cancelling (refunding) a charge

Neither endpoint writes the ledger. PortOne follows each call with a
webhook, and the webhook handler records the resulting ledger row.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.status import HTTP_502_BAD_GATEWAY

from magazine_api.dependencies import get_portone_service
from magazine_api.models.common import GatewayFailureResponse
from magazine_api.models.payments import (
    CancelPaymentRequest,
    CancelPaymentResponse,
    ChargeRequest,
    ChargeResponse,
)
from magazine_shared.models import ErrorCode, ErrorResponse
from magazine_shared.services.portone_service import GatewayError, PortOneService
from magazine_shared.utils.logging import get_logger, log_payment_operation

logger = get_logger(__name__)

router = APIRouter(tags=["payments"])


def _gateway_failure(
    code: ErrorCode,
    error: GatewayError,
    checklist: dict[str, str] | None = None,
) -> JSONResponse:
    body = GatewayFailureResponse(
        error_code=code,
        message=error.message,
        checklist=checklist,
        details=error.to_details(),
    )
    return JSONResponse(
        status_code=error.http_status or HTTP_502_BAD_GATEWAY,
        content=body.model_dump(mode="json", exclude_none=True),
    )


@router.post(
    "/payments",
    summary="Charge billing key",
    description="""
Charge a stored billing key immediately.

A payment ID of the form `payment_{epoch_ms}_{random}` is generated for
the charge. The Paid webhook that follows records it in the ledger.
""",
    response_model=ChargeResponse,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        500: {"description": "Gateway secret not configured", "model": ErrorResponse},
        502: {"description": "Gateway unreachable", "model": GatewayFailureResponse},
    },
)
def charge_billing_key(
    body: ChargeRequest,
    gateway: PortOneService = Depends(get_portone_service),
) -> ChargeResponse | JSONResponse:
    """Charge a billing key through PortOne."""
    gateway.ensure_configured()
    try:
        result = gateway.charge_by_billing_key(
            billing_key=body.billing_key,
            order_name=body.order_name,
            amount=body.amount,
            customer_id=body.customer.id,
        )
    except GatewayError as e:
        log_payment_operation(
            logger,
            "charge_by_billing_key",
            customer_id=body.customer.id,
            amount=body.amount,
            status="failed",
            error=e.message,
        )
        return _gateway_failure(ErrorCode.CHARGE_FAILED, e)

    return ChargeResponse(
        payment_id=result["payment_id"],
        gateway_response=result["gateway_response"],
    )


@router.post(
    "/payments/cancel",
    summary="Cancel payment",
    description="""
Cancel (refund) a charge in full at PortOne.

The Cancelled webhook that follows records the reversal and revokes the
pending renewal schedule.
""",
    response_model=CancelPaymentResponse,
    responses={
        400: {"description": "transaction_key missing", "model": ErrorResponse},
        500: {"description": "Gateway secret not configured", "model": ErrorResponse},
        502: {"description": "Gateway unreachable", "model": GatewayFailureResponse},
    },
)
def cancel_payment(
    body: CancelPaymentRequest,
    gateway: PortOneService = Depends(get_portone_service),
) -> CancelPaymentResponse | JSONResponse:
    """Cancel a charge through PortOne."""
    checklist = {"validate_request": "done"}

    gateway.ensure_configured()
    try:
        response = gateway.cancel_payment(body.transaction_key)
    except GatewayError as e:
        checklist["gateway_cancel"] = "failed"
        log_payment_operation(
            logger,
            "cancel_payment",
            transaction_key=body.transaction_key,
            status="failed",
            error=e.message,
        )
        return _gateway_failure(ErrorCode.PAYMENT_CANCEL_FAILED, e, checklist)
    checklist["gateway_cancel"] = "done"

    return CancelPaymentResponse(checklist=checklist, gateway_response=response)
