"""Webhook endpoints for PortOne payment events.

Provides endpoints for:
- PortOne payment webhooks (Paid, Cancelled)

This endpoint does NOT require authentication. The payment state is
always re-read from PortOne, so the body is treated as a notification only.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from magazine_api.dependencies import get_webhook_handler
from magazine_shared.models import ClientInputError, ErrorCode, ErrorResponse
from magazine_shared.services.webhook_handler import WebhookHandler, WebhookResult
from magazine_shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post(
    "/webhooks/portone",
    summary="Receive PortOne webhook events",
    description="""
Endpoint for PortOne payment webhooks. Handles:
- Paid: records the charge and schedules the next renewal
- Cancelled: records a reversal and revokes the pending renewal

**Body:** `{"payment_id": "...", "status": "Paid" | "Cancelled"}`

The response carries a `checklist` of pipeline steps (done/failed/skipped).
Failures after the ledger write are reported as `warning` with HTTP 200.
""",
    response_model=WebhookResult,
    responses={
        200: {"description": "Event processed (possibly with a warning)"},
        400: {"description": "Missing or invalid payment_id/status", "model": ErrorResponse},
        404: {"description": "No ledger record for a Cancelled payment"},
        500: {"description": "Gateway secret missing or ledger write failed"},
    },
)
async def handle_portone_webhook(
    request: Request,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> JSONResponse:
    """Handle an incoming PortOne webhook."""
    raw = await request.body()
    try:
        payload: Any = json.loads(raw) if raw else None
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        raise ClientInputError(
            ErrorCode.INVALID_REQUEST_BODY,
            details={"body": "invalid JSON"},
        )

    result = await run_in_threadpool(handler.handle, payload)
    return JSONResponse(status_code=result.http_status, content=result.to_body())
