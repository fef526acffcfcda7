"""Magazine subscription billing API.

Routes are mounted under ``/api``: health, the PortOne webhook receiver,
billing-key charges and cancellations, and subscription status. ``handler``
is the Lambda entry point behind API Gateway; ``run_server`` serves the same
app locally through uvicorn.
"""

import os
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from magazine_api.exceptions import register_exception_handlers
from magazine_api.middleware.correlation import CorrelationIdMiddleware
from magazine_api.routes import health, payments, subscriptions, webhooks
from magazine_shared.utils.logging import configure_logging

SERVICE_NAME = "magazine-billing-api"
API_PREFIX = "/api"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"

configure_logging(os.environ.get("LOG_LEVEL", "INFO").upper())


def _cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


app = FastAPI(
    title="Magazine Subscription Billing API",
    description="PortOne subscription payments, webhook reconciliation and subscription status",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

for module in (health, webhooks, payments, subscriptions):
    app.include_router(module.router, prefix=API_PREFIX)


@app.get(f"{API_PREFIX}/ping")
async def ping() -> dict[str, str]:
    """Liveness probe that touches no AWS resources."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(UTC).isoformat(),
    }


handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Serve the app with uvicorn, reloading on source changes by default."""
    import uvicorn

    if not reload:
        uvicorn.run(app, host=host, port=port)
        return

    # reload needs an import string rather than the app object
    uvicorn.run(
        "magazine_api.main:app",
        host=host,
        port=port,
        reload=True,
        reload_dirs=["backend/api/src", "backend/shared/src"],
    )


if __name__ == "__main__":
    run_server()
