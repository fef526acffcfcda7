"""API routes package.

Routers are organized by domain:

- health: Health check endpoints
- webhooks: PortOne webhook reconciliation
- payments: Billing-key charges and cancellations
- subscriptions: Subscription status for the calling subscriber

All routers are registered in main.py with /api prefix.
"""

from magazine_api.routes.health import router as health_router
from magazine_api.routes.payments import router as payments_router
from magazine_api.routes.subscriptions import router as subscriptions_router
from magazine_api.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "payments_router",
    "subscriptions_router",
    "webhooks_router",
]
