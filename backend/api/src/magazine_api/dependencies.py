"""FastAPI dependency injection providers for shared services.

This module provides factory functions for service instances using @lru_cache
to ensure singleton behavior within a process. Services are lazily
instantiated and cached.

Usage in routes:
    from magazine_api.dependencies import get_webhook_handler

    @router.post("/webhooks/portone")
    async def portone_webhook(
        handler: WebhookHandler = Depends(get_webhook_handler),
    ):
        ...

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        └── LedgerStore
                ├── WebhookHandler (+ PortOneService)
                └── SubscriptionStatusService
    PortOneService (singleton via get_portone_service)

Testing:
    Use reset_services() to clear cached instances between tests.
"""

import os
from functools import lru_cache

from magazine_shared.services import portone_service
from magazine_shared.services.dynamodb import get_dynamodb_service
from magazine_shared.services.ledger import LedgerStore
from magazine_shared.services.portone_service import PortOneService
from magazine_shared.services.ssm_service import get_ssm_service
from magazine_shared.services.subscription_status import SubscriptionStatusService
from magazine_shared.services.webhook_handler import WebhookHandler

_TRUTHY = {"1", "true", "yes", "on"}


@lru_cache
def get_ledger_store() -> LedgerStore:
    """Get cached LedgerStore instance.

    Returns:
        LedgerStore configured with the DynamoDB singleton.
    """
    return LedgerStore(db=get_dynamodb_service())


def get_portone_service() -> PortOneService:
    """Get the PortOne client singleton."""
    return portone_service.get_portone_service()


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance.

    Returns:
        WebhookHandler configured with ledger and gateway singletons.
    """
    dedupe = os.environ.get("WEBHOOK_DEDUPE_PAID", "").strip().lower() in _TRUTHY
    return WebhookHandler(
        ledger=get_ledger_store(),
        gateway=get_portone_service(),
        dedupe_paid=dedupe,
    )


@lru_cache
def get_subscription_status_service() -> SubscriptionStatusService:
    return SubscriptionStatusService(ledger=get_ledger_store())


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB and PortOne singletons.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    from magazine_shared.services.dynamodb import reset_dynamodb_service

    get_ledger_store.cache_clear()
    get_webhook_handler.cache_clear()
    get_subscription_status_service.cache_clear()
    portone_service.get_portone_service.cache_clear()
    get_ssm_service.cache_clear()

    reset_dynamodb_service()
