"""Backend services for magazine subscription billing."""

from .billing_cycle import BillingCycleCalculator
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .ledger import LedgerStore
from .portone_service import GatewayError, PortOneService, get_portone_service
from .ssm_service import SSMService, SSMServiceError, get_ssm_service, parameter_path
from .subscription_status import SubscriptionStatusService, project_status
from .webhook_handler import WebhookHandler, WebhookResult

__all__ = [
    "BillingCycleCalculator",
    "DynamoDBService",
    "get_dynamodb_service",
    "reset_dynamodb_service",
    "GatewayError",
    "LedgerStore",
    "PortOneService",
    "get_portone_service",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "parameter_path",
    "SubscriptionStatusService",
    "project_status",
    "WebhookHandler",
    "WebhookResult",
]
