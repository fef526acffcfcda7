"""Thin boto3 DynamoDB wrapper used by the ledger.

Table names are resolved against a per-environment prefix
(``magazine-{ENVIRONMENT}`` unless DYNAMODB_TABLE_PREFIX is set), so callers
only ever pass the short name such as ``payment-events``.
"""

import os
from collections.abc import Iterator
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

_instance: "DynamoDBService | None" = None


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use."""
    global _instance
    if _instance is None:
        _instance = DynamoDBService(environment)
    return _instance


def reset_dynamodb_service() -> None:
    """Drop the cached instance so the next call builds a fresh client.

    Tests call this so a service created under mock_aws never leaks into
    the next test.
    """
    global _instance
    _instance = None


class DynamoDBService:
    """Prefixed-table access to DynamoDB through the boto3 resource API."""

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self.name_prefix = os.getenv(
            "DYNAMODB_TABLE_PREFIX", f"magazine-{self.environment}"
        )
        self._resource = boto3.resource("dynamodb")

    def table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def table(self, table: str) -> Any:
        """boto3 Table handle for a short table name."""
        return self._resource.Table(self.table_name(table))

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Write one item.

        Args:
            table: Short table name
            item: Attribute map to store
            condition_expression: Write only when this condition holds

        Returns:
            False when the condition rejected the write, True otherwise

        Raises:
            ClientError: Any failure other than a failed condition
        """
        params: dict[str, Any] = {"Item": item}
        if condition_expression:
            params["ConditionExpression"] = condition_expression

        try:
            self.table(table).put_item(**params)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ConditionalCheckFailedException":
                raise
            return False
        return True

    def query(
        self,
        table: str,
        key_condition: Any,
        index_name: str | None = None,
        limit: int | None = None,
        scan_index_forward: bool = True,
    ) -> list[dict[str, Any]]:
        """Run a key-condition query against a table or one of its indexes.

        With ``limit`` only the first page is read; without it every page
        is collected.
        """
        params: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": scan_index_forward,
        }
        if index_name:
            params["IndexName"] = index_name
        if limit:
            params["Limit"] = limit

        items: list[dict[str, Any]] = []
        for page in self._pages(self.table(table), params, follow=not limit):
            items.extend(page)
        return items

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
        sort_key_condition: Any | None = None,
        scan_index_forward: bool = True,
    ) -> list[dict[str, Any]]:
        """Query a GSI by its partition key, optionally narrowing the sort key."""
        condition = Key(partition_key_name).eq(partition_key_value)
        if sort_key_condition is not None:
            condition = condition & sort_key_condition
        return self.query(
            table,
            condition,
            index_name=index_name,
            scan_index_forward=scan_index_forward,
        )

    @staticmethod
    def _pages(
        dynamo_table: Any, params: dict[str, Any], *, follow: bool
    ) -> Iterator[list[dict[str, Any]]]:
        while True:
            response = dynamo_table.query(**params)
            yield response.get("Items", [])
            last_key = response.get("LastEvaluatedKey")
            if not follow or not last_key:
                return
            params = {**params, "ExclusiveStartKey": last_key}
