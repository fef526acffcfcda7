#!/usr/bin/env python3
"""Create the payment ledger table for an environment.

Provisions ``{prefix}-payment-events`` with its ``customer_id-index`` GSI.
The prefix defaults to ``magazine-{env}`` and honours DYNAMODB_TABLE_PREFIX.

Usage:
    python scripts/create_tables.py --env dev
    python scripts/create_tables.py --env dev --region ap-northeast-2
    python scripts/create_tables.py --env dev --clear-first
"""

import argparse
import os
import sys
from typing import Any

import boto3
from botocore.exceptions import ClientError

from magazine_shared.services.ledger import LedgerStore, ledger_table_definition

# Environments whose ledger rows may be deleted.
CLEARABLE_ENVS = ("dev", "test")


def get_table_name(env: str) -> str:
    """Get full ledger table name with environment prefix."""
    prefix = os.environ.get("DYNAMODB_TABLE_PREFIX", f"magazine-{env}")
    return f"{prefix}-{LedgerStore.EVENTS_TABLE}"


def create_ledger_table(client: Any, table_name: str) -> bool:
    """Create the ledger table if it does not exist.

    Returns:
        True if the table was created, False if it already existed
    """
    try:
        client.create_table(**ledger_table_definition(table_name))
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            return False
        raise
    client.get_waiter("table_exists").wait(TableName=table_name)
    return True


def clear_table(resource: Any, table_name: str) -> int:
    """Delete every item from a table.

    Returns:
        Number of items deleted
    """
    table = resource.Table(table_name)
    key_attrs = [k["AttributeName"] for k in table.key_schema]

    deleted = 0
    scan_kwargs: dict[str, Any] = {}
    with table.batch_writer() as batch:
        while True:
            response = table.scan(**scan_kwargs)
            for item in response.get("Items", []):
                batch.delete_item(Key={k: item[k] for k in key_attrs})
                deleted += 1
            if not response.get("LastEvaluatedKey"):
                break
            scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
    return deleted


def main(argv: list[str] | None = None) -> int:
    """Run the table setup script."""
    parser = argparse.ArgumentParser(description="Create the payment ledger table")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod", "test"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "ap-northeast-2"),
        help="AWS region (default: ap-northeast-2 or AWS_DEFAULT_REGION env var)",
    )
    parser.add_argument(
        "--clear-first",
        action="store_true",
        help="Delete existing ledger rows (dev and test only)",
    )
    args = parser.parse_args(argv)

    if args.clear_first and args.env not in CLEARABLE_ENVS:
        print(f"Refusing to clear the {args.env} ledger; only dev and test can be cleared.")
        return 1

    table_name = get_table_name(args.env)
    client = boto3.client("dynamodb", region_name=args.region)

    if create_ledger_table(client, table_name):
        print(f"Created {table_name}")
    else:
        print(f"{table_name} already exists")
        if args.clear_first:
            resource = boto3.resource("dynamodb", region_name=args.region)
            count = clear_table(resource, table_name)
            print(f"Cleared {count} items from {table_name}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
