"""Tests for scripts/create_tables.py against moto."""

import importlib.util
from pathlib import Path
from typing import Any

import boto3
import pytest

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "create_tables.py"


@pytest.fixture
def create_tables() -> Any:
    spec = importlib.util.spec_from_file_location("create_tables", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCreateTables:
    def test_creates_ledger_table(self, create_tables: Any, dynamodb_client: Any):
        assert create_tables.main(["--env", "test"]) == 0

        description = dynamodb_client.describe_table(
            TableName="test-magazine-payment-events"
        )["Table"]
        assert {k["AttributeName"] for k in description["KeySchema"]} == {
            "transaction_key",
            "created_at",
        }
        assert description["GlobalSecondaryIndexes"][0]["IndexName"] == "customer_id-index"

    def test_second_run_is_noop(self, create_tables: Any, dynamodb_client: Any):
        create_tables.main(["--env", "test"])

        assert create_tables.create_ledger_table(
            dynamodb_client, "test-magazine-payment-events"
        ) is False

    def test_clear_first_empties_table(
        self, create_tables: Any, ledger_store: Any, make_event
    ):
        ledger_store.insert(make_event())

        assert create_tables.main(["--env", "test", "--clear-first"]) == 0

        resource = boto3.resource("dynamodb", region_name="ap-northeast-2")
        assert resource.Table("test-magazine-payment-events").scan()["Items"] == []

    @pytest.mark.parametrize("env", ["prod", "staging"])
    def test_refuses_to_clear_shared_ledgers(
        self, create_tables: Any, ledger_store: Any, make_event, env: str
    ):
        ledger_store.insert(make_event())

        assert create_tables.main(["--env", env, "--clear-first"]) == 1

        resource = boto3.resource("dynamodb", region_name="ap-northeast-2")
        assert len(resource.Table("test-magazine-payment-events").scan()["Items"]) == 1
