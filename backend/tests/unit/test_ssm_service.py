"""Unit tests for SSMService against moto."""

from typing import Any, Generator

import boto3
import pytest
from moto import mock_aws

from magazine_shared.services.ssm_service import (
    SSMService,
    SSMServiceError,
    parameter_path,
)

SECRET_NAME = "/magazine/dev/portone/api_secret"


@pytest.fixture
def ssm_client(aws_credentials: None) -> Generator[Any, None, None]:
    with mock_aws():
        yield boto3.client("ssm", region_name="ap-northeast-2")


class TestParameterPath:
    def test_joins_parts(self):
        assert parameter_path("dev", "portone", "api_secret") == SECRET_NAME


class TestGetParameter:
    def test_reads_decrypted_secure_string(self, ssm_client: Any):
        ssm_client.put_parameter(Name=SECRET_NAME, Value="s3cret", Type="SecureString")

        assert SSMService(ssm_client).get_parameter(SECRET_NAME) == "s3cret"

    def test_value_is_cached(self, ssm_client: Any):
        ssm_client.put_parameter(Name=SECRET_NAME, Value="first", Type="SecureString")
        service = SSMService(ssm_client)
        service.get_parameter(SECRET_NAME)

        ssm_client.put_parameter(
            Name=SECRET_NAME, Value="second", Type="SecureString", Overwrite=True
        )

        assert service.get_parameter(SECRET_NAME) == "first"
        assert service.get_parameter(SECRET_NAME, use_cache=False) == "second"

    def test_missing_parameter(self, ssm_client: Any):
        with pytest.raises(SSMServiceError, match="does not exist"):
            SSMService(ssm_client).get_parameter(SECRET_NAME)
