"""SSM Parameter Store access for deployment secrets.

Parameters live under ``/magazine/{environment}/...`` as SecureStrings.
Values are decrypted on read and cached for the lifetime of the process.
"""

import logging
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

PARAMETER_ROOT = "/magazine"

_CLIENT_ERROR_HINTS = {
    "ParameterNotFound": "parameter does not exist",
    "AccessDeniedException": "access denied; grant ssm:GetParameter and kms:Decrypt",
}


class SSMServiceError(Exception):
    """A parameter could not be read."""


def parameter_path(environment: str, *parts: str) -> str:
    """Build a parameter name, e.g. ``/magazine/dev/portone/api_secret``."""
    return "/".join((PARAMETER_ROOT, environment, *parts))


class SSMService:
    """Cached, decrypting reader for SSM parameters.

    Usage:
        ssm = get_ssm_service()
        secret = ssm.get_parameter(parameter_path("dev", "portone", "api_secret"))
    """

    def __init__(self, client: Any = None) -> None:
        self._client = client or boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Read and decrypt one parameter.

        Raises:
            SSMServiceError: If the parameter is missing or unreadable.
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        logger.info("Fetching SSM parameter: %s", name)
        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            hint = _CLIENT_ERROR_HINTS.get(code, str(e))
            raise SSMServiceError(f"SSM parameter {name}: {hint}") from e

        value: str = response["Parameter"]["Value"]
        self._cache[name] = value
        return value

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()
