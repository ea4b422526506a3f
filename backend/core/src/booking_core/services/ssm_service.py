"""Secrets from SSM Parameter Store.

Secrets are SecureString parameters below ``/booking/{environment}/``:

    stripe/secret_key       Stripe API key
    stripe/webhook_secret   Stripe webhook signing secret
    cron/secret             bearer token of the reminder cron trigger

Values are decrypted on first read and kept for the life of the process.
"""

import logging
import os
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

_MISSING = "ParameterNotFound"
_DENIED = "AccessDeniedException"


class SSMServiceError(Exception):
    """A secret could not be read."""


class SSMService:
    def __init__(self, environment: str | None = None) -> None:
        self._root = f"/booking/{environment or os.environ.get('ENVIRONMENT', 'dev')}"
        self._client = boto3.client("ssm")
        self._values: dict[str, str] = {}

    def parameter_path(self, name: str) -> str:
        return f"{self._root}/{name}"

    def get_secret(self, name: str) -> str:
        """Decrypted value of ``name`` (relative to the environment root).

        Raises:
            SSMServiceError: The parameter is missing, unreadable or SSM failed.
        """
        path = self.parameter_path(name)
        cached = self._values.get(path)
        if cached is not None:
            return cached

        try:
            response = self._client.get_parameter(Name=path, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code == _MISSING:
                raise SSMServiceError(f"SSM parameter not found: {path}") from e
            if code == _DENIED:
                raise SSMServiceError(f"No ssm:GetParameter permission for {path}") from e
            raise SSMServiceError(f"Reading {path} failed: {e}") from e

        logger.info("Loaded secret %s", path)
        self._values[path] = value = response["Parameter"]["Value"]
        return value

    def find_secret(self, name: str) -> str | None:
        """``get_secret`` that yields None instead of raising."""
        try:
            return self.get_secret(name)
        except SSMServiceError as e:
            logger.info("Secret %s unavailable: %s", name, e)
            return None


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    return SSMService()
