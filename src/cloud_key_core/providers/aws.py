"""AWS IAM access key provider.

This module provides the AwsKeyProvider class, which lists, creates and
deletes IAM user access keys through boto3. AWS access keys never expire, so
their remaining life is always zero.
"""

import asyncio
import os
from collections.abc import Iterator
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from cloud_key_core.exceptions import (
    KeyLimitExceededError,
    NormalizationError,
    ProviderAPIError,
)
from cloud_key_core.model import STATUS_ACTIVE, STATUS_INACTIVE, Key, Provider
from cloud_key_core.normalization import as_utc, key_display_name, minutes_since

# Get logger for this module
logger = structlog.get_logger(__name__)

AWS_PROVIDER_NAME = "aws"
DEFAULT_REGION = "us-east-1"
AWS_ACCESS_KEY_LIMIT = 2


def aws_api_error(
    operation: str, error: Exception, service: str = "IAM"
) -> ProviderAPIError:
    """Convert a botocore error into a ProviderAPIError."""
    status = None
    if isinstance(error, ClientError):
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return ProviderAPIError(f"AWS {service} {operation} failed: {error}", status)


def aws_client(
    service_name: str,
    region: str,
    profile_name: str | None = None,
    endpoint_url: str | None = None,
) -> Any:
    """Create a boto3 client from a fresh session."""
    if profile_name:
        session = boto3.session.Session(profile_name=profile_name)
    else:
        session = boto3.session.Session()
    client_kwargs = {"service_name": service_name, "region_name": region}
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url
    return session.client(**client_kwargs)  # type: ignore[call-overload]


class AwsKeyProvider:
    """Key provider for AWS IAM user access keys."""

    def __init__(
        self,
        region: str | None = None,
        profile_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize the AWS key provider.

        Args:
            region: AWS region for the IAM client. Defaults to AWS_REGION env var or us-east-1.
            profile_name: Optional AWS profile for the boto3 session.
            endpoint_url: Optional custom endpoint URL for testing or local development.
        """
        if region is None:
            region = os.getenv("AWS_REGION", DEFAULT_REGION)
        self.region = region
        self.profile_name = profile_name
        self.endpoint_url = endpoint_url

    def _iam_client(self) -> Any:
        return aws_client("iam", self.region, self.profile_name, self.endpoint_url)

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        """List access keys for every IAM user in the account."""
        provider = Provider(AWS_PROVIDER_NAME, scope, credential)
        try:
            keys = await asyncio.to_thread(self._list_keys, provider, include_inactive)
        except (BotoCoreError, ClientError) as e:
            raise aws_api_error("list", e) from e
        logger.debug("AWS_KEYS_LISTED", key_count=len(keys))
        return keys

    def _list_keys(self, provider: Provider, include_inactive: bool) -> list[Key]:
        client = self._iam_client()
        keys: list[Key] = []
        for user in _iter_users(client):
            for metadata in _iter_access_keys(client, user["UserName"]):
                key = key_from_access_key_metadata(metadata, provider)
                if include_inactive or key.is_active:
                    keys.append(key)
        return keys

    async def create_key(
        self, scope: str, account: str, credential: str
    ) -> tuple[str, str]:
        """Create an access key for an IAM user, respecting the key limit."""
        try:
            key_id, secret = await asyncio.to_thread(self._create_key, account)
        except (BotoCoreError, ClientError) as e:
            raise aws_api_error("create", e) from e
        logger.info("AWS_KEY_CREATED", account=account, key_id=key_id)
        return key_id, secret

    def _create_key(self, account: str) -> tuple[str, str]:
        client = self._iam_client()
        existing = list(_iter_access_keys(client, account))
        if len(existing) >= AWS_ACCESS_KEY_LIMIT:
            raise KeyLimitExceededError(account, AWS_ACCESS_KEY_LIMIT)
        response = client.create_access_key(UserName=account)
        try:
            access_key = response["AccessKey"]
            return access_key["AccessKeyId"], access_key["SecretAccessKey"]
        except KeyError as e:
            error_message = f"AWS IAM create response missing field: {e.args[0]}"
            raise ProviderAPIError(error_message) from e

    async def delete_key(
        self, scope: str, account: str, key_id: str, credential: str
    ) -> None:
        """Delete an access key from an IAM user."""
        try:
            await asyncio.to_thread(self._delete_key, account, key_id)
        except (BotoCoreError, ClientError) as e:
            raise aws_api_error("delete", e) from e
        logger.info("AWS_KEY_DELETED", account=account, key_id=key_id)

    def _delete_key(self, account: str, key_id: str) -> None:
        self._iam_client().delete_access_key(UserName=account, AccessKeyId=key_id)


def _iter_users(client: Any) -> Iterator[dict[str, Any]]:
    for page in client.get_paginator("list_users").paginate():
        yield from page.get("Users", [])


def _iter_access_keys(client: Any, user_name: str) -> Iterator[dict[str, Any]]:
    paginator = client.get_paginator("list_access_keys")
    for page in paginator.paginate(UserName=user_name):
        yield from page.get("AccessKeyMetadata", [])


def key_from_access_key_metadata(metadata: dict[str, Any], provider: Provider) -> Key:
    """Normalize one ``AccessKeyMetadata`` entry into a Key.

    Raises:
        NormalizationError: If the user name, key ID or creation date is missing.
    """
    try:
        user_name = metadata["UserName"]
        key_id = metadata["AccessKeyId"]
    except KeyError as e:
        error_message = f"Access key metadata missing field: {e.args[0]}"
        raise NormalizationError(error_message) from e
    status = STATUS_ACTIVE if metadata.get("Status") == "Active" else STATUS_INACTIVE
    return Key(
        account=user_name,
        full_account=user_name,
        age=minutes_since(as_utc(metadata.get("CreateDate"))),
        id=key_id,
        life_remaining=0.0,
        name=key_display_name(user_name, key_id),
        provider=provider,
        status=status,
    )
