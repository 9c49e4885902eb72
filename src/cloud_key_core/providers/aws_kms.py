"""AWS KMS key provider.

This module provides the AwsKmsKeyProvider class, which inventories the KMS
keys of an AWS account. KMS keys are listed for age and status auditing only;
they are not created or deleted through this client.
"""

import asyncio
import os
from collections.abc import Iterator
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from cloud_key_core.exceptions import ConfigurationError, NormalizationError
from cloud_key_core.model import STATUS_ACTIVE, STATUS_INACTIVE, Key, Provider
from cloud_key_core.normalization import (
    as_utc,
    key_display_name,
    minutes_remaining,
    minutes_since,
)
from cloud_key_core.providers.aws import DEFAULT_REGION, aws_api_error, aws_client

# Get logger for this module
logger = structlog.get_logger(__name__)

AWS_KMS_PROVIDER_NAME = "aws-kms"
KMS_ENABLED_STATE = "Enabled"


class AwsKmsKeyProvider:
    """Key provider for AWS KMS keys."""

    def __init__(
        self,
        region: str | None = None,
        profile_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize the AWS KMS key provider.

        Args:
            region: AWS region for the KMS client. Defaults to AWS_REGION env var or us-east-1.
            profile_name: Optional AWS profile for the boto3 session.
            endpoint_url: Optional custom endpoint URL for testing or local development.
        """
        if region is None:
            region = os.getenv("AWS_REGION", DEFAULT_REGION)
        self.region = region
        self.profile_name = profile_name
        self.endpoint_url = endpoint_url

    def _kms_client(self) -> Any:
        return aws_client("kms", self.region, self.profile_name, self.endpoint_url)

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        """List the KMS keys of the account, described one by one."""
        provider = Provider(AWS_KMS_PROVIDER_NAME, scope, credential)
        try:
            keys = await asyncio.to_thread(self._list_keys, provider, include_inactive)
        except (BotoCoreError, ClientError) as e:
            raise aws_api_error("list", e, service="KMS") from e
        logger.debug("AWS_KMS_KEYS_LISTED", region=self.region, key_count=len(keys))
        return keys

    def _list_keys(self, provider: Provider, include_inactive: bool) -> list[Key]:
        client = self._kms_client()
        keys: list[Key] = []
        for key_id in _iter_key_ids(client):
            metadata = client.describe_key(KeyId=key_id).get("KeyMetadata", {})
            key = key_from_kms_metadata(metadata, provider)
            if include_inactive or key.is_active:
                keys.append(key)
        return keys

    async def create_key(
        self, scope: str, account: str, credential: str
    ) -> tuple[str, str]:
        """KMS keys are not created through this client."""
        error_message = "Creating AWS KMS keys is not supported"
        raise ConfigurationError(error_message, AWS_KMS_PROVIDER_NAME)

    async def delete_key(
        self, scope: str, account: str, key_id: str, credential: str
    ) -> None:
        """KMS keys are not deleted through this client."""
        error_message = "Deleting AWS KMS keys is not supported"
        raise ConfigurationError(error_message, AWS_KMS_PROVIDER_NAME)


def _iter_key_ids(client: Any) -> Iterator[str]:
    for page in client.get_paginator("list_keys").paginate():
        for entry in page.get("Keys", []):
            yield entry["KeyId"]


def key_from_kms_metadata(metadata: dict[str, Any], provider: Provider) -> Key:
    """Normalize one ``KeyMetadata`` entry into a Key.

    Only keys in the ``Enabled`` state are active. ``ValidTo`` is set only for
    keys with imported material that expires; other keys report zero
    remaining life.

    Raises:
        NormalizationError: If the key ID or creation date is missing.
    """
    try:
        key_id = metadata["KeyId"]
    except KeyError as e:
        error_message = f"KMS key metadata missing field: {e.args[0]}"
        raise NormalizationError(error_message) from e
    account = metadata.get("AWSAccountId") or ""
    life_remaining = 0.0
    if metadata.get("ValidTo") is not None:
        life_remaining = minutes_remaining(as_utc(metadata["ValidTo"]))
    enabled = metadata.get("KeyState") == KMS_ENABLED_STATE
    return Key(
        account=account,
        full_account=metadata.get("Arn") or key_id,
        age=minutes_since(as_utc(metadata.get("CreationDate"))),
        id=key_id,
        life_remaining=life_remaining,
        name=key_display_name(account, key_id),
        provider=provider,
        status=STATUS_ACTIVE if enabled else STATUS_INACTIVE,
    )
