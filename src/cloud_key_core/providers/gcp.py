"""GCP service account key provider.

This module provides the GcpKeyProvider class, which lists, creates and
deletes user-managed service account keys in a GCP project through the IAM
Admin API. Key identity is derived from resource names of the form
``projects/{PROJECT}/serviceAccounts/{SA}/keys/{KEY}``.
"""

import asyncio
import base64
from typing import Any

import structlog
from google.api_core.exceptions import GoogleAPICallError, GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import iam_admin_v1

from cloud_key_core.exceptions import (
    ConfigurationError,
    KeyLimitExceededError,
    ProviderAPIError,
)
from cloud_key_core.model import STATUS_ACTIVE, STATUS_INACTIVE, Key, Provider
from cloud_key_core.normalization import (
    as_utc,
    key_display_name,
    minutes_remaining,
    minutes_since,
    substring,
)

# Get logger for this module
logger = structlog.get_logger(__name__)

GCP_PROVIDER_NAME = "gcp"
GCP_ACCESS_KEY_LIMIT = 10

SERVICE_ACCOUNT_PREFIX = "serviceAccounts/"
SERVICE_ACCOUNT_SUFFIX = "@"
KEY_PREFIX = "/keys/"

USER_MANAGED = iam_admin_v1.ListServiceAccountKeysRequest.KeyType.USER_MANAGED


def project_name(project: str) -> str:
    """Return a resource name of the form ``projects/{PROJECT}``."""
    return f"projects/{project}"


def service_account_name(project: str, service_account: str) -> str:
    """Return a resource name of the form ``projects/{PROJECT}/serviceAccounts/{SA}``."""
    return f"{project_name(project)}/serviceAccounts/{service_account}"


def service_account_key_name(project: str, service_account: str, key_id: str) -> str:
    """Return a resource name of the form ``.../serviceAccounts/{SA}/keys/{KEY}``."""
    return f"{service_account_name(project, service_account)}/keys/{key_id}"


def parse_service_account_key_name(name: str) -> tuple[str, str, str]:
    """Split a key resource name into its account parts and key ID.

    Inverse of ``service_account_key_name``.

    Returns:
        The short account name, the full service account email and the key ID.

    Raises:
        DelimiterNotFoundError: If the name does not have the expected shape.
    """
    full_account = substring(name, SERVICE_ACCOUNT_PREFIX, KEY_PREFIX)
    account = substring(full_account, "", SERVICE_ACCOUNT_SUFFIX)
    key_id = substring(name, KEY_PREFIX, "")
    return account, full_account, key_id


def validate_project(project: str) -> None:
    """Raise a ConfigurationError when no GCP project was supplied."""
    if not project:
        error_message = "GCP project string needs to be set"
        raise ConfigurationError(error_message, GCP_PROVIDER_NAME)


def _api_error(operation: str, error: Exception) -> ProviderAPIError:
    """Convert a Google client error into a ProviderAPIError."""
    status = None
    if isinstance(error, GoogleAPICallError) and isinstance(error.code, int):
        status = error.code
    return ProviderAPIError(f"GCP IAM {operation} failed: {error}", status)


class GcpKeyProvider:
    """Key provider for GCP user-managed service account keys."""

    def __init__(self, credentials: Any = None) -> None:
        """Initialize the GCP key provider.

        Args:
            credentials: Optional google-auth credentials. Application default
                credentials are used when omitted.
        """
        self.credentials = credentials

    def _iam_client(self) -> iam_admin_v1.IAMClient:
        return iam_admin_v1.IAMClient(credentials=self.credentials)

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        """List user-managed keys for every service account in a project."""
        validate_project(scope)
        provider = Provider(GCP_PROVIDER_NAME, scope, credential)
        try:
            keys = await asyncio.to_thread(self._list_keys, provider, include_inactive)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise _api_error("list", e) from e
        logger.debug("GCP_KEYS_LISTED", project=scope, key_count=len(keys))
        return keys

    def _list_keys(self, provider: Provider, include_inactive: bool) -> list[Key]:
        client = self._iam_client()
        keys: list[Key] = []
        for account in _service_accounts(client, provider.scope):
            if account.disabled and not include_inactive:
                continue
            name = service_account_name(provider.scope, account.email)
            for gcp_key in _service_account_keys(client, name):
                key = key_from_service_account_key(
                    gcp_key, provider, account_disabled=account.disabled
                )
                if include_inactive or key.is_active:
                    keys.append(key)
        return keys

    async def create_key(
        self, scope: str, account: str, credential: str
    ) -> tuple[str, str]:
        """Create a key for a service account, respecting the key limit."""
        validate_project(scope)
        try:
            key_id, private_key = await asyncio.to_thread(
                self._create_key, scope, account
            )
        except (GoogleAPIError, GoogleAuthError) as e:
            raise _api_error("create", e) from e
        logger.info("GCP_KEY_CREATED", project=scope, account=account, key_id=key_id)
        return key_id, private_key

    def _create_key(self, project: str, account: str) -> tuple[str, str]:
        client = self._iam_client()
        name = service_account_name(project, account)
        existing = _service_account_keys(client, name)
        if len(existing) >= GCP_ACCESS_KEY_LIMIT:
            raise KeyLimitExceededError(account, GCP_ACCESS_KEY_LIMIT)
        request = iam_admin_v1.CreateServiceAccountKeyRequest(name=name)
        gcp_key = client.create_service_account_key(request=request)
        key_id = gcp_key.name.rsplit("/", 1)[-1]
        private_key = base64.b64encode(gcp_key.private_key_data).decode("ascii")
        return key_id, private_key

    async def delete_key(
        self, scope: str, account: str, key_id: str, credential: str
    ) -> None:
        """Delete a service account key."""
        validate_project(scope)
        name = service_account_key_name(scope, account, key_id)
        try:
            await asyncio.to_thread(self._delete_key, name)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise _api_error("delete", e) from e
        logger.info("GCP_KEY_DELETED", project=scope, account=account, key_id=key_id)

    def _delete_key(self, name: str) -> None:
        request = iam_admin_v1.DeleteServiceAccountKeyRequest(name=name)
        self._iam_client().delete_service_account_key(request=request)


def _service_accounts(client: iam_admin_v1.IAMClient, project: str) -> list[Any]:
    """Return every service account in a project, following page tokens."""
    accounts: list[Any] = []
    page_token = ""
    while True:
        request = iam_admin_v1.ListServiceAccountsRequest(
            name=project_name(project), page_token=page_token
        )
        response = client.list_service_accounts(request=request)
        accounts.extend(response.accounts)
        page_token = response.next_page_token
        if not page_token:
            return accounts


def _service_account_keys(client: iam_admin_v1.IAMClient, name: str) -> list[Any]:
    request = iam_admin_v1.ListServiceAccountKeysRequest(
        name=name, key_types=[USER_MANAGED]
    )
    return list(client.list_service_account_keys(request=request).keys)


def key_from_service_account_key(
    gcp_key: Any, provider: Provider, account_disabled: bool = False
) -> Key:
    """Normalize one service account key into a Key.

    Keys of a disabled service account, or keys that are themselves disabled,
    are reported as inactive.
    """
    created = as_utc(gcp_key.valid_after_time)
    expires = as_utc(gcp_key.valid_before_time)
    account, full_account, key_id = parse_service_account_key_name(gcp_key.name)
    disabled = account_disabled or bool(getattr(gcp_key, "disabled", False))
    return Key(
        account=account,
        full_account=full_account,
        age=minutes_since(created),
        id=key_id,
        life_remaining=minutes_remaining(expires),
        name=key_display_name(account, key_id),
        provider=provider,
        status=STATUS_INACTIVE if disabled else STATUS_ACTIVE,
    )
