"""Aiven API token provider.

This module provides the AivenKeyProvider class, which lists, creates and
revokes Aiven API tokens for the user owning the query token.

Only tokens with a non-empty description are managed: the description is the
identifier used to track tokens configured for rotation, so tokens created
outside this system without one are ignored.
"""

from typing import Any

import httpx
import structlog

from cloud_key_core.exceptions import (
    ConfigurationError,
    NormalizationError,
    ProviderAPIError,
)
from cloud_key_core.model import STATUS_ACTIVE, STATUS_INACTIVE, Key, Provider
from cloud_key_core.normalization import (
    TIMESTAMP_FORMAT,
    minutes_remaining,
    minutes_since,
    parse_timestamp,
    substring,
)

# Get logger for this module
logger = structlog.get_logger(__name__)

AIVEN_PROVIDER_NAME = "aiven"
AIVEN_TOKEN_ENDPOINT = "https://api.aiven.io/v1/access_token"
AIVEN_TIME_FORMATS = (TIMESTAMP_FORMAT, "%Y-%m-%dT%H:%M:%S.%fZ")
FULL_ACCOUNT_SEPARATOR = "-"


def token_status(currently_active: bool) -> str:
    """Return the key status for a token's ``currently_active`` flag."""
    return STATUS_ACTIVE if currently_active else STATUS_INACTIVE


def full_account_for_token(token_prefix: str, description: str) -> str:
    """Return the ``"<prefix>-<description>"`` identifier of a token."""
    return f"{token_prefix}{FULL_ACCOUNT_SEPARATOR}{description}"


def token_prefix_from_full_account(full_account: str) -> str:
    """Return the token prefix part of a ``full_account`` identifier."""
    return substring(full_account, "", FULL_ACCOUNT_SEPARATOR)


def token_description_from_full_account(full_account: str) -> str:
    """Return the description part of a ``full_account`` identifier."""
    return substring(full_account, FULL_ACCOUNT_SEPARATOR, "")


def api_error_from_errors(errors: list[dict[str, Any]]) -> ProviderAPIError:
    """Collapse the ``errors`` list of an Aiven response into one error."""
    messages = [
        f"msg: {error.get('message', '')}, status: {error.get('status', '')}"
        for error in errors
    ]
    status = errors[0].get("status") if errors else None
    return ProviderAPIError(
        ",".join(messages), status if isinstance(status, int) else None
    )


class AivenKeyProvider:
    """Key provider for Aiven API tokens."""

    def __init__(
        self,
        endpoint: str = AIVEN_TOKEN_ENDPOINT,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Aiven key provider.

        Args:
            endpoint: The Aiven access token endpoint.
            timeout: HTTP timeout in seconds.
            transport: Optional httpx transport, used to stub the API in tests.
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _request(
        self,
        method: str,
        url: str,
        api_token: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one authenticated request and return the decoded JSON body.

        Raises:
            ConfigurationError: If no API token was supplied.
            ProviderAPIError: On transport failure, an undecodable body, an
                ``errors`` list in the body, or an HTTP error status.
        """
        if not api_token:
            error_message = "Aiven API token needs to be set"
            raise ConfigurationError(error_message, AIVEN_PROVIDER_NAME)

        headers = {"Authorization": f"Bearer {api_token}"}
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                response = await client.request(
                    method, url, headers=headers, json=payload
                )
            except httpx.HTTPError as e:
                error_message = f"Aiven API request failed: {e}"
                raise ProviderAPIError(error_message) from e

        try:
            body = response.json()
        except ValueError as e:
            error_message = (
                f"Failed decoding response: {e}, response from Aiven API: {response.text}"
            )
            raise ProviderAPIError(error_message, response.status_code) from e
        if not isinstance(body, dict):
            error_message = f"Unexpected response from Aiven API: {response.text}"
            raise ProviderAPIError(error_message, response.status_code)

        errors = body.get("errors") or []
        if errors:
            raise api_error_from_errors(errors)
        if response.is_error:
            error_message = body.get("message") or f"HTTP {response.status_code}"
            raise ProviderAPIError(error_message, response.status_code)
        return body

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        """List the described tokens of the user owning ``credential``."""
        # https://api.aiven.io/doc/#tag/User/operation/AccessTokenList
        body = await self._request("GET", self.endpoint, credential)
        provider = Provider(AIVEN_PROVIDER_NAME, scope, credential)
        keys = []
        for token in body.get("tokens") or []:
            if not token.get("description"):
                continue
            key = key_from_token(token, provider)
            if include_inactive or key.is_active:
                keys.append(key)
        logger.debug("AIVEN_KEYS_LISTED", key_count=len(keys))
        return keys

    async def create_key(
        self, scope: str, account: str, credential: str
    ) -> tuple[str, str]:
        """Create a token carrying the description held in ``account``."""
        # https://api.aiven.io/doc/#tag/User/operation/AccessTokenCreate
        description = token_description_from_full_account(account)
        body = await self._request(
            "POST", self.endpoint, credential, {"description": description}
        )
        try:
            key_id, secret = body["token_prefix"], body["full_token"]
        except KeyError as e:
            error_message = f"Aiven create token response missing field: {e.args[0]}"
            raise ProviderAPIError(error_message) from e
        logger.info("AIVEN_KEY_CREATED", description=description, key_id=key_id)
        return key_id, secret

    async def delete_key(
        self, scope: str, account: str, key_id: str, credential: str
    ) -> None:
        """Revoke the token whose prefix is held in ``account``."""
        # https://api.aiven.io/doc/#tag/User/operation/AccessTokenRevoke
        token_prefix = token_prefix_from_full_account(account)
        await self._request("DELETE", f"{self.endpoint}/{token_prefix}", credential)
        logger.info("AIVEN_KEY_DELETED", key_id=token_prefix)


def key_from_token(token: dict[str, Any], provider: Provider) -> Key:
    """Normalize one Aiven token into a Key.

    ``expiry_time`` is optional; tokens without one report zero remaining life.
    """
    description = token["description"]
    token_prefix = token.get("token_prefix") or ""
    if not token_prefix:
        error_message = f"Aiven token '{description}' has no token prefix"
        raise NormalizationError(error_message)
    created = parse_timestamp(token.get("create_time") or "", *AIVEN_TIME_FORMATS)
    life_remaining = 0.0
    if token.get("expiry_time"):
        expires = parse_timestamp(token["expiry_time"], *AIVEN_TIME_FORMATS)
        life_remaining = minutes_remaining(expires)
    return Key(
        account=description,
        full_account=full_account_for_token(token_prefix, description),
        age=minutes_since(created),
        id=token_prefix,
        life_remaining=life_remaining,
        name=description,
        provider=provider,
        status=token_status(bool(token.get("currently_active"))),
    )
