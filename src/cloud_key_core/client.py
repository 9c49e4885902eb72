"""Key client: fan-out and dispatch over registered providers.

This module provides the KeyClient class, the caller-facing surface for
listing, creating and deleting keys across providers. Listing builds one task
per ``(provider, scope)`` request and joins the tasks either sequentially, in
request order, or concurrently.

Two aggregation modes are offered:

* ``keys`` is fail-fast: the first failing request aborts the call and its
  error is raised; keys gathered from other requests are discarded.
* ``collect_keys`` is best-effort: every successful request contributes its
  keys and every failed request is reported as a ``RequestFailure``.
"""

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from functools import partial

import structlog

from cloud_key_core.exceptions import KeyClientError, ProviderAPIError
from cloud_key_core.model import Key, Provider
from cloud_key_core.providers import KeyProvider
from cloud_key_core.registry import ProviderRegistry

# Get logger for this module
logger = structlog.get_logger(__name__)

ListTask = Callable[[], Awaitable[list[Key]]]


@dataclass
class RequestFailure:
    """A provider request that failed during a best-effort listing."""

    request: Provider
    error: KeyClientError


@dataclass
class KeyCollection:
    """Result of a best-effort listing."""

    keys: list[Key] = field(default_factory=list)
    failures: list[RequestFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _attach_request(error: KeyClientError, request: Provider) -> KeyClientError:
    """Record which request an error belongs to, unless already recorded."""
    if error.provider is None:
        error.provider = request.provider
        error.scope = request.scope
    return error


def _unexpected_error(error: Exception, request: Provider) -> ProviderAPIError:
    """Wrap an uncontrolled adapter fault in a ProviderAPIError for the request."""
    wrapped = ProviderAPIError(f"Unexpected provider error: {error}")
    _attach_request(wrapped, request)
    return wrapped


def _readdress(key: Key, request: Provider) -> Key:
    """Point a key back at the request that produced it."""
    if key.provider == request:
        return key
    return dataclasses.replace(key, provider=request)


async def _join_sequential(tasks: Sequence[ListTask]) -> list[list[Key]]:
    return [await task() for task in tasks]


async def _join_concurrent(tasks: Sequence[ListTask]) -> list[list[Key]]:
    """Run tasks concurrently, raising the first error by completion.

    Outstanding tasks are cancelled once one fails. Results keep task order.
    """
    running = [asyncio.create_task(task()) for task in tasks]
    try:
        for next_done in asyncio.as_completed(running):
            await next_done
    finally:
        for task in running:
            task.cancel()
        await asyncio.gather(*running, return_exceptions=True)
    return [task.result() for task in running]


async def _join_settled(
    tasks: Sequence[ListTask], concurrent: bool
) -> list[list[Key] | KeyClientError]:
    """Run every task to completion, returning results or errors in task order."""

    async def settle(task: ListTask) -> list[Key] | KeyClientError:
        try:
            return await task()
        except KeyClientError as e:
            return e

    if concurrent:
        return list(await asyncio.gather(*(settle(task) for task in tasks)))
    return [await settle(task) for task in tasks]


class KeyClient:
    """Lists, creates and deletes keys through a provider registry."""

    def __init__(self, registry: ProviderRegistry) -> None:
        """Initialize the client.

        Args:
            registry: Registry used to resolve provider names to adapters.
        """
        self.registry = registry

    def register_provider(self, name: str, adapter: KeyProvider) -> None:
        """Register an adapter for a new or existing provider name."""
        self.registry.register(name, adapter)

    async def _list_request(
        self, request: Provider, include_inactive: bool
    ) -> list[Key]:
        """List keys for one request, tagging any error with the request."""
        try:
            adapter = self.registry.get(request.provider)
            keys = await adapter.keys(
                request.scope, include_inactive, request.credential
            )
        except KeyClientError as e:
            _attach_request(e, request)
            logger.warning(
                "KEYS_REQUEST_FAILED",
                provider=request.provider,
                scope=request.scope,
                error=str(e),
            )
            raise
        except Exception as e:
            error = _unexpected_error(e, request)
            logger.exception(
                "KEYS_REQUEST_FAILED",
                provider=request.provider,
                scope=request.scope,
                error=str(e),
            )
            raise error from e
        return [_readdress(key, request) for key in keys]

    def _list_tasks(
        self, requests: Sequence[Provider], include_inactive: bool
    ) -> list[ListTask]:
        return [
            partial(self._list_request, request, include_inactive)
            for request in requests
        ]

    async def keys(
        self,
        requests: Sequence[Provider],
        include_inactive: bool = False,
        *,
        concurrent: bool = False,
    ) -> list[Key]:
        """List keys for every request, failing fast.

        Args:
            requests: Provider requests, queried in the order given.
            include_inactive: Whether inactive keys are returned.
            concurrent: Query the providers concurrently rather than in turn.

        Returns:
            Keys from all requests, in request order.

        Raises:
            KeyClientError: The first error from any request, with its
                ``provider`` and ``scope`` set. No keys are returned.
        """
        tasks = self._list_tasks(requests, include_inactive)
        if concurrent:
            batches = await _join_concurrent(tasks)
        else:
            batches = await _join_sequential(tasks)
        keys = [key for batch in batches for key in batch]
        logger.info(
            "KEYS_LISTED",
            request_count=len(requests),
            key_count=len(keys),
            include_inactive=include_inactive,
        )
        return keys

    async def collect_keys(
        self,
        requests: Sequence[Provider],
        include_inactive: bool = False,
        *,
        concurrent: bool = False,
    ) -> KeyCollection:
        """List keys for every request, collecting failures instead of raising.

        Args:
            requests: Provider requests, queried in the order given.
            include_inactive: Whether inactive keys are returned.
            concurrent: Query the providers concurrently rather than in turn.

        Returns:
            Keys from the successful requests and one failure per failed request.
        """
        tasks = self._list_tasks(requests, include_inactive)
        outcomes = await _join_settled(tasks, concurrent)
        collection = KeyCollection()
        for request, outcome in zip(requests, outcomes, strict=True):
            if isinstance(outcome, KeyClientError):
                collection.failures.append(RequestFailure(request, outcome))
            else:
                collection.keys.extend(outcome)
        logger.info(
            "KEYS_COLLECTED",
            request_count=len(requests),
            key_count=len(collection.keys),
            failure_count=len(collection.failures),
        )
        return collection

    async def create_key(self, key: Key) -> tuple[str, str]:
        """Create a new key for the account that owns ``key``.

        Returns:
            The new key's identifier and its secret material.
        """
        return await self.create_key_from_scratch(key.provider, key.full_account)

    async def create_key_from_scratch(
        self, provider: Provider, account: str
    ) -> tuple[str, str]:
        """Create a new key for an account without an existing key to copy.

        Args:
            provider: Request naming the provider, scope and query credential.
            account: The ``full_account`` identifier of the owner.

        Returns:
            The new key's identifier and its secret material.
        """
        try:
            adapter = self.registry.get(provider.provider)
            key_id, secret = await adapter.create_key(
                provider.scope, account, provider.credential
            )
        except KeyClientError as e:
            _attach_request(e, provider)
            raise
        except Exception as e:
            logger.exception(
                "KEY_CREATE_FAILED", provider=provider.provider, scope=provider.scope
            )
            raise _unexpected_error(e, provider) from e
        logger.info(
            "KEY_CREATED",
            provider=provider.provider,
            scope=provider.scope,
            account=account,
            key_id=key_id,
        )
        return key_id, secret

    async def delete_key(self, key: Key) -> None:
        """Delete ``key`` from its provider."""
        provider = key.provider
        try:
            adapter = self.registry.get(provider.provider)
            await adapter.delete_key(
                provider.scope, key.full_account, key.id, provider.credential
            )
        except KeyClientError as e:
            _attach_request(e, provider)
            raise
        except Exception as e:
            logger.exception(
                "KEY_DELETE_FAILED", provider=provider.provider, scope=provider.scope
            )
            raise _unexpected_error(e, provider) from e
        logger.info(
            "KEY_DELETED",
            provider=provider.provider,
            scope=provider.scope,
            account=key.full_account,
            key_id=key.id,
        )
