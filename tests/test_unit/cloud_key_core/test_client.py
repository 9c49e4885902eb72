"""Unit tests for the key client dispatcher.

This module covers request fan-out, fail-fast and best-effort aggregation,
and dispatch of create and delete operations to registered adapters.
"""

import asyncio
from collections.abc import Callable

import pytest

from cloud_key_core.client import KeyClient
from cloud_key_core.exceptions import (
    KeyClientError,
    KeyLimitExceededError,
    ProviderAPIError,
    UnknownProviderError,
)
from cloud_key_core.model import Key, Provider
from cloud_key_core.registry import ProviderRegistry


class TestKeysFailFast:
    """Test the fail-fast keys operation."""

    @pytest.mark.asyncio
    async def test_include_inactive_false_filters(
        self, key_client: KeyClient, active_and_inactive_provider
    ) -> None:
        """Test only the active key is returned when inactive keys are excluded."""
        key_client.register_provider("fake", active_and_inactive_provider)

        keys = await key_client.keys([Provider("fake")], include_inactive=False)

        assert [key.id for key in keys] == ["ACTIVE01"]

    @pytest.mark.asyncio
    async def test_include_inactive_true_returns_all(
        self, key_client: KeyClient, active_and_inactive_provider
    ) -> None:
        """Test inactive keys are returned on request."""
        key_client.register_provider("fake", active_and_inactive_provider)

        keys = await key_client.keys([Provider("fake")], include_inactive=True)

        assert [key.id for key in keys] == ["ACTIVE01", "INACTIVE"]

    @pytest.mark.asyncio
    async def test_request_arguments_passed_to_adapter(
        self, key_client: KeyClient, fake_provider
    ) -> None:
        """Test scope, flag and credential reach the adapter."""
        adapter = fake_provider()
        key_client.register_provider("fake", adapter)

        await key_client.keys([Provider("fake", "project-1", "token")], True)

        assert adapter.calls == [("keys", "project-1", True, "token")]

    @pytest.mark.asyncio
    async def test_results_in_request_order(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test keys are accumulated in the order requests were given."""
        key_client.register_provider("one", fake_provider(keys=[make_key("ONE00001")]))
        key_client.register_provider("two", fake_provider(keys=[make_key("TWO00001")]))

        keys = await key_client.keys([Provider("two"), Provider("one")])

        assert [key.id for key in keys] == ["TWO00001", "ONE00001"]

    @pytest.mark.asyncio
    async def test_keys_point_back_at_request(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test returned keys carry the request that produced them."""
        key_client.register_provider("vault", fake_provider(keys=[make_key()]))
        request = Provider("vault", "scope-a", "cred")

        keys = await key_client.keys([request])

        assert keys[0].provider == request

    @pytest.mark.asyncio
    async def test_registered_provider_dispatched(
        self,
        registry: ProviderRegistry,
        fake_provider,
        make_key: Callable[..., Key],
    ) -> None:
        """Test a newly registered name dispatches to the new adapter."""
        builtin = fake_provider("builtin", keys=[make_key("BUILTIN1")])
        registry.register("aws", builtin)
        client = KeyClient(registry)
        custom = fake_provider("custom", keys=[make_key("CUSTOM01")])

        client.register_provider("custom", custom)
        keys = await client.keys([Provider("custom")])

        assert [key.id for key in keys] == ["CUSTOM01"]
        assert builtin.calls == []
        assert len(custom.calls) == 1

    @pytest.mark.asyncio
    async def test_second_request_failure_discards_results(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test a failing second request raises and returns no keys."""
        healthy = fake_provider("healthy", keys=[make_key()])
        broken = fake_provider("broken", error=ProviderAPIError("boom", 500))
        key_client.register_provider("healthy", healthy)
        key_client.register_provider("broken", broken)

        with pytest.raises(ProviderAPIError) as exc_info:
            await key_client.keys([Provider("healthy"), Provider("broken", "s1")])

        assert exc_info.value.provider == "broken"
        assert exc_info.value.scope == "s1"
        assert "provider=broken" in str(exc_info.value)
        assert len(healthy.calls) == 1

    @pytest.mark.asyncio
    async def test_first_failure_stops_sequential_fan_out(
        self, key_client: KeyClient, fake_provider
    ) -> None:
        """Test requests after the failing one are not issued."""
        broken = fake_provider("broken", error=ProviderAPIError("boom"))
        later = fake_provider("later")
        key_client.register_provider("broken", broken)
        key_client.register_provider("later", later)

        with pytest.raises(ProviderAPIError):
            await key_client.keys([Provider("broken"), Provider("later")])

        assert later.calls == []

    @pytest.mark.asyncio
    async def test_unknown_provider_is_an_error(self, key_client: KeyClient) -> None:
        """Test an unregistered provider raises rather than being skipped."""
        with pytest.raises(UnknownProviderError) as exc_info:
            await key_client.keys([Provider("nope", "scope")])

        assert exc_info.value.provider == "nope"
        assert exc_info.value.scope == "scope"

    @pytest.mark.asyncio
    async def test_unexpected_exception_wrapped(
        self, key_client: KeyClient, fake_provider
    ) -> None:
        """Test uncontrolled adapter faults become provider API errors."""
        key_client.register_provider(
            "broken", fake_provider(error=RuntimeError("socket closed"))
        )

        with pytest.raises(ProviderAPIError) as exc_info:
            await key_client.keys([Provider("broken")])

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.provider == "broken"

    @pytest.mark.asyncio
    async def test_no_requests(self, key_client: KeyClient) -> None:
        """Test an empty request list yields no keys."""
        assert await key_client.keys([]) == []


class SlowFailingProvider:
    """Adapter that fails after a delay."""

    def __init__(self, delay: float) -> None:
        self.delay = delay

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        await asyncio.sleep(self.delay)
        raise ProviderAPIError(f"failed after {self.delay}")


class BlockingProvider:
    """Adapter that waits until cancelled."""

    def __init__(self) -> None:
        self.cancelled = False

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


class TestKeysConcurrent:
    """Test concurrent fan-out."""

    @pytest.mark.asyncio
    async def test_concurrent_results_keep_request_order(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test concurrent listing still returns keys in request order."""
        key_client.register_provider("one", fake_provider(keys=[make_key("ONE00001")]))
        key_client.register_provider("two", fake_provider(keys=[make_key("TWO00001")]))

        keys = await key_client.keys(
            [Provider("one"), Provider("two")], concurrent=True
        )

        assert [key.id for key in keys] == ["ONE00001", "TWO00001"]

    @pytest.mark.asyncio
    async def test_first_error_by_completion_wins(self, key_client: KeyClient) -> None:
        """Test the earliest completing failure is raised."""
        key_client.register_provider("slow", SlowFailingProvider(0.2))
        key_client.register_provider("fast", SlowFailingProvider(0.01))

        with pytest.raises(ProviderAPIError) as exc_info:
            await key_client.keys(
                [Provider("slow"), Provider("fast")], concurrent=True
            )

        assert exc_info.value.provider == "fast"

    @pytest.mark.asyncio
    async def test_failure_cancels_outstanding_requests(
        self, key_client: KeyClient
    ) -> None:
        """Test pending requests are cancelled once one fails."""
        blocking = BlockingProvider()
        key_client.register_provider("blocking", blocking)
        key_client.register_provider("fast", SlowFailingProvider(0.01))

        with pytest.raises(ProviderAPIError):
            await key_client.keys(
                [Provider("blocking"), Provider("fast")], concurrent=True
            )

        assert blocking.cancelled


class TestCollectKeys:
    """Test the best-effort collect_keys operation."""

    @pytest.mark.parametrize("concurrent", [False, True])
    @pytest.mark.asyncio
    async def test_successes_kept_and_failures_reported(
        self,
        key_client: KeyClient,
        fake_provider,
        make_key: Callable[..., Key],
        concurrent: bool,
    ) -> None:
        """Test keys from healthy providers survive a failing provider."""
        key_client.register_provider("healthy", fake_provider(keys=[make_key()]))
        key_client.register_provider(
            "broken", fake_provider(error=ProviderAPIError("boom"))
        )
        requests = [Provider("broken", "s1"), Provider("healthy"), Provider("nope")]

        collection = await key_client.collect_keys(requests, concurrent=concurrent)

        assert [key.id for key in collection.keys] == ["KEY0001"]
        assert not collection.ok
        assert [failure.request for failure in collection.failures] == [
            requests[0],
            requests[2],
        ]
        assert isinstance(collection.failures[0].error, ProviderAPIError)
        assert isinstance(collection.failures[1].error, UnknownProviderError)

    @pytest.mark.asyncio
    async def test_all_successful(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test a clean collection reports ok."""
        key_client.register_provider("healthy", fake_provider(keys=[make_key()]))

        collection = await key_client.collect_keys([Provider("healthy")])

        assert collection.ok
        assert len(collection.keys) == 1


class TestCreateAndDelete:
    """Test create and delete dispatch."""

    @pytest.mark.asyncio
    async def test_create_key_uses_key_provider(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test create_key resolves the adapter from the key's provider."""
        adapter = fake_provider("vault")
        key_client.register_provider("vault", adapter)
        key = make_key(
            provider="vault",
            scope="proj",
            full_account="svc@proj.iam",
        )

        key_id, secret = await key_client.create_key(key)

        assert (key_id, secret) == ("vault-new-id", "vault-secret")
        assert adapter.calls == [("create_key", "proj", "svc@proj.iam", "")]

    @pytest.mark.asyncio
    async def test_create_key_from_scratch(
        self, key_client: KeyClient, fake_provider
    ) -> None:
        """Test create_key_from_scratch uses the explicit provider request."""
        adapter = fake_provider("vault")
        key_client.register_provider("vault", adapter)

        await key_client.create_key_from_scratch(
            Provider("vault", "proj", "cred"), "svc"
        )

        assert adapter.calls == [("create_key", "proj", "svc", "cred")]

    @pytest.mark.asyncio
    async def test_create_key_limit_error_propagates(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test policy errors reach the caller with request context."""
        key_client.register_provider(
            "vault", fake_provider(error=KeyLimitExceededError("svc", 2))
        )

        with pytest.raises(KeyLimitExceededError) as exc_info:
            await key_client.create_key(make_key(provider="vault"))

        assert exc_info.value.provider == "vault"
        assert exc_info.value.limit == 2

    @pytest.mark.asyncio
    async def test_delete_key_uses_full_account_and_id(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test delete_key passes full_account and id to the adapter."""
        adapter = fake_provider("vault")
        key_client.register_provider("vault", adapter)
        key = make_key("KEYX", provider="vault", scope="proj", full_account="pfx-desc")

        await key_client.delete_key(key)

        assert adapter.calls == [("delete_key", "proj", "pfx-desc", "KEYX", "")]

    @pytest.mark.asyncio
    async def test_delete_unknown_provider(
        self, key_client: KeyClient, make_key: Callable[..., Key]
    ) -> None:
        """Test deleting through an unregistered provider raises."""
        with pytest.raises(KeyClientError):
            await key_client.delete_key(make_key(provider="nope"))

    @pytest.mark.asyncio
    async def test_create_unexpected_exception_wrapped(
        self, key_client: KeyClient, fake_provider
    ) -> None:
        """Test uncontrolled faults during create become provider API errors."""
        key_client.register_provider(
            "broken", fake_provider(error=RuntimeError("socket closed"))
        )

        with pytest.raises(ProviderAPIError) as exc_info:
            await key_client.create_key_from_scratch(Provider("broken", "s"), "acct")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.provider == "broken"
        assert exc_info.value.scope == "s"

    @pytest.mark.asyncio
    async def test_delete_unexpected_exception_wrapped(
        self, key_client: KeyClient, fake_provider, make_key: Callable[..., Key]
    ) -> None:
        """Test uncontrolled faults during delete become provider API errors."""
        key_client.register_provider(
            "broken", fake_provider(error=RuntimeError("socket closed"))
        )

        with pytest.raises(ProviderAPIError) as exc_info:
            await key_client.delete_key(make_key(provider="broken"))

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.provider == "broken"
