"""PyTest configuration and shared test fixtures.

This module provides a recording fake key provider and key factories that
are used across multiple test files.
"""

from collections.abc import Callable
from typing import Any

import pytest

from cloud_key_core.client import KeyClient
from cloud_key_core.model import STATUS_ACTIVE, STATUS_INACTIVE, Key, Provider
from cloud_key_core.registry import ProviderRegistry


class FakeKeyProvider:
    """In-memory key provider that records every call it receives."""

    def __init__(
        self,
        name: str = "fake",
        keys: list[Key] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self._keys = keys or []
        self.error = error
        self.calls: list[tuple[Any, ...]] = []

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        self.calls.append(("keys", scope, include_inactive, credential))
        if self.error is not None:
            raise self.error
        return [
            key for key in self._keys if include_inactive or key.status == STATUS_ACTIVE
        ]

    async def create_key(
        self, scope: str, account: str, credential: str
    ) -> tuple[str, str]:
        self.calls.append(("create_key", scope, account, credential))
        if self.error is not None:
            raise self.error
        return f"{self.name}-new-id", f"{self.name}-secret"

    async def delete_key(
        self, scope: str, account: str, key_id: str, credential: str
    ) -> None:
        self.calls.append(("delete_key", scope, account, key_id, credential))
        if self.error is not None:
            raise self.error


@pytest.fixture
def make_key() -> Callable[..., Key]:
    """Return a factory for keys with sensible defaults."""

    def _make_key(
        key_id: str = "KEY0001",
        provider: str = "fake",
        scope: str = "",
        status: str = STATUS_ACTIVE,
        account: str = "svc-user",
        **overrides: Any,
    ) -> Key:
        values: dict[str, Any] = {
            "account": account,
            "full_account": account,
            "age": 60.0,
            "id": key_id,
            "life_remaining": 0.0,
            "name": f"{account}_{key_id[-4:]}",
            "provider": Provider(provider, scope),
            "status": status,
        }
        values.update(overrides)
        return Key(**values)

    return _make_key


@pytest.fixture
def active_and_inactive_provider(make_key: Callable[..., Key]) -> FakeKeyProvider:
    """Create a fake provider holding one active and one inactive key."""
    return FakeKeyProvider(
        keys=[
            make_key("ACTIVE01"),
            make_key("INACTIVE", status=STATUS_INACTIVE),
        ]
    )


@pytest.fixture
def registry() -> ProviderRegistry:
    """Create an empty provider registry."""
    return ProviderRegistry()


@pytest.fixture
def key_client(registry: ProviderRegistry) -> KeyClient:
    """Create a key client over the empty registry fixture."""
    return KeyClient(registry)


@pytest.fixture
def fake_provider() -> type[FakeKeyProvider]:
    """Return the recording fake provider class."""
    return FakeKeyProvider
