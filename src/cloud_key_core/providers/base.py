"""Base key provider interface.

This module defines the KeyProvider protocol that every provider adapter
implements, so the dispatcher never depends on a concrete adapter type.
"""

from typing import Protocol

from cloud_key_core.model import Key


class KeyProvider(Protocol):
    """Interface for provider adapters."""

    async def keys(
        self, scope: str, include_inactive: bool, credential: str
    ) -> list[Key]:
        """List every key visible under a scope.

        Args:
            scope: Provider-specific addressing context (e.g. a GCP project).
            include_inactive: Whether inactive keys are returned.
            credential: Bearer used to authenticate the query, where needed.

        Returns:
            Fully normalized keys. No partially populated key is ever returned.
        """
        ...

    async def create_key(
        self, scope: str, account: str, credential: str
    ) -> tuple[str, str]:
        """Create one new key for an account.

        Args:
            scope: Provider-specific addressing context.
            account: The ``full_account`` identifier of the owner.
            credential: Bearer used to authenticate the call, where needed.

        Returns:
            The new key's identifier and its secret material.
        """
        ...

    async def delete_key(
        self, scope: str, account: str, key_id: str, credential: str
    ) -> None:
        """Delete one key.

        Args:
            scope: Provider-specific addressing context.
            account: The ``full_account`` identifier of the owner.
            key_id: The provider-native key identifier.
            credential: Bearer used to authenticate the call, where needed.
        """
        ...
