"""Provider registry.

This module maps provider names to adapter instances. A registry is an
ordinary object built by the composition root and handed to a ``KeyClient``;
new providers are added with ``register`` without touching the dispatcher.
"""

from collections.abc import Mapping

import structlog

from cloud_key_core.exceptions import ConfigurationError, UnknownProviderError
from cloud_key_core.providers import (
    AIVEN_PROVIDER_NAME,
    AWS_KMS_PROVIDER_NAME,
    AWS_PROVIDER_NAME,
    GCP_PROVIDER_NAME,
    AivenKeyProvider,
    AwsKeyProvider,
    AwsKmsKeyProvider,
    GcpKeyProvider,
    KeyProvider,
)

# Get logger for this module
logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """Mapping of provider names to key provider adapters."""

    def __init__(self, providers: Mapping[str, KeyProvider] | None = None) -> None:
        """Initialize the registry.

        Args:
            providers: Optional initial name to adapter mapping.
        """
        self._providers: dict[str, KeyProvider] = {}
        for name, adapter in (providers or {}).items():
            self.register(name, adapter)

    def register(self, name: str, adapter: KeyProvider) -> None:
        """Register an adapter under a name, replacing any previous one."""
        if not name:
            error_message = "Provider name must not be empty"
            raise ConfigurationError(error_message, "provider_registry")
        replaced = name in self._providers
        self._providers[name] = adapter
        logger.debug(
            "PROVIDER_REGISTERED",
            provider=name,
            adapter=type(adapter).__name__,
            replaced=replaced,
        )

    def unregister(self, name: str) -> None:
        """Remove a registered adapter.

        Raises:
            UnknownProviderError: If nothing is registered under the name.
        """
        if name not in self._providers:
            raise UnknownProviderError(name, self.names())
        del self._providers[name]

    def get(self, name: str) -> KeyProvider:
        """Return the adapter registered under a name.

        Raises:
            UnknownProviderError: If nothing is registered under the name.
        """
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProviderError(name, self.names()) from None

    def names(self) -> list[str]:
        """List the registered provider names."""
        return list(self._providers.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)


def create_default_registry() -> ProviderRegistry:
    """Create a registry seeded with the built-in adapters.

    The built-in adapters cover AWS IAM, AWS KMS, GCP and Aiven.
    """
    return ProviderRegistry(
        {
            AWS_PROVIDER_NAME: AwsKeyProvider(),
            AWS_KMS_PROVIDER_NAME: AwsKmsKeyProvider(),
            GCP_PROVIDER_NAME: GcpKeyProvider(),
            AIVEN_PROVIDER_NAME: AivenKeyProvider(),
        }
    )
