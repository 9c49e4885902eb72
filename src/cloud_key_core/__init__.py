"""Inventory and management of cloud API keys behind one normalized model."""

from .client import KeyClient, KeyCollection, RequestFailure
from .config_factory import create_key_client, create_registry
from .exceptions import (
    ConfigurationError,
    DelimiterNotFoundError,
    KeyClientError,
    KeyLimitExceededError,
    NormalizationError,
    ProviderAPIError,
    UnknownProviderError,
)
from .model import STATUS_ACTIVE, STATUS_INACTIVE, Key, Provider
from .providers import KeyProvider
from .registry import ProviderRegistry, create_default_registry

__all__ = [
    "STATUS_ACTIVE",
    "STATUS_INACTIVE",
    "ConfigurationError",
    "DelimiterNotFoundError",
    "Key",
    "KeyClient",
    "KeyClientError",
    "KeyCollection",
    "KeyLimitExceededError",
    "KeyProvider",
    "NormalizationError",
    "Provider",
    "ProviderAPIError",
    "ProviderRegistry",
    "RequestFailure",
    "UnknownProviderError",
    "create_default_registry",
    "create_key_client",
    "create_registry",
]
