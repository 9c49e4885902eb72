"""Standardized exceptions for the cloud key core module.

This module provides the error taxonomy shared by the provider adapters and
the dispatcher: configuration, normalization, provider API and policy errors.
"""


class KeyClientError(Exception):
    """Base exception for all cloud key client errors."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """Initialize the error with a message and optional error code.

        Args:
            message: Human-readable error message.
            error_code: Optional error code for programmatic handling.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        # Filled in by the dispatcher with the request that failed
        self.provider: str | None = None
        self.scope: str | None = None

    def __str__(self) -> str:
        if self.provider is None:
            return self.message
        if self.scope:
            return f"{self.message} (provider={self.provider}, scope={self.scope})"
        return f"{self.message} (provider={self.provider})"


class ConfigurationError(KeyClientError):
    """Raised when a request is missing or carries invalid configuration."""

    def __init__(self, message: str, component: str | None = None) -> None:
        """Initialize configuration error.

        Args:
            message: Error message describing the configuration issue.
            component: Optional component name where the error occurred.
        """
        super().__init__(message, "CONFIG_ERROR")
        self.component = component


class UnknownProviderError(ConfigurationError):
    """Raised when no adapter is registered under a provider name."""

    def __init__(self, provider_name: str, available: list[str] | None = None) -> None:
        """Initialize the unknown provider error.

        Args:
            provider_name: The provider name that could not be resolved.
            available: Registered provider names, for the error message.
        """
        message = f"Unknown provider: {provider_name}"
        if available:
            message += f" (registered: {', '.join(sorted(available))})"
        super().__init__(message, "provider_registry")
        self.provider_name = provider_name


class NormalizationError(KeyClientError):
    """Raised when provider metadata cannot be normalized into a Key."""

    def __init__(self, message: str, value: str | None = None) -> None:
        """Initialize normalization error.

        Args:
            message: Error message describing the normalization failure.
            value: Optional provider-native value that could not be normalized.
        """
        super().__init__(message, "NORMALIZATION_ERROR")
        self.value = value


class DelimiterNotFoundError(NormalizationError):
    """Raised when an expected delimiter is absent from a string."""

    def __init__(self, delimiter: str, target: str) -> None:
        """Initialize the delimiter error.

        Args:
            delimiter: The delimiter that was searched for.
            target: The string that was searched.
        """
        super().__init__(f"Delimiter '{delimiter}' not found in: {target}", target)
        self.delimiter = delimiter


class ProviderAPIError(KeyClientError):
    """Raised when a provider API call fails or returns an error payload."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialize provider API error.

        Args:
            message: Error message describing the API failure.
            status: Optional HTTP status or provider status code.
        """
        super().__init__(message, "PROVIDER_API_ERROR")
        self.status = status


class KeyLimitExceededError(KeyClientError):
    """Raised when creating a key would exceed the per-account key limit."""

    def __init__(self, account: str, limit: int) -> None:
        """Initialize the key limit error.

        Args:
            account: The account whose key count is at the limit.
            limit: The provider's maximum number of live keys per account.
        """
        super().__init__(
            f"Number of keys for account: {account} is already at its limit ({limit})",
            "POLICY_ERROR",
        )
        self.account = account
        self.limit = limit
