"""CLI configuration using environ-config.

This module defines the configuration classes for command-line arguments.
Every field can be given as ``--field-name value`` or through the matching
``CLOUD_KEY_APP_FIELD_NAME`` environment variable.
"""

import environ

from cloud_key_app.envargs import args_to_config_class


@environ.config(prefix="CLOUD_KEY_APP")
class ListConfig:
    """Configuration for the list command."""

    providers: str = environ.var(
        default="aws",
        help="Comma separated provider requests, each name[:scope] (e.g. aws,gcp:my-project)",
    )
    include_inactive: bool = environ.bool_var(
        default=False, help="Include inactive keys"
    )
    concurrent: bool = environ.bool_var(
        default=False, help="Query providers concurrently"
    )
    best_effort: bool = environ.bool_var(
        default=False,
        help="Report failed providers and keep the keys of the others",
    )
    aiven_token: str | None = environ.var(
        default=None, help="API token used to query the Aiven token API"
    )

    # Provider configuration
    aws_region: str | None = environ.var(
        default=None, help="AWS region for the IAM client"
    )
    aws_profile: str | None = environ.var(
        default=None, help="AWS profile to use for AWS SDK clients"
    )
    aws_endpoint_url: str | None = environ.var(
        default=None, help="AWS endpoint URL (e.g., LocalStack)"
    )
    aiven_endpoint: str | None = environ.var(
        default=None, help="Aiven access token endpoint"
    )

    log_level: str = environ.var(default="INFO", help="Log level")
    dev_mode: bool = environ.bool_var(
        default=False, help="Enable development mode logging"
    )


@environ.config(prefix="CLOUD_KEY_APP")
class CreateConfig:
    """Configuration for the create command."""

    provider: str = environ.var(help="Provider to create the key with")
    account: str = environ.var(help="Full account identifier of the key owner")
    scope: str = environ.var(default="", help="Provider scope (GCP project)")
    aiven_token: str | None = environ.var(
        default=None, help="API token used to call the Aiven token API"
    )

    # Provider configuration
    aws_region: str | None = environ.var(
        default=None, help="AWS region for the IAM client"
    )
    aws_profile: str | None = environ.var(
        default=None, help="AWS profile to use for AWS SDK clients"
    )
    aws_endpoint_url: str | None = environ.var(
        default=None, help="AWS endpoint URL (e.g., LocalStack)"
    )
    aiven_endpoint: str | None = environ.var(
        default=None, help="Aiven access token endpoint"
    )

    log_level: str = environ.var(default="INFO", help="Log level")
    dev_mode: bool = environ.bool_var(
        default=False, help="Enable development mode logging"
    )


@environ.config(prefix="CLOUD_KEY_APP")
class DeleteConfig:
    """Configuration for the delete command."""

    provider: str = environ.var(help="Provider holding the key")
    account: str = environ.var(help="Full account identifier of the key owner")
    key_id: str = environ.var(help="Provider-native key identifier")
    scope: str = environ.var(default="", help="Provider scope (GCP project)")
    aiven_token: str | None = environ.var(
        default=None, help="API token used to call the Aiven token API"
    )

    # Provider configuration
    aws_region: str | None = environ.var(
        default=None, help="AWS region for the IAM client"
    )
    aws_profile: str | None = environ.var(
        default=None, help="AWS profile to use for AWS SDK clients"
    )
    aws_endpoint_url: str | None = environ.var(
        default=None, help="AWS endpoint URL (e.g., LocalStack)"
    )
    aiven_endpoint: str | None = environ.var(
        default=None, help="Aiven access token endpoint"
    )

    log_level: str = environ.var(default="INFO", help="Log level")
    dev_mode: bool = environ.bool_var(
        default=False, help="Enable development mode logging"
    )


@environ.config(prefix="CLOUD_KEY_APP")
class ProvidersConfig:
    """Configuration for the providers command."""

    log_level: str = environ.var(default="INFO", help="Log level")
    dev_mode: bool = environ.bool_var(
        default=False, help="Enable development mode logging"
    )


def create_list_config(args: list[str] | None = None) -> ListConfig:
    """Create a ListConfig from command line arguments and environment variables.

    Args:
        args: Command line arguments. If None, only environment variables are used.

    Returns:
        ListConfig instance populated from args and environment variables.
    """
    return args_to_config_class(ListConfig, args)


def create_create_config(args: list[str] | None = None) -> CreateConfig:
    """Create a CreateConfig from command line arguments and environment variables."""
    return args_to_config_class(CreateConfig, args)


def create_delete_config(args: list[str] | None = None) -> DeleteConfig:
    """Create a DeleteConfig from command line arguments and environment variables."""
    return args_to_config_class(DeleteConfig, args)


def create_providers_config(args: list[str] | None = None) -> ProvidersConfig:
    """Create a ProvidersConfig from command line arguments and environment variables."""
    return args_to_config_class(ProvidersConfig, args)
