"""Command-line interface and main entry point.

This module provides the CLI for listing, creating and deleting cloud keys,
including argument parsing, client construction and output formatting.
"""
# ruff: noqa: T201

import asyncio
import sys
from typing import Any

import structlog
from structlog.contextvars import bound_contextvars

from cloud_key_app.cli_config import (
    CreateConfig,
    DeleteConfig,
    ListConfig,
    create_create_config,
    create_delete_config,
    create_list_config,
    create_providers_config,
)
from cloud_key_app.logging_config import configure_logging
from cloud_key_core.client import KeyClient, KeyCollection
from cloud_key_core.config_factory import create_key_client, create_registry
from cloud_key_core.exceptions import ConfigurationError
from cloud_key_core.model import Key, Provider
from cloud_key_core.normalization import key_display_name
from cloud_key_core.providers import AIVEN_PROVIDER_NAME

VERSION = "0.1.0"

MINUTES_PER_DAY = 60 * 24

# Get logger for this module
logger = structlog.get_logger(__name__)


def parse_provider_requests(
    providers: str, aiven_token: str | None = None
) -> list[Provider]:
    """Parse ``name[:scope]`` entries separated by commas into requests.

    The Aiven token, when given, is attached to Aiven requests as their query
    credential.

    Raises:
        ConfigurationError: If no provider request is given.
    """
    requests = []
    for entry in providers.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, _, scope = entry.partition(":")
        requests.append(_request_for(name, scope, aiven_token))
    if not requests:
        error_message = "At least one provider must be requested"
        raise ConfigurationError(error_message, "cli")
    return requests


def _request_for(provider: str, scope: str, aiven_token: str | None) -> Provider:
    credential = (aiven_token or "") if provider == AIVEN_PROVIDER_NAME else ""
    return Provider(provider, scope, credential)


def _factory_kwargs(
    config: ListConfig | CreateConfig | DeleteConfig,
) -> dict[str, Any]:
    """Map CLI config fields to factory kwargs, only including provided values."""
    factory_kwargs: dict[str, Any] = {}
    if config.aws_region is not None:
        factory_kwargs["aws_region"] = config.aws_region
    if config.aws_profile is not None:
        factory_kwargs["aws_profile"] = config.aws_profile
    if config.aws_endpoint_url is not None:
        factory_kwargs["aws_endpoint_url"] = config.aws_endpoint_url
    if config.aiven_endpoint is not None:
        factory_kwargs["aiven_endpoint"] = config.aiven_endpoint
    return factory_kwargs


def format_key(key: Key) -> str:
    """Format a key as one tab separated output line."""
    age_days = key.age / MINUTES_PER_DAY
    remaining_days = key.life_remaining / MINUTES_PER_DAY
    provider = key.provider.provider
    if key.provider.scope:
        provider = f"{provider}:{key.provider.scope}"
    return (
        f"{provider}\t{key.account}\t{key.id}\t{key.name}\t{key.status}"
        f"\tage={age_days:.1f}d\tremaining={remaining_days:.1f}d"
    )


async def list_keys(
    client: KeyClient,
    requests: list[Provider],
    include_inactive: bool,
    concurrent: bool,
    best_effort: bool,
) -> KeyCollection:
    """List keys in fail-fast or best-effort mode, as a KeyCollection."""
    if best_effort:
        return await client.collect_keys(
            requests, include_inactive, concurrent=concurrent
        )
    keys = await client.keys(requests, include_inactive, concurrent=concurrent)
    return KeyCollection(keys=keys)


def list_command(args: list[str] | None = None) -> None:
    """List keys across the requested providers.

    Args:
        args: Command line arguments.
    """
    try:
        config = create_list_config(args)
        configure_logging(log_level=config.log_level, dev_mode=config.dev_mode)

        requests = parse_provider_requests(config.providers, config.aiven_token)
        client = create_key_client(**_factory_kwargs(config))

        with bound_contextvars(command="list"):
            collection = asyncio.run(
                list_keys(
                    client,
                    requests,
                    include_inactive=config.include_inactive,
                    concurrent=config.concurrent,
                    best_effort=config.best_effort,
                )
            )

        for key in collection.keys:
            print(format_key(key))
        for failure in collection.failures:
            print(
                f"Failed: {failure.request.provider}:{failure.request.scope}"
                f"\t{failure.error}",
                file=sys.stderr,
            )
        print(f"Total: {len(collection.keys)} key(s)")
        if not collection.ok:
            sys.exit(1)

    except Exception as e:
        print(f"Error: {e!s}", file=sys.stderr)
        logger.exception("LIST_COMMAND_ERROR", error=str(e))
        sys.exit(1)


def create_command(args: list[str] | None = None) -> None:
    """Create a key for an account.

    Args:
        args: Command line arguments: ``<provider> <account> [options]``.
    """
    try:
        config = create_create_config(
            _with_positionals(args, ["provider", "account"])
        )
        configure_logging(log_level=config.log_level, dev_mode=config.dev_mode)

        client = create_key_client(**_factory_kwargs(config))
        request = _request_for(config.provider, config.scope, config.aiven_token)

        with bound_contextvars(command="create"):
            key_id, secret = asyncio.run(
                client.create_key_from_scratch(request, config.account)
            )

        print(f"key_id: {key_id}")
        print(f"secret: {secret}")

    except Exception as e:
        print(f"Error: {e!s}", file=sys.stderr)
        logger.exception("CREATE_COMMAND_ERROR", error=str(e))
        sys.exit(1)


def delete_command(args: list[str] | None = None) -> None:
    """Delete a key.

    Args:
        args: Command line arguments: ``<provider> <account> <key_id> [options]``.
    """
    try:
        config = create_delete_config(
            _with_positionals(args, ["provider", "account", "key_id"])
        )
        configure_logging(log_level=config.log_level, dev_mode=config.dev_mode)

        client = create_key_client(**_factory_kwargs(config))
        request = _request_for(config.provider, config.scope, config.aiven_token)
        key = Key(
            account=config.account,
            full_account=config.account,
            age=0.0,
            id=config.key_id,
            life_remaining=0.0,
            name=key_display_name(config.account, config.key_id),
            provider=request,
        )

        with bound_contextvars(command="delete"):
            asyncio.run(client.delete_key(key))

        print(f"Deleted key {config.key_id}")

    except Exception as e:
        print(f"Error: {e!s}", file=sys.stderr)
        logger.exception("DELETE_COMMAND_ERROR", error=str(e))
        sys.exit(1)


def providers_command(args: list[str] | None = None) -> None:
    """List the registered providers."""
    try:
        config = create_providers_config(args)
        configure_logging(log_level=config.log_level, dev_mode=config.dev_mode)

        names = create_registry().names()
        print("Available providers:")
        for name in sorted(names):
            print(f"  {name}")
        print(f"Total: {len(names)} provider(s)")

    except (ValueError, ImportError, OSError) as e:
        print(f"Error: {e!s}")
        sys.exit(1)


def _with_positionals(args: list[str] | None, names: list[str]) -> list[str]:
    """Turn leading positional arguments into ``--name value`` options."""
    args = list(args or [])
    options: list[str] = []
    for name in names:
        if not args or args[0].startswith("--"):
            break
        options.extend([f"--{name.replace('_', '-')}", args.pop(0)])
    return options + args


def show_help() -> None:
    """Show help information for the CLI."""
    help_text = """
Cloud Key Client

Usage:
    cloud-key-client <command> [options]

Commands:
    list                                List keys across providers
    create <provider> <account>         Create a key for an account
    delete <provider> <account> <id>    Delete a key
    providers                           List available providers
    --help, -h                          Show this help message
    --version, -v                       Show version information

Options for list command:
    --providers <list>        Comma separated name[:scope] entries (default: aws)
    --include-inactive        Include inactive keys
    --concurrent              Query providers concurrently
    --best-effort             Keep going when a provider fails
    --aiven-token <token>     API token for the Aiven provider

Options for create and delete commands:
    --scope <scope>           Provider scope (GCP project)
    --aiven-token <token>     API token for the Aiven provider

Common options:
    --aws-region <region>     AWS region for the IAM client
    --aws-profile <profile>   AWS profile for the IAM client
    --log-level <level>       Log level (DEBUG, INFO, WARNING, ERROR)
    --dev-mode                Enable development mode

Examples:
    cloud-key-client list --providers aws,gcp:my-project
    cloud-key-client create gcp sa@my-project.iam.gserviceaccount.com --scope my-project
    cloud-key-client delete aws deploy-user AKIAEXAMPLE
"""
    print(help_text)


def main() -> None:
    """Main entry point for the CLI."""
    min_args = 2
    if len(sys.argv) < min_args:
        show_help()
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]

    if command == "list":
        list_command(args)
    elif command == "create":
        create_command(args)
    elif command == "delete":
        delete_command(args)
    elif command == "providers":
        providers_command(args)
    elif command in ["--help", "-h", "help"]:
        show_help()
        sys.exit(0)
    elif command in ["--version", "-v", "version"]:
        print(f"cloud-key-client, version {VERSION}")
        sys.exit(0)
    else:
        show_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
