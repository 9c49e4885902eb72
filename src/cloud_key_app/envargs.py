"""Build environ-config classes from command line arguments.

Each ``--some-option value`` argument is mapped onto the environment variable
the config class reads (``<PREFIX>_SOME_OPTION``), so every option can be set
either on the command line or in the environment. A flag given without a value
sets the variable to ``"true"``.
"""

import os
from collections.abc import Mapping
from typing import TypeVar

import attr
import environ

T = TypeVar("T")


class UnknownArgumentError(ValueError):
    """Raised when an argument does not match any config field."""

    def __init__(self, argument: str) -> None:
        """Initialize the error.

        Args:
            argument: The unrecognised argument.
        """
        super().__init__(f"Unknown argument: {argument}")
        self.argument = argument


def _config_prefix(config_class: type) -> str:
    """Return the variable prefix of an ``@environ.config`` class.

    Raises:
        TypeError: If the class was not decorated with ``@environ.config(prefix=...)``.
    """
    # environ-config keeps the class prefix in a private attribute
    prefix = getattr(config_class, "_prefix", None)
    if not attr.has(config_class) or not isinstance(prefix, str):
        error_message = (
            f"{config_class.__name__} is not an @environ.config class with a prefix"
        )
        raise TypeError(error_message)
    return prefix


def args_to_env(config_class: type, args: list[str]) -> dict[str, str]:
    """Translate ``--option value`` arguments into environment variable overrides."""
    prefix = _config_prefix(config_class)
    field_names = set(attr.fields_dict(config_class))
    overrides: dict[str, str] = {}
    index = 0
    while index < len(args):
        argument = args[index]
        if not argument.startswith("--"):
            raise UnknownArgumentError(argument)
        option, _, inline_value = argument[2:].partition("=")
        field_name = option.replace("-", "_")
        if field_name not in field_names:
            raise UnknownArgumentError(argument)
        if inline_value:
            value = inline_value
        elif index + 1 < len(args) and not args[index + 1].startswith("--"):
            index += 1
            value = args[index]
        else:
            value = "true"
        overrides[f"{prefix}_{field_name.upper()}"] = value
        index += 1
    return overrides


def args_to_config_class(
    config_class: type[T],
    args: list[str] | None = None,
    environ_mapping: Mapping[str, str] | None = None,
) -> T:
    """Create a config instance from arguments layered over the environment.

    Args:
        config_class: An ``@environ.config`` decorated class.
        args: Command line arguments. If None, only the environment is used.
        environ_mapping: Environment to read. Defaults to ``os.environ``.

    Returns:
        The populated config instance.
    """
    env = dict(os.environ if environ_mapping is None else environ_mapping)
    env.update(args_to_env(config_class, args or []))
    return environ.to_config(config_class, environ=env)
