"""Shared types and helpers for CLI commands."""

from enum import Enum

import typer

from dustpan.core.config import ConfigError, DustpanConfig, get_config
from dustpan.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def load_config_or_exit() -> DustpanConfig:
    """Load the user's configuration, exiting with code 1 if it is invalid."""
    try:
        return get_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
