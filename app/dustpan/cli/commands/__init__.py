"""CLI commands for dustpan.

This package contains all subcommand implementations.
"""

from dustpan.cli.commands import clean, config, history, scan

__all__ = ["clean", "config", "history", "scan"]
