"""CLI package for dustpan.

This package contains the Typer application and all subcommands.
"""

from dustpan.cli.main import app

__all__ = ["app"]
