"""Config commands.

Shows the effective configuration or writes a default config file.
"""

from typing import Annotated

import tomli_w
import typer

from dustpan.cli.types import load_config_or_exit
from dustpan.core.config import ConfigError, DustpanConfig, config_to_dict, save_config
from dustpan.core.paths import get_config_path
from dustpan.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or initialize the configuration.",
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Show the effective configuration."""
    config = load_config_or_exit()
    path = get_config_path()
    source = str(path) if path.exists() else "defaults (no config file)"
    print_info(f"# Source: {source}")
    console.print(tomli_w.dumps(config_to_dict(config, include_defaults=True)), markup=False)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with all default values."""
    path = get_config_path()
    if path.exists() and not force:
        print_error(f"Config already exists: {path} (use --force to overwrite)")
        raise typer.Exit(code=1)

    try:
        saved = save_config(DustpanConfig(), include_defaults=True)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Config written to {saved}")
