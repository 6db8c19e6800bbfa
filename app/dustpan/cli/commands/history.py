"""History command for viewing past deletions.

This module provides the `dustpan history` command, which reads the
append-only deletion audit log.
"""

import json
from datetime import datetime
from typing import Annotated

import typer

from dustpan.cli.types import OutputFormat, load_config_or_exit
from dustpan.core.engine import read_audit_log
from dustpan.filesystem.audit import AuditLogEntry
from dustpan.utils.formatting import console, create_table, format_size, print_error, print_info

app = typer.Typer(
    name="history",
    help="View the deletion audit log.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            min=1,
            help="Maximum number of entries to show.",
        ),
    ] = 20,
    category: Annotated[
        str | None,
        typer.Option(
            "--category",
            "-c",
            help="Only show deletions of this category (e.g., node_modules).",
        ),
    ] = None,
    since: Annotated[
        str | None,
        typer.Option(
            "--since",
            help="Show entries since date (YYYY-MM-DD).",
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Show recorded deletions, newest first.

    Examples:
        dustpan history                  # Show last 20 deletions
        dustpan history -n 50            # Show last 50 deletions
        dustpan history --category pip_cache
        dustpan history --since 2026-01-01
        dustpan history --format json    # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_config_or_exit()

    try:
        entries = read_audit_log(
            limit=limit, category=category, since=since, path=config.audit_log_path
        )
    except ValueError:
        print_error(f"Invalid date format: {since}. Use YYYY-MM-DD.")
        raise typer.Exit(code=1) from None

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([entry.to_dict() for entry in entries]))
        return

    if not entries:
        print_info("No deletions recorded.")
        return

    _print_table(entries)


def _print_table(entries: list[AuditLogEntry]) -> None:
    """Print audit entries as a Rich table."""
    table = create_table("Deletion History")
    table.add_column("ID", style="muted")
    table.add_column("Deleted", style="info")
    table.add_column("Method")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    table.add_column("Path", overflow="fold")

    for entry in entries:
        table.add_row(
            entry.id[:8],
            _format_timestamp(entry.deleted_at),
            entry.method.value,
            entry.category,
            format_size(entry.size_bytes),
            entry.path,
        )

    console.print(table)
    total = sum(e.size_bytes for e in entries)
    console.print(f"[muted]{len(entries)} deletion(s), {format_size(total)} total[/]")


def _format_timestamp(iso_timestamp: str) -> str:
    """Format ISO timestamp as YYYY-MM-DD HH:MM."""
    dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M")
