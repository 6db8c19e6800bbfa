"""Clean command implementation.

Deletes the given paths after validation and confirmation, either to
the trash or permanently.
"""

from pathlib import Path
from typing import Annotated

import typer

from dustpan.cli.types import load_config_or_exit
from dustpan.filesystem.errors import CriticalPathError, DustpanError
from dustpan.filesystem.operator import (
    CleanupEngine,
    CleanupRequest,
    CleanupResult,
    CleanupStatus,
    CleanupValidation,
    measure_size,
)
from dustpan.utils.formatting import (
    console,
    create_table,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)


def clean(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Paths to delete."),
    ],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
    permanent: Annotated[
        bool,
        typer.Option("--permanent", help="Delete permanently instead of moving to trash."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    acknowledge_critical: Annotated[
        bool,
        typer.Option(
            "--acknowledge-critical",
            help="Allow deleting critical paths (VCS metadata, documents, credentials).",
        ),
    ] = False,
) -> None:
    """Delete paths to the trash (default) or permanently."""
    config = load_config_or_exit()
    request = CleanupRequest(
        paths=tuple(str(p) for p in paths),
        dry_run=dry_run,
        use_trash=config.use_trash and not permanent,
        acknowledge_critical=acknowledge_critical,
    )
    engine = CleanupEngine(config)

    try:
        validation = engine.validate(request)
    except CriticalPathError as e:
        for path, reason in sorted(e.paths.items()):
            print_warning(f"Critical path: {path} ({reason})")
        print_error("Refusing to delete critical paths without --acknowledge-critical.")
        raise typer.Exit(code=1) from e
    except DustpanError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    _print_deletion_plan(validation, request)

    # Confirm unless --yes or --dry-run
    if not dry_run and not yes:
        confirmed = typer.confirm(
            f"\nProceed with deleting {len(validation.paths)} path(s)?",
            default=False,
        )
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    result = engine.run(request)
    _print_deletion_results(result)

    if result.status != CleanupStatus.COMPLETED:
        raise typer.Exit(code=1)


# === Private helper functions ===


def _print_deletion_plan(validation: CleanupValidation, request: CleanupRequest) -> None:
    """Display planned deletions."""
    label = "Planned Deletions (dry-run)" if request.dry_run else "Planned Deletions"
    table = create_table(label)
    table.add_column("Path", overflow="fold")
    table.add_column("Size", style="info", justify="right")
    table.add_column("Note", style="muted")

    for validated in validation.paths:
        path = str(validated)
        if not validated.existed:
            size, note = "-", "not found"
        else:
            size = format_size(measure_size(validated.path))
            note = validation.critical_paths.get(path, "")
        table.add_row(path, size, note)

    console.print(table)
    console.print(
        f"[muted]{format_size(validation.total_bytes)} total, "
        f"method: {request.method.value}[/]"
    )


def _print_deletion_results(result: CleanupResult) -> None:
    """Display deletion results."""
    if result.status == CleanupStatus.ABORTED:
        print_error(f"Cleanup aborted: {result.reason}")
        return

    table = create_table("Deletion Results")
    table.add_column("Path", overflow="fold")
    table.add_column("Status", width=12)
    table.add_column("Detail", style="muted")

    status_label = "[info]dry-run[/]" if result.dry_run else "[success]deleted[/]"
    for path in result.deleted:
        table.add_row(path, status_label, "")
    for path in result.skipped:
        table.add_row(path, "[warning]skipped[/]", "not found")
    for failure in result.errors:
        table.add_row(failure.path, "[error]failed[/]", f"{failure.kind.value}: {failure.message}")

    console.print(table)

    if result.dry_run:
        print_info(
            f"Dry-run: {len(result.deleted)} path(s) would be deleted "
            f"({format_size(result.bytes_freed)})."
        )
    elif result.errors:
        print_warning(
            f"{len(result.deleted)} deleted, {len(result.skipped)} skipped, "
            f"{len(result.errors)} failed"
        )
    else:
        print_success(
            f"Deleted {len(result.deleted)} path(s), freed {format_size(result.bytes_freed)}."
        )
