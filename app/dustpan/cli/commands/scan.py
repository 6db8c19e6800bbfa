"""Scan command implementation.

Walks a directory and reports reclaimable categories, duplicates,
large files and warnings.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.status import Status

from dustpan.cli.types import OutputFormat, load_config_or_exit
from dustpan.core import engine
from dustpan.filesystem.errors import DustpanError
from dustpan.filesystem.models import ScanProgress, ScanResult
from dustpan.filesystem.progress import CancellationToken, format_duration
from dustpan.utils.formatting import (
    console,
    create_table,
    err_console,
    format_safety,
    format_size,
    print_error,
    print_success,
    print_warning,
)


def scan(
    root: Annotated[
        Path,
        typer.Argument(help="Directory to scan."),
    ],
    follow_symlinks: Annotated[
        bool,
        typer.Option("--follow-symlinks", help="Follow symbolic links."),
    ] = False,
    min_size: Annotated[
        int,
        typer.Option("--min-size", min=0, help="Ignore files smaller than this many bytes."),
    ] = 0,
    no_duplicates: Annotated[
        bool,
        typer.Option("--no-duplicates", help="Skip duplicate detection."),
    ] = False,
    exclude: Annotated[
        list[str] | None,
        typer.Option(
            "--exclude",
            "-x",
            help="Glob pattern for entries to leave out (repeatable; added to ignore_patterns).",
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
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-l",
            min=1,
            help="Limit number of rows per table.",
        ),
    ] = None,
) -> None:
    """Scan a directory for reclaimable disk space.

    Press Ctrl-C to stop early; the partial result is shown as cancelled.
    """
    config = load_config_or_exit()
    token = CancellationToken()
    options = config.scan_options(
        follow_symlinks=follow_symlinks,
        min_file_size=min_size,
        find_duplicates=not no_duplicates,
        extra_ignore=exclude or (),
        cancellation=token,
    )

    status: Status | None = None
    if output_format == OutputFormat.TABLE:
        status = err_console.status("Scanning...")
        status.start()

    def _on_progress(progress: ScanProgress) -> None:
        if status is not None:
            status.update(_progress_text(progress))

    try:
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(engine.scan, root, options, _on_progress, config)
            try:
                result = future.result()
            except KeyboardInterrupt:
                token.cancel()
                print_warning("Cancelling scan...")
                result = future.result()
    except DustpanError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    finally:
        if status is not None:
            status.stop()

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(_result_to_dict(result, config.large_file_threshold, limit)))
    else:
        _print_report(result, config.large_file_threshold, limit)

    if result.cancelled:
        raise typer.Exit(code=130)


# === Private helper functions ===


def _progress_text(progress: ScanProgress) -> str:
    eta = f", ETA {format_duration(progress.eta_seconds)}" if progress.eta_seconds is not None else ""
    return (
        f"Scanning... {progress.entries_visited} entries, "
        f"{format_size(progress.bytes_processed)} ({progress.percentage:.0f}%{eta})"
    )


def _print_report(result: ScanResult, large_threshold: int, limit: int | None) -> None:
    """Display a scan result as Rich tables."""
    summaries = result.category_summaries()
    if summaries:
        table = create_table("Reclaimable Categories")
        table.add_column("Category", style="text")
        table.add_column("Kind", style="muted")
        table.add_column("Safety")
        table.add_column("Items", justify="right")
        table.add_column("Size", style="info", justify="right")
        for summary in summaries[:limit]:
            table.add_row(
                summary.category.label,
                summary.category.kind.value,
                format_safety(summary.category.safety),
                str(len(summary.entries)),
                format_size(summary.total_bytes),
            )
        console.print(table)

    if result.duplicates:
        table = create_table("Duplicate Files")
        table.add_column("Hash", style="muted")
        table.add_column("Copies", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Reclaimable", style="info", justify="right")
        table.add_column("Paths", overflow="fold")
        for dup in result.duplicates[:limit]:
            table.add_row(
                dup.content_hash[:12],
                str(len(dup.entries)),
                format_size(dup.size_bytes),
                format_size(dup.reclaimable_bytes),
                "\n".join(dup.paths),
            )
        console.print(table)

    large = result.large_files(large_threshold)
    if large:
        table = create_table(f"Large Files (>= {format_size(large_threshold)})")
        table.add_column("Path", overflow="fold")
        table.add_column("Size", style="info", justify="right")
        for entry in large[:limit]:
            table.add_row(entry.path, format_size(entry.size_bytes))
        console.print(table)

    for warning in result.warnings[:limit]:
        print_warning(f"{warning.kind.value}: {warning.path} ({warning.message})")

    reclaimable = sum(s.total_bytes for s in summaries) + result.duplicate_bytes
    console.print(
        f"\n[muted]Scanned {result.file_count} files in {result.dir_count} directories "
        f"({format_size(result.total_bytes)}) in {format_duration(result.duration_seconds)}[/]"
    )
    if result.skipped_count:
        print_warning(f"{result.skipped_count} unreadable entries were skipped.")
    if result.cancelled:
        print_warning("Scan cancelled; results are partial.")
    elif reclaimable:
        print_success(f"{format_size(reclaimable)} reclaimable.")
    else:
        print_success("Nothing to reclaim.")


def _result_to_dict(result: ScanResult, large_threshold: int, limit: int | None) -> dict[str, Any]:
    """Convert a scan result to a JSON-serializable dictionary."""
    return {
        "root": result.root,
        "status": result.status.value,
        "started_at": result.started_at,
        "duration_seconds": result.duration_seconds,
        "total_bytes": result.total_bytes,
        "file_count": result.file_count,
        "dir_count": result.dir_count,
        "skipped_count": result.skipped_count,
        "categories": [
            {
                "id": s.category.id,
                "label": s.category.label,
                "kind": s.category.kind.value,
                "safety": s.category.safety.value,
                "total_bytes": s.total_bytes,
                "paths": [e.path for e in s.entries],
            }
            for s in result.category_summaries()[:limit]
        ],
        "duplicates": [
            {
                "content_hash": d.content_hash,
                "size_bytes": d.size_bytes,
                "reclaimable_bytes": d.reclaimable_bytes,
                "paths": d.paths,
            }
            for d in result.duplicates[:limit]
        ],
        "large_files": [
            {"path": e.path, "size_bytes": e.size_bytes}
            for e in result.large_files(large_threshold)[:limit]
        ],
        "warnings": [
            {"kind": w.kind.value, "path": w.path, "message": w.message}
            for w in result.warnings
        ],
    }
