"""Public entry points for scanning, cleanup and audit history.

These functions tie the filesystem components to the user's
configuration. Callers that need finer control can use the
components in :mod:`dustpan.filesystem` directly.
"""

import logging
import os
from datetime import datetime
from pathlib import Path

from dustpan.core.config import DustpanConfig, get_config
from dustpan.filesystem.audit import AuditLog, AuditLogEntry
from dustpan.filesystem.models import ScanResult
from dustpan.filesystem.operator import CleanupEngine, CleanupRequest, CleanupResult
from dustpan.filesystem.protected import validate_path
from dustpan.filesystem.scanner import ProgressCallback, ScanOptions
from dustpan.filesystem.scanner import scan as scan_validated

logger = logging.getLogger(__name__)


def scan(
    root: str | os.PathLike[str],
    options: ScanOptions | None = None,
    on_progress: ProgressCallback | None = None,
    config: DustpanConfig | None = None,
) -> ScanResult:
    """Validate a root directory and scan it.

    Args:
        root: Directory to scan.
        options: Scan options. Defaults are taken from the configuration.
        on_progress: Optional progress callback.
        config: Configuration (loaded from the config file if omitted).

    Returns:
        ScanResult for the root.

    Raises:
        InvalidPathError: If the root is protected or does not exist.
        ScanRootError: If the root cannot be read.
        ConfigError: If the config file exists but is invalid.
    """
    config = config or get_config()
    validated = validate_path(root, extra_protected=config.extra_protected_dirs)
    options = options or config.scan_options()
    logger.info("Scanning %s", validated)
    return scan_validated(validated, options, on_progress)


def cleanup(
    request: CleanupRequest,
    config: DustpanConfig | None = None,
    audit_log: AuditLog | None = None,
) -> CleanupResult:
    """Run a cleanup request.

    Validation failures do not raise; they produce a result with
    status ``aborted`` and a reason.

    Args:
        request: Paths and deletion mode.
        config: Configuration (loaded from the config file if omitted).
        audit_log: Audit log override.

    Returns:
        CleanupResult for the request.

    Raises:
        ConfigError: If the config file exists but is invalid.
    """
    config = config or get_config()
    return CleanupEngine(config, audit_log).run(request)


def read_audit_log(
    limit: int | None = None,
    category: str | None = None,
    since: datetime | str | None = None,
    path: Path | None = None,
) -> list[AuditLogEntry]:
    """Read recorded deletions, newest first.

    Args:
        limit: Maximum number of entries.
        category: Only entries with this category id.
        since: Only entries at or after this time.
        path: Audit log location (configured or XDG default if omitted).
    """
    if path is None:
        path = get_config().audit_log_path
    return AuditLog(path).read(limit=limit, category=category, since=since)
