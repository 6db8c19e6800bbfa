"""Guarded deletion of scan results.

Handles batch validation, trash or permanent deletion, post-deletion
verification and audit logging. A whole request is validated before
anything is deleted; after that, failures are isolated per path.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from send2trash import send2trash

from dustpan.filesystem.audit import AuditLog, DeletionMethod, create_audit_entry
from dustpan.filesystem.errors import (
    BatchLimitExceededError,
    CriticalPathError,
    DustpanError,
    InvalidPathError,
    is_not_found,
    is_permission_denied,
)
from dustpan.filesystem.patterns import PatternClassifier, default_classifier
from dustpan.filesystem.protected import ValidatedPath, critical_reason, validate_path

if TYPE_CHECKING:
    from dustpan.core.config import DustpanConfig

logger = logging.getLogger(__name__)


class CleanupErrorKind(str, Enum):
    """Kind of per-path cleanup failure.

    Attributes:
        INVALID_PATH: Path was rejected by validation.
        PERMISSION_DENIED: The OS refused the deletion.
        IO_ERROR: Any other I/O failure (including audit write failures).
        DELETION_FAILED: Deletion reported success but the path still exists.
    """

    INVALID_PATH = "invalid_path"
    PERMISSION_DENIED = "permission_denied"
    IO_ERROR = "io_error"
    DELETION_FAILED = "deletion_failed"


class CleanupStatus(str, Enum):
    """Overall outcome of a cleanup request."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class CleanupRequest:
    """A batch of paths to delete.

    Attributes:
        paths: Paths to delete.
        dry_run: Report what would be deleted without touching anything.
        use_trash: Move to trash (True) or delete permanently (False).
        acknowledge_critical: Allow deleting critical paths.
    """

    paths: tuple[str, ...]
    dry_run: bool = False
    use_trash: bool = True
    acknowledge_critical: bool = False

    def __post_init__(self) -> None:
        """Normalize paths to a tuple of strings."""
        object.__setattr__(self, "paths", tuple(os.fspath(p) for p in self.paths))

    @property
    def method(self) -> DeletionMethod:
        """Deletion method for this request."""
        return DeletionMethod.TRASH if self.use_trash else DeletionMethod.PERMANENT


@dataclass(frozen=True, slots=True)
class CleanupValidation:
    """Outcome of validating a cleanup request.

    Attributes:
        paths: Validated, de-duplicated paths in request order.
        total_bytes: Total size of the paths that exist (directories recursive).
        critical_paths: Critical paths mapped to the reason they were flagged.
    """

    paths: tuple[ValidatedPath, ...]
    total_bytes: int
    critical_paths: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CleanupFailure:
    """A path that could not be cleaned.

    Attributes:
        path: Path the failure refers to.
        kind: Failure kind.
        message: Human-readable description.
    """

    path: str
    kind: CleanupErrorKind
    message: str


@dataclass(frozen=True, slots=True)
class CleanupResult:
    """Outcome of one cleanup request.

    Attributes:
        deleted: Paths deleted (or, in a dry run, that would be deleted).
        skipped: Paths that no longer existed.
        errors: Per-path failures.
        dry_run: Whether this was a dry run.
        status: Completed, partial or aborted.
        reason: Why the request was aborted (None otherwise).
        bytes_freed: Bytes freed (or that would be freed in a dry run).
    """

    deleted: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    errors: tuple[CleanupFailure, ...] = ()
    dry_run: bool = False
    status: CleanupStatus = CleanupStatus.COMPLETED
    reason: str | None = None
    bytes_freed: int = 0

    @property
    def success(self) -> bool:
        """Check if every path was handled without error."""
        return self.status == CleanupStatus.COMPLETED


def error_kind_for(exc: OSError) -> CleanupErrorKind:
    """Map a deletion error to a cleanup error kind."""
    if is_permission_denied(exc):
        return CleanupErrorKind.PERMISSION_DENIED
    return CleanupErrorKind.IO_ERROR


def measure_size(path: str | Path) -> int:
    """Return the size of a path; directories are summed recursively.

    Symlinks are never followed. Entries that cannot be read count as 0.
    """
    try:
        st = os.lstat(path)
    except OSError:
        return 0
    if not stat.S_ISDIR(st.st_mode):
        return st.st_size

    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, name)).st_size
            except OSError:
                logger.debug("Cannot stat %s while measuring %s", name, path)
    return total


def is_dangling_symlink(path: str | Path) -> bool:
    """Check if a path is a symlink whose target does not exist."""
    return os.path.islink(path) and not os.path.exists(path)


class CleanupEngine:
    """Validates and executes cleanup requests.

    Args:
        config: Limits and deletion settings (defaults if omitted).
        audit_log: Where verified deletions are recorded.
        classifier: Classifier used to tag audit entries with a category.
    """

    def __init__(
        self,
        config: DustpanConfig | None = None,
        audit_log: AuditLog | None = None,
        classifier: PatternClassifier | None = None,
    ) -> None:
        if config is None:
            from dustpan.core.config import DustpanConfig

            config = DustpanConfig()
        self._config = config
        self._audit_log = audit_log if audit_log is not None else AuditLog(config.audit_log_path)
        self._classifier = classifier or default_classifier

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    def validate(self, request: CleanupRequest) -> CleanupValidation:
        """Validate a whole request before anything is deleted.

        Raises:
            BatchLimitExceededError: If the request has too many paths or bytes.
            InvalidPathError: If any path is rejected by the path validator.
            CriticalPathError: If critical paths are not acknowledged.
        """
        config = self._config
        if len(request.paths) > config.max_batch_files:
            raise BatchLimitExceededError("files", len(request.paths), config.max_batch_files)

        unique: dict[str, ValidatedPath] = {}
        for raw in request.paths:
            validated = validate_path(
                raw,
                must_exist=False,
                extra_protected=config.extra_protected_dirs,
                keep_final_symlink=True,
            )
            unique.setdefault(str(validated.path), validated)
        paths = tuple(unique.values())

        total_bytes = sum(measure_size(p.path) for p in paths if p.existed)
        if total_bytes > config.max_batch_bytes:
            raise BatchLimitExceededError("bytes", total_bytes, config.max_batch_bytes)

        critical: dict[str, str] = {}
        for p in paths:
            reason = critical_reason(p.path)
            if reason is not None:
                logger.warning("Critical path requested for deletion: %s (%s)", p, reason)
                critical[str(p)] = reason
        if critical and not request.acknowledge_critical:
            raise CriticalPathError(critical)

        return CleanupValidation(paths=paths, total_bytes=total_bytes, critical_paths=critical)

    def execute(self, request: CleanupRequest) -> CleanupResult:
        """Validate and then delete every path in the request.

        Raises:
            BatchLimitExceededError: If the request exceeds a batch limit.
            InvalidPathError: If any path is invalid.
            CriticalPathError: If critical paths are not acknowledged.
        """
        validation = self.validate(request)
        method = request.method
        logger.info(
            "Cleaning %d path(s), %d bytes (method=%s, dry_run=%s)",
            len(validation.paths),
            validation.total_bytes,
            method.value,
            request.dry_run,
        )

        deleted: list[str] = []
        skipped: list[str] = []
        errors: list[CleanupFailure] = []
        bytes_freed = 0

        for validated in validation.paths:
            path = str(validated.path)
            size, category = self._capture(path)

            if request.dry_run:
                logger.debug("Dry-run: would delete %s", path)
                deleted.append(path)
                bytes_freed += size
                continue

            path_method = method
            if method == DeletionMethod.TRASH and is_dangling_symlink(path):
                # The trash refuses links whose target is gone
                logger.debug("Removing dangling symlink permanently: %s", path)
                path_method = DeletionMethod.PERMANENT

            try:
                self._delete(path, path_method)
            except OSError as e:
                if is_not_found(e) and not os.path.lexists(path):
                    logger.debug("Already gone: %s", path)
                    skipped.append(path)
                elif is_not_found(e):
                    logger.warning("Failed to delete %s: %s", path, e)
                    errors.append(CleanupFailure(path, CleanupErrorKind.DELETION_FAILED, str(e)))
                else:
                    logger.warning("Failed to delete %s: %s", path, e)
                    errors.append(CleanupFailure(path, error_kind_for(e), str(e)))
                continue

            if self._config.verify_delay_seconds > 0:
                time.sleep(self._config.verify_delay_seconds)
            if os.path.lexists(path):
                logger.warning("Path still exists after deletion: %s", path)
                errors.append(
                    CleanupFailure(path, CleanupErrorKind.DELETION_FAILED, "Path still exists after deletion")
                )
                continue

            logger.debug("Deleted %s (%d bytes, %s)", path, size, path_method.value)
            deleted.append(path)
            bytes_freed += size
            try:
                self._audit_log.record(create_audit_entry(path, size, category, path_method))
            except OSError as e:
                logger.error("Failed to write audit entry for %s: %s", path, e)
                errors.append(
                    CleanupFailure(path, CleanupErrorKind.IO_ERROR, f"Deleted, but audit log write failed: {e}")
                )

        status = CleanupStatus.PARTIAL if errors else CleanupStatus.COMPLETED
        logger.info(
            "Cleanup %s: %d deleted, %d skipped, %d error(s), %d bytes",
            status.value,
            len(deleted),
            len(skipped),
            len(errors),
            bytes_freed,
        )
        return CleanupResult(
            deleted=tuple(deleted),
            skipped=tuple(skipped),
            errors=tuple(errors),
            dry_run=request.dry_run,
            status=status,
            bytes_freed=bytes_freed,
        )

    def run(self, request: CleanupRequest) -> CleanupResult:
        """Execute a request, reporting validation failures as an aborted result."""
        try:
            return self.execute(request)
        except DustpanError as e:
            logger.warning("Cleanup aborted: %s", e)
            errors: tuple[CleanupFailure, ...] = ()
            if isinstance(e, InvalidPathError):
                errors = (CleanupFailure(e.path, CleanupErrorKind.INVALID_PATH, e.reason),)
            return CleanupResult(
                errors=errors,
                dry_run=request.dry_run,
                status=CleanupStatus.ABORTED,
                reason=str(e),
            )

    def _capture(self, path: str) -> tuple[int, str | None]:
        """Capture size and category before deletion."""
        name = os.path.basename(path)
        try:
            st = os.lstat(path)
        except OSError:
            category = self._classifier.classify(name)
            return 0, category.id if category else None

        is_dir = stat.S_ISDIR(st.st_mode)
        size = measure_size(path) if is_dir else st.st_size
        category = self._classifier.classify(name, is_dir=is_dir)
        return size, category.id if category else None

    @staticmethod
    def _delete(path: str, method: DeletionMethod) -> None:
        if method == DeletionMethod.TRASH:
            send2trash(path)
            return
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.unlink(path)
