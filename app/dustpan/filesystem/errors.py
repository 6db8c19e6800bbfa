"""Exceptions raised by the scanning and cleanup engine.

Root-level and batch-level problems are raised as exceptions before any
side effect happens. Per-entry problems during a walk or a cleanup are
never raised; they are recorded in the result instead.
"""

import errno
from pathlib import Path


class DustpanError(Exception):
    """Base exception for engine errors."""


class InvalidPathError(DustpanError):
    """Raised when a path is rejected by the path validator.

    Attributes:
        path: The path as given by the caller.
        reason: Human-readable rejection reason.
    """

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid path '{self.path}': {reason}")


class ScanRootError(DustpanError):
    """Raised when the scan root itself cannot be read."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot read scan root '{self.path}': {reason}")


class BatchLimitExceededError(DustpanError):
    """Raised when a cleanup request exceeds a configured batch limit.

    Attributes:
        unit: Which limit was hit ("files" or "bytes").
        requested: Requested amount in that unit.
        limit: Configured maximum in that unit.
    """

    def __init__(self, unit: str, requested: int, limit: int) -> None:
        self.unit = unit
        self.requested = requested
        self.limit = limit
        if unit == "bytes":
            gib = 1024**3
            msg = (
                f"Cannot delete {requested / gib:.1f} GB at once "
                f"(maximum: {limit / gib:.0f} GB)"
            )
        else:
            msg = f"Cannot delete {requested} files at once (maximum: {limit})"
        super().__init__(msg)


class CriticalPathError(DustpanError):
    """Raised when a cleanup touches critical paths without acknowledgement.

    Attributes:
        paths: Mapping of critical path to the reason it was flagged.
    """

    def __init__(self, paths: dict[str, str]) -> None:
        self.paths = dict(paths)
        listing = ", ".join(sorted(self.paths))
        super().__init__(
            f"{len(self.paths)} critical path(s) require explicit acknowledgement: {listing}"
        )


class HashComputationError(DustpanError):
    """Raised when a file's content hash cannot be computed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot hash '{self.path}': {reason}")


class CancellationRequestedError(DustpanError):
    """Raised internally when a cancellation token stops in-progress work."""


def is_not_found(exc: OSError) -> bool:
    """Check if an OSError means the path does not exist.

    Some libraries raise a bare OSError carrying ENOENT instead of
    FileNotFoundError, so both forms are accepted.
    """
    return isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT


def is_permission_denied(exc: OSError) -> bool:
    """Check if an OSError means access was denied."""
    return isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM)
