"""Filesystem domain models for scanning and classification.

This module defines the immutable data structures produced by a scan:
entries, categories, duplicate sets, warnings, progress snapshots and
the aggregated scan result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath


class EntryKind(str, Enum):
    """Type of filesystem entry visited during a walk.

    Attributes:
        FILE: Regular file (or followed symlink to a file).
        DIRECTORY: Directory (or followed symlink to a directory).
        SYMLINK: Symbolic link that was not followed.
    """

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class CategoryKind(str, Enum):
    """Family of a classification category."""

    BLOAT = "bloat"
    JUNK = "junk"
    CACHE = "cache"


class Safety(str, Enum):
    """How safe it is to delete entries of a category.

    Attributes:
        SAFE: Regenerated automatically, delete freely.
        CAUTION: Regenerable but expensive or occasionally hand-edited.
        DANGEROUS: Deleting loses data that cannot be regenerated.
    """

    SAFE = "safe"
    CAUTION = "caution"
    DANGEROUS = "dangerous"


class WarningKind(str, Enum):
    """Kind of non-fatal warning recorded during a scan."""

    SYMLINK_LOOP = "symlink_loop"
    LARGE_DIRECTORY = "large_directory"
    NETWORK_MOUNT = "network_mount"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"
    HASH_FAILED = "hash_failed"

    @property
    def skips_entry(self) -> bool:
        """Whether a warning of this kind means an entry was left out."""
        return self in (
            WarningKind.PERMISSION_DENIED,
            WarningKind.NOT_FOUND,
            WarningKind.IO_ERROR,
        )


class ScanStatus(str, Enum):
    """Final status of a scan."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Category:
    """Classification tag attached to an entry.

    Attributes:
        kind: Category family (bloat, junk, cache).
        id: Stable machine identifier (e.g., "node_modules").
        label: Human-readable name (e.g., "Node.js").
        safety: Deletion safety level.
    """

    kind: CategoryKind
    id: str
    label: str
    safety: Safety = Safety.SAFE


@dataclass(frozen=True, slots=True)
class Entry:
    """A single file or directory visited during a walk.

    Attributes:
        path: Absolute path of the entry.
        kind: Entry type.
        size_bytes: File size for files, 0 for directories and unfollowed symlinks.
        mtime: Last modification time in ISO 8601 format (None if unavailable).
        category: Classification (None if uncategorized).
        content_hash: SHA-256 hex digest, set only by duplicate detection.
        depth: Depth below the scan root (root children are depth 1).
    """

    path: str
    kind: EntryKind
    size_bytes: int
    mtime: str | None = None
    category: Category | None = None
    content_hash: str | None = None
    depth: int = 0

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    @property
    def name(self) -> str:
        """Final path component."""
        return PurePath(self.path).name

    @property
    def is_file(self) -> bool:
        """Check if this entry is a regular file."""
        return self.kind == EntryKind.FILE

    @property
    def is_dir(self) -> bool:
        """Check if this entry is a directory."""
        return self.kind == EntryKind.DIRECTORY


@dataclass(frozen=True, slots=True)
class DuplicateSet:
    """Group of files with identical content.

    Attributes:
        content_hash: Shared SHA-256 hex digest.
        size_bytes: Size of a single copy.
        entries: Members ordered by path (always at least two).
    """

    content_hash: str
    size_bytes: int
    entries: tuple[Entry, ...]

    def __post_init__(self) -> None:
        """Validate duplicate set data after initialization."""
        if len(self.entries) < 2:
            msg = "A duplicate set needs at least two entries"
            raise ValueError(msg)

    @property
    def reclaimable_bytes(self) -> int:
        """Bytes freed by keeping one copy and deleting the rest."""
        return self.size_bytes * (len(self.entries) - 1)

    @property
    def paths(self) -> list[str]:
        """Member paths in order."""
        return [e.path for e in self.entries]


@dataclass(frozen=True, slots=True)
class ScanWarning:
    """Non-fatal condition recorded during a scan.

    Attributes:
        kind: Warning kind.
        path: Path the warning refers to.
        message: Human-readable description.
    """

    kind: WarningKind
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ScanProgress:
    """Point-in-time snapshot of a running scan.

    Attributes:
        entries_visited: Files, directories and symlinks visited so far.
        files_visited: Files visited so far.
        dirs_visited: Directories visited so far.
        bytes_processed: Sum of file sizes seen so far.
        current_path: Path most recently visited.
        percentage: Estimated completion between 0 and 100.
        eta_seconds: Estimated seconds remaining (None while unknown).
        elapsed_seconds: Seconds since the scan started.
        warnings: Warnings collected so far.
    """

    entries_visited: int
    files_visited: int
    dirs_visited: int
    bytes_processed: int
    current_path: str
    percentage: float
    eta_seconds: float | None
    elapsed_seconds: float
    warnings: tuple[ScanWarning, ...] = ()


@dataclass(frozen=True, slots=True)
class CategorySummary:
    """Aggregated entries for one category.

    Attributes:
        category: The category.
        entries: Top-level matching entries (not nested in another match).
        total_bytes: Reclaimable bytes (directory sizes are recursive).
    """

    category: Category
    entries: tuple[Entry, ...]
    total_bytes: int


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Aggregated outcome of one scan.

    Attributes:
        root: Canonical scan root.
        status: Completed or cancelled.
        entries: Every published entry, in walk order.
        duplicates: Duplicate sets found (empty if not requested).
        warnings: Non-fatal warnings collected during the scan.
        started_at: Scan start time in ISO 8601 format.
        duration_seconds: Wall-clock duration.
    """

    root: str
    status: ScanStatus
    entries: tuple[Entry, ...]
    duplicates: tuple[DuplicateSet, ...] = ()
    warnings: tuple[ScanWarning, ...] = ()
    started_at: str = ""
    duration_seconds: float = 0.0
    _dir_sizes: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    @property
    def cancelled(self) -> bool:
        """Check if the scan was cancelled before finishing."""
        return self.status == ScanStatus.CANCELLED

    @property
    def total_bytes(self) -> int:
        """Sum of all published entry sizes."""
        return sum(e.size_bytes for e in self.entries)

    @property
    def file_count(self) -> int:
        """Number of file entries."""
        return sum(1 for e in self.entries if e.is_file)

    @property
    def dir_count(self) -> int:
        """Number of directory entries."""
        return sum(1 for e in self.entries if e.is_dir)

    @property
    def duplicate_bytes(self) -> int:
        """Bytes reclaimable by removing all but one copy of each duplicate."""
        return sum(d.reclaimable_bytes for d in self.duplicates)

    @property
    def skipped_count(self) -> int:
        """Number of entries left out because they could not be read."""
        return sum(1 for w in self.warnings if w.kind.skips_entry)

    def categorized(self) -> list[Entry]:
        """Return all entries that carry a category."""
        return [e for e in self.entries if e.category is not None]

    def size_of(self, entry: Entry) -> int:
        """Return the reclaimable size of an entry.

        Directories are measured recursively from the files published
        beneath them; files report their own size.
        """
        if entry.is_dir:
            return self.directory_sizes().get(entry.path, 0)
        return entry.size_bytes

    def directory_sizes(self) -> dict[str, int]:
        """Compute recursive sizes for categorized directories.

        Only categorized directories are measured, since those are the
        ones reported as reclaimable.
        """
        if self._dir_sizes:
            return self._dir_sizes

        sizes = {e.path: 0 for e in self.entries if e.is_dir and e.category is not None}
        if sizes:
            for entry in self.entries:
                if not entry.is_file or not entry.size_bytes:
                    continue
                for parent in PurePath(entry.path).parents:
                    key = str(parent)
                    if key in sizes:
                        sizes[key] += entry.size_bytes
                    if key == self.root:
                        break
        self._dir_sizes.update(sizes)
        return self._dir_sizes

    def category_summaries(self) -> list[CategorySummary]:
        """Group categorized entries by category, largest first.

        Entries nested inside another categorized directory are left
        out so that bytes are never counted twice.
        """
        categorized_dirs = {e.path for e in self.entries if e.is_dir and e.category is not None}
        grouped: dict[str, list[Entry]] = {}
        categories: dict[str, Category] = {}

        for entry in self.entries:
            if entry.category is None or _is_nested(entry.path, categorized_dirs, self.root):
                continue
            grouped.setdefault(entry.category.id, []).append(entry)
            categories[entry.category.id] = entry.category

        summaries = [
            CategorySummary(
                category=categories[cat_id],
                entries=tuple(items),
                total_bytes=sum(self.size_of(e) for e in items),
            )
            for cat_id, items in grouped.items()
        ]
        summaries.sort(key=lambda s: (-s.total_bytes, s.category.id))
        return summaries

    def large_files(self, threshold: int) -> list[Entry]:
        """Return files at or above ``threshold`` bytes, largest first."""
        files = [e for e in self.entries if e.is_file and e.size_bytes >= threshold]
        files.sort(key=lambda e: (-e.size_bytes, e.path))
        return files


def _is_nested(path: str, containers: set[str], root: str) -> bool:
    """Check if ``path`` lies strictly inside any of ``containers``."""
    for parent in PurePath(path).parents:
        key = str(parent)
        if key in containers:
            return True
        if key == root:
            break
    return False
