"""Directory traversal and scan orchestration.

The Walker visits a validated root depth-first with an explicit stack,
classifying every entry before it is yielded. Per-entry failures become
warnings; only an unreadable root raises.
"""

import logging
import os
import stat
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from dustpan.filesystem.duplicates import DuplicateDetector
from dustpan.filesystem.errors import (
    CancellationRequestedError,
    ScanRootError,
    is_not_found,
    is_permission_denied,
)
from dustpan.filesystem.models import (
    Entry,
    EntryKind,
    ScanProgress,
    ScanResult,
    ScanStatus,
    ScanWarning,
    WarningKind,
)
from dustpan.filesystem.mounts import MountTable
from dustpan.filesystem.patterns import IgnoreMatcher, PatternClassifier, default_classifier
from dustpan.filesystem.progress import CancellationToken, ProgressTracker
from dustpan.filesystem.protected import ValidatedPath

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]

GIB = 1024**3
MIB = 1024**2


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """Options controlling a single scan.

    Attributes:
        follow_symlinks: Descend into symlinked directories and size linked files.
        min_file_size: Files smaller than this are counted but not published.
        find_duplicates: Run duplicate detection after the walk.
        large_directory_threshold: Direct entry count that triggers a warning.
        large_file_threshold: Size at which a file is reported as large.
        max_hash_size: Files above this size are not hashed.
        hash_workers: Threads used for hashing.
        progress_interval: Emit a progress snapshot every N entries.
        ignore_patterns: Glob patterns for entries and subtrees to leave out.
        cancellation: Shared cancellation token.
    """

    follow_symlinks: bool = False
    min_file_size: int = 0
    find_duplicates: bool = True
    large_directory_threshold: int = 10_000
    large_file_threshold: int = GIB
    max_hash_size: int = 100 * MIB
    hash_workers: int = 4
    progress_interval: int = 100
    ignore_patterns: tuple[str, ...] = ()
    cancellation: CancellationToken | None = None


@dataclass(slots=True)
class _PendingDir:
    path: str
    depth: int
    device: int


class Walker:
    """Lazy depth-first walker over a validated root.

    Children of each directory are visited in name order, so the walk
    order is stable for a given filesystem state.

    Args:
        root: Validated scan root.
        options: Scan options.
        on_progress: Optional callback receiving progress snapshots.
        classifier: Pattern classifier (defaults to the built-in tables).
        mount_table: Mount table (loaded lazily from the system if omitted).
        tracker: Progress tracker (a fresh one if omitted).
    """

    def __init__(
        self,
        root: ValidatedPath,
        options: ScanOptions | None = None,
        on_progress: ProgressCallback | None = None,
        *,
        classifier: PatternClassifier | None = None,
        mount_table: MountTable | None = None,
        tracker: ProgressTracker | None = None,
    ) -> None:
        self._root = str(root.path)
        self._options = options or ScanOptions()
        self._on_progress = on_progress
        self._classifier = classifier or default_classifier
        self._mount_table = mount_table
        self._tracker = tracker or ProgressTracker()
        self._ignore = IgnoreMatcher(self._options.ignore_patterns)

        self._visited: set[str] = set()
        self._warned_mounts: set[str] = set()
        self._pending = 0
        self._cancelled = False
        self.warnings: list[ScanWarning] = []

    @property
    def progress(self) -> ScanProgress:
        """Latest progress snapshot."""
        return self._tracker.snapshot(self._pending, self.warnings)

    @property
    def cancelled(self) -> bool:
        """Check if the walk stopped because of cancellation."""
        return self._cancelled

    def walk(self) -> Iterator[Entry]:
        """Yield classified entries below the root.

        Raises:
            ScanRootError: If the root cannot be read.
        """
        try:
            root_stat = os.stat(self._root)
        except OSError as e:
            raise ScanRootError(self._root, e.strerror or str(e)) from e
        if not stat.S_ISDIR(root_stat.st_mode):
            raise ScanRootError(self._root, "not a directory")

        self._visited.add(os.path.realpath(self._root))
        self._check_network_mount(self._root)

        stack = [_PendingDir(self._root, 0, root_stat.st_dev)]
        is_root = True

        while stack:
            if self._should_stop():
                break
            current = stack.pop()
            self._pending = len(stack)

            children = self._list_dir(current.path, raise_errors=is_root)
            is_root = False
            if children is None:
                continue

            subdirs: list[_PendingDir] = []
            for child in children:
                if self._should_stop():
                    break
                entry, device = self._visit(child, current)
                if entry is None:
                    continue
                if device is not None:
                    subdirs.append(_PendingDir(entry.path, entry.depth, device))
                    self._pending = len(stack) + len(subdirs)

                visited = self._tracker.record(entry.kind, entry.path, entry.size_bytes)
                if visited % max(self._options.progress_interval, 1) == 0:
                    self._emit()
                if entry.is_file and entry.size_bytes < self._options.min_file_size:
                    continue
                yield entry

            if self._cancelled:
                break
            # Reversed so the first child by name is popped first
            stack.extend(reversed(subdirs))

        if not self._cancelled:
            self._pending = 0
        self._emit()

    def _should_stop(self) -> bool:
        token = self._options.cancellation
        if token is not None and token.cancelled:
            if not self._cancelled:
                logger.info("Scan of %s cancelled", self._root)
            self._cancelled = True
        return self._cancelled

    def _list_dir(self, path: str, *, raise_errors: bool = False) -> list[os.DirEntry[str]] | None:
        try:
            with os.scandir(path) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if raise_errors:
                raise ScanRootError(path, e.strerror or str(e)) from e
            self._warn_os_error(path, e)
            return None

        threshold = self._options.large_directory_threshold
        if len(children) > threshold:
            self._warn(
                WarningKind.LARGE_DIRECTORY,
                path,
                f"Directory has {len(children)} entries (threshold: {threshold})",
            )
        return children

    def _visit(self, child: os.DirEntry[str], parent: _PendingDir) -> tuple[Entry | None, int | None]:
        """Stat and classify one child.

        Returns:
            The entry (None if skipped) and, for directories to descend
            into, the device they live on.
        """
        depth = parent.depth + 1
        try:
            lst = child.stat(follow_symlinks=False)
        except OSError as e:
            self._warn_os_error(child.path, e)
            return None, None

        if self._ignore and self._is_ignored(child.path, stat.S_ISDIR(lst.st_mode)):
            logger.debug("Ignoring %s", child.path)
            return None, None

        if stat.S_ISLNK(lst.st_mode):
            if not self._options.follow_symlinks:
                self._check_symlink_loop(child.path)
                return self._make_entry(child, EntryKind.SYMLINK, lst, depth), None
            try:
                st = os.stat(child.path)
            except OSError as e:
                if is_not_found(e):
                    # Dangling link: report the link itself
                    return self._make_entry(child, EntryKind.SYMLINK, lst, depth), None
                self._warn_os_error(child.path, e)
                return None, None
            if stat.S_ISDIR(st.st_mode):
                if self._check_symlink_loop(child.path, st):
                    return self._make_entry(child, EntryKind.SYMLINK, lst, depth), None
                self._visited.add(os.path.realpath(child.path))
                return self._enter_dir(child, st, parent, depth)
            return self._make_entry(child, EntryKind.FILE, st, depth), None

        if stat.S_ISDIR(lst.st_mode):
            real = os.path.realpath(child.path)
            if real in self._visited:
                return None, None
            self._visited.add(real)
            return self._enter_dir(child, lst, parent, depth)

        return self._make_entry(child, EntryKind.FILE, lst, depth), None

    def _is_ignored(self, path: str, is_dir: bool) -> bool:
        relative = os.path.relpath(path, self._root).replace(os.sep, "/")
        return self._ignore.matches(relative, is_dir=is_dir)

    def _check_symlink_loop(self, path: str, st: os.stat_result | None = None) -> bool:
        """Warn if a symlink points back to an already visited directory.

        Unresolvable targets are not loops; they are reported as the
        link itself by the caller.
        """
        if st is None:
            try:
                st = os.stat(path)
            except OSError as e:
                logger.debug("Cannot resolve symlink %s: %s", path, e)
                return False
        if not stat.S_ISDIR(st.st_mode):
            return False
        real = os.path.realpath(path)
        if real not in self._visited:
            return False
        self._warn(
            WarningKind.SYMLINK_LOOP,
            path,
            f"Symlink points to already visited directory {real}",
        )
        return True

    def _enter_dir(
        self,
        child: os.DirEntry[str],
        st: os.stat_result,
        parent: _PendingDir,
        depth: int,
    ) -> tuple[Entry, int]:
        if st.st_dev != parent.device:
            self._check_network_mount(os.path.realpath(child.path))
        return self._make_entry(child, EntryKind.DIRECTORY, st, depth), st.st_dev

    def _make_entry(
        self,
        child: os.DirEntry[str],
        kind: EntryKind,
        st: os.stat_result,
        depth: int,
    ) -> Entry:
        return Entry(
            path=child.path,
            kind=kind,
            size_bytes=st.st_size if kind == EntryKind.FILE else 0,
            mtime=datetime.fromtimestamp(st.st_mtime, tz=UTC).isoformat(),
            category=self._classifier.classify(child.name, is_dir=kind == EntryKind.DIRECTORY),
            depth=depth,
        )

    def _check_network_mount(self, path: str) -> None:
        if self._mount_table is None:
            self._mount_table = MountTable.load()
        mount = self._mount_table.network_mount_for(path)
        if mount is None or mount.path in self._warned_mounts:
            return
        self._warned_mounts.add(mount.path)
        self._warn(
            WarningKind.NETWORK_MOUNT,
            mount.path,
            f"Scanning network filesystem ({mount.fs_type}); this may be slow",
        )

    def _warn_os_error(self, path: str, error: OSError) -> None:
        if is_not_found(error):
            kind = WarningKind.NOT_FOUND
        elif is_permission_denied(error):
            kind = WarningKind.PERMISSION_DENIED
        else:
            kind = WarningKind.IO_ERROR
        self._warn(kind, path, error.strerror or str(error))

    def _warn(self, kind: WarningKind, path: str, message: str) -> None:
        logger.warning("%s: %s (%s)", kind.value, path, message)
        self.warnings.append(ScanWarning(kind=kind, path=path, message=message))
        self._emit()

    def _emit(self) -> None:
        if self._on_progress is not None:
            self._on_progress(self.progress)


def scan(
    root: ValidatedPath,
    options: ScanOptions | None = None,
    on_progress: ProgressCallback | None = None,
    *,
    classifier: PatternClassifier | None = None,
    mount_table: MountTable | None = None,
) -> ScanResult:
    """Walk a validated root and find duplicates.

    Args:
        root: Validated scan root.
        options: Scan options (defaults if omitted).
        on_progress: Optional progress callback.
        classifier: Pattern classifier override.
        mount_table: Mount table override.

    Returns:
        ScanResult; its status is cancelled if the token was set.

    Raises:
        ScanRootError: If the root cannot be read.
    """
    options = options or ScanOptions()
    started_at = datetime.now(UTC).isoformat()
    start = time.monotonic()

    walker = Walker(root, options, on_progress, classifier=classifier, mount_table=mount_table)
    entries = list(walker.walk())
    warnings = list(walker.warnings)
    status = ScanStatus.CANCELLED if walker.cancelled else ScanStatus.COMPLETED

    duplicates = []
    if options.find_duplicates and status == ScanStatus.COMPLETED:
        detector = DuplicateDetector(options.max_hash_size, options.hash_workers, options.cancellation)
        try:
            duplicates = detector.find_duplicates(entries)
        except CancellationRequestedError:
            logger.info("Duplicate detection cancelled")
            status = ScanStatus.CANCELLED
        warnings.extend(detector.warnings)

        hashed = {e.path: e.content_hash for d in duplicates for e in d.entries}
        if hashed:
            entries = [
                replace(e, content_hash=hashed[e.path]) if e.path in hashed else e
                for e in entries
            ]

    result = ScanResult(
        root=str(root.path),
        status=status,
        entries=tuple(entries),
        duplicates=tuple(duplicates),
        warnings=tuple(warnings),
        started_at=started_at,
        duration_seconds=time.monotonic() - start,
    )
    logger.info(
        "Scanned %s: %d entries, %d bytes, %d warning(s), status %s",
        result.root,
        len(result.entries),
        result.total_bytes,
        len(result.warnings),
        result.status.value,
    )
    return result
