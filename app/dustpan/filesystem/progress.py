"""Progress tracking and cooperative cancellation for scans.

A ProgressTracker is owned by one walker and passed by reference to
anything that reports on it; a CancellationToken is shared between the
caller and every worker that should stop when the caller asks.
"""

import threading
import time
from collections.abc import Callable, Iterable

from dustpan.filesystem.models import EntryKind, ScanProgress, ScanWarning


class CancellationToken:
    """One-way cancellation flag backed by a threading.Event.

    Once cancelled, a token stays cancelled.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._event.is_set()


class ProgressTracker:
    """Thread-safe counters for a running scan.

    The remaining work is estimated from the average number of file
    bytes seen per visited directory, multiplied by the number of
    directories still waiting to be visited.

    Args:
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._started = clock()
        self._entries = 0
        self._files = 0
        self._dirs = 0
        self._bytes = 0
        self._current_path = ""

    def record(self, kind: EntryKind, path: str, size_bytes: int = 0) -> int:
        """Count one visited entry.

        Args:
            kind: Entry type.
            path: Entry path, kept as the current path.
            size_bytes: Bytes to add (files only).

        Returns:
            Total entries visited so far.
        """
        with self._lock:
            self._entries += 1
            if kind == EntryKind.FILE:
                self._files += 1
                self._bytes += size_bytes
            elif kind == EntryKind.DIRECTORY:
                self._dirs += 1
            self._current_path = path
            return self._entries

    @property
    def entries_visited(self) -> int:
        """Entries visited so far."""
        with self._lock:
            return self._entries

    def snapshot(
        self,
        pending_dirs: int = 0,
        warnings: Iterable[ScanWarning] = (),
    ) -> ScanProgress:
        """Build a progress snapshot.

        Args:
            pending_dirs: Directories still queued for traversal.
            warnings: Warnings collected so far.

        Returns:
            Immutable ScanProgress.
        """
        with self._lock:
            entries = self._entries
            files = self._files
            dirs = self._dirs
            processed = self._bytes
            current = self._current_path
        elapsed = max(self._clock() - self._started, 0.0)

        # The scan root counts as a visited directory
        remaining = estimate_remaining(processed, dirs + 1, pending_dirs)
        if pending_dirs == 0:
            percentage = 100.0
        elif processed + remaining > 0:
            percentage = min(100.0 * processed / (processed + remaining), 100.0)
        else:
            percentage = 0.0

        return ScanProgress(
            entries_visited=entries,
            files_visited=files,
            dirs_visited=dirs,
            bytes_processed=processed,
            current_path=current,
            percentage=percentage,
            eta_seconds=estimate_eta(elapsed, processed, remaining),
            elapsed_seconds=elapsed,
            warnings=tuple(warnings),
        )


def estimate_remaining(processed_bytes: int, dirs_visited: int, pending_dirs: int) -> int:
    """Estimate bytes left to scan from the per-directory average."""
    if dirs_visited <= 0 or pending_dirs <= 0:
        return 0
    return (processed_bytes // dirs_visited) * pending_dirs


def estimate_eta(elapsed: float, processed_bytes: int, remaining_bytes: int) -> float | None:
    """Extrapolate the remaining time from the throughput so far.

    Returns:
        Seconds remaining, or None while there is no throughput to go on.
    """
    if elapsed <= 0 or processed_bytes <= 0:
        return None
    return elapsed * remaining_bytes / processed_bytes


def format_duration(seconds: float) -> str:
    """Format a duration for display (``45s``, ``2m 5s``, ``1h 3m``)."""
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        return f"{total // 60}m {total % 60}s"
    return f"{total // 3600}h {(total % 3600) // 60}m"
