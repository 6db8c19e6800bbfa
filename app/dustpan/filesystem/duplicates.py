"""Duplicate file detection by size bucketing and content hashing.

Files are first grouped by exact size; only buckets with two or more
members are hashed. Hashing runs on a small thread pool.
"""

import hashlib
import logging
import threading
from collections import defaultdict
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from dustpan.filesystem.errors import CancellationRequestedError, HashComputationError
from dustpan.filesystem.models import DuplicateSet, Entry, ScanWarning, WarningKind
from dustpan.filesystem.progress import CancellationToken

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_MAX_HASH_SIZE = 100 * 1024 * 1024
DEFAULT_HASH_WORKERS = 4


def hash_file(path: str, chunk_size: int = CHUNK_SIZE) -> str:
    """Compute the SHA-256 hex digest of a file, streaming in chunks.

    Raises:
        HashComputationError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            while chunk := f.read(chunk_size):
                digest.update(chunk)
    except OSError as e:
        raise HashComputationError(path, e.strerror or str(e)) from e
    return digest.hexdigest()


class DuplicateDetector:
    """Finds groups of files with identical content.

    Args:
        max_hash_size: Files larger than this are never hashed.
        workers: Number of hashing threads.
        cancellation: Optional token; once set, no new hashing starts.
    """

    def __init__(
        self,
        max_hash_size: int = DEFAULT_MAX_HASH_SIZE,
        workers: int = DEFAULT_HASH_WORKERS,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._max_hash_size = max_hash_size
        self._workers = max(1, workers)
        self._cancellation = cancellation
        self._lock = threading.Lock()
        self.warnings: list[ScanWarning] = []

    def find_duplicates(self, entries: Iterable[Entry]) -> list[DuplicateSet]:
        """Group files by content.

        Args:
            entries: Scan entries; only non-empty files are considered.

        Returns:
            Duplicate sets, largest reclaimable first.

        Raises:
            CancellationRequestedError: If the token was set before hashing finished.
        """
        by_size: dict[int, list[Entry]] = defaultdict(list)
        for entry in entries:
            if entry.is_file and entry.size_bytes > 0:
                by_size[entry.size_bytes].append(entry)

        candidates: list[Entry] = []
        skipped_large = 0
        for size, bucket in by_size.items():
            if len(bucket) < 2:
                continue
            if size > self._max_hash_size:
                skipped_large += len(bucket)
                continue
            candidates.extend(bucket)

        if skipped_large:
            logger.info(
                "Skipping %d same-size file(s) above the %d byte hash limit",
                skipped_large,
                self._max_hash_size,
            )

        hashes = self._hash_all(candidates)

        groups: dict[tuple[int, str], list[Entry]] = defaultdict(list)
        for entry in candidates:
            digest = hashes.get(entry.path)
            if digest is not None:
                groups[(entry.size_bytes, digest)].append(replace(entry, content_hash=digest))

        sets = [
            DuplicateSet(
                content_hash=digest,
                size_bytes=size,
                entries=tuple(sorted(members, key=lambda e: e.path)),
            )
            for (size, digest), members in groups.items()
            if len(members) >= 2
        ]
        sets.sort(key=lambda s: (-s.reclaimable_bytes, s.content_hash))
        logger.debug("Found %d duplicate set(s) among %d candidate(s)", len(sets), len(candidates))
        return sets

    def _hash_all(self, candidates: list[Entry]) -> dict[str, str]:
        results: dict[str, str] = {}
        if not candidates:
            return results

        def _hash(entry: Entry) -> None:
            if self._is_cancelled():
                return
            try:
                digest = hash_file(entry.path)
            except HashComputationError as e:
                logger.warning("%s", e)
                with self._lock:
                    self.warnings.append(ScanWarning(WarningKind.HASH_FAILED, entry.path, e.reason))
                return
            with self._lock:
                results[entry.path] = digest

        with ThreadPoolExecutor(max_workers=min(self._workers, len(candidates))) as executor:
            futures = [executor.submit(_hash, entry) for entry in candidates]
            for future in futures:
                future.result()

        if self._is_cancelled():
            raise CancellationRequestedError("Duplicate detection cancelled")
        return results

    def _is_cancelled(self) -> bool:
        return self._cancellation is not None and self._cancellation.cancelled
