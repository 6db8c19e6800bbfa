"""Append-only audit log of deletions.

Every verified deletion is recorded as one JSON line. The file is only
ever appended to; reading returns entries newest first.

Storage location: ~/.local/state/dustpan/audit.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from dustpan.core.paths import get_audit_log_path

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"


class DeletionMethod(str, Enum):
    """How a path was removed.

    Attributes:
        TRASH: Moved to the operating system's trash (recoverable).
        PERMANENT: Removed from disk.
    """

    TRASH = "trash"
    PERMANENT = "permanent"


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    """Record of a single verified deletion.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        path: Absolute path that was deleted.
        size_bytes: Size captured before deletion.
        deleted_at: When the deletion was verified (ISO 8601, UTC).
        category: Category id captured before deletion, or "uncategorized".
        method: Trash or permanent deletion.
    """

    id: str
    path: str
    size_bytes: int
    deleted_at: str
    category: str
    method: DeletionMethod

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "Audit entry ID cannot be empty"
            raise ValueError(msg)
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "path": self.path,
            "size_bytes": self.size_bytes,
            "deleted_at": self.deleted_at,
            "category": self.category,
            "method": self.method.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditLogEntry:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If method or field values are invalid.
        """
        return cls(
            id=data["id"],
            path=data["path"],
            size_bytes=int(data["size_bytes"]),
            deleted_at=data["deleted_at"],
            category=data.get("category", UNCATEGORIZED),
            method=DeletionMethod(data["method"]),
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> AuditLogEntry:
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls.from_dict(json.loads(line.strip()))

    @property
    def deleted_at_datetime(self) -> datetime:
        """Deletion time as an aware datetime."""
        return _parse_timestamp(self.deleted_at)


def create_audit_entry(
    path: str,
    size_bytes: int,
    category: str | None,
    method: DeletionMethod,
) -> AuditLogEntry:
    """Create a new AuditLogEntry stamped with a fresh ID and the current time."""
    return AuditLogEntry(
        id=uuid.uuid4().hex[:12],
        path=path,
        size_bytes=size_bytes,
        deleted_at=datetime.now(UTC).isoformat(),
        category=category or UNCATEGORIZED,
        method=method,
    )


class AuditLog:
    """Append-only JSONL store of deletions.

    Appends are serialized with a lock; existing lines are never
    rewritten or truncated.

    Args:
        path: Log file path. Defaults to the XDG state location.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else get_audit_log_path()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Path to the audit log file."""
        return self._path

    def record(self, entry: AuditLogEntry) -> None:
        """Append one entry.

        Raises:
            OSError: If the file cannot be written.
        """
        line = entry.to_json_line()
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open(mode="a", encoding="utf-8") as f:
                f.write(line + "\n")
                f.flush()
        logger.debug("Recorded audit entry %s for %s", entry.id, entry.path)

    def read(
        self,
        limit: int | None = None,
        category: str | None = None,
        since: datetime | str | None = None,
    ) -> list[AuditLogEntry]:
        """Read entries, newest first.

        Blank lines are ignored and corrupt lines are skipped with a
        warning.

        Args:
            limit: Maximum number of entries to return.
            category: Only return entries with this category id.
            since: Only return entries deleted at or after this time
                (datetime or ISO 8601 string; naive values are UTC).

        Returns:
            Matching entries, newest first. Empty if the file doesn't exist.

        Raises:
            ValueError: If ``since`` is a string that is not ISO 8601.
        """
        if not self._path.exists():
            return []

        since_dt = _parse_timestamp(since) if isinstance(since, str) else _as_utc(since)
        entries: list[AuditLogEntry] = []

        with self._path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = AuditLogEntry.from_json_line(line)
                    stamp = entry.deleted_at_datetime
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping corrupt audit line %d: %s", line_num, str(e))
                    continue
                if category is not None and entry.category != category:
                    continue
                if since_dt is not None and stamp < since_dt:
                    continue
                entries.append(entry)

        entries.reverse()
        if limit is not None:
            return entries[:limit]
        return entries

    def total_bytes(
        self,
        category: str | None = None,
        since: datetime | str | None = None,
    ) -> int:
        """Sum the sizes of recorded deletions matching the filters."""
        return sum(e.size_bytes for e in self.read(category=category, since=since))


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
