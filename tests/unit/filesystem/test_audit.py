"""Unit tests for the deletion audit log.

Tests that verified deletions are appended as JSON lines and read
back newest first with category and date filters.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import pytest
from dustpan.filesystem.audit import (
    UNCATEGORIZED,
    AuditLog,
    AuditLogEntry,
    DeletionMethod,
    create_audit_entry,
)


def _entry(entry_id: str, deleted_at: str, category: str = "node_modules", size: int = 100) -> AuditLogEntry:
    return AuditLogEntry(
        id=entry_id,
        path=f"/work/{entry_id}",
        size_bytes=size,
        deleted_at=deleted_at,
        category=category,
        method=DeletionMethod.TRASH,
    )


class TestAuditLogEntry:
    """Tests for AuditLogEntry dataclass."""

    def test_to_dict_from_dict(self) -> None:
        """Dictionary form keeps every field."""
        entry = _entry("abc123", "2026-01-15T10:00:00+00:00")
        data = entry.to_dict()
        assert data["method"] == "trash"
        assert AuditLogEntry.from_dict(data) == entry

    def test_json_line_is_single_line(self) -> None:
        """JSON lines contain no newline."""
        line = _entry("abc123", "2026-01-15T10:00:00+00:00").to_json_line()
        assert "\n" not in line
        assert json.loads(line)["id"] == "abc123"

    def test_missing_category_defaults(self) -> None:
        """Entries without a category read back as uncategorized."""
        data = _entry("abc123", "2026-01-15T10:00:00+00:00").to_dict()
        del data["category"]
        assert AuditLogEntry.from_dict(data).category == UNCATEGORIZED

    def test_invalid_method(self) -> None:
        """Unknown deletion methods are rejected."""
        data = _entry("abc123", "2026-01-15T10:00:00+00:00").to_dict()
        data["method"] = "shred"
        with pytest.raises(ValueError):
            AuditLogEntry.from_dict(data)

    def test_validation(self) -> None:
        """Empty ids and negative sizes are rejected."""
        with pytest.raises(ValueError, match="ID cannot be empty"):
            _entry("", "2026-01-15T10:00:00+00:00")
        with pytest.raises(ValueError, match="negative"):
            _entry("abc", "2026-01-15T10:00:00+00:00", size=-1)

    def test_deleted_at_datetime(self) -> None:
        """Timestamps parse to aware datetimes, including the Z suffix."""
        entry = _entry("abc", "2026-01-15T10:00:00Z")
        assert entry.deleted_at_datetime == datetime(2026, 1, 15, 10, tzinfo=UTC)


class TestCreateAuditEntry:
    """Tests for create_audit_entry function."""

    def test_fields(self) -> None:
        """New entries get an id and a current UTC timestamp."""
        entry = create_audit_entry("/work/x", 42, "pip_cache", DeletionMethod.PERMANENT)
        assert len(entry.id) == 12
        assert entry.size_bytes == 42
        assert entry.category == "pip_cache"
        assert entry.method == DeletionMethod.PERMANENT
        assert entry.deleted_at_datetime.tzinfo is not None

    def test_no_category(self) -> None:
        """A missing category is stored as uncategorized."""
        entry = create_audit_entry("/work/x", 1, None, DeletionMethod.TRASH)
        assert entry.category == UNCATEGORIZED

    def test_unique_ids(self) -> None:
        """Each entry gets its own id."""
        ids = {create_audit_entry("/w", 1, None, DeletionMethod.TRASH).id for _ in range(50)}
        assert len(ids) == 50


class TestAuditLog:
    """Tests for AuditLog."""

    @pytest.fixture
    def log(self, tmp_path: Path) -> AuditLog:
        return AuditLog(tmp_path / "state" / "audit.jsonl")

    def test_default_path_is_xdg_state(self, isolated_xdg: Path) -> None:
        """Without a path the log lives in the XDG state directory."""
        assert AuditLog().path == isolated_xdg / "state" / "dustpan" / "audit.jsonl"

    def test_missing_file_reads_empty(self, log: AuditLog) -> None:
        """Reading a log that was never written returns nothing."""
        assert log.read() == []

    def test_record_appends(self, log: AuditLog) -> None:
        """Entries are appended one per line and creates the parent directory."""
        log.record(_entry("one", "2026-01-01T00:00:00+00:00"))
        log.record(_entry("two", "2026-01-02T00:00:00+00:00"))

        lines = log.path.read_text().splitlines()
        assert [json.loads(line)["id"] for line in lines] == ["one", "two"]

    def test_read_newest_first(self, log: AuditLog) -> None:
        """Entries are returned in reverse order of recording."""
        for i in range(3):
            log.record(_entry(f"e{i}", f"2026-01-0{i + 1}T00:00:00+00:00"))
        assert [e.id for e in log.read()] == ["e2", "e1", "e0"]

    def test_read_limit(self, log: AuditLog) -> None:
        """limit keeps the newest entries."""
        for i in range(5):
            log.record(_entry(f"e{i}", f"2026-01-0{i + 1}T00:00:00+00:00"))
        assert [e.id for e in log.read(limit=2)] == ["e4", "e3"]

    def test_read_category(self, log: AuditLog) -> None:
        """category filters by category id."""
        log.record(_entry("a", "2026-01-01T00:00:00+00:00", category="node_modules"))
        log.record(_entry("b", "2026-01-02T00:00:00+00:00", category="pip_cache"))
        assert [e.id for e in log.read(category="pip_cache")] == ["b"]

    def test_read_since_string(self, log: AuditLog) -> None:
        """since accepts a date string; naive values are UTC."""
        log.record(_entry("old", "2025-12-31T23:59:59+00:00"))
        log.record(_entry("new", "2026-01-01T00:00:00+00:00"))
        assert [e.id for e in log.read(since="2026-01-01")] == ["new"]

    def test_read_since_datetime(self, log: AuditLog) -> None:
        """since accepts a datetime."""
        log.record(_entry("old", "2026-01-01T00:00:00+00:00"))
        log.record(_entry("new", "2026-03-01T00:00:00+00:00"))
        assert [e.id for e in log.read(since=datetime(2026, 2, 1, tzinfo=UTC))] == ["new"]

    def test_read_since_invalid(self, log: AuditLog) -> None:
        """An unparseable date raises ValueError."""
        log.record(_entry("a", "2026-01-01T00:00:00+00:00"))
        with pytest.raises(ValueError):
            log.read(since="not-a-date")

    def test_corrupt_lines_skipped(self, log: AuditLog, caplog: pytest.LogCaptureFixture) -> None:
        """Corrupt and blank lines are skipped with a warning."""
        log.record(_entry("good1", "2026-01-01T00:00:00+00:00"))
        with log.path.open("a") as f:
            f.write("{not json\n\n")
            f.write('{"id": "x"}\n')
        log.record(_entry("good2", "2026-01-02T00:00:00+00:00"))

        with caplog.at_level(logging.WARNING, logger="dustpan.filesystem.audit"):
            entries = log.read()

        assert [e.id for e in entries] == ["good2", "good1"]
        assert sum("Skipping corrupt audit line" in r.message for r in caplog.records) == 2

    def test_never_rewrites_existing_lines(self, log: AuditLog) -> None:
        """Recording only appends; earlier bytes are unchanged."""
        log.record(_entry("a", "2026-01-01T00:00:00+00:00"))
        before = log.path.read_bytes()
        log.record(_entry("b", "2026-01-02T00:00:00+00:00"))
        assert log.path.read_bytes().startswith(before)

    def test_total_bytes(self, log: AuditLog) -> None:
        """total_bytes sums matching entries."""
        log.record(_entry("a", "2026-01-01T00:00:00+00:00", category="node_modules", size=100))
        log.record(_entry("b", "2026-01-02T00:00:00+00:00", category="pip_cache", size=50))
        assert log.total_bytes() == 150
        assert log.total_bytes(category="pip_cache") == 50
