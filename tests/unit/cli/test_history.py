"""Unit tests for history command.

Tests for the CLI history command implementation.
"""

import json
from pathlib import Path

import pytest
from dustpan.cli.main import app
from dustpan.filesystem.audit import AuditLog, AuditLogEntry, DeletionMethod
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def sample_audit_entries() -> list[AuditLogEntry]:
    """Create sample audit entries for testing."""
    return [
        AuditLogEntry(
            id="abc123456789",
            path="/w/node_modules",
            size_bytes=2048,
            deleted_at="2026-01-25T10:00:00+00:00",
            category="node_modules",
            method=DeletionMethod.TRASH,
        ),
        AuditLogEntry(
            id="def678901234",
            path="/w/.cache/pip",
            size_bytes=512,
            deleted_at="2026-01-26T14:25:00+00:00",
            category="pip_cache",
            method=DeletionMethod.PERMANENT,
        ),
        AuditLogEntry(
            id="ghi112233445",
            path="/w/x.bak",
            size_bytes=10,
            deleted_at="2026-01-26T14:30:00+00:00",
            category="editor",
            method=DeletionMethod.TRASH,
        ),
    ]


@pytest.fixture
def recorded(sample_audit_entries: list[AuditLogEntry]) -> list[AuditLogEntry]:
    """Write the sample entries to the default audit log."""
    log = AuditLog()
    for entry in sample_audit_entries:
        log.record(entry)
    return sample_audit_entries


class TestHistoryCommand:
    """Tests for dustpan history command."""

    def test_history_help(self) -> None:
        """History command shows help."""
        result = runner.invoke(app, ["history", "--help"])
        assert result.exit_code == 0
        assert "--limit" in result.stdout
        assert "--since" in result.stdout

    def test_history_empty(self) -> None:
        """An empty log prints a friendly message."""
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No deletions recorded." in result.stdout

    def test_history_table(self, recorded: list[AuditLogEntry]) -> None:
        """Entries are listed in a table."""
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "Deletion History" in result.stdout
        assert "pip_cache" in result.stdout
        assert "2026-01-26 14:30" in result.stdout
        assert "3 deletion(s)" in result.stdout

    def test_history_json_newest_first(self, recorded: list[AuditLogEntry]) -> None:
        """JSON output lists entries newest first."""
        result = runner.invoke(app, ["history", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [d["id"] for d in data] == ["ghi112233445", "def678901234", "abc123456789"]

    def test_history_limit(self, recorded: list[AuditLogEntry]) -> None:
        """-n limits the number of entries."""
        result = runner.invoke(app, ["history", "-n", "1", "-f", "json"])

        data = json.loads(result.stdout)
        assert [d["id"] for d in data] == ["ghi112233445"]

    def test_history_category(self, recorded: list[AuditLogEntry]) -> None:
        """--category filters by category id."""
        result = runner.invoke(app, ["history", "-c", "node_modules", "-f", "json"])

        data = json.loads(result.stdout)
        assert [d["path"] for d in data] == ["/w/node_modules"]

    def test_history_since(self, recorded: list[AuditLogEntry]) -> None:
        """--since filters by date."""
        result = runner.invoke(app, ["history", "--since", "2026-01-26", "-f", "json"])

        data = json.loads(result.stdout)
        assert len(data) == 2

    def test_history_invalid_since(self, recorded: list[AuditLogEntry]) -> None:
        """An invalid date exits with an error."""
        result = runner.invoke(app, ["history", "--since", "yesterday"])

        assert result.exit_code == 1
        assert "Invalid date format" in result.output

    def test_history_configured_path(self, tmp_path: Path, isolated_xdg: Path, sample_audit_entries: list[AuditLogEntry]) -> None:
        """A configured audit_log_path is read."""
        log_path = tmp_path / "custom.jsonl"
        config_dir = isolated_xdg / "config" / "dustpan"
        config_dir.mkdir(parents=True)
        (config_dir / "config.toml").write_text(f'audit_log_path = "{log_path}"\n')
        AuditLog(log_path).record(sample_audit_entries[0])

        result = runner.invoke(app, ["history", "-f", "json"])

        assert [d["id"] for d in json.loads(result.stdout)] == ["abc123456789"]
