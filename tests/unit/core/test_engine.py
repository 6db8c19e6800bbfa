"""Unit tests for the public engine entry points."""

from pathlib import Path

import pytest
from dustpan.core import engine
from dustpan.core.config import DustpanConfig, save_config
from dustpan.filesystem.audit import AuditLog, DeletionMethod, create_audit_entry
from dustpan.filesystem.errors import InvalidPathError
from dustpan.filesystem.models import ScanStatus
from dustpan.filesystem.operator import CleanupRequest, CleanupStatus
from dustpan.filesystem.scanner import ScanOptions


class TestScan:
    """Tests for engine.scan."""

    def test_scans_valid_root(self, project_tree: Path, test_config: DustpanConfig) -> None:
        """A valid root is scanned with configured defaults."""
        result = engine.scan(project_tree, config=test_config)

        assert result.status == ScanStatus.COMPLETED
        assert result.root == str(project_tree)
        assert result.file_count == 7

    def test_protected_root_rejected(self) -> None:
        """Protected system directories cannot be scanned."""
        with pytest.raises(InvalidPathError):
            engine.scan("/etc", config=DustpanConfig())

    def test_missing_root_rejected(self, tmp_path: Path) -> None:
        """A missing root is invalid."""
        with pytest.raises(InvalidPathError, match="does not exist"):
            engine.scan(tmp_path / "missing", config=DustpanConfig())

    def test_extra_protected_from_config(self, project_tree: Path) -> None:
        """Configured extra directories are rejected as roots."""
        config = DustpanConfig(extra_protected_dirs=[str(project_tree)])
        with pytest.raises(InvalidPathError, match="protected"):
            engine.scan(project_tree, config=config)

    def test_explicit_options(self, project_tree: Path) -> None:
        """Explicit options override configured defaults."""
        result = engine.scan(project_tree, ScanOptions(min_file_size=25), config=DustpanConfig())
        assert sorted(e.name for e in result.entries if e.is_file) == ["blob", "index.js"]

    def test_loads_config_file(self, project_tree: Path) -> None:
        """Without a config argument, the config file is used."""
        save_config(DustpanConfig(extra_protected_dirs=[str(project_tree)]))
        with pytest.raises(InvalidPathError):
            engine.scan(project_tree)


class TestCleanup:
    """Tests for engine.cleanup."""

    def test_deletes_and_audits(self, tmp_path: Path, test_config: DustpanConfig) -> None:
        """A cleanup deletes paths and records them."""
        target = tmp_path / "junk.bak"
        target.write_text("old")

        result = engine.cleanup(CleanupRequest(paths=(str(target),), use_trash=False), test_config)

        assert result.status == CleanupStatus.COMPLETED
        assert not target.exists()
        entries = engine.read_audit_log(path=test_config.audit_log_path)
        assert entries[0].category == "editor"

    def test_limit_aborts_without_raising(self, test_config: DustpanConfig) -> None:
        """Validation failures are returned as an aborted result."""
        request = CleanupRequest(paths=tuple(f"/nonexistent/{i}" for i in range(10_001)))
        result = engine.cleanup(request, test_config)
        assert result.status == CleanupStatus.ABORTED


class TestReadAuditLog:
    """Tests for engine.read_audit_log."""

    def test_default_location(self, isolated_xdg: Path) -> None:
        """Without a path the XDG state location is read."""
        log = AuditLog()
        log.record(create_audit_entry("/w/a", 1, "pip_cache", DeletionMethod.TRASH))
        log.record(create_audit_entry("/w/b", 2, "node_modules", DeletionMethod.TRASH))

        assert [e.path for e in engine.read_audit_log()] == ["/w/b", "/w/a"]
        assert [e.path for e in engine.read_audit_log(category="pip_cache")] == ["/w/a"]
        assert len(engine.read_audit_log(limit=1)) == 1

    def test_configured_location(self, tmp_path: Path) -> None:
        """A configured audit_log_path is honored."""
        path = tmp_path / "custom.jsonl"
        save_config(DustpanConfig(audit_log_path=path))
        AuditLog(path).record(create_audit_entry("/w/a", 1, None, DeletionMethod.PERMANENT))

        assert [e.path for e in engine.read_audit_log()] == ["/w/a"]
