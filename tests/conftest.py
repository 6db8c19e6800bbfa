"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from dustpan.core.config import DustpanConfig
from dustpan.filesystem.mounts import MountTable
from dustpan.filesystem.protected import ValidatedPath

FileFactory = Callable[..., Path]


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG config and state at a temporary directory."""
    base = tmp_path_factory.mktemp("xdg")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(base / "state"))
    return base


@pytest.fixture(autouse=True)
def empty_mount_table(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep scans independent of the host's mounts unless a test opts in."""
    if "real_mounts" in request.keywords:
        return
    monkeypatch.setattr(MountTable, "load", classmethod(lambda cls, *args, **kwargs: cls()))


@pytest.fixture
def make_file() -> FileFactory:
    """Factory creating a file (and its parents) with the given content."""

    def _make(path: Path, content: bytes | str = b"") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def project_tree(tmp_path: Path, make_file: FileFactory) -> Path:
    """A small project with bloat, junk, a cache and ordinary files.

    Layout (sizes in bytes)::

        project/
            README.md               (10)
            .DS_Store               (4)
            src/main.py             (20)
            src/main.pyc            (8)
            node_modules/a/index.js (30)
            node_modules/b.js       (12)
            .cache/blob             (50)
    """
    root = tmp_path / "project"
    make_file(root / "README.md", b"r" * 10)
    make_file(root / ".DS_Store", b"d" * 4)
    make_file(root / "src" / "main.py", b"p" * 20)
    make_file(root / "src" / "main.pyc", b"c" * 8)
    make_file(root / "node_modules" / "a" / "index.js", b"j" * 30)
    make_file(root / "node_modules" / "b.js", b"k" * 12)
    make_file(root / ".cache" / "blob", b"b" * 50)
    return root.resolve()


@pytest.fixture
def validated_tree(project_tree: Path) -> ValidatedPath:
    """The project tree as a validated scan root."""
    return ValidatedPath(project_tree)


@pytest.fixture
def test_config(tmp_path: Path) -> DustpanConfig:
    """Configuration with no verification delay and a private audit log."""
    return DustpanConfig(
        verify_delay_seconds=0.0,
        audit_log_path=tmp_path / "audit" / "audit.jsonl",
    )
