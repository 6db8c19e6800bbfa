"""Protected and critical filesystem paths.

This module decides which paths may be scanned or deleted at all.
Protected system directories are rejected outright; critical paths
(version control metadata, user documents, credentials) are allowed
but must be acknowledged before they are deleted.
"""

import fnmatch
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePath

from dustpan.filesystem.errors import InvalidPathError

logger = logging.getLogger(__name__)

# System directories that are never scanned or deleted, together with
# everything inside them. Matched against the canonical path.
PROTECTED_SYSTEM_DIRS: tuple[str, ...] = (
    "/System",
    "/bin",
    "/sbin",
    "/usr",
    "/etc",
    "/dev",
    "/proc",
    "/sys",
    "/boot",
    "/lib",
    "/lib64",
    "/var/lib",
    "/var/db",
    "/private/etc",
    "/private/var/db",
    "/Library/LaunchDaemons",
    "/Library/LaunchAgents",
)

# Windows system directories (compared case-insensitively).
PROTECTED_WINDOWS_DIRS: tuple[str, ...] = (
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\ProgramData\\Microsoft",
)

# Allowed, but worth a log line when used as a root.
SENSITIVE_DIRS: tuple[str, ...] = (
    "/Applications",
    "/Library",
    "C:\\Users",
)

VCS_DIR_NAMES: frozenset[str] = frozenset({".git", ".svn", ".hg"})

# Critical path patterns (glob-style). Patterns starting with ~ are
# expanded to the user's home directory before matching.
CRITICAL_PATH_PATTERNS: dict[str, str] = {
    # User documents
    "~/Documents": "user documents",
    "~/Documents/*": "user documents",
    "~/Desktop": "user documents",
    "~/Desktop/*": "user documents",
    "~/Pictures": "user media",
    "~/Pictures/*": "user media",
    "~/Music": "user media",
    "~/Music/*": "user media",
    "~/Videos": "user media",
    "~/Videos/*": "user media",
    "~/Movies": "user media",
    "~/Movies/*": "user media",
    # SSH and security
    "~/.ssh": "credentials",
    "~/.ssh/*": "credentials",
    "~/.gnupg": "credentials",
    "~/.gnupg/*": "credentials",
    # Keyrings
    "~/.local/share/keyrings": "credentials",
    "~/.local/share/keyrings/*": "credentials",
}


@dataclass(frozen=True, slots=True)
class ValidatedPath:
    """A canonical path accepted by the validator.

    Attributes:
        path: Canonical absolute path (symlinks and ``..`` resolved).
        existed: Whether the path existed when it was validated.
    """

    path: Path
    existed: bool = True

    def __str__(self) -> str:
        return str(self.path)


def validate_path(
    path: str | os.PathLike[str],
    *,
    must_exist: bool = True,
    extra_protected: Iterable[str] = (),
    keep_final_symlink: bool = False,
) -> ValidatedPath:
    """Canonicalize a path and reject protected system locations.

    The same check guards scan roots and every path in a cleanup
    request. Cleanup passes ``must_exist=False`` so that a path which
    has already vanished can be reported as skipped rather than invalid,
    and ``keep_final_symlink=True`` so that deleting a link removes the
    link rather than its target.

    Args:
        path: Path to validate (``~`` is expanded).
        must_exist: If True, a path that does not exist is rejected.
        extra_protected: Additional protected directories from configuration.
        keep_final_symlink: Resolve only the parent when the path itself is a symlink.

    Returns:
        ValidatedPath holding the canonical path.

    Raises:
        InvalidPathError: If the path cannot be canonicalized, does not
            exist (when required), or lies in a protected directory.
    """
    raw = os.fspath(path)
    if not raw or not raw.strip():
        raise InvalidPathError(raw, "path is empty")

    expanded = Path(raw).expanduser()
    try:
        if keep_final_symlink and expanded.is_symlink():
            canonical = expanded.parent.resolve(strict=must_exist) / expanded.name
        else:
            canonical = expanded.resolve(strict=must_exist)
    except FileNotFoundError as e:
        raise InvalidPathError(raw, "path does not exist") from e
    except (OSError, RuntimeError) as e:
        raise InvalidPathError(raw, str(e)) from e

    if canonical.parent == canonical:
        raise InvalidPathError(raw, f"'{canonical}' is the filesystem root")

    blocked = protected_dir_for(str(canonical), extra_protected)
    if blocked is not None:
        raise InvalidPathError(raw, f"'{blocked}' is a protected system directory")

    for sensitive in SENSITIVE_DIRS:
        if _is_within(str(canonical), sensitive, case_sensitive=not _is_windows_path(sensitive)):
            logger.warning("Using potentially sensitive directory: %s", sensitive)
            break

    existed = True if must_exist else os.path.lexists(canonical)
    return ValidatedPath(path=canonical, existed=existed)


def protected_dir_for(path: str, extra_protected: Iterable[str] = ()) -> str | None:
    """Return the protected directory containing ``path``, if any."""
    for blocked in PROTECTED_SYSTEM_DIRS:
        if _is_within(path, blocked):
            return blocked

    for blocked in PROTECTED_WINDOWS_DIRS:
        if _is_within(path, blocked, case_sensitive=False):
            return blocked

    for extra in extra_protected:
        expanded = os.path.normpath(os.path.expanduser(extra))
        if _is_within(path, expanded):
            return extra

    return None


def critical_reason(path: str | os.PathLike[str]) -> str | None:
    """Explain why a path is critical, or return None if it is not.

    Critical paths are not blocked, but a cleanup touching them must
    be acknowledged explicitly by the caller.

    Args:
        path: Absolute path to check.

    Returns:
        Short reason string (e.g., "version control metadata") or None.
    """
    path_str = os.fspath(path)
    home = str(Path.home())

    if os.path.normpath(path_str) == os.path.normpath(home):
        return "home directory"

    if any(part in VCS_DIR_NAMES for part in PurePath(path_str).parts):
        return "version control metadata"

    for pattern, reason in CRITICAL_PATH_PATTERNS.items():
        expanded = home + pattern[1:] if pattern.startswith("~") else pattern
        if fnmatch.fnmatch(path_str, expanded):
            return reason

    return None


def _is_windows_path(path: str) -> bool:
    return "\\" in path


def _is_within(path: str, base: str, *, case_sensitive: bool = True) -> bool:
    """Component-wise containment check (``/usrdata`` is not inside ``/usr``)."""
    sep = "\\" if _is_windows_path(base) else "/"
    if not case_sensitive:
        path = path.lower()
        base = base.lower()
    base = base.rstrip(sep)
    return path == base or path.startswith(base + sep)
