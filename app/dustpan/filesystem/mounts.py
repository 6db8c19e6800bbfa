"""Network mount detection.

The mount table is read once per scan: from /proc/mounts on Linux, or
from the output of ``mount`` elsewhere. Lookups pick the longest mount
point containing a path.
"""

import logging
import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from dustpan.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

PROC_MOUNTS = Path("/proc/mounts")

NETWORK_FS_TYPES: frozenset[str] = frozenset(
    {
        "nfs",
        "nfs4",
        "cifs",
        "smbfs",
        "smb3",
        "afpfs",
        "webdav",
        "davfs",
        "9p",
        "ceph",
        "glusterfs",
        "fuse.sshfs",
        "sshfs",
    }
)

# "<device> on <mount point> type <fstype> (<options>)"  (Linux, BSD)
_MOUNT_TYPE_RE = re.compile(r"^(?P<device>.+?) on (?P<point>.+?) type (?P<fstype>\S+)")
# "<device> on <mount point> (<fstype>, <options>)"  (macOS)
_MOUNT_PAREN_RE = re.compile(r"^(?P<device>.+?) on (?P<point>.+?) \((?P<fstype>[^,)]+)")
# /proc/mounts escapes whitespace and backslashes as octal
_OCTAL_ESCAPE_RE = re.compile(r"\\([0-7]{3})")


@dataclass(frozen=True, slots=True)
class MountPoint:
    """A single mounted filesystem.

    Attributes:
        device: Mounted device or remote source.
        path: Mount point.
        fs_type: Filesystem type (lowercase).
    """

    device: str
    path: str
    fs_type: str

    @property
    def is_network(self) -> bool:
        """Check if this mount is a network filesystem."""
        return self.fs_type in NETWORK_FS_TYPES


class MountTable:
    """Lookup table over the system's mounted filesystems.

    Args:
        mounts: Known mount points. Use :meth:`load` to read them from the system.
    """

    def __init__(self, mounts: list[MountPoint] | None = None) -> None:
        # Longest mount point first so the first containing match is the deepest
        self._mounts = sorted(mounts or [], key=lambda m: len(m.path), reverse=True)

    @property
    def mounts(self) -> list[MountPoint]:
        return list(self._mounts)

    @classmethod
    def load(cls, proc_mounts: Path = PROC_MOUNTS) -> "MountTable":
        """Read the mount table for the current platform.

        A table that cannot be read is empty; the caller simply sees no
        network mounts.
        """
        if sys.platform.startswith("linux") and proc_mounts.exists():
            try:
                return cls(parse_proc_mounts(proc_mounts.read_text(encoding="utf-8")))
            except OSError as e:
                logger.warning("Cannot read %s: %s", proc_mounts, e)
                return cls()

        if not command_exists("mount"):
            logger.debug("mount command not available, assuming no network mounts")
            return cls()
        try:
            result = run_command(["mount"], timeout=10.0)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Cannot list mounts: %s", e)
            return cls()
        if not result.success:
            logger.warning("mount exited with %d: %s", result.returncode, result.stderr.strip())
            return cls()
        return cls(parse_mount_output(result.stdout))

    def mount_for(self, path: str) -> MountPoint | None:
        """Return the deepest mount point containing ``path``."""
        for mount in self._mounts:
            base = mount.path.rstrip("/") or "/"
            if base == "/" or path == base or path.startswith(base + "/"):
                return mount
        return None

    def network_mount_for(self, path: str) -> MountPoint | None:
        """Return the network mount containing ``path``, if any."""
        mount = self.mount_for(path)
        if mount is not None and mount.is_network:
            return mount
        return None


def parse_proc_mounts(content: str) -> list[MountPoint]:
    """Parse the contents of /proc/mounts."""
    mounts: list[MountPoint] = []
    for line in content.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        mounts.append(
            MountPoint(
                device=_unescape(parts[0]),
                path=_unescape(parts[1]),
                fs_type=parts[2].lower(),
            )
        )
    return mounts


def parse_mount_output(output: str) -> list[MountPoint]:
    """Parse the output of the ``mount`` command (Linux, BSD or macOS format)."""
    mounts: list[MountPoint] = []
    for line in output.splitlines():
        match = _MOUNT_TYPE_RE.match(line) or _MOUNT_PAREN_RE.match(line)
        if match is None:
            continue
        mounts.append(
            MountPoint(
                device=match.group("device"),
                path=match.group("point"),
                fs_type=match.group("fstype").strip().lower(),
            )
        )
    return mounts


def _unescape(value: str) -> str:
    return _OCTAL_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 8)), value)
