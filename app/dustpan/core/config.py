"""Engine configuration and settings.

This module provides the configuration model and I/O functions for
dustpan's safety limits, scan defaults and deletion behaviour.

Configuration is stored in ~/.config/dustpan/config.toml
"""

import logging
import os
import tomllib
from collections.abc import Sequence
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dustpan.core.paths import ensure_config_dir, get_config_path
from dustpan.filesystem.progress import CancellationToken
from dustpan.filesystem.scanner import ScanOptions

logger = logging.getLogger(__name__)

GIB = 1024**3
MIB = 1024**2


class DustpanConfig(BaseModel):
    """Configuration for scanning and cleanup.

    Attributes:
        max_batch_files: Maximum number of paths in one cleanup request.
        max_batch_bytes: Maximum total size of one cleanup request.
        large_directory_threshold: Direct entry count that triggers a warning.
        large_file_threshold: Size at which a file is reported as large.
        max_hash_size: Files above this size are not hashed for duplicates.
        hash_workers: Threads used for hashing.
        progress_interval: Entries between progress snapshots.
        verify_delay_seconds: Pause before verifying that a path is gone.
        use_trash: Move to trash instead of deleting permanently by default.
        extra_protected_dirs: Additional directories that may never be touched.
        ignore_patterns: Glob patterns for entries a scan leaves out.
        audit_log_path: Override for the audit log location.
    """

    model_config = ConfigDict(extra="forbid")

    max_batch_files: Annotated[
        int,
        Field(ge=1, description="Maximum paths per cleanup request"),
    ] = 10_000
    max_batch_bytes: Annotated[
        int,
        Field(ge=1, description="Maximum bytes per cleanup request"),
    ] = 100 * GIB
    large_directory_threshold: Annotated[
        int,
        Field(ge=1, description="Direct entries before a directory is flagged as large"),
    ] = 10_000
    large_file_threshold: Annotated[
        int,
        Field(ge=1, description="Size in bytes at which a file is reported as large"),
    ] = GIB
    max_hash_size: Annotated[
        int,
        Field(ge=0, description="Largest file size hashed for duplicate detection"),
    ] = 100 * MIB
    hash_workers: Annotated[
        int,
        Field(ge=1, le=64, description="Hashing threads (1-64)"),
    ] = 4
    progress_interval: Annotated[
        int,
        Field(ge=1, description="Entries between progress updates"),
    ] = 100
    verify_delay_seconds: Annotated[
        float,
        Field(ge=0.0, le=5.0, description="Delay before post-deletion verification"),
    ] = 0.05
    use_trash: Annotated[
        bool,
        Field(description="Move deleted paths to the trash by default"),
    ] = True
    extra_protected_dirs: Annotated[
        list[str],
        Field(description="Additional directories that can never be scanned or deleted"),
    ] = []
    ignore_patterns: Annotated[
        list[str],
        Field(description="Glob patterns for entries and subtrees a scan leaves out"),
    ] = []
    audit_log_path: Annotated[
        Path | None,
        Field(description="Audit log location (None = XDG state directory)"),
    ] = None

    def scan_options(
        self,
        *,
        follow_symlinks: bool = False,
        min_file_size: int = 0,
        find_duplicates: bool = True,
        extra_ignore: Sequence[str] = (),
        cancellation: CancellationToken | None = None,
    ) -> ScanOptions:
        """Build ScanOptions from the configured defaults."""
        return ScanOptions(
            follow_symlinks=follow_symlinks,
            min_file_size=min_file_size,
            find_duplicates=find_duplicates,
            large_directory_threshold=self.large_directory_threshold,
            large_file_threshold=self.large_file_threshold,
            max_hash_size=self.max_hash_size,
            hash_workers=self.hash_workers,
            progress_interval=self.progress_interval,
            ignore_patterns=(*self.ignore_patterns, *extra_ignore),
            cancellation=cancellation,
        )


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> DustpanConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated DustpanConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return DustpanConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def get_config(path: Path | None = None) -> DustpanConfig:
    """Load configuration, falling back to defaults if no file exists.

    Raises:
        ConfigParseError: If the file exists but is not valid TOML.
        ConfigError: If the file exists but doesn't match the schema.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        logger.debug("No config file, using defaults")
        return DustpanConfig()


def save_config(
    config: DustpanConfig,
    path: Path | None = None,
    *,
    include_defaults: bool = False,
) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename. Unless
    ``include_defaults`` is set, only values that differ from the
    defaults are written.

    Args:
        config: The DustpanConfig object to save.
        path: Path to save the config. If None, uses the default config path.
        include_defaults: Also write values equal to their defaults.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    try:
        if path is None:
            ensure_config_dir()
        else:
            config_path.parent.mkdir(parents=True, exist_ok=True)
    except (OSError, RuntimeError) as e:
        raise ConfigError(f"Failed to create config directory: {e}") from e

    data = config_to_dict(config, include_defaults=include_defaults)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def config_to_dict(config: DustpanConfig, *, include_defaults: bool = False) -> dict[str, Any]:
    """Convert DustpanConfig to a dictionary for TOML serialization.

    None values are always left out, since TOML has no null.

    Args:
        config: The config to convert.
        include_defaults: Also include values equal to their defaults.

    Returns:
        Dictionary ready for TOML serialization.
    """
    return config.model_dump(
        mode="json",
        exclude_none=True,
        exclude_defaults=not include_defaults,
    )
