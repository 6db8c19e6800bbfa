"""Filesystem scanning and cleanup module.

This module provides path validation, pattern classification, directory
traversal, duplicate detection, guarded deletion and the deletion
audit log.
"""

from dustpan.filesystem.audit import AuditLog, AuditLogEntry, DeletionMethod
from dustpan.filesystem.duplicates import DuplicateDetector
from dustpan.filesystem.errors import (
    BatchLimitExceededError,
    CancellationRequestedError,
    CriticalPathError,
    DustpanError,
    HashComputationError,
    InvalidPathError,
    ScanRootError,
)
from dustpan.filesystem.models import (
    Category,
    CategoryKind,
    DuplicateSet,
    Entry,
    EntryKind,
    Safety,
    ScanProgress,
    ScanResult,
    ScanStatus,
    ScanWarning,
    WarningKind,
)
from dustpan.filesystem.operator import (
    CleanupEngine,
    CleanupErrorKind,
    CleanupFailure,
    CleanupRequest,
    CleanupResult,
    CleanupStatus,
    CleanupValidation,
)
from dustpan.filesystem.patterns import IgnoreMatcher, PatternClassifier, PatternRule
from dustpan.filesystem.progress import CancellationToken, ProgressTracker
from dustpan.filesystem.protected import ValidatedPath, critical_reason, validate_path
from dustpan.filesystem.scanner import ScanOptions, Walker, scan

__all__ = [
    "AuditLog",
    "AuditLogEntry",
    "BatchLimitExceededError",
    "CancellationRequestedError",
    "CancellationToken",
    "Category",
    "CategoryKind",
    "CleanupEngine",
    "CleanupErrorKind",
    "CleanupFailure",
    "CleanupRequest",
    "CleanupResult",
    "CleanupStatus",
    "CleanupValidation",
    "CriticalPathError",
    "DeletionMethod",
    "DuplicateDetector",
    "DuplicateSet",
    "DustpanError",
    "Entry",
    "EntryKind",
    "HashComputationError",
    "IgnoreMatcher",
    "InvalidPathError",
    "PatternClassifier",
    "PatternRule",
    "ProgressTracker",
    "Safety",
    "ScanOptions",
    "ScanProgress",
    "ScanResult",
    "ScanRootError",
    "ScanStatus",
    "ScanWarning",
    "ValidatedPath",
    "WarningKind",
    "Walker",
    "critical_reason",
    "scan",
    "validate_path",
]
