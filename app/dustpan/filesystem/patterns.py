"""Name-based classification rules for bloat, junk and cache entries.

Rules are plain data: a match kind, a pattern string, a category and
the entry type the rule applies to. The classifier is a lookup over
three ordered tables, so new categories only need new rows. Ignore
patterns, which remove entries from a scan entirely, live here too.
"""

import fnmatch
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from dustpan.filesystem.models import Category, CategoryKind, Safety


class MatchKind(str, Enum):
    """How a rule's pattern is compared against an entry name.

    Attributes:
        EXACT: Name equals the pattern.
        EXTENSION: Name ends with ``.<pattern>`` and has a stem.
        PREFIX: Name starts with the pattern.
        SUFFIX: Name ends with the pattern.
    """

    EXACT = "exact"
    EXTENSION = "extension"
    PREFIX = "prefix"
    SUFFIX = "suffix"


class RuleTarget(str, Enum):
    """Entry types a rule applies to."""

    FILE = "file"
    DIRECTORY = "directory"
    ANY = "any"


@dataclass(frozen=True, slots=True)
class PatternRule:
    """A single classification rule.

    Attributes:
        match: How ``pattern`` is compared.
        pattern: Pattern string (extension rules omit the leading dot).
        category: Category assigned on match.
        target: Entry types this rule applies to.
    """

    match: MatchKind
    pattern: str
    category: Category
    target: RuleTarget = RuleTarget.ANY

    def __post_init__(self) -> None:
        """Validate rule data after initialization."""
        if not self.pattern:
            msg = "Pattern cannot be empty"
            raise ValueError(msg)

    def applies_to(self, is_dir: bool) -> bool:
        """Check if this rule applies to a directory or file."""
        if self.target == RuleTarget.ANY:
            return True
        return (self.target == RuleTarget.DIRECTORY) == is_dir

    def matches(self, name: str) -> bool:
        """Check if an entry name matches this rule's pattern."""
        if self.match == MatchKind.EXACT:
            return name == self.pattern
        if self.match == MatchKind.EXTENSION:
            suffix = "." + self.pattern
            return len(name) > len(suffix) and name.endswith(suffix)
        if self.match == MatchKind.PREFIX:
            return name.startswith(self.pattern)
        return name.endswith(self.pattern)


# =============================================================================
# Categories
# =============================================================================

NODE_MODULES = Category(CategoryKind.BLOAT, "node_modules", "Node.js")
RUST_TARGET = Category(CategoryKind.BLOAT, "rust_target", "Rust", Safety.CAUTION)
PYTHON_VENV = Category(CategoryKind.BLOAT, "python_venv", "Python")
GIT = Category(CategoryKind.BLOAT, "git", ".git", Safety.DANGEROUS)
BUILD_ARTIFACTS = Category(CategoryKind.BLOAT, "build_artifacts", "Build Artifacts", Safety.CAUTION)
VENDOR = Category(CategoryKind.BLOAT, "vendor", "Vendor", Safety.CAUTION)

SYSTEM_JUNK = Category(CategoryKind.JUNK, "system", "System Files")
BUILD_JUNK = Category(CategoryKind.JUNK, "build", "Build Artifacts")
EDITOR_JUNK = Category(CategoryKind.JUNK, "editor", "Editor Files")

NPM_CACHE = Category(CategoryKind.CACHE, "npm_cache", "npm Cache")
YARN_CACHE = Category(CategoryKind.CACHE, "yarn_cache", "Yarn Cache")
PNPM_CACHE = Category(CategoryKind.CACHE, "pnpm_cache", "pnpm Store")
PIP_CACHE = Category(CategoryKind.CACHE, "pip_cache", "Python pip Cache")
GRADLE_CACHE = Category(CategoryKind.CACHE, "gradle_cache", "Gradle Cache", Safety.CAUTION)
MAVEN_CACHE = Category(CategoryKind.CACHE, "maven_cache", "Maven Cache", Safety.CAUTION)
GO_CACHE = Category(CategoryKind.CACHE, "go_cache", "Go Build Cache")
GENERIC_CACHE = Category(CategoryKind.CACHE, "generic_cache", "Application Cache", Safety.CAUTION)


def _dirs(category: Category, *names: str) -> list[PatternRule]:
    return [PatternRule(MatchKind.EXACT, n, category, RuleTarget.DIRECTORY) for n in names]


def _files(category: Category, match: MatchKind, *patterns: str) -> list[PatternRule]:
    return [PatternRule(match, p, category, RuleTarget.FILE) for p in patterns]


# =============================================================================
# Rule tables (first match wins within a table)
# =============================================================================

BLOAT_RULES: tuple[PatternRule, ...] = (
    *_dirs(NODE_MODULES, "node_modules"),
    *_dirs(RUST_TARGET, "target"),
    *_dirs(PYTHON_VENV, "venv", ".venv", "__pycache__", ".pytest_cache", ".mypy_cache"),
    *_dirs(GIT, ".git"),
    *_dirs(BUILD_ARTIFACTS, "dist", "build", ".next", ".nuxt", "out", ".output"),
    *_dirs(VENDOR, "vendor"),
)

JUNK_RULES: tuple[PatternRule, ...] = (
    # System junk
    *_files(SYSTEM_JUNK, MatchKind.EXACT, ".DS_Store", "Thumbs.db", "desktop.ini", ".localized"),
    # Compiled artifacts
    *_files(BUILD_JUNK, MatchKind.EXTENSION, "pyc", "pyo", "class", "o", "obj"),
    # Editor leftovers
    *_files(EDITOR_JUNK, MatchKind.EXTENSION, "swp", "swo", "swn", "bak", "backup"),
    *_files(EDITOR_JUNK, MatchKind.SUFFIX, "~"),
)

CACHE_RULES: tuple[PatternRule, ...] = (
    *_dirs(NPM_CACHE, ".npm", "_cacache"),
    *_dirs(YARN_CACHE, ".yarn-cache"),
    *_dirs(PNPM_CACHE, ".pnpm-store"),
    *_dirs(PIP_CACHE, "pip", "pip-build"),
    *_dirs(GRADLE_CACHE, ".gradle"),
    *_dirs(MAVEN_CACHE, ".m2"),
    *_dirs(GO_CACHE, "go-build"),
    *_dirs(GENERIC_CACHE, ".cache"),
    PatternRule(MatchKind.SUFFIX, "-cache", GENERIC_CACHE, RuleTarget.DIRECTORY),
)


class PatternClassifier:
    """Classifies entry names against ordered rule tables.

    Tables are consulted in order (bloat, junk, cache); within a table
    the first matching rule wins. An entry matching no rule is
    uncategorized.

    Args:
        bloat: Bloat rule table.
        junk: Junk rule table.
        cache: Cache rule table.
    """

    def __init__(
        self,
        bloat: Sequence[PatternRule] = BLOAT_RULES,
        junk: Sequence[PatternRule] = JUNK_RULES,
        cache: Sequence[PatternRule] = CACHE_RULES,
    ) -> None:
        self._tables: tuple[tuple[PatternRule, ...], ...] = (
            tuple(bloat),
            tuple(junk),
            tuple(cache),
        )

    def classify(self, name: str, *, is_dir: bool = False) -> Category | None:
        """Return the category for an entry name, or None.

        Args:
            name: Entry basename (not a full path).
            is_dir: Whether the entry is a directory.

        Returns:
            Category of the first matching rule, or None if uncategorized.
        """
        for table in self._tables:
            for rule in table:
                if rule.applies_to(is_dir) and rule.matches(name):
                    return rule.category
        return None


default_classifier = PatternClassifier()


class IgnoreMatcher:
    """Glob patterns for entries a scan should leave out.

    Patterns use ``fnmatch`` syntax with a few gitignore conventions:

    - blank lines and lines starting with ``#`` are ignored
    - a trailing ``/`` matches directories only
    - a pattern containing ``/`` is matched against the path relative to
      the scan root (a leading ``/`` is dropped); any other pattern is
      matched against the entry name

    Args:
        patterns: Raw pattern strings.
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._rules: list[tuple[str, bool, bool]] = []
        for raw in patterns:
            pattern = raw.strip()
            if not pattern or pattern.startswith("#"):
                continue
            dir_only = pattern.endswith("/")
            pattern = pattern.rstrip("/")
            if not pattern:
                continue
            anchored = "/" in pattern
            self._rules.append((pattern.lstrip("/"), anchored, dir_only))

    def __bool__(self) -> bool:
        return bool(self._rules)

    def matches(self, relative_path: str, *, is_dir: bool = False) -> bool:
        """Check if an entry should be ignored.

        Args:
            relative_path: Entry path relative to the scan root, using ``/``.
            is_dir: Whether the entry is a directory.
        """
        name = relative_path.rsplit("/", 1)[-1]
        for pattern, anchored, dir_only in self._rules:
            if dir_only and not is_dir:
                continue
            if fnmatch.fnmatchcase(relative_path if anchored else name, pattern):
                return True
        return False
