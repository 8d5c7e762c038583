"""
Data model shared by the cleanup pipeline.

Rules, candidate entries, plans and execution outcomes are plain
dataclasses; categories and risk levels are enums.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Iterable, Optional

from devsweep.exceptions import ConfigError

BASE_DIR_TOKENS = ("home", "cache", "config", "data", "library", "var")

_TEMPLATE_RE = re.compile(r"^\{(?P<base>[a-z]+)\}(?P<rest>/.*)?$")


class Category(Enum):
    """Named groups of cleanup rules. Declaration order is plan order."""

    SYSTEM = "system"
    BREW = "brew"
    XCODE = "xcode"
    NODEJS = "nodejs"
    PYTHON = "python"
    RUST = "rust"
    GO = "go"
    JAVA = "java"
    DOCKER = "docker"
    ANDROID = "android"
    LINUX_PACKAGES = "linuxpackages"
    HEURISTIC = "heuristic"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @property
    def order(self) -> int:
        return _CATEGORY_ORDER[self]

    @property
    def is_heuristic(self) -> bool:
        return self is Category.HEURISTIC

    @classmethod
    def parse(cls, name: str) -> "Category":
        """
        Parse a category from user input.

        Accepts the enum value, the display label and a few tool aliases
        (``npm``, ``pip``, ``cargo``...), case-insensitively.

        Raises:
            ConfigError: If the name does not match any category.
        """
        key = name.strip().lower().replace(" ", "").replace("-", "").replace("_", "")
        if key in _CATEGORY_ALIASES:
            return _CATEGORY_ALIASES[key]
        raise ConfigError(
            f"Unknown category '{name}'. Available: {', '.join(c.value for c in cls)}"
        )

    @classmethod
    def parse_many(cls, names: Optional[Iterable[str]]) -> set["Category"]:
        if not names:
            return set()
        categories = set()
        for name in names:
            for part in name.split(","):
                if part.strip():
                    categories.add(cls.parse(part))
        return categories


_CATEGORY_LABELS = {
    Category.SYSTEM: "System",
    Category.BREW: "Homebrew",
    Category.XCODE: "Xcode",
    Category.NODEJS: "Node.js",
    Category.PYTHON: "Python",
    Category.RUST: "Rust",
    Category.GO: "Go",
    Category.JAVA: "Java",
    Category.DOCKER: "Docker",
    Category.ANDROID: "Android",
    Category.LINUX_PACKAGES: "Linux Packages",
    Category.HEURISTIC: "Heuristic",
}

_CATEGORY_ORDER = {category: index for index, category in enumerate(Category)}

_CATEGORY_ALIASES: dict[str, Category] = {}
for _category in Category:
    _CATEGORY_ALIASES[_category.value] = _category
    _CATEGORY_ALIASES[
        _CATEGORY_LABELS[_category].lower().replace(" ", "").replace(".", "")
    ] = _category
_CATEGORY_ALIASES.update(
    {
        "homebrew": Category.BREW,
        "node": Category.NODEJS,
        "node.js": Category.NODEJS,
        "npm": Category.NODEJS,
        "yarn": Category.NODEJS,
        "pnpm": Category.NODEJS,
        "pip": Category.PYTHON,
        "conda": Category.PYTHON,
        "cargo": Category.RUST,
        "golang": Category.GO,
        "gradle": Category.JAVA,
        "maven": Category.JAVA,
        "linux": Category.LINUX_PACKAGES,
    }
)


class RiskLevel(IntEnum):
    """How safe an entry is to remove without review. Ordered Low < High."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, name: "str | RiskLevel | None") -> Optional["RiskLevel"]:
        """Parse ``low``/``medium``/``high`` (case-insensitive); None passes through."""
        if name is None or isinstance(name, RiskLevel):
            return name
        try:
            return cls[str(name).strip().upper()]
        except KeyError:
            raise ConfigError(
                f"Unknown risk level '{name}'. Available: low, medium, high"
            ) from None


class OutcomeStatus(str, Enum):
    """Terminal states of an entry in the executor."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class CleanupRule:
    """
    A cataloged cleanup rule.

    Args:
        name: Unique rule name, e.g. "Cargo Registry Cache".
        category: Category the rule belongs to.
        patterns: Path-glob templates. Each starts with a base directory
            token such as ``{home}`` or ``{cache}``.
        risk: Default risk level for entries matched by this rule.
        description: Human readable description.
        platforms: Platforms (``sys.platform`` values) the rule applies to.
        min_size: Matches smaller than this many bytes are not reported.
        exclude_names: fnmatch patterns for basenames that are never emitted.
        marker: File that must exist next to a match (e.g. ``Cargo.toml``
            beside a ``target`` directory) for the match to count.
        always_permanent: Matches are deleted even when the trash is in use.
            Set for rules whose matches already live in a trash.
        companions: Templates, relative to a match's parent and formatted
            with the match's ``name``, of files removed along with it
            (e.g. ``../info/{name}.trashinfo``).
    """

    name: str
    category: Category
    patterns: tuple[str, ...]
    risk: RiskLevel
    description: str
    platforms: frozenset[str] = frozenset({"linux", "darwin"})
    min_size: int = 1
    exclude_names: tuple[str, ...] = ()
    marker: Optional[str] = None
    always_permanent: bool = False
    companions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.patterns:
            raise ValueError(f"Rule '{self.name}' declares no patterns")
        for pattern in self.patterns:
            base, rest = split_template(pattern)
            if ".." in rest.split("/"):
                raise ValueError(
                    f"Rule '{self.name}' pattern escapes its base directory: {pattern}"
                )

    def applies_to(self, platform: str) -> bool:
        return platform in self.platforms

    def companion_paths(self, path: Path) -> tuple[Path, ...]:
        return tuple(
            Path(os.path.normpath(path.parent / template.format(name=path.name)))
            for template in self.companions
        )


def split_template(pattern: str) -> tuple[str, str]:
    """
    Split a rule pattern into its base directory token and relative glob.

    >>> split_template("{home}/.cargo/registry/cache/*")
    ('home', '.cargo/registry/cache/*')
    """
    match = _TEMPLATE_RE.match(pattern)
    if not match or match.group("base") not in BASE_DIR_TOKENS:
        raise ValueError(f"Pattern must start with a base directory token: {pattern}")
    return match.group("base"), (match.group("rest") or "").lstrip("/")


@dataclass
class CandidateEntry:
    """A filesystem entry discovered by the scanner or heuristic detector."""

    path: Path
    size_bytes: int
    modified_at: Optional[float]
    category: Category
    risk: RiskLevel
    description: str = ""
    rule_name: str = ""
    size_is_lower_bound: bool = False
    scan_error: Optional[str] = None
    permanent: bool = False
    companions: tuple[Path, ...] = ()

    @property
    def is_placeholder(self) -> bool:
        """True when the path exists but could not be checked."""
        return self.scan_error is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "size_bytes": self.size_bytes,
            "modified_at": self.modified_at,
            "category": self.category.value,
            "risk": self.risk.label,
            "description": self.description,
            "rule": self.rule_name,
            "size_is_lower_bound": self.size_is_lower_bound,
            "scan_error": self.scan_error,
            "permanent": self.permanent,
        }


def _bytes_by_category(entries: Iterable[CandidateEntry]) -> dict[Category, int]:
    totals: dict[Category, int] = {}
    for entry in sorted(entries, key=lambda e: e.category.order):
        totals[entry.category] = totals.get(entry.category, 0) + entry.size_bytes
    return totals


@dataclass(frozen=True)
class PlanSummary:
    """What a confirmation prompt is asked to approve."""

    entries: tuple[CandidateEntry, ...]
    total_bytes: int
    bytes_by_category: dict[Category, int]
    count_by_risk: dict[RiskLevel, int]
    permanent: bool = False

    @classmethod
    def from_entries(
        cls, entries: Iterable[CandidateEntry], permanent: bool = False
    ) -> "PlanSummary":
        entries = tuple(entries)
        count_by_risk = {risk: 0 for risk in RiskLevel}
        for entry in entries:
            count_by_risk[entry.risk] += 1
        return cls(
            entries=entries,
            total_bytes=sum(e.size_bytes for e in entries),
            bytes_by_category=_bytes_by_category(entries),
            count_by_risk=count_by_risk,
            permanent=permanent,
        )

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def high_risk_entries(self) -> tuple[CandidateEntry, ...]:
        return tuple(e for e in self.entries if e.risk is RiskLevel.HIGH)


@dataclass(frozen=True)
class CleanPlan:
    """
    The filtered, ordered and aggregated set of entries selected for action.

    ``entries`` is ordered by category, then descending size. ``unreadable``
    holds placeholder entries that could not be checked; they never count
    towards ``total_bytes``.
    """

    entries: tuple[CandidateEntry, ...]
    total_bytes: int
    bytes_by_category: dict[Category, int]
    unreadable: tuple[CandidateEntry, ...] = ()
    partial: bool = False

    @classmethod
    def empty(cls) -> "CleanPlan":
        return cls(entries=(), total_bytes=0, bytes_by_category={})

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def categories(self) -> list[Category]:
        return list(self.bytes_by_category)

    def entries_for(self, category: Category) -> list[CandidateEntry]:
        return [e for e in self.entries if e.category is category]

    def summary(self, permanent: bool = False) -> PlanSummary:
        return PlanSummary.from_entries(self.entries, permanent=permanent)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_bytes": self.total_bytes,
            "partial": self.partial,
            "bytes_by_category": {c.value: b for c, b in self.bytes_by_category.items()},
            "entries": [e.to_dict() for e in self.entries],
            "unreadable": [e.to_dict() for e in self.unreadable],
        }


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of processing one plan entry."""

    path: Path
    category: Category
    status: OutcomeStatus
    reason: Optional[str] = None
    bytes_freed: int = 0

    @classmethod
    def succeeded(cls, entry: CandidateEntry) -> "ExecutionOutcome":
        return cls(entry.path, entry.category, OutcomeStatus.SUCCEEDED, None, entry.size_bytes)

    @classmethod
    def skipped(cls, entry: CandidateEntry, reason: str) -> "ExecutionOutcome":
        return cls(entry.path, entry.category, OutcomeStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, entry: CandidateEntry, reason: str) -> "ExecutionOutcome":
        return cls(entry.path, entry.category, OutcomeStatus.FAILED, reason)


@dataclass
class CategorySummary:
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    bytes_freed: int = 0


@dataclass(frozen=True)
class CleanReport:
    """All outcomes of a clean run, in plan order."""

    outcomes: tuple[ExecutionOutcome, ...]
    cancelled: bool = False
    dry_run: bool = False

    @property
    def any_failures(self) -> bool:
        return any(o.status is OutcomeStatus.FAILED for o in self.outcomes)

    @property
    def bytes_freed(self) -> int:
        return sum(o.bytes_freed for o in self.outcomes)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    def summary_by_category(self) -> dict[Category, CategorySummary]:
        summary: dict[Category, CategorySummary] = {}
        for outcome in sorted(self.outcomes, key=lambda o: o.category.order):
            row = summary.setdefault(outcome.category, CategorySummary())
            if outcome.status is OutcomeStatus.SUCCEEDED:
                row.succeeded += 1
                row.bytes_freed += outcome.bytes_freed
            elif outcome.status is OutcomeStatus.SKIPPED:
                row.skipped += 1
            else:
                row.failed += 1
        return summary


@dataclass
class StorageReport:
    """Disk usage breakdown produced by the storage analyzer."""

    total_bytes: int = 0
    file_count: int = 0
    dir_count: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_extension: dict[str, int] = field(default_factory=dict)
    largest_files: list[tuple[Path, int]] = field(default_factory=list)
    size_is_lower_bound: bool = False
    volume_total: Optional[int] = None
    volume_used: Optional[int] = None
    volume_free: Optional[int] = None
