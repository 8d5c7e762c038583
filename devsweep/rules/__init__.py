"""
Built-in cleanup rule catalog.

Rules are plain data grouped by family:
- devtools: Node.js, Python, Rust, Go, Java and Android caches
- macos: Homebrew, Xcode and ~/Library caches
- linux: package manager caches, Snap/Flatpak caches, journal logs
- docker: Docker Desktop and rootless engine data
"""

import sys
from typing import Iterable, Optional

from devsweep.exceptions import RuleNotFoundError
from devsweep.models import Category, CleanupRule

from . import devtools, docker, linux, macos

CATALOG: tuple[CleanupRule, ...] = macos.RULES + linux.RULES + devtools.RULES + docker.RULES


def _normalize_platform(platform: Optional[str]) -> str:
    platform = platform or sys.platform
    return "linux" if platform.startswith("linux") else platform


def all_rules() -> list[CleanupRule]:
    """Every cataloged rule, for every platform."""
    return list(CATALOG)


def rules_for(
    categories: Optional[Iterable[Category]] = None, platform: Optional[str] = None
) -> list[CleanupRule]:
    """
    Return the built-in rules for the requested categories.

    Args:
        categories: Categories to include. Empty or None means all.
        platform: ``sys.platform`` value to filter on (defaults to the
            running platform).

    Returns:
        Matching rules in catalog order.
    """
    wanted = set(categories or ())
    platform = _normalize_platform(platform)
    return [
        rule
        for rule in CATALOG
        if rule.applies_to(platform) and (not wanted or rule.category in wanted)
    ]


def get_rule(name: str, platform: Optional[str] = None) -> CleanupRule:
    """Look a rule up by name (case-insensitive)."""
    platform = _normalize_platform(platform)
    for rule in CATALOG:
        if rule.name.lower() == name.lower() and rule.applies_to(platform):
            return rule
    raise RuleNotFoundError(f"Rule not found: {name}")


__all__ = ["CATALOG", "all_rules", "rules_for", "get_rule"]
