"""
Turns classified entries into a CleanPlan.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from devsweep.cleanup.scanner import is_within
from devsweep.models import CandidateEntry, Category, CleanPlan, RiskLevel

logger = logging.getLogger(__name__)


def _sort_key(entry: CandidateEntry) -> tuple:
    return (entry.category.order, -entry.size_bytes, str(entry.path))


def plan(
    entries: Iterable[CandidateEntry],
    selected_categories: Optional[Iterable[Category]] = None,
    min_risk: Optional[RiskLevel] = None,
    max_risk: Optional[RiskLevel] = None,
    ignore_paths: Iterable[Path] = (),
    partial: bool = False,
) -> CleanPlan:
    """
    Filter, order and aggregate entries.

    Args:
        entries: Classified entries (one per canonical path).
        selected_categories: Categories to keep; empty or None keeps all.
        min_risk: Keep entries whose risk is at least this level.
        max_risk: Keep entries whose risk is at most this level.
        ignore_paths: Entries at or below these paths are dropped.
        partial: Marks the plan as built from an interrupted scan.

    Returns:
        CleanPlan ordered by category, then descending size, then path.
    """
    selected = set(selected_categories or ())
    ignored = [os.path.realpath(os.path.expanduser(str(p))) for p in ignore_paths]

    kept: list[CandidateEntry] = []
    unreadable: list[CandidateEntry] = []
    for entry in entries:
        if selected and entry.category not in selected:
            continue
        if min_risk is not None and entry.risk < min_risk:
            continue
        if max_risk is not None and entry.risk > max_risk:
            continue
        if any(is_within(entry.path, p) for p in ignored):
            logger.debug(f"Ignoring {entry.path}")
            continue
        if entry.is_placeholder:
            unreadable.append(entry)
        else:
            kept.append(entry)

    kept.sort(key=_sort_key)
    unreadable.sort(key=_sort_key)

    bytes_by_category: dict[Category, int] = {}
    for entry in kept:
        bytes_by_category[entry.category] = bytes_by_category.get(entry.category, 0) + entry.size_bytes

    return CleanPlan(
        entries=tuple(kept),
        total_bytes=sum(e.size_bytes for e in kept),
        bytes_by_category=bytes_by_category,
        unreadable=tuple(unreadable),
        partial=partial,
    )
