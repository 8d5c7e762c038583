"""
Classification and deduplication of scanned entries.
"""

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from devsweep.models import CandidateEntry, RiskLevel

logger = logging.getLogger(__name__)

HEURISTIC_MAX_RISK = RiskLevel.MEDIUM


def _precedence(entry: CandidateEntry) -> tuple:
    # Smaller sorts first: named before heuristic, higher risk, category order, rule name.
    return (
        entry.category.is_heuristic,
        -int(entry.risk),
        entry.category.order,
        entry.rule_name,
    )


def classify(entries: Iterable[CandidateEntry]) -> list[CandidateEntry]:
    """
    Canonicalize and deduplicate entries.

    Each path is resolved once. When several entries share a canonical path,
    a named category beats Heuristic, then the higher risk wins, then the
    earlier category and the smaller rule name. Heuristic entries are capped
    at Medium risk.

    Returns:
        One entry per canonical path, sorted by path.
    """
    winners: dict[Path, CandidateEntry] = {}
    for entry in entries:
        canonical = Path(os.path.realpath(entry.path))
        risk = entry.risk
        if entry.category.is_heuristic and risk > HEURISTIC_MAX_RISK:
            risk = HEURISTIC_MAX_RISK
        if canonical != entry.path or risk != entry.risk:
            entry = replace(entry, path=canonical, risk=risk)

        current = winners.get(canonical)
        if current is None or _precedence(entry) < _precedence(current):
            if current is not None:
                logger.debug(f"{canonical}: {entry.rule_name} overrides {current.rule_name}")
            winners[canonical] = entry

    return [winners[path] for path in sorted(winners, key=str)]
