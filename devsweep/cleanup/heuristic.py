"""
Heuristic cache detection.

Finds large, stale, cache-named directories that no cataloged rule claims.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Optional, Sequence

from devsweep.cleanup.scanner import (
    DEFAULT_MAX_WALK_DEPTH,
    DEFAULT_MAX_WALK_ENTRIES,
    ResultCollector,
    gather,
    is_within,
    measure,
)
from devsweep.exceptions import ScanCancelled
from devsweep.models import CandidateEntry, Category, RiskLevel

logger = logging.getLogger(__name__)

# Matched case-insensitively as substrings of the directory name.
CACHE_NAME_PATTERNS = ("cache", "tmp", "temp")

RULE_NAME = "Heuristic Detection"


def is_cache_name(name: str) -> bool:
    lower = name.lower()
    return any(pattern in lower for pattern in CACHE_NAME_PATTERNS)


class HeuristicDetector:
    """
    Walks search roots for cache-named directories above a size and age
    threshold.

    Args:
        min_size: Minimum directory size in bytes.
        min_age: Minimum time since the directory was last modified.
        exclude: Paths already claimed by cataloged rules.
        max_depth: How deep below each search root to look.
        cancel: Event that stops the walk when set.
    """

    def __init__(
        self,
        min_size: int,
        min_age: timedelta,
        exclude: Iterable[Path] = (),
        max_depth: int = 3,
        cancel: Optional[threading.Event] = None,
        max_walk_depth: int = DEFAULT_MAX_WALK_DEPTH,
        max_walk_entries: int = DEFAULT_MAX_WALK_ENTRIES,
        now: Optional[float] = None,
    ):
        self.min_size = min_size
        self.min_age = min_age
        self.exclude = sorted({os.path.realpath(p) for p in exclude})
        self.max_depth = max_depth
        self.cancel = cancel or threading.Event()
        self.max_walk_depth = max_walk_depth
        self.max_walk_entries = max_walk_entries
        self.now = now

    def detect(self, search_roots: Sequence[Path], workers: Optional[int] = None) -> list[CandidateEntry]:
        """Walk every valid search root concurrently and return the merged findings."""
        roots = []
        for root in search_roots:
            root = Path(root).expanduser()
            if not root.is_dir():
                logger.warning(f"Skipping heuristic search root {root}: not a directory")
                continue
            roots.append(root)
        if not roots:
            return []

        collector = ResultCollector()

        def work(root: Path) -> None:
            collector.extend(self.detect_in(root))

        with ThreadPoolExecutor(max_workers=workers or len(roots), thread_name_prefix="heuristic") as pool:
            futures = {pool.submit(work, root): str(root) for root in roots}
            gather(futures, self.cancel, "Heuristic detection")

        # Overlapping search roots (home and ~/Projects) can report a directory twice.
        unique: dict[Path, CandidateEntry] = {}
        for entry in collector.snapshot():
            unique.setdefault(entry.path, entry)
        return sorted(unique.values(), key=lambda e: str(e.path))

    def detect_in(self, root: Path) -> list[CandidateEntry]:
        found: list[CandidateEntry] = []
        stack = [(os.path.realpath(root), 0)]
        try:
            while stack:
                if self.cancel.is_set():
                    raise ScanCancelled(str(root))
                current, depth = stack.pop()
                if depth >= self.max_depth:
                    continue
                try:
                    with os.scandir(current) as it:
                        children = [e.path for e in it if e.is_dir(follow_symlinks=False)]
                except OSError as e:
                    logger.debug(f"Cannot read {current}: {e}")
                    continue

                for child in sorted(children):
                    if self._is_excluded(child):
                        continue
                    if is_cache_name(os.path.basename(child)) and not self._contains_excluded(child):
                        entry = self._evaluate(child)
                        if entry is not None:
                            found.append(entry)
                            continue
                    stack.append((child, depth + 1))
        except ScanCancelled:
            logger.debug(f"Heuristic walk of {root} cancelled")
        return found

    def _is_excluded(self, path: str) -> bool:
        return any(is_within(path, excluded) for excluded in self.exclude)

    def _contains_excluded(self, path: str) -> bool:
        return any(is_within(excluded, path) for excluded in self.exclude)

    def _evaluate(self, path: str) -> Optional[CandidateEntry]:
        try:
            mtime = os.stat(path, follow_symlinks=False).st_mtime
        except OSError:
            return None
        now = self.now if self.now is not None else time.time()
        if now - mtime < self.min_age.total_seconds():
            return None

        walk = measure(path, self.max_walk_depth, self.max_walk_entries, self.cancel)
        if walk.error or walk.size_bytes < self.min_size:
            return None

        logger.debug(f"Heuristic match: {path} ({walk.size_bytes} bytes)")
        return CandidateEntry(
            path=Path(path),
            size_bytes=walk.size_bytes,
            modified_at=mtime,
            category=Category.HEURISTIC,
            risk=RiskLevel.MEDIUM,
            description="Heuristically detected cache (stale)",
            rule_name=RULE_NAME,
            size_is_lower_bound=walk.truncated,
        )


def detect(
    search_roots: Sequence[Path],
    min_size: int,
    min_age: timedelta,
    exclude: Iterable[Path] = (),
    max_depth: int = 3,
    workers: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> list[CandidateEntry]:
    """Functional wrapper around :class:`HeuristicDetector`."""
    detector = HeuristicDetector(min_size, min_age, exclude, max_depth, cancel)
    return detector.detect(search_roots, workers)
