"""
Cleanup pipeline: scan -> detect -> classify -> plan, then execute.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Iterable, Optional, Sequence

from devsweep.cleanup.analyzer import StorageAnalyzer
from devsweep.cleanup.classifier import classify
from devsweep.cleanup.cleaner import ConfirmationPrompt, Executor, TrashBackend
from devsweep.cleanup.heuristic import HeuristicDetector
from devsweep.cleanup.manager import TrashService
from devsweep.cleanup.planner import plan as build_plan
from devsweep.cleanup.scanner import BaseDirs, Scanner
from devsweep.config import SweepConfig
from devsweep.models import Category, CleanPlan, CleanReport, RiskLevel, StorageReport
from devsweep.rules import rules_for

logger = logging.getLogger(__name__)


class CleanupPipeline:
    """
    Wires the scanner, heuristic detector, classifier, planner and executor
    together for one configuration.

    Args:
        config: Validated configuration (defaults when None).
        roots: Base directory sets to scan; defaults to the current user.
        trash: Trash backend used by ``run_clean``.
        platform: ``sys.platform`` value used to select rules.
    """

    def __init__(
        self,
        config: Optional[SweepConfig] = None,
        roots: Optional[Sequence[BaseDirs]] = None,
        trash: Optional[TrashBackend] = None,
        platform: Optional[str] = None,
    ):
        self.config = config or SweepConfig()
        self.platform = platform or sys.platform
        self.roots = list(roots) if roots else [BaseDirs.for_home(Path.home(), self.platform)]
        self.trash = trash or TrashService()
        self.cancel = threading.Event()

    @property
    def workers(self) -> Optional[int]:
        return self.config.general.parallel_threads or None

    def run_scan(
        self,
        categories: Optional[Iterable[Category]] = None,
        include_heuristic: Optional[bool] = None,
        min_risk: Optional[RiskLevel] = None,
        max_risk: Optional[RiskLevel] = None,
    ) -> CleanPlan:
        """
        Build a CleanPlan.

        Args:
            categories: Categories to plan for; empty or None falls back to
                the configured selection (empty there means all).
            include_heuristic: Run heuristic detection. None uses the
                configuration when the selection is empty or names
                Heuristic; True also adds Heuristic to the selection.
            min_risk: Risk floor; None uses the configuration.
            max_risk: Risk ceiling; None uses the configuration.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        self.config.validate()
        self.cancel = threading.Event()
        general = self.config.general

        selected = set(categories or ()) or set(self.config.selected_categories)
        if include_heuristic is None:
            include_heuristic = self.config.heuristic.enabled and (
                not selected or Category.HEURISTIC in selected
            )
        elif include_heuristic and selected:
            selected.add(Category.HEURISTIC)

        # Heuristic detection needs every claimed path, whatever the selection.
        rules = rules_for(None if include_heuristic else selected, self.platform)
        logger.debug(f"Scanning {len(rules)} rules across {len(self.roots)} root(s)")

        scanner = Scanner(general.max_walk_depth, general.max_walk_entries, self.cancel)
        batch = scanner.scan_rules(rules, self.roots, self.workers)
        entries = list(batch.entries)

        if include_heuristic and not self.cancel.is_set():
            detector = HeuristicDetector(
                min_size=self.config.heuristic_min_size,
                min_age=self.config.heuristic_min_age,
                exclude=[e.path for e in entries],
                max_depth=self.config.heuristic.max_depth,
                cancel=self.cancel,
                max_walk_depth=general.max_walk_depth,
                max_walk_entries=general.max_walk_entries,
            )
            search_roots = self.config.heuristic_search_roots(self.roots[0].home)
            entries.extend(detector.detect(search_roots, self.workers))

        partial = self.cancel.is_set()
        if partial:
            logger.warning("Scan was interrupted; the plan is incomplete")

        return build_plan(
            classify(entries),
            selected,
            min_risk=min_risk if min_risk is not None else self.config.min_risk,
            max_risk=max_risk if max_risk is not None else self.config.max_risk,
            ignore_paths=self.config.ignore_paths,
            partial=partial,
        )

    def run_clean(
        self,
        plan: CleanPlan,
        dry_run: bool = False,
        permanent: Optional[bool] = None,
        confirmer: Optional[ConfirmationPrompt] = None,
    ) -> CleanReport:
        """
        Execute ``plan``. ``permanent=None`` follows ``general.use_trash``.
        """
        if permanent is None:
            permanent = not self.config.general.use_trash
        executor = Executor(
            self.trash,
            confirmer=confirmer,
            confirm_high_risk=self.config.risk.confirm_high_risk,
            confirm_medium_risk=self.config.risk.confirm_medium_risk,
            per_entry_confirmation=self.config.general.per_entry_confirmation,
            max_parallel_categories=self.config.general.max_parallel_categories,
            home=self.roots[0].home,
        )
        report = executor.execute(plan, dry_run=dry_run, permanent=permanent)
        if not dry_run:
            logger.info(f"Clean finished: {report.bytes_freed} bytes freed")
        return report

    def run_analyze(
        self, roots: Optional[Sequence[Path]] = None, max_depth: Optional[int] = None, top_n: int = 10
    ) -> StorageReport:
        roots = list(roots) if roots else [self.roots[0].home]
        analyzer = StorageAnalyzer(
            max_depth=max_depth,
            top_n=top_n,
            max_entries=self.config.general.max_walk_entries,
        )
        return analyzer.analyze(roots)


def run_scan(
    categories: Optional[Iterable[Category]] = None,
    include_heuristic: Optional[bool] = None,
    config: Optional[SweepConfig] = None,
) -> CleanPlan:
    return CleanupPipeline(config or SweepConfig.load_or_default()).run_scan(categories, include_heuristic)


def run_clean(
    plan: CleanPlan,
    dry_run: bool = False,
    permanent: Optional[bool] = None,
    confirmer: Optional[ConfirmationPrompt] = None,
    config: Optional[SweepConfig] = None,
) -> CleanReport:
    return CleanupPipeline(config or SweepConfig.load_or_default()).run_clean(
        plan, dry_run, permanent, confirmer
    )


def run_analyze(roots: Optional[Sequence[Path]] = None, config: Optional[SweepConfig] = None) -> StorageReport:
    return CleanupPipeline(config or SweepConfig.load_or_default()).run_analyze(roots)
