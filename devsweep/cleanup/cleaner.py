"""
Plan executor.

Each plan entry moves through Pending -> (Confirming) -> Executing and ends
Succeeded, Skipped or Failed. A failing entry never stops the others.
"""

import errno
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Optional, Protocol

from devsweep.exceptions import TrashError
from devsweep.models import (
    CandidateEntry,
    CleanPlan,
    CleanReport,
    ExecutionOutcome,
    PlanSummary,
    RiskLevel,
)

logger = logging.getLogger(__name__)

# Directories below home that are never removed as a whole.
PROTECTED_HOME_DIRS = (
    "Desktop",
    "Documents",
    "Downloads",
    "Pictures",
    "Music",
    "Movies",
    "Videos",
    "Public",
    "Library",
    "Library/Caches",
    "Library/Application Support",
    ".cache",
    ".config",
    ".local",
    ".local/share",
    ".ssh",
)

PROTECTED_SYSTEM_DIRS = (
    "/",
    "/System",
    "/Applications",
    "/Library",
    "/Users",
    "/home",
    "/root",
    "/var",
    "/private",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/opt",
    "/boot",
    "/tmp",
)


class TrashBackend(Protocol):
    def move_to_trash(self, path: Path) -> None: ...

    def delete_permanently(self, path: Path) -> None: ...


class ConfirmationPrompt(Protocol):
    """Asks the user to approve the entries in ``summary``."""

    def confirm(self, summary: PlanSummary) -> bool: ...


class AutoConfirm:
    """Answers every confirmation with a fixed value (``--yes`` or tests)."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.calls: list[PlanSummary] = []

    def confirm(self, summary: PlanSummary) -> bool:
        self.calls.append(summary)
        return self.answer


def protected_paths(home: Optional[Path] = None) -> set[str]:
    home = Path(home or Path.home())
    paths = {os.path.realpath(p) for p in PROTECTED_SYSTEM_DIRS}
    paths.add(os.path.realpath(home))
    paths.update(os.path.realpath(home / d) for d in PROTECTED_HOME_DIRS)
    return paths


class Executor:
    """
    Carries out a CleanPlan.

    Args:
        trash: Object providing ``move_to_trash`` and ``delete_permanently``.
        confirmer: Prompt consulted for entries that need confirmation.
            Without one, those entries are declined.
        confirm_high_risk: Whether High risk entries need confirmation.
        confirm_medium_risk: Whether Medium risk entries need confirmation.
        per_entry_confirmation: Ask once per gated entry instead of once
            for all of them.
        max_parallel_categories: Categories processed at the same time.
        cancel: Event that stops new entries from starting.
        home: Home directory used for the protected-path guard.
    """

    def __init__(
        self,
        trash: TrashBackend,
        confirmer: Optional[ConfirmationPrompt] = None,
        confirm_high_risk: bool = True,
        confirm_medium_risk: bool = False,
        per_entry_confirmation: bool = False,
        max_parallel_categories: int = 4,
        cancel: Optional[threading.Event] = None,
        home: Optional[Path] = None,
    ):
        self.trash = trash
        self.confirmer = confirmer
        self.confirm_high_risk = confirm_high_risk
        self.confirm_medium_risk = confirm_medium_risk
        self.per_entry_confirmation = per_entry_confirmation
        self.max_parallel_categories = max(1, max_parallel_categories)
        self.cancel = cancel or threading.Event()
        self.protected = protected_paths(home)

    def needs_confirmation(self, entry: CandidateEntry) -> bool:
        if entry.risk is RiskLevel.HIGH:
            return self.confirm_high_risk
        if entry.risk is RiskLevel.MEDIUM:
            return self.confirm_medium_risk
        return False

    def is_protected(self, path: Path) -> bool:
        return os.path.realpath(path) in self.protected

    def execute(self, plan: CleanPlan, dry_run: bool = False, permanent: bool = False) -> CleanReport:
        """
        Run the plan.

        In a dry run every entry is reported as skipped and the filesystem is
        never touched. Otherwise gated entries are confirmed on this thread
        first, then categories run in parallel with the entries of one
        category processed in order.

        Returns:
            CleanReport with outcomes in plan order.
        """
        entries = list(plan.entries)
        if dry_run:
            return CleanReport(
                outcomes=tuple(ExecutionOutcome.skipped(e, "dry_run") for e in entries),
                dry_run=True,
            )

        outcomes: list[Optional[ExecutionOutcome]] = [None] * len(entries)
        try:
            declined = self._confirm(entries, permanent)
        except KeyboardInterrupt:
            logger.warning("Interrupted during confirmation, nothing was removed")
            self.cancel.set()
            return CleanReport(
                outcomes=tuple(ExecutionOutcome.skipped(e, "cancelled") for e in entries),
                cancelled=True,
            )

        groups: dict = {}
        for index, entry in enumerate(entries):
            if index in declined:
                outcomes[index] = ExecutionOutcome.skipped(entry, "unconfirmed")
            else:
                groups.setdefault(entry.category, []).append(index)

        if groups:
            workers = min(self.max_parallel_categories, len(groups))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="clean") as pool:
                futures = [
                    pool.submit(self._run_category, entries, indexes, outcomes, permanent)
                    for indexes in groups.values()
                ]
                while True:
                    try:
                        wait(futures)
                        break
                    except KeyboardInterrupt:
                        logger.warning("Interrupted, finishing entries already in progress")
                        self.cancel.set()

        return CleanReport(outcomes=tuple(outcomes), cancelled=self.cancel.is_set())

    def _confirm(self, entries: list[CandidateEntry], permanent: bool) -> set[int]:
        gated = [i for i, e in enumerate(entries) if self.needs_confirmation(e)]
        if not gated:
            return set()
        if self.confirmer is None:
            logger.info(f"{len(gated)} entries need confirmation and no prompt is available")
            return set(gated)

        if self.per_entry_confirmation:
            return {
                i
                for i in gated
                if not self.confirmer.confirm(PlanSummary.from_entries([entries[i]], permanent))
            }

        summary = PlanSummary.from_entries([entries[i] for i in gated], permanent)
        return set() if self.confirmer.confirm(summary) else set(gated)

    def _run_category(
        self,
        entries: list[CandidateEntry],
        indexes: list[int],
        outcomes: list[Optional[ExecutionOutcome]],
        permanent: bool,
    ) -> None:
        for index in indexes:
            entry = entries[index]
            if self.cancel.is_set():
                outcomes[index] = ExecutionOutcome.skipped(entry, "cancelled")
                continue
            outcomes[index] = self._process(entry, permanent)

    def _process(self, entry: CandidateEntry, permanent: bool) -> ExecutionOutcome:
        path = entry.path
        if self.is_protected(path):
            logger.error(f"Refusing to remove protected path {path}")
            return ExecutionOutcome.failed(entry, "protected")
        if not os.path.lexists(path):
            logger.debug(f"{path} no longer exists")
            return ExecutionOutcome.skipped(entry, "vanished")

        try:
            if permanent or entry.permanent:
                self.trash.delete_permanently(path)
            else:
                self.trash.move_to_trash(path)
        except FileNotFoundError:
            return ExecutionOutcome.skipped(entry, "vanished")
        except TrashError as e:
            logger.error(str(e))
            return ExecutionOutcome.failed(entry, e.message)
        except OSError as e:
            if e.errno == errno.EXDEV:
                reason = "cross-device move not supported"
            else:
                reason = e.strerror or str(e)
            logger.error(f"Failed to remove {path}: {reason}")
            return ExecutionOutcome.failed(entry, reason)
        except Exception as e:
            logger.error(f"Unexpected error removing {path}: {e}")
            return ExecutionOutcome.failed(entry, str(e))

        logger.debug(f"Removed {path}")
        self._remove_companions(entry)
        return ExecutionOutcome.succeeded(entry)

    def _remove_companions(self, entry: CandidateEntry) -> None:
        for companion in entry.companions:
            if not os.path.lexists(companion):
                continue
            try:
                self.trash.delete_permanently(companion)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not remove {companion} along with {entry.path}: {e}")
