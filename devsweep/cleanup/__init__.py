from devsweep.cleanup.cleaner import AutoConfirm, ConfirmationPrompt, Executor
from devsweep.cleanup.manager import TrashService
from devsweep.cleanup.pipeline import CleanupPipeline, run_analyze, run_clean, run_scan
from devsweep.cleanup.scanner import BaseDirs, Scanner

__all__ = [
    "AutoConfirm",
    "BaseDirs",
    "CleanupPipeline",
    "ConfirmationPrompt",
    "Executor",
    "Scanner",
    "TrashService",
    "run_analyze",
    "run_clean",
    "run_scan",
]
