"""
Storage analysis: where is the space going below a set of directories.
"""

import heapq
import logging
import os
import threading
from pathlib import Path
from typing import Optional, Sequence

import psutil

from devsweep.cleanup.scanner import DEFAULT_MAX_WALK_DEPTH, DEFAULT_MAX_WALK_ENTRIES, iter_files
from devsweep.exceptions import ScanCancelled
from devsweep.models import StorageReport

logger = logging.getLogger(__name__)

NO_EXTENSION = "(none)"
OTHER = "Other"

FILE_TYPE_GROUPS: dict[str, tuple[str, ...]] = {
    "Images": (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".webp", ".heic", ".svg", ".ico", ".psd"),
    "Video": (".mp4", ".mov", ".avi", ".mkv", ".wmv", ".flv", ".webm", ".m4v"),
    "Audio": (".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a", ".aiff"),
    "Archives": (".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".zst", ".7z", ".rar", ".dmg", ".iso", ".deb", ".rpm", ".whl", ".jar"),
    "Documents": (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".md", ".rtf", ".csv", ".odt"),
    "Code": (".py", ".js", ".ts", ".tsx", ".jsx", ".rs", ".go", ".java", ".kt", ".c", ".h", ".cpp", ".hpp", ".swift", ".rb", ".sh", ".json", ".yaml", ".yml", ".toml", ".html", ".css"),
    "Build artifacts": (".o", ".obj", ".a", ".so", ".dylib", ".dll", ".class", ".pyc", ".pyo", ".rlib", ".rmeta", ".d", ".wasm"),
    "Logs": (".log",),
    "Temporary": (".tmp", ".temp", ".bak", ".old", ".orig", ".swp", ".swo", ".cache"),
}

_GROUP_BY_EXTENSION = {ext: group for group, exts in FILE_TYPE_GROUPS.items() for ext in exts}


def file_type(path: str) -> str:
    """File-type group of ``path``, by extension."""
    return _GROUP_BY_EXTENSION.get(extension_of(path), OTHER)


def extension_of(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return ext or NO_EXTENSION


class StorageAnalyzer:
    """Totals disk usage per file type and extension and finds the largest files."""

    def __init__(
        self,
        max_depth: Optional[int] = None,
        top_n: int = 10,
        max_entries: int = DEFAULT_MAX_WALK_ENTRIES,
        cancel: Optional[threading.Event] = None,
    ):
        self.max_depth = max_depth or DEFAULT_MAX_WALK_DEPTH
        self.top_n = top_n
        self.max_entries = max_entries
        self.cancel = cancel or threading.Event()

    def analyze(self, roots: Sequence[Path]) -> StorageReport:
        report = StorageReport()
        largest: list[tuple[int, str]] = []

        for root in roots:
            root = Path(root).expanduser()
            if not root.is_dir():
                logger.warning(f"Skipping {root}: not a directory")
                continue
            walker, files = iter_files(root, self.max_depth, self.max_entries, self.cancel)
            try:
                for path, size in files:
                    report.total_bytes += size
                    group = file_type(path)
                    report.by_type[group] = report.by_type.get(group, 0) + size
                    ext = extension_of(path)
                    report.by_extension[ext] = report.by_extension.get(ext, 0) + size
                    if self.top_n > 0:
                        if len(largest) < self.top_n:
                            heapq.heappush(largest, (size, path))
                        elif size > largest[0][0]:
                            heapq.heapreplace(largest, (size, path))
            except ScanCancelled:
                logger.warning(f"Analysis of {root} interrupted")
                report.size_is_lower_bound = True
            report.file_count += walker.file_count
            report.dir_count += walker.dir_count
            if walker.truncated or walker.error:
                report.size_is_lower_bound = True

        report.largest_files = [(Path(p), s) for s, p in sorted(largest, reverse=True)]
        report.by_type = dict(sorted(report.by_type.items(), key=lambda kv: -kv[1]))
        report.by_extension = dict(sorted(report.by_extension.items(), key=lambda kv: -kv[1]))

        if roots:
            self._add_volume_usage(report, Path(roots[0]).expanduser())
        return report

    @staticmethod
    def _add_volume_usage(report: StorageReport, root: Path) -> None:
        try:
            usage = psutil.disk_usage(str(root))
        except OSError as e:
            logger.debug(f"Cannot read volume usage for {root}: {e}")
            return
        report.volume_total = usage.total
        report.volume_used = usage.used
        report.volume_free = usage.free


def analyze(roots: Sequence[Path], max_depth: Optional[int] = None, top_n: int = 10) -> StorageReport:
    return StorageAnalyzer(max_depth=max_depth, top_n=top_n).analyze(roots)
