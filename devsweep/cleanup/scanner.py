"""
Rule scanner.

Resolves cleanup rule patterns against the filesystem and measures what
they match. Rules are scanned concurrently on a thread pool; every worker
pushes its finished batch into one lock-guarded collector.
"""

import fnmatch
import glob
import logging
import os
import stat
import sys
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from devsweep.exceptions import ScanCancelled
from devsweep.models import CandidateEntry, CleanupRule, split_template

logger = logging.getLogger(__name__)

DEFAULT_MAX_WALK_DEPTH = 64
DEFAULT_MAX_WALK_ENTRIES = 1_000_000

_MAGIC_CHARS = ("*", "?", "[")


@dataclass(frozen=True)
class BaseDirs:
    """
    Base directories a rule pattern can be anchored to, for one user home.

    ``library`` only exists on macOS; patterns referencing it are skipped
    elsewhere.
    """

    home: Path
    cache: Path
    config: Path
    data: Path
    library: Optional[Path] = None
    var: Path = Path("/var")

    @classmethod
    def for_home(
        cls,
        home: Path | str,
        platform: Optional[str] = None,
        var: Path | str = "/var",
        environ: Optional[dict] = None,
    ) -> "BaseDirs":
        """
        Derive the base directories of ``home``.

        XDG environment variables are honoured only for the current user's
        home (or when ``environ`` is passed explicitly).
        """
        home = Path(home).expanduser()
        platform = platform or sys.platform
        if platform == "darwin":
            library = home / "Library"
            return cls(
                home=home,
                cache=library / "Caches",
                config=library / "Preferences",
                data=library / "Application Support",
                library=library,
                var=Path(var),
            )

        if environ is None:
            environ = dict(os.environ) if home == Path.home() else {}

        def xdg(name: str, default: Path) -> Path:
            value = environ.get(name)
            return Path(value) if value and os.path.isabs(value) else default

        return cls(
            home=home,
            cache=xdg("XDG_CACHE_HOME", home / ".cache"),
            config=xdg("XDG_CONFIG_HOME", home / ".config"),
            data=xdg("XDG_DATA_HOME", home / ".local" / "share"),
            library=None,
            var=Path(var),
        )

    @classmethod
    def current(cls) -> "BaseDirs":
        return cls.for_home(Path.home())

    def get(self, token: str) -> Optional[Path]:
        return getattr(self, token, None)


@dataclass
class SizeWalk:
    """Result of a bounded directory size walk."""

    size_bytes: int = 0
    file_count: int = 0
    dir_count: int = 0
    truncated: bool = False
    error: Optional[str] = None


class TreeWalker:
    """
    Iterative, bounded directory walk that never follows symlinks.

    Hitting ``max_depth`` or ``max_entries``, or meeting an unreadable
    subdirectory, sets ``truncated``: sizes computed from the walk are then
    a lower bound. An unreadable root sets ``error``.
    """

    def __init__(
        self,
        root: Path | str,
        max_depth: int = DEFAULT_MAX_WALK_DEPTH,
        max_entries: int = DEFAULT_MAX_WALK_ENTRIES,
        cancel: Optional[threading.Event] = None,
    ):
        self.root = str(root)
        self.max_depth = max_depth
        self.max_entries = max_entries
        self.cancel = cancel
        self.truncated = False
        self.error: Optional[str] = None
        self.file_count = 0
        self.dir_count = 0
        self.entries_seen = 0

    def files(self) -> Iterator[tuple[str, int]]:
        """Yield ``(path, size)`` for every regular file under the root."""
        stack = [(self.root, 0)]
        while stack:
            if self.cancel is not None and self.cancel.is_set():
                raise ScanCancelled(self.root)
            current, depth = stack.pop()
            try:
                with os.scandir(current) as it:
                    for entry in it:
                        self.entries_seen += 1
                        if self.entries_seen > self.max_entries:
                            logger.debug(f"Entry cap reached under {self.root}")
                            self.truncated = True
                            return
                        try:
                            if entry.is_dir(follow_symlinks=False):
                                self.dir_count += 1
                                if depth + 1 >= self.max_depth:
                                    self.truncated = True
                                else:
                                    stack.append((entry.path, depth + 1))
                            elif entry.is_file(follow_symlinks=False):
                                size = entry.stat(follow_symlinks=False).st_size
                                self.file_count += 1
                                yield entry.path, size
                        except FileNotFoundError:
                            continue
                        except OSError:
                            self.truncated = True
            except FileNotFoundError:
                if current == self.root:
                    self.error = "vanished"
                continue
            except OSError as e:
                if current == self.root:
                    self.error = e.strerror or str(e)
                else:
                    logger.debug(f"Cannot read {current}: {e}")
                    self.truncated = True


def measure(
    path: Path | str,
    max_depth: int = DEFAULT_MAX_WALK_DEPTH,
    max_entries: int = DEFAULT_MAX_WALK_ENTRIES,
    cancel: Optional[threading.Event] = None,
) -> SizeWalk:
    """Total size of the regular files below ``path`` (bounded walk)."""
    walker = TreeWalker(path, max_depth, max_entries, cancel)
    total = sum(size for _, size in walker.files())
    return SizeWalk(
        size_bytes=total,
        file_count=walker.file_count,
        dir_count=walker.dir_count,
        truncated=walker.truncated,
        error=walker.error,
    )


def is_within(path: Path | str, base: Path | str) -> bool:
    """True if ``path`` equals ``base`` or lies below it (no symlink resolution)."""
    path, base = str(path), str(base).rstrip(os.sep) or os.sep
    return path == base or path.startswith(base if base == os.sep else base + os.sep)


class ResultCollector:
    """Shared result container; the lock is held only for the append."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: list[CandidateEntry] = []

    def extend(self, batch: Iterable[CandidateEntry]) -> None:
        batch = list(batch)
        with self._lock:
            self._entries.extend(batch)

    def snapshot(self) -> list[CandidateEntry]:
        with self._lock:
            return list(self._entries)


@dataclass
class ScanBatch:
    """Merged output of a concurrent scan phase."""

    entries: list[CandidateEntry] = field(default_factory=list)
    partial: bool = False


def gather(futures: dict[Future, str], cancel: threading.Event, phase: str) -> None:
    """
    Wait for every future, logging worker failures.

    A ``KeyboardInterrupt`` sets ``cancel`` so running workers stop issuing
    filesystem calls; queued work is dropped.
    """
    try:
        for future in as_completed(futures):
            try:
                future.result()
            except Exception as e:
                logger.warning(f"{phase} failed for {futures[future]}: {e}")
    except KeyboardInterrupt:
        logger.warning(f"{phase} interrupted, keeping partial results")
        cancel.set()
        for future in futures:
            future.cancel()


class Scanner:
    """
    Resolves rules against one or more sets of base directories.

    Args:
        max_walk_depth: Directory depth cap of the size walk.
        max_walk_entries: Entry count cap of the size walk.
        cancel: Event that stops the scan when set.
    """

    def __init__(
        self,
        max_walk_depth: int = DEFAULT_MAX_WALK_DEPTH,
        max_walk_entries: int = DEFAULT_MAX_WALK_ENTRIES,
        cancel: Optional[threading.Event] = None,
    ):
        self.max_walk_depth = max_walk_depth
        self.max_walk_entries = max_walk_entries
        self.cancel = cancel or threading.Event()

    def scan(self, rule: CleanupRule, roots: Sequence[BaseDirs]) -> list[CandidateEntry]:
        """
        Resolve every pattern of ``rule`` against every root.

        Missing paths are omitted. Paths that cannot be checked become
        placeholder entries with ``scan_error`` set. If the cancel token
        fires, the entries found so far are returned.
        """
        entries: list[CandidateEntry] = []
        seen: set[Path] = set()
        try:
            for root in roots:
                for pattern in rule.patterns:
                    token, relative = split_template(pattern)
                    base = root.get(token)
                    if base is None:
                        continue
                    for entry in self._resolve(rule, base, relative):
                        if entry.path not in seen:
                            seen.add(entry.path)
                            entries.append(entry)
        except ScanCancelled:
            logger.debug(f"Scan of {rule.name} cancelled")
        return entries

    def scan_rules(
        self, rules: Sequence[CleanupRule], roots: Sequence[BaseDirs], workers: Optional[int] = None
    ) -> ScanBatch:
        """Scan ``rules`` concurrently and merge the results."""
        collector = ResultCollector()
        if not rules:
            return ScanBatch()

        def work(rule: CleanupRule) -> None:
            collector.extend(self.scan(rule, roots))

        with ThreadPoolExecutor(max_workers=workers or None, thread_name_prefix="scan") as pool:
            futures = {pool.submit(work, rule): rule.name for rule in rules}
            gather(futures, self.cancel, "Scan")
        return ScanBatch(entries=collector.snapshot(), partial=self.cancel.is_set())

    def _check_cancel(self) -> None:
        if self.cancel.is_set():
            raise ScanCancelled()

    def _resolve(self, rule: CleanupRule, base: Path, relative: str) -> Iterator[CandidateEntry]:
        parts = [p for p in relative.split("/") if p]
        static = [p for p in _static_prefix(parts)]
        prefix = base.joinpath(*static)

        try:
            os.lstat(prefix)
        except (FileNotFoundError, NotADirectoryError):
            return
        except PermissionError as e:
            yield self._placeholder(rule, prefix, e)
            return

        if len(static) == len(parts):
            matches = [str(prefix)]
        else:
            if not os.access(prefix, os.R_OK | os.X_OK):
                yield self._placeholder(rule, prefix, PermissionError("Permission denied"))
                return
            pattern = os.path.join(glob.escape(str(prefix)), *parts[len(static):])
            matches = sorted(glob.glob(pattern, include_hidden=True))

        base_real = os.path.realpath(base)
        for match in matches:
            self._check_cancel()
            entry = self._inspect(rule, base_real, Path(match))
            if entry is not None:
                yield entry

    def _inspect(self, rule: CleanupRule, base_real: str, path: Path) -> Optional[CandidateEntry]:
        if any(fnmatch.fnmatchcase(path.name, p) for p in rule.exclude_names):
            return None
        if rule.marker and not (path.parent / rule.marker).exists():
            return None

        matched = path
        try:
            st = os.lstat(path)
            if stat.S_ISLNK(st.st_mode):
                target = Path(os.path.normpath(os.path.join(path.parent, os.readlink(path))))
                if target.is_symlink():
                    logger.debug(f"Skipping symlink chain at {path}")
                    return None
                st = os.lstat(target)
                path = target
        except FileNotFoundError:
            return None
        except PermissionError as e:
            return self._placeholder(rule, path, e)

        canonical = Path(os.path.realpath(path))
        if not is_within(canonical, base_real):
            logger.warning(f"Ignoring {path}: resolves outside {base_real}")
            return None

        truncated = False
        if stat.S_ISDIR(st.st_mode):
            walk = measure(canonical, self.max_walk_depth, self.max_walk_entries, self.cancel)
            if walk.error == "vanished":
                return None
            if walk.error:
                return self._placeholder(rule, canonical, PermissionError(walk.error))
            size, truncated = walk.size_bytes, walk.truncated
        else:
            size = st.st_size

        if size < rule.min_size:
            return None
        if truncated:
            logger.debug(f"Size of {canonical} is a lower bound")

        return CandidateEntry(
            path=canonical,
            size_bytes=size,
            modified_at=st.st_mtime,
            category=rule.category,
            risk=rule.risk,
            description=rule.description,
            rule_name=rule.name,
            size_is_lower_bound=truncated,
            permanent=rule.always_permanent,
            companions=rule.companion_paths(matched),
        )

    def _placeholder(self, rule: CleanupRule, path: Path, error: OSError) -> CandidateEntry:
        reason = error.strerror or str(error) or "Permission denied"
        logger.warning(f"Cannot check {path} ({rule.name}): {reason}")
        return CandidateEntry(
            path=Path(os.path.abspath(path)),
            size_bytes=0,
            modified_at=None,
            category=rule.category,
            risk=rule.risk,
            description=rule.description,
            rule_name=rule.name,
            scan_error=reason,
        )


def _static_prefix(parts: list[str]) -> Iterator[str]:
    for part in parts:
        if any(c in part for c in _MAGIC_CHARS):
            return
        yield part


def iter_files(
    root: Path | str,
    max_depth: int = DEFAULT_MAX_WALK_DEPTH,
    max_entries: int = DEFAULT_MAX_WALK_ENTRIES,
    cancel: Optional[threading.Event] = None,
) -> tuple[TreeWalker, Iterator[tuple[str, int]]]:
    """Return a walker and its file iterator; counters fill in as it is consumed."""
    walker = TreeWalker(root, max_depth, max_entries, cancel)
    return walker, walker.files()
