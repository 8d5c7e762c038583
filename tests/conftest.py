"""Shared fixtures for the devsweep test suite.

Every test works inside a throwaway home directory so the real caches of the
machine running the tests are never scanned or touched.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from devsweep.cleanup.scanner import BaseDirs
from devsweep.config import SweepConfig
from devsweep.models import CandidateEntry, Category, RiskLevel

MiB = 1024 * 1024

requires_non_root = pytest.mark.skipif(
    hasattr(os, "geteuid") and os.geteuid() == 0, reason="root ignores permission bits"
)


def make_file(path: Path, size: int = 1024) -> Path:
    """Create ``path`` (and parents) as a sparse file of ``size`` bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


def set_mtime(path: Path, days_ago: float) -> None:
    stamp = os.stat(path).st_mtime - days_ago * 86400
    os.utime(path, (stamp, stamp))


class RecordingTrash:
    """TrashService stand-in that records calls and really removes nothing
    unless ``remove`` is set."""

    def __init__(self, remove: bool = False, fail: dict | None = None):
        self.remove = remove
        self.fail = fail or {}
        self.trashed: list[Path] = []
        self.deleted: list[Path] = []

    def _maybe_fail(self, path: Path) -> None:
        error = self.fail.get(Path(path))
        if error is not None:
            raise error

    def move_to_trash(self, path: Path) -> None:
        self._maybe_fail(path)
        self.trashed.append(Path(path))
        if self.remove:
            _remove(path)

    def delete_permanently(self, path: Path) -> None:
        self._maybe_fail(path)
        self.deleted.append(Path(path))
        if self.remove:
            _remove(path)

    @property
    def calls(self) -> list[Path]:
        return self.trashed + self.deleted


def _remove(path: Path) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


@pytest.fixture
def home(tmp_path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def base_dirs(home) -> BaseDirs:
    return BaseDirs.for_home(home, platform="linux", var=home / "var", environ={})


@pytest.fixture
def mac_dirs(home) -> BaseDirs:
    return BaseDirs.for_home(home, platform="darwin", var=home / "var")


@pytest.fixture
def config() -> SweepConfig:
    config = SweepConfig()
    config.heuristic.enabled = False
    return config


@pytest.fixture
def trash() -> RecordingTrash:
    return RecordingTrash()


@pytest.fixture
def entry_factory(tmp_path):
    """Build CandidateEntry objects for real paths under tmp_path."""

    def factory(
        name: str,
        size: int = 10,
        category: Category = Category.RUST,
        risk: RiskLevel = RiskLevel.LOW,
        rule_name: str = "Test Rule",
        create: bool = True,
        **kwargs,
    ) -> CandidateEntry:
        path = tmp_path / "entries" / name
        if create:
            make_file(path, size)
        return CandidateEntry(
            path=Path(os.path.realpath(path)),
            size_bytes=size,
            modified_at=None,
            category=category,
            risk=risk,
            rule_name=rule_name,
            **kwargs,
        )

    return factory
