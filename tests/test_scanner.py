"""
Tests for rule resolution and the bounded size walk.
"""

import os
import threading
from pathlib import Path

import pytest

from conftest import MiB, make_file, requires_non_root
from devsweep.cleanup.scanner import (
    BaseDirs,
    ResultCollector,
    Scanner,
    TreeWalker,
    is_within,
    measure,
)
from devsweep.exceptions import ScanCancelled
from devsweep.models import Category, CleanupRule, RiskLevel
from devsweep.rules import get_rule


def real(path) -> Path:
    return Path(os.path.realpath(path))


def _rule(*patterns, **kwargs):
    defaults = dict(name="Test", category=Category.GO, risk=RiskLevel.LOW, description="test")
    defaults.update(kwargs)
    return CleanupRule(patterns=patterns, **defaults)


class TestBaseDirs:
    def test_linux_layout(self, home):
        dirs = BaseDirs.for_home(home, platform="linux", environ={})
        assert dirs.cache == home / ".cache"
        assert dirs.config == home / ".config"
        assert dirs.data == home / ".local" / "share"
        assert dirs.library is None
        assert dirs.var == Path("/var")

    def test_linux_honours_xdg(self, home, tmp_path):
        dirs = BaseDirs.for_home(
            home, platform="linux", environ={"XDG_CACHE_HOME": str(tmp_path / "xc"), "XDG_DATA_HOME": "relative"}
        )
        assert dirs.cache == tmp_path / "xc"
        assert dirs.data == home / ".local" / "share"

    def test_macos_layout(self, home):
        dirs = BaseDirs.for_home(home, platform="darwin")
        assert dirs.library == home / "Library"
        assert dirs.cache == home / "Library" / "Caches"
        assert dirs.data == home / "Library" / "Application Support"


class TestMeasure:
    def test_sums_regular_files(self, tmp_path):
        make_file(tmp_path / "a" / "one", 100)
        make_file(tmp_path / "a" / "b" / "two", 250)

        walk = measure(tmp_path / "a")

        assert walk.size_bytes == 350
        assert walk.file_count == 2
        assert walk.dir_count == 1
        assert not walk.truncated

    def test_does_not_follow_symlinks(self, tmp_path):
        make_file(tmp_path / "outside" / "big", 10 * MiB)
        make_file(tmp_path / "dir" / "small", 10)
        os.symlink(tmp_path / "outside", tmp_path / "dir" / "link")
        os.symlink(tmp_path / "outside" / "big", tmp_path / "dir" / "filelink")

        assert measure(tmp_path / "dir").size_bytes == 10

    def test_entry_cap_marks_lower_bound(self, tmp_path):
        for i in range(20):
            make_file(tmp_path / "many" / f"f{i}", 1)

        walk = measure(tmp_path / "many", max_entries=5)

        assert walk.truncated
        assert walk.size_bytes <= 5

    def test_depth_cap_marks_lower_bound(self, tmp_path):
        make_file(tmp_path / "d" / "1" / "2" / "3" / "deep", 1000)
        make_file(tmp_path / "d" / "top", 1)

        walk = measure(tmp_path / "d", max_depth=2)

        assert walk.truncated
        assert walk.size_bytes == 1

    @requires_non_root
    def test_unreadable_subdir_marks_lower_bound(self, tmp_path):
        make_file(tmp_path / "d" / "ok", 5)
        locked = tmp_path / "d" / "locked"
        make_file(locked / "hidden", 100)
        locked.chmod(0)
        try:
            walk = measure(tmp_path / "d")
        finally:
            locked.chmod(0o755)
        assert walk.truncated
        assert walk.size_bytes == 5

    def test_missing_root(self, tmp_path):
        assert measure(tmp_path / "gone").error == "vanished"

    def test_cancel_raises(self, tmp_path):
        make_file(tmp_path / "x" / "f", 1)
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ScanCancelled):
            list(TreeWalker(tmp_path / "x", cancel=cancel).files())


class TestScan:
    def test_cargo_registry_cache(self, home, base_dirs):
        registry = home / ".cargo" / "registry" / "cache" / "index.crates.io-6f17d22bba15001f"
        make_file(registry / "serde-1.0.0.crate", 2048)

        entries = Scanner().scan(get_rule("Cargo Registry Cache"), [base_dirs])

        assert len(entries) == 1
        entry = entries[0]
        assert entry.path == real(registry)
        assert entry.size_bytes == 2048
        assert entry.category is Category.RUST
        assert entry.rule_name == "Cargo Registry Cache"
        assert entry.modified_at is not None

    def test_missing_paths_are_omitted(self, base_dirs):
        assert Scanner().scan(get_rule("Maven Repository"), [base_dirs]) == []

    def test_hidden_entries_are_globbed(self, home, base_dirs):
        make_file(home / ".cache" / ".hidden-app" / "blob", 2 * MiB)
        rule = _rule("{cache}/*")

        entries = Scanner().scan(rule, [base_dirs])

        assert [e.path.name for e in entries] == [".hidden-app"]

    def test_exclude_names(self, home, base_dirs):
        make_file(home / ".cache" / "pip" / "wheel", 2 * MiB)
        make_file(home / ".cache" / "thumbnails" / "x.png", 2 * MiB)

        entries = Scanner().scan(get_rule("User Cache Directory", platform="linux"), [base_dirs])

        assert [e.path.name for e in entries] == ["thumbnails"]

    def test_min_size_and_empty_dirs(self, home, base_dirs):
        (home / ".cache" / "empty").mkdir(parents=True)
        make_file(home / ".cache" / "small" / "f", 10)
        rule = _rule("{cache}/*")
        sized = _rule("{cache}/*", min_size=100)

        assert [e.path.name for e in Scanner().scan(rule, [base_dirs])] == ["small"]
        assert Scanner().scan(sized, [base_dirs]) == []

    def test_marker_file_required(self, home, base_dirs):
        make_file(home / "Projects" / "crate" / "target" / "debug" / "bin", 4096)
        make_file(home / "Projects" / "crate" / "Cargo.toml", 10)
        make_file(home / "Projects" / "other" / "target" / "out", 4096)

        entries = Scanner().scan(get_rule("Cargo Target Directories"), [base_dirs])

        assert [e.path for e in entries] == [real(home / "Projects" / "crate" / "target")]

    def test_follows_one_symlink_level_inside_base(self, home, base_dirs):
        make_file(home / ".cache" / "real-data" / "f", 2 * MiB)
        os.symlink(home / ".cache" / "real-data", home / ".cache" / "alias")
        rule = _rule("{cache}/alias")

        entries = Scanner().scan(rule, [base_dirs])

        assert [e.path for e in entries] == [real(home / ".cache" / "real-data")]

    def test_symlink_chain_is_skipped(self, home, base_dirs):
        make_file(home / ".cache" / "target" / "f", 100)
        os.symlink(home / ".cache" / "target", home / ".cache" / "hop1")
        os.symlink(home / ".cache" / "hop1", home / ".cache" / "hop2")

        assert Scanner().scan(_rule("{cache}/hop2"), [base_dirs]) == []

    def test_symlink_outside_base_is_rejected(self, tmp_path, home, base_dirs):
        make_file(tmp_path / "precious" / "thesis.tex", 100)
        (home / ".cache").mkdir()
        os.symlink(tmp_path / "precious", home / ".cache" / "sneaky")

        assert Scanner().scan(_rule("{cache}/sneaky"), [base_dirs]) == []

    def test_dangling_symlink_is_omitted(self, home, base_dirs):
        (home / ".cache").mkdir()
        os.symlink(home / ".cache" / "nothing", home / ".cache" / "dangling")

        assert Scanner().scan(_rule("{cache}/dangling"), [base_dirs]) == []

    @requires_non_root
    def test_unreadable_parent_becomes_placeholder(self, home, base_dirs):
        locked = home / ".cargo" / "registry" / "cache"
        make_file(locked / "index" / "a.crate", 10)
        locked.chmod(0)
        try:
            entries = Scanner().scan(get_rule("Cargo Registry Cache"), [base_dirs])
        finally:
            locked.chmod(0o755)

        assert len(entries) == 1
        assert entries[0].is_placeholder
        assert entries[0].size_bytes == 0
        assert entries[0].path == locked

    def test_walk_cap_sets_lower_bound(self, home, base_dirs):
        for i in range(10):
            make_file(home / "go" / "pkg" / "mod" / "cache" / f"f{i}", 100)

        entries = Scanner(max_walk_entries=3).scan(get_rule("Go Build and Module Cache"), [base_dirs])

        assert len(entries) == 1
        assert entries[0].size_is_lower_bound
        assert entries[0].size_bytes <= 300

    def test_multiple_roots(self, tmp_path):
        roots = []
        for user in ("alice", "bob"):
            user_home = tmp_path / user
            make_file(user_home / ".m2" / "repository" / "x.jar", 10)
            roots.append(BaseDirs.for_home(user_home, platform="linux", environ={}))

        entries = Scanner().scan(get_rule("Maven Repository"), roots)

        assert len(entries) == 2

    def test_cancelled_scan_returns_partial(self, home, base_dirs):
        make_file(home / ".m2" / "repository" / "x.jar", 10)
        cancel = threading.Event()
        cancel.set()

        assert Scanner(cancel=cancel).scan(get_rule("Maven Repository"), [base_dirs]) == []


class TestScanRules:
    def test_merges_results_from_all_rules(self, home, base_dirs):
        make_file(home / ".m2" / "repository" / "x.jar", 10)
        make_file(home / ".gradle" / "caches" / "y.bin", 20)
        make_file(home / ".npm" / "_cacache" / "z", 30)
        rules = [get_rule("Maven Repository"), get_rule("Gradle Cache"), get_rule("npm Cache")]

        batch = Scanner().scan_rules(rules, [base_dirs], workers=3)

        assert not batch.partial
        assert sorted(e.size_bytes for e in batch.entries) == [10, 20, 30]

    def test_failing_rule_does_not_stop_others(self, home, base_dirs, monkeypatch):
        make_file(home / ".m2" / "repository" / "x.jar", 10)
        scanner = Scanner()
        original = scanner.scan

        def flaky(rule, roots):
            if rule.name == "Gradle Cache":
                raise RuntimeError("boom")
            return original(rule, roots)

        monkeypatch.setattr(scanner, "scan", flaky)
        batch = scanner.scan_rules([get_rule("Gradle Cache"), get_rule("Maven Repository")], [base_dirs])

        assert [e.rule_name for e in batch.entries] == ["Maven Repository"]

    def test_empty_rule_list(self, base_dirs):
        batch = Scanner().scan_rules([], [base_dirs])
        assert batch.entries == []
        assert not batch.partial


def test_result_collector_is_thread_safe():
    collector = ResultCollector()

    def push():
        for _ in range(200):
            collector.extend([object()])

    threads = [threading.Thread(target=push) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(collector.snapshot()) == 1600


def test_is_within():
    assert is_within("/a/b", "/a")
    assert is_within("/a", "/a")
    assert not is_within("/ab", "/a")
    assert is_within("/anything", "/")
