"""
Tests for canonicalization and deduplication.
"""

import os
from pathlib import Path

from devsweep.cleanup.classifier import classify
from devsweep.models import CandidateEntry, Category, RiskLevel


def entry(path, category=Category.RUST, risk=RiskLevel.LOW, rule="Rule", size=10):
    return CandidateEntry(Path(path), size, None, category, risk, rule_name=rule)


def test_unique_paths_pass_through_sorted(tmp_path):
    b = entry(tmp_path / "b")
    a = entry(tmp_path / "a")

    assert [e.path for e in classify([b, a])] == [tmp_path / "a", tmp_path / "b"]


def test_named_category_beats_heuristic(tmp_path):
    path = tmp_path / "cache"
    heuristic = entry(path, Category.HEURISTIC, RiskLevel.MEDIUM, "Heuristic Detection")
    named = entry(path, Category.NODEJS, RiskLevel.LOW, "npm Cache")

    result = classify([heuristic, named])

    assert len(result) == 1
    assert result[0].category is Category.NODEJS
    assert result[0].rule_name == "npm Cache"


def test_higher_risk_wins_among_named(tmp_path):
    path = tmp_path / "x"
    low = entry(path, Category.SYSTEM, RiskLevel.LOW, "User Cache Directory")
    high = entry(path, Category.DOCKER, RiskLevel.HIGH, "Rootless Docker Data")

    assert classify([low, high])[0].rule_name == "Rootless Docker Data"
    assert classify([high, low])[0].rule_name == "Rootless Docker Data"


def test_ties_use_category_order_then_rule_name(tmp_path):
    path = tmp_path / "x"
    python = entry(path, Category.PYTHON, RiskLevel.LOW, "b rule")
    system = entry(path, Category.SYSTEM, RiskLevel.LOW, "z rule")
    system_a = entry(path, Category.SYSTEM, RiskLevel.LOW, "a rule")

    assert classify([python, system, system_a])[0].rule_name == "a rule"


def test_symlinked_duplicates_collapse(tmp_path):
    real_dir = tmp_path / "real"
    real_dir.mkdir()
    os.symlink(real_dir, tmp_path / "alias")

    result = classify([entry(tmp_path / "alias"), entry(real_dir, rule="Other")])

    assert len(result) == 1
    assert result[0].path == Path(os.path.realpath(real_dir))


def test_heuristic_risk_is_clamped(tmp_path):
    result = classify([entry(tmp_path / "h", Category.HEURISTIC, RiskLevel.HIGH)])
    assert result[0].risk is RiskLevel.MEDIUM


def test_deterministic(tmp_path):
    entries = [entry(tmp_path / str(i % 3), Category.RUST, RiskLevel(1 + i % 3), f"r{i}") for i in range(9)]
    assert classify(entries) == classify(list(reversed(entries)))
