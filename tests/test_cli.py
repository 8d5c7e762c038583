"""
Tests for the devsweep command line interface.
"""

import json
import os
import sys
from pathlib import Path

import pytest
from rich.prompt import Confirm

from conftest import MiB, RecordingTrash, make_file
from devsweep import branding, cli
from devsweep.cleanup import pipeline as pipeline_module


@pytest.fixture
def fake_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in ("XDG_CACHE_HOME", "XDG_DATA_HOME"):
        monkeypatch.delenv(var, raising=False)
    registry = home / ".cargo" / "registry" / "cache"
    make_file(registry / "index-a" / "a.crate", 3 * MiB)
    make_file(registry / "index-b" / "b.crate", MiB)
    return home


@pytest.fixture
def recording_trash(monkeypatch):
    trash = RecordingTrash(remove=True)
    monkeypatch.setattr(pipeline_module, "TrashService", lambda: trash)
    return trash


RUST_ONLY = ["-C", "rust", "--no-heuristic"]


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])
    assert exc_info.value.code == 0
    assert "devsweep" in capsys.readouterr().out


def test_scan_json(fake_home, capsys):
    assert cli.main(["scan", *RUST_ONLY, "--format", "json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["total_bytes"] == 4 * MiB
    assert data["partial"] is False
    assert [e["rule"] for e in data["entries"]] == ["Cargo Registry Cache"] * 2
    assert data["entries"][0]["size_bytes"] == 3 * MiB


def test_scan_list_format(fake_home, capsys):
    assert cli.main(["scan", *RUST_ONLY, "--format", "list"]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith(f"{3 * MiB}\t")


def test_clean_dry_run(fake_home, recording_trash):
    assert cli.main(["clean", *RUST_ONLY, "--dry-run"]) == 0

    assert recording_trash.calls == []
    assert (fake_home / ".cargo" / "registry" / "cache" / "index-a").exists()


def test_clean_yes_removes_entries(fake_home, recording_trash):
    assert cli.main(["clean", *RUST_ONLY, "--yes"]) == 0

    assert len(recording_trash.trashed) == 2
    assert not (fake_home / ".cargo" / "registry" / "cache" / "index-a").exists()


def test_clean_permanent(fake_home, recording_trash):
    assert cli.main(["clean", *RUST_ONLY, "-y", "--permanent"]) == 0
    assert len(recording_trash.deleted) == 2


def test_clean_declined_prompt(fake_home, recording_trash, monkeypatch):
    monkeypatch.setattr(Confirm, "ask", classmethod(lambda cls, *a, **k: False))

    assert cli.main(["clean", *RUST_ONLY]) == 0
    assert recording_trash.calls == []


def test_clean_failure_exit_code(fake_home, monkeypatch):
    registry = Path(os.path.realpath(fake_home / ".cargo" / "registry" / "cache"))
    trash = RecordingTrash(fail={registry / "index-a": PermissionError(13, "Permission denied")})
    monkeypatch.setattr(pipeline_module, "TrashService", lambda: trash)

    assert cli.main(["clean", *RUST_ONLY, "-y"]) == 1
    assert trash.trashed == [registry / "index-b"]


def test_unknown_category(fake_home, capsys):
    assert cli.main(["scan", "-C", "cobol"]) == 1
    assert "Unknown category" in capsys.readouterr().err


def test_invalid_config_file(fake_home, tmp_path, capsys):
    bad = tmp_path / "bad.yaml"
    bad.write_text("general:\n  parallel_threads: -3\n")

    assert cli.main(["-c", str(bad), "scan"]) == 1
    assert "parallel_threads" in capsys.readouterr().err


def test_config_init_show_and_path(fake_home, tmp_path, capsys):
    expected = tmp_path / "config" / "devsweep" / "config.yaml"

    assert cli.main(["config", "--path"]) == 0
    assert capsys.readouterr().out.strip() == str(expected)

    assert cli.main(["config", "--init"]) == 0
    assert expected.exists()
    assert cli.main(["config", "--init"]) == 1
    assert cli.main(["config", "--init", "--force"]) == 0

    capsys.readouterr()
    assert cli.main(["config", "--show"]) == 0
    assert "use_trash: true" in capsys.readouterr().out


def test_list_rules(fake_home, capsys, monkeypatch):
    monkeypatch.setattr(branding.console, "no_color", False)
    monkeypatch.setattr(branding.err_console, "no_color", False)
    assert cli.main(["--no-color", "list", "-C", "rust"]) == 0
    out = capsys.readouterr().out
    assert "Cargo" in out
    assert "Maven" not in out


def test_analyze(fake_home, capsys):
    assert cli.main(["analyze", "-p", str(fake_home / ".cargo"), "-t", "1"]) == 0
    assert "Storage analysis" in capsys.readouterr().out


@pytest.mark.skipif(sys.platform != "linux", reason="rootless Docker rule is Linux only")
def test_clean_asks_once_for_high_risk(fake_home, recording_trash, monkeypatch):
    make_file(fake_home / ".local" / "share" / "docker" / "overlay2" / "layer", MiB)
    questions = []

    def answer(cls, prompt, *args, **kwargs):
        questions.append(str(prompt))
        return True

    monkeypatch.setattr(Confirm, "ask", classmethod(answer))

    assert cli.main(["clean", "-C", "docker", "--no-heuristic"]) == 0
    assert len(questions) == 1
    assert "1 high-risk" in questions[0]
    assert len(recording_trash.trashed) == 1
