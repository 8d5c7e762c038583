"""
Tests for the send2trash-backed TrashService.
"""

from unittest.mock import patch

import pytest
import send2trash

from conftest import make_file
from devsweep.cleanup.manager import TrashService
from devsweep.exceptions import TrashError


def test_move_to_trash_calls_send2trash(tmp_path):
    target = make_file(tmp_path / "cache" / "blob")

    with patch("devsweep.cleanup.manager.send2trash.send2trash") as mock_trash:
        TrashService().move_to_trash(target)

    mock_trash.assert_called_once_with(str(target))


def test_trash_permission_error_becomes_trash_error(tmp_path):
    target = make_file(tmp_path / "x")
    error = send2trash.TrashPermissionError(str(target))

    with patch("devsweep.cleanup.manager.send2trash.send2trash", side_effect=error):
        with pytest.raises(TrashError) as exc_info:
            TrashService().move_to_trash(target)

    assert exc_info.value.path == target
    assert "no usable trash" in exc_info.value.message


def test_os_error_becomes_trash_error(tmp_path):
    target = make_file(tmp_path / "x")

    with patch("devsweep.cleanup.manager.send2trash.send2trash", side_effect=OSError(5, "I/O error")):
        with pytest.raises(TrashError, match="I/O error"):
            TrashService().move_to_trash(target)


def test_delete_permanently_directory(tmp_path):
    target = make_file(tmp_path / "dir" / "sub" / "file").parent.parent

    TrashService().delete_permanently(target)

    assert not target.exists()


def test_delete_permanently_file_and_symlink(tmp_path):
    real = make_file(tmp_path / "real" / "f")
    link = tmp_path / "link"
    link.symlink_to(real.parent)

    TrashService().delete_permanently(link)
    TrashService().delete_permanently(real)

    assert not link.exists() and not link.is_symlink()
    assert real.parent.exists()
    assert not real.exists()


def test_delete_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        TrashService().delete_permanently(tmp_path / "missing")


def test_vanished_path_is_not_wrapped(tmp_path):
    missing = tmp_path / "gone"

    with patch(
        "devsweep.cleanup.manager.send2trash.send2trash",
        side_effect=FileNotFoundError(2, "No such file or directory"),
    ):
        with pytest.raises(FileNotFoundError):
            TrashService().move_to_trash(missing)
