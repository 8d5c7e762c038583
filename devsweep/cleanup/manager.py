"""
Trash service: moves entries to the user's trash or deletes them permanently.
"""

import logging
import os
import shutil
from pathlib import Path

import send2trash

from devsweep.exceptions import TrashError

logger = logging.getLogger(__name__)


class TrashService:
    """
    Filesystem side of the executor.

    ``move_to_trash`` goes through send2trash so items stay recoverable;
    ``delete_permanently`` removes them for good. Both raise ``TrashError``
    carrying the path, or let ``OSError`` through for the executor to record.
    """

    def move_to_trash(self, path: Path) -> None:
        logger.debug(f"Moving {path} to trash")
        try:
            send2trash.send2trash(str(path))
        except send2trash.TrashPermissionError as e:
            raise TrashError(path, f"no usable trash directory ({e})") from e
        except FileNotFoundError:
            raise
        except OSError as e:
            raise TrashError(path, e.strerror or str(e)) from e

    def delete_permanently(self, path: Path) -> None:
        logger.debug(f"Deleting {path}")
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.unlink(path)
