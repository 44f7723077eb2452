"""Target directory membership helpers."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def _clear_readonly(func, path, _exc) -> None:  # noqa: ANN001
    # git pack files are read-only on some platforms
    os.chmod(path, stat.S_IWRITE)
    func(path)


def ensure_directory(path: Path) -> None:
    """Create ``path`` (and parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)


def is_empty(path: Path) -> bool:
    """Return True if ``path`` is missing or has no entries."""
    if not path.exists():
        return True
    return next(path.iterdir(), None) is None


def reset_directory(path: Path) -> int:
    """Create ``path`` if missing and remove every entry inside it.

    Returns:
        Number of top-level entries removed.
    """
    ensure_directory(path)

    removed = 0
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry, onexc=_clear_readonly)
        else:
            entry.unlink()
        removed += 1

    if removed:
        logger.info("Purged %d entries from %s", removed, path)
    return removed
