"""Filesystem helpers."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def write_temporary_sibling(path: Path, payload: bytes) -> Path:
    """Write ``payload`` to a temporary file next to ``path`` and return its location.

    The handle is flushed and synced before it is closed, so the caller can
    move the file into place with :func:`os.replace`.
    """

    ensure_directory(path.parent)
    with tempfile.NamedTemporaryFile(
        mode="wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as handle:
        temp_path = Path(handle.name)
        try:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        except BaseException:
            handle.close()
            remove_quietly(temp_path)
            raise
    return temp_path


def remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)



def backup_existing(path: Path) -> Optional[Path]:
    """Copy an existing file to a temporary sibling and return the copy, or ``None`` if there is no file."""

    if not path.is_file():
        return None
    with tempfile.NamedTemporaryFile(dir=path.parent, prefix=f".{path.name}.", suffix=".bak", delete=False) as handle:
        backup_path = Path(handle.name)
    try:
        shutil.copy2(path, backup_path)
    except BaseException:
        remove_quietly(backup_path)
        raise
    return backup_path
