"""Relocation of a single move unit.

This module exposes `relocate_unit`, which moves one file or one whole
directory tree into a destination directory, replacing whatever already sits
under the same name, and reports the outcome instead of raising.
"""
from __future__ import annotations

import enum
import errno
import logging
import os
import shutil
import uuid
from typing import Optional

from .discovery import MoveUnit, UnitKind


class MoveOutcome(enum.Enum):
    MOVED = "moved"
    TARGET_INVALID = "target_invalid"


def destination_for(unit: MoveUnit, destination_root: str) -> str:
    return os.path.join(destination_root, unit.file_name)


def _norm(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


def _is_within(path: str, parent: str) -> bool:
    """True if `path` is `parent` or lies somewhere below it."""
    path, parent = _norm(path), _norm(parent)
    return path == parent or path.startswith(parent.rstrip(os.sep) + os.sep)


def _remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


def _replace_file(src: str, dest: str) -> None:
    try:
        os.replace(src, dest)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        # Different filesystem: copy, then rename over the old entry.
        shutil.move(src, dest)


def _replace_aside(src: str, dest: str) -> None:
    # The old entry is renamed next to dest and only deleted once the move
    # succeeded; a failed move puts it back.
    backup = None
    if os.path.lexists(dest):
        backup = f"{dest}.replaced-{uuid.uuid4().hex[:8]}"
        os.rename(dest, backup)
    try:
        shutil.move(src, dest)
    except OSError:
        if backup is not None:
            if os.path.lexists(dest):
                _remove(dest)
            os.rename(backup, dest)
        raise
    if backup is not None:
        _remove(backup)


def relocate_unit(
    unit: MoveUnit,
    destination_root: str,
    logger: Optional[logging.Logger] = None,
    source_root: Optional[str] = None,
) -> MoveOutcome:
    """Move `unit` to `destination_root/<name>` and return the outcome.

    - An existing entry at the destination is overwritten; the previous entry
      survives if the move fails.
    - A destination that is the unit itself, one of its ancestors, something
      inside it, or the source root is refused.
    - Failures are logged and reported as `TARGET_INVALID`; nothing is retried.
    """
    logger = logger or logging.getLogger("folder_organizer")
    dest = destination_for(unit, destination_root)

    if _is_within(unit.path, dest) or _is_within(dest, unit.path) or (
        source_root is not None and _is_within(source_root, dest)
    ):
        logger.error("Destination %s overlaps the source %s, not moving", dest, unit.path)
        return MoveOutcome.TARGET_INVALID

    if not os.path.lexists(unit.path):
        logger.error("Source vanished before it could be moved: %s", unit.path)
        return MoveOutcome.TARGET_INVALID

    replacing_dir = os.path.isdir(dest) and not os.path.islink(dest)
    try:
        if unit.kind is UnitKind.FILE and not replacing_dir:
            _replace_file(unit.path, dest)
        else:
            _replace_aside(unit.path, dest)
    except OSError as exc:
        logger.error("Failed to move %s to %s, the target path may be invalid: %s", unit.path, dest, exc)
        return MoveOutcome.TARGET_INVALID

    logger.info("Moved to: %s", dest)
    return MoveOutcome.MOVED
