"""Discovery of the move units under a source root."""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import List

from .errors import DiscoveryError


class UnitKind(enum.Enum):
    FILE = "file"
    DIRECTORY_TREE = "directory-tree"


@dataclass(frozen=True)
class MoveUnit:
    path: str
    kind: UnitKind

    @property
    def file_name(self) -> str:
        return os.path.basename(self.path)


def discover_units(source_root: str, destination_root: str) -> List[MoveUnit]:
    """Return the units to relocate from `source_root`, in listing order.

    - A missing or empty root yields an empty list and touches nothing.
    - A root that is itself a regular file yields a single file unit.
    - Otherwise every immediate child becomes one unit: subdirectories are
      moved whole and never descended into. Other entry types are skipped,
      as is the destination root when it lives directly inside the source.

    When units are found, `destination_root` is created before returning.
    Raises `DiscoveryError` if the root cannot be listed or the destination
    cannot be created.
    """
    source_root = os.path.abspath(source_root)
    destination_root = os.path.abspath(destination_root)

    if os.path.isfile(source_root):
        units = [MoveUnit(source_root, UnitKind.FILE)]
    elif os.path.isdir(source_root):
        units = []
        try:
            with os.scandir(source_root) as entries:
                for entry in entries:
                    path = os.path.join(source_root, entry.name)
                    if entry.is_dir():
                        if os.path.normcase(path) == os.path.normcase(destination_root):
                            continue
                        units.append(MoveUnit(path, UnitKind.DIRECTORY_TREE))
                    elif entry.is_file():
                        units.append(MoveUnit(path, UnitKind.FILE))
        except OSError as exc:
            raise DiscoveryError(f"Failed to list source directory {source_root}: {exc}") from exc
    else:
        return []

    if units:
        try:
            os.makedirs(destination_root, exist_ok=True)
        except OSError as exc:
            raise DiscoveryError(f"Failed to create destination directory {destination_root}: {exc}") from exc
    return units
