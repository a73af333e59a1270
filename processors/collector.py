"""Collection of every subdirectory under the gallery root.

The written list is what the operator copies target paths from when filling
in the path table.
"""
from __future__ import annotations

import os
from typing import Iterable, List

from .errors import DiscoveryError, OrganizerError


def collect_subdirectories(root: str) -> List[str]:
    """Return the absolute path of every directory below `root`, depth first.

    Each directory is listed before its own children; siblings are sorted by
    name. Symlinked directories are listed but not followed.
    """
    root = os.path.abspath(root)
    if not os.path.isdir(root):
        raise DiscoveryError(f"Directory does not exist or is not a directory: {root}")

    found: List[str] = []

    def walk(directory: str) -> None:
        try:
            with os.scandir(directory) as entries:
                children = sorted(
                    (entry for entry in entries if entry.is_dir()), key=lambda entry: entry.name
                )
        except OSError as exc:
            raise DiscoveryError(f"Failed to list {directory}: {exc}") from exc
        for entry in children:
            path = os.path.join(directory, entry.name)
            found.append(path)
            if not entry.is_symlink():
                walk(path)

    walk(root)
    return found


def write_collection(paths: Iterable[str], output: str) -> int:
    """Write one path per line to `output`, replacing its contents."""
    count = 0
    try:
        with open(output, "w", encoding="utf-8") as f:
            for path in paths:
                f.write(path + "\n")
                count += 1
    except OSError as exc:
        raise OrganizerError(f"Could not write directory list to {output}: {exc}") from exc
    return count
