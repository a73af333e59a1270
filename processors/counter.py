"""Counting of unclassified images in the staging folder."""
from __future__ import annotations

import os


def count_regular_files(folder: str) -> int:
    """Return the number of regular files directly inside `folder`.

    Subdirectories and other entries are not counted. Nothing is cached, every
    call lists the folder again. Raises `FileNotFoundError` when the folder is
    missing.
    """
    count = 0
    with os.scandir(folder) as entries:
        for entry in entries:
            if entry.is_file():
                count += 1
    return count
