"""Interactive operator loop.

Each line read from the input is one of:

- an existing filesystem path, which is opened in the platform file browser,
- a built-in command (`count`, `collect`, `help`),
- a target-path-code from the path table, which moves everything under the
  default source path into that target.

The loop ends at end of input. No single failing command stops it.
"""
from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import Callable, Optional, TextIO

from path_table import load_paths
from processors.batch_mover import BatchResult, MoveExecutor
from processors.collector import collect_subdirectories, write_collection
from processors.counter import count_regular_files
from processors.errors import OrganizerError

SEPARATOR_LINE = "-" * 60
PROMPT = "Enter a target path code (or a folder to open): "
COLLECTION_FILE_NAME = "directories.txt"


def browser_command(path: str, platform: str = sys.platform) -> list:
    if platform.startswith("win"):
        return ["explorer", path]
    if platform == "darwin":
        return ["open", path]
    return ["xdg-open", path]


def open_folder(path: str, logger: Optional[logging.Logger] = None, popen: Callable = subprocess.Popen) -> bool:
    """Open `path` in the file browser without waiting for it."""
    logger = logger or logging.getLogger("folder_organizer")
    try:
        popen(browser_command(path))
    except OSError as exc:
        logger.error("Could not open folder %s: %s", path, exc)
        return False
    logger.info("Opened folder: %s", path)
    return True


def is_existing_path(text: str) -> bool:
    try:
        return os.path.exists(text)
    except (TypeError, ValueError):
        return False


class CommandLoop:
    def __init__(
        self,
        config_path: str,
        executor: MoveExecutor,
        staging_dir: str,
        stream: TextIO = sys.stdin,
        output: TextIO = sys.stdout,
        opener: Callable = open_folder,
        logger: Optional[logging.Logger] = None,
        collection_file: Optional[str] = None,
    ) -> None:
        self.config_path = config_path
        self.collection_file = collection_file or os.path.join(
            os.path.dirname(os.path.abspath(config_path)), COLLECTION_FILE_NAME
        )
        self.executor = executor
        self.staging_dir = staging_dir
        self.stream = stream
        self.output = output
        self.opener = opener
        self.logger = logger or logging.getLogger("folder_organizer")
        self.builtins = {
            "count": self.show_count,
            "collect": self.collect,
            "help": self.show_help,
        }

    def run(self) -> None:
        while True:
            self.output.write(PROMPT)
            self.output.flush()
            line = self.stream.readline()
            if not line:
                break
            self.handle(line.strip())

    def handle(self, text: str) -> Optional[BatchResult]:
        if not text:
            return None
        result = None
        try:
            if is_existing_path(text):
                self.opener(text, logger=self.logger)
            elif text.lower() in self.builtins:
                self.builtins[text.lower()]()
            else:
                result = self.organize(text)
        except OrganizerError as exc:
            self.logger.error("%s", exc)
        print(SEPARATOR_LINE, file=self.output)
        return result

    def organize(self, code: str) -> Optional[BatchResult]:
        # Re-read on every command so edits to the table apply immediately.
        table = load_paths(self.config_path)
        if not table.default_source:
            self.logger.error("Default source path is missing or empty in %s", self.config_path)
            return None
        target = table.target_for(code)
        if target is None:
            self.logger.error("Unknown target path code: %s", code)
            return None

        result = self.executor.move_batch(table.default_source, target)
        if result.found_files:
            self.logger.info("Moved %d of %d item(s) to %s", result.moved, result.submitted, target)
        return result

    def show_count(self) -> None:
        try:
            count = count_regular_files(self.staging_dir)
        except OSError as exc:
            self.logger.error("Cannot count files in staging folder %s: %s", self.staging_dir, exc)
            return
        print(f"Remaining unclassified images: {count}", file=self.output)

    def show_help(self) -> None:
        table = load_paths(self.config_path)
        print("Configured target path codes:", file=self.output)
        for code, target in table.targets.items():
            print(f"  {code}: {target}", file=self.output)
        print("Built-in commands: count, collect, help", file=self.output)

    def collect(self) -> Optional[int]:
        """Write every folder under the gallery root to the collection file."""
        table = load_paths(self.config_path)
        if not table.gallery:
            self.logger.error("Gallery path is missing or empty in %s", self.config_path)
            return None
        written = write_collection(collect_subdirectories(table.gallery), self.collection_file)
        self.logger.info("Wrote %d folder(s) under %s to %s", written, table.gallery, self.collection_file)
        print(f"Collected {written} folder(s) into {self.collection_file}", file=self.output)
        return written
