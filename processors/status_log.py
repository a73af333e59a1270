"""Plain-text status log with the running count of unclassified images."""
from __future__ import annotations

import itertools
import logging
import os
from typing import Optional

STATUS_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [Client] - %(message)s"
STATUS_DATEFMT = "%Y-%m-%d %H:%M:%S"

_instance_ids = itertools.count(1)


class StatusFileHandler(logging.FileHandler):
    """Appends to the status log; a failed write becomes a warning on `warn_logger`."""

    def __init__(self, path: str, warn_logger: logging.Logger) -> None:
        super().__init__(path, mode="a", encoding="utf-8", delay=True)
        self.warn_logger = warn_logger

    def emit(self, record):
        try:
            super().emit(record)
        except OSError:
            self.handleError(record)

    def handleError(self, record):
        self.warn_logger.warning(
            "The status log %s cannot be written, check that the path is configured correctly",
            self.baseFilename,
        )


class StatusLog:
    """Append-only writer for the human-readable status log."""

    def __init__(self, path: str, logger: Optional[logging.Logger] = None) -> None:
        self.path = path
        warn_logger = logger or logging.getLogger("folder_organizer")

        # One private child logger per log file, kept out of the application log.
        self._logger = logging.getLogger(f"folder_organizer.status.{next(_instance_ids)}")
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        self._handler = StatusFileHandler(path, warn_logger)
        self._handler.setFormatter(logging.Formatter(STATUS_FORMAT, datefmt=STATUS_DATEFMT))
        self._logger.addHandler(self._handler)

    def files_added(self, path: str, count: int) -> None:
        self._logger.info("New files added: %s; Remaining unclassified images: %d", os.path.basename(path), count)

    def files_moved(self, count: int) -> None:
        self._logger.info("File(s) has/have been moved; Remaining unclassified images: %d", count)

    def close(self) -> None:
        self._logger.removeHandler(self._handler)
        self._handler.close()
