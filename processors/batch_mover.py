"""Concurrent relocation of a batch of move units.

One relocation task per unit is submitted to the batch worker pool. The
caller blocks on a completion barrier until every task has finished,
whatever its outcome, and then gets a `BatchResult` for that batch only.
"""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .counter import count_regular_files
from .discovery import MoveUnit, discover_units
from .errors import DiscoveryError
from .file_processor import MoveOutcome, relocate_unit
from .status_log import StatusLog
from .worker_pool import ThreadPoolSnapshot, WorkerPool

BEFORE_SUBMITTED = "BEFORE_SUBMITTED"
TASK_FINISHED = "TASK_FINISHED"


class CompletionBarrier:
    """Countdown latch: `wait()` returns once `count_down()` was called `count` times."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("count must not be negative")
        self._count = count
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def count_down(self) -> None:
        with self._cond:
            if self._count > 0:
                self._count -= 1
                if self._count == 0:
                    self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


@dataclass
class BatchResult:
    submitted: int = 0
    moved: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def found_files(self) -> bool:
        return self.moved > 0

    def record(self, outcome: MoveOutcome) -> None:
        if outcome is MoveOutcome.MOVED:
            with self._lock:
                self.moved += 1


class MoveExecutor:
    def __init__(
        self,
        pool: WorkerPool,
        staging_dir: str,
        status_log: StatusLog,
        logger: Optional[logging.Logger] = None,
        counter: Callable[[str], int] = count_regular_files,
    ) -> None:
        self.pool = pool
        self.staging_dir = staging_dir
        self.status_log = status_log
        self.logger = logger or logging.getLogger("folder_organizer")
        self.counter = counter

    def log_pool_snapshot(self, stage: str) -> ThreadPoolSnapshot:
        snap = self.pool.snapshot()
        self.logger.info("[%s] Active threads: %d", stage, snap.active)
        self.logger.info("[%s] Pool size: %d", stage, snap.pool_size)
        self.logger.info("[%s] Core pool size: %d", stage, snap.core_size)
        self.logger.info("[%s] Maximum pool size: %d", stage, snap.maximum_size)
        return snap

    def move_batch(self, source_root: str, destination_root: str) -> BatchResult:
        """Discover the units under `source_root` and relocate them all.

        A discovery failure is logged and the batch is aborted with nothing
        moved.
        """
        try:
            units = discover_units(source_root, destination_root)
        except DiscoveryError as exc:
            self.logger.error("Batch aborted: %s", exc)
            return BatchResult()
        if not units:
            self.logger.info("No files in source directory %s, returning directly", source_root)
            return BatchResult()
        return self.execute(units, destination_root, source_root=source_root)

    def execute(self, units: Sequence[MoveUnit], destination_root: str, source_root: Optional[str] = None) -> BatchResult:
        result = BatchResult(submitted=len(units))
        if not units:
            return result

        barrier = CompletionBarrier(len(units))
        self.log_pool_snapshot(BEFORE_SUBMITTED)
        for unit in units:
            try:
                self.pool.submit(self._relocate, unit, destination_root, source_root, result, barrier)
            except RuntimeError:
                self.logger.error("Worker pool is shut down, %s was not moved", unit.path)
                barrier.count_down()

        barrier.wait()
        self.log_pool_snapshot(TASK_FINISHED)

        if not result.found_files:
            self.logger.error("No files were moved from source: %s", source_root or os.path.dirname(units[0].path))
        return result

    def _relocate(
        self,
        unit: MoveUnit,
        destination_root: str,
        source_root: Optional[str],
        result: BatchResult,
        barrier: CompletionBarrier,
    ) -> None:
        try:
            outcome = relocate_unit(unit, destination_root, logger=self.logger, source_root=source_root)
            result.record(outcome)
            if outcome is MoveOutcome.MOVED:
                self._log_remaining()
        except Exception:
            self.logger.exception("Unexpected error while moving %s", unit.path)
        finally:
            barrier.count_down()

    def _log_remaining(self) -> None:
        try:
            count = self.counter(self.staging_dir)
        except OSError:
            self.logger.exception("Cannot count files in staging folder %s", self.staging_dir)
            return
        self.status_log.files_moved(count)
