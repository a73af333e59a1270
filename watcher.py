from __future__ import annotations

import argparse
import enum
import logging
import os
import queue
import sys
import threading
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Callable, List, Optional

from commands import CommandLoop
from processors.batch_mover import MoveExecutor
from processors.counter import count_regular_files
from processors.errors import WatcherError
from processors.status_log import StatusLog
from processors.worker_pool import DEFAULT_GRACE_SECONDS, WorkerPool

try:
    from watchdog.observers import Observer
    from watchdog.events import FileSystemEventHandler
except ImportError:  # watchdog not available
    print("Required package 'watchdog' is not installed. Install with: python -m pip install watchdog")
    sys.exit(1)

try:
    import resource
except ImportError:  # not available on Windows
    resource = None

LOGGER_NAME = "folder_organizer"
WATCHER_POOL_NAME = "NewFilesAddedWatcher"
BATCH_POOL_NAME = "ReadAndMovePool"
CHANNEL_CAPACITY = 4096


class WatchEventKind(enum.Enum):
    CREATED = "created"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class WatchEvent:
    path: Optional[str]
    kind: WatchEventKind


class WatcherState(enum.Enum):
    REGISTERED = "registered"
    WAITING = "waiting"
    DISPATCHING = "dispatching"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


_CLOSED = object()


class EventChannel:
    """Bounded hand-off between the notification thread and the watch loop.

    Events that do not fit are dropped; the next `take()` then starts with a
    single overflow event. Once closed, `take()` returns None.
    """

    def __init__(self, capacity: int = CHANNEL_CAPACITY) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._overflow_lock = threading.Lock()
        self._overflowed = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, event: WatchEvent) -> None:
        if self.closed:
            return
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._overflow_lock:
                self._overflowed = True

    def close(self) -> None:
        self._closed.set()
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            # The queue is not empty, so a blocked take() wakes up anyway.
            pass

    def take(self) -> Optional[List[WatchEvent]]:
        """Block until events are available and return all pending ones."""
        if self.closed:
            return None
        item = self._queue.get()
        if item is _CLOSED or self.closed:
            return None

        events = [item]
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _CLOSED:
                break
            events.append(item)

        with self._overflow_lock:
            if self._overflowed:
                self._overflowed = False
                events.insert(0, WatchEvent(None, WatchEventKind.OVERFLOW))
        return events


class CreatedEventHandler(FileSystemEventHandler):
    """Forwards create events for one directory into an `EventChannel`."""

    def __init__(self, channel: EventChannel, watched_dir: str) -> None:
        super().__init__()
        self.channel = channel
        self.watched_dir = os.path.normcase(os.path.abspath(watched_dir))

    def on_created(self, event):
        self.channel.put(WatchEvent(os.path.abspath(event.src_path), WatchEventKind.CREATED))

    def on_deleted(self, event):
        # The watched directory itself went away: nothing more will arrive.
        if os.path.normcase(os.path.abspath(event.src_path)) == self.watched_dir:
            self.channel.close()


def log_diagnostics(logger: logging.Logger) -> None:
    if resource is not None:
        max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
        logger.info("Max resident memory: %.1f MB", max_rss / divisor)
    logger.info("Watcher threads:")
    for thread in threading.enumerate():
        logger.info("Thread name: %s, alive: %s, daemon: %s", thread.name, thread.is_alive(), thread.daemon)


class EventWatcher:
    """Counts unclassified images as they arrive in the staging folder.

    The watch loop runs on the watcher's own worker pool and hands every
    create event to the same pool, where the staging folder is recounted and
    one status line is appended. The watcher never moves files.
    """

    def __init__(
        self,
        staging_dir: str,
        status_log: StatusLog,
        workers: int = 5,
        logger: Optional[logging.Logger] = None,
        grace: float = DEFAULT_GRACE_SECONDS,
        counter: Callable[[str], int] = count_regular_files,
        observer_factory: Callable = Observer,
        channel: Optional[EventChannel] = None,
    ) -> None:
        if workers < 2:
            raise ValueError("the watcher needs at least 2 workers: one for the loop, one for dispatch")
        self.staging_dir = os.path.abspath(staging_dir)
        self.status_log = status_log
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.grace = grace
        self.counter = counter
        self._state_lock = threading.Lock()
        self.state = WatcherState.REGISTERED

        if not os.path.isdir(self.staging_dir):
            raise WatcherError(f"Cannot watch {self.staging_dir}: not a directory")

        self.channel = channel or EventChannel()
        self.observer = observer_factory()
        try:
            self.observer.schedule(CreatedEventHandler(self.channel, self.staging_dir), self.staging_dir, recursive=False)
            self.observer.start()
        except OSError as exc:
            raise WatcherError(f"Cannot register {self.staging_dir} for notifications: {exc}") from exc

        self.pool = WorkerPool(WATCHER_POOL_NAME, workers)
        self._loop = self.pool.submit(self._watch)
        self.logger.info("Watching for new files in: %s", self.staging_dir)
        log_diagnostics(self.logger)

    def _set_state(self, state: WatcherState) -> None:
        with self._state_lock:
            if self.state not in (WatcherState.SHUTTING_DOWN, WatcherState.STOPPED):
                self.state = state

    def _watch(self) -> None:
        while True:
            self._set_state(WatcherState.WAITING)
            events = self.channel.take()
            if events is None:
                break
            self._set_state(WatcherState.DISPATCHING)
            for event in events:
                if event.kind is WatchEventKind.OVERFLOW:
                    self.logger.warning("Some file events were dropped; counts catch up with the next arrival")
                    continue
                try:
                    self.pool.submit(self._dispatch, event.path)
                except RuntimeError:
                    # Pool is shutting down.
                    return
        self.logger.info("Watch loop for %s ended", self.staging_dir)

    def _dispatch(self, path: str) -> None:
        self.logger.info("New file detected: %s", path)
        try:
            count = self.counter(self.staging_dir)
        except OSError:
            self.logger.exception("Error counting files after %s arrived", path)
            return
        self.status_log.files_added(path, count)

    def shutdown(self) -> None:
        with self._state_lock:
            if self.state in (WatcherState.SHUTTING_DOWN, WatcherState.STOPPED):
                return
            self.state = WatcherState.SHUTTING_DOWN

        self.logger.info("Shutdown requested, stopping watcher")
        self.observer.stop()
        self.channel.close()
        self.observer.join(timeout=self.grace)
        if not self.pool.shutdown(self.grace):
            self.logger.warning("Watcher tasks still running after %.0f seconds were abandoned", self.grace)

        with self._state_lock:
            self.state = WatcherState.STOPPED
        self.logger.info("Watcher stopped")

    def __enter__(self) -> "EventWatcher":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def setup_logger(logfile: str) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

    # Rotating file handler to avoid unbounded log growth
    handler = RotatingFileHandler(logfile, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Also log to console for immediate feedback
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    return logger


# Edit these defaults as needed
DEFAULT_CONFIG_PATH = "paths.yaml"
DEFAULT_STAGING_PATH = os.path.join(os.path.expanduser("~"), "Pictures", "Unclassified")
DEFAULT_LOG_DIR = os.path.join(os.path.expanduser("~"), "Pictures", "Logs")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Count new images in a staging folder and move batches into target folders")
    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"YAML table of target path codes (default {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument(
        "--staging", "-s",
        default=DEFAULT_STAGING_PATH,
        help=f"Staging folder to watch and count (default {DEFAULT_STAGING_PATH})"
    )
    parser.add_argument(
        "--logdir", "-l",
        default=DEFAULT_LOG_DIR,
        help=f"Directory to write logs to (default {DEFAULT_LOG_DIR})"
    )
    parser.add_argument("--workers", type=int, default=3, help="Worker threads for moving a batch")
    parser.add_argument("--watch-workers", type=int, default=5, help="Worker threads for the folder watcher")
    parser.add_argument("--grace", type=float, default=DEFAULT_GRACE_SECONDS, help="Seconds to wait for running tasks on shutdown")
    parser.add_argument("--no-watch", action="store_true", help="Do not watch the staging folder")
    parser.add_argument(
        "--collection",
        default=None,
        help="File the collect command writes folder paths to (default directories.txt next to the path table)"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    staging_dir = os.path.abspath(args.staging)
    log_dir = os.path.abspath(args.logdir)

    ensure_dir(staging_dir)
    ensure_dir(log_dir)

    logfile = os.path.join(log_dir, "folder_organizer.log")
    logger = setup_logger(logfile)
    status_log = StatusLog(os.path.join(log_dir, "unclassified_images.log"), logger=logger)

    logger.info("Starting folder organizer")
    logger.info("Staging folder: %s", staging_dir)
    logger.info("Path table: %s", os.path.abspath(args.config))
    logger.info("Logging to: %s", logfile)

    watcher = None
    if not args.no_watch:
        try:
            watcher = EventWatcher(staging_dir, status_log, workers=args.watch_workers, logger=logger, grace=args.grace)
        except WatcherError:
            logger.exception("Folder watcher could not start; continuing without it")

    pool = WorkerPool(BATCH_POOL_NAME, args.workers)
    executor = MoveExecutor(pool, staging_dir, status_log, logger=logger)
    try:
        CommandLoop(args.config, executor, staging_dir, logger=logger, collection_file=args.collection).run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        if watcher is not None:
            watcher.shutdown()
        pool.shutdown(args.grace)
        status_log.close()
    logger.info("Stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
