"""Bounded worker pool shared by a subsystem's tasks.

Each subsystem owns one pool (the batch mover and the event watcher are
sized independently) and shuts it down itself.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Set

DEFAULT_GRACE_SECONDS = 60.0


@dataclass(frozen=True)
class ThreadPoolSnapshot:
    active: int
    pool_size: int
    core_size: int
    maximum_size: int


class WorkerPool:
    def __init__(self, name: str, max_workers: int) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.name = name
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._active = 0
        self._threads: Set[int] = set()
        self._futures: Set[Future] = set()
        self._closed = False

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        with self._lock:
            if self._closed:
                raise RuntimeError(f"cannot schedule new tasks on {self.name} after shutdown")
            future = self._executor.submit(self._run, fn, args, kwargs)
            self._futures.add(future)
        future.add_done_callback(self._forget)
        return future

    def _run(self, fn, args, kwargs):
        with self._lock:
            self._threads.add(threading.get_ident())
            self._active += 1
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._active -= 1

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    def snapshot(self) -> ThreadPoolSnapshot:
        with self._lock:
            return ThreadPoolSnapshot(
                active=self._active,
                pool_size=len(self._threads),
                core_size=self.max_workers,
                maximum_size=self.max_workers,
            )

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self, grace: float = DEFAULT_GRACE_SECONDS) -> bool:
        """Stop accepting work and wait up to `grace` seconds for queued and running tasks.

        Tasks that have not started when the grace period ends are cancelled.
        A task already running cannot be interrupted and is left to finish on
        its own. Returns True when everything finished within the grace
        period. Safe to call more than once.
        """
        with self._lock:
            if self._closed:
                return True
            self._closed = True
            pending = set(self._futures)
        self._executor.shutdown(wait=False)
        _, not_done = wait(pending, timeout=grace)
        if not_done:
            self._executor.shutdown(wait=False, cancel_futures=True)
            return False
        return True

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
