"""Tests for processors.worker_pool module"""
import threading
import time
import pytest
from processors.worker_pool import ThreadPoolSnapshot, WorkerPool


class TestWorkerPool:
    """Test suite for WorkerPool"""

    def test_runs_tasks(self):
        with WorkerPool("TestPool", 2) as pool:
            future = pool.submit(lambda a, b: a + b, 2, 3)
            assert future.result(timeout=5) == 5

    def test_initial_snapshot(self):
        pool = WorkerPool("TestPool", 3)
        try:
            assert pool.snapshot() == ThreadPoolSnapshot(active=0, pool_size=0, core_size=3, maximum_size=3)
        finally:
            pool.shutdown(grace=1)

    def test_snapshot_while_busy(self):
        pool = WorkerPool("TestPool", 2)
        release = threading.Event()
        started = threading.Barrier(3)

        def block():
            started.wait(timeout=5)
            release.wait(timeout=5)

        try:
            for _ in range(2):
                pool.submit(block)
            started.wait(timeout=5)
            snap = pool.snapshot()
            assert snap.active == 2
            assert snap.active <= snap.pool_size <= snap.maximum_size
        finally:
            release.set()
            pool.shutdown(grace=5)
        assert pool.snapshot().active == 0

    def test_shutdown_is_idempotent(self):
        pool = WorkerPool("TestPool", 1)
        assert pool.shutdown(grace=1)
        assert pool.shutdown(grace=1)
        assert pool.closed

    def test_submit_after_shutdown(self):
        pool = WorkerPool("TestPool", 1)
        pool.shutdown(grace=1)
        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    def test_grace_period_cancels_queued_tasks(self):
        pool = WorkerPool("TestPool", 1)
        release = threading.Event()
        pool.submit(release.wait, 5)
        queued = pool.submit(lambda: "never")

        start = time.monotonic()
        finished = pool.shutdown(grace=0.2)
        elapsed = time.monotonic() - start
        release.set()

        assert not finished
        assert elapsed < 4
        assert queued.cancelled()

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            WorkerPool("TestPool", 0)
