"""
Unit tests for the thread-per-connection worker group.
"""

import threading

import pytest

from minihttpd.core.workers import ConnectionWorker, WorkerGroup


class TestWorkerGroup:
    """Tests for WorkerGroup."""

    def test_spawn_requires_start(self):
        """Test that a group that was never started rejects tasks."""
        group = WorkerGroup()

        assert group.spawn(lambda: None) is False

    def test_runs_task(self):
        """Test that spawned tasks run with their arguments."""
        group = WorkerGroup()
        group.start()
        done = threading.Event()
        seen = []

        def task(value):
            seen.append(value)
            done.set()

        assert group.spawn(task, 42) is True
        assert done.wait(5.0)
        group.shutdown(wait=True, timeout=5.0)

        assert seen == [42]
        assert group.stats["tasks"]["completed"] == 1

    def test_tasks_run_concurrently(self):
        """Test that a blocked worker does not block the next one."""
        group = WorkerGroup()
        group.start()
        release = threading.Event()
        second_ran = threading.Event()

        group.spawn(release.wait, 5.0)
        group.spawn(second_ran.set)

        assert second_ran.wait(5.0)
        release.set()
        group.shutdown(wait=True, timeout=5.0)

        assert group.active_workers == 0

    def test_failure_is_contained(self):
        """Test that a raising task is counted and does not escape."""
        group = WorkerGroup()
        group.start()

        def boom():
            raise RuntimeError("boom")

        group.spawn(boom)
        group.shutdown(wait=True, timeout=5.0)

        assert group.stats["tasks"]["failed"] == 1

    def test_max_workers(self):
        """Test that the cap rejects extra tasks."""
        group = WorkerGroup(max_workers=1)
        group.start()
        release = threading.Event()

        assert group.spawn(release.wait, 5.0) is True
        assert group.spawn(lambda: None) is False

        release.set()
        group.shutdown(wait=True, timeout=5.0)

    def test_spawn_after_shutdown(self):
        """Test that shutdown stops new tasks."""
        group = WorkerGroup()
        group.start()
        group.shutdown()

        assert group.spawn(lambda: None) is False

    def test_failed_thread_start_frees_slot(self, monkeypatch):
        """Test that a thread that cannot start is not counted as live."""
        group = WorkerGroup(max_workers=1)
        group.start()

        def refuse(self):
            raise RuntimeError("can't start new thread")

        monkeypatch.setattr(ConnectionWorker, "start", refuse)

        with pytest.raises(RuntimeError):
            group.spawn(lambda: None)

        assert group.active_workers == 0
        assert group.stats["tasks"]["started"] == 0

        monkeypatch.undo()
        done = threading.Event()

        assert group.spawn(done.set) is True
        assert done.wait(5.0)
        group.shutdown(wait=True, timeout=5.0)
