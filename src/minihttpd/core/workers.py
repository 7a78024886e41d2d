"""
=============================================================================
CONNECTION WORKERS
=============================================================================

Thread-per-connection concurrency.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept thread                                                      │
    │        │                                                             │
    │        ├── spawn(handle, conn A) ──► ConnectionWorker-1  (conn A)   │
    │        ├── spawn(handle, conn B) ──► ConnectionWorker-2  (conn B)   │
    │        └── spawn(handle, conn C) ──► ConnectionWorker-3  (conn C)   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every accepted connection gets its own daemon thread, which owns the
connection until it closes. spawn() starts the thread and returns at once;
the accept loop never waits for a worker. A slow or idle keep-alive
client therefore ties up only its own thread.

WorkerGroup keeps the set of live workers (for shutdown and stats). That
set is the only state shared between threads, and it is guarded by a lock.

=============================================================================
"""

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional, Set


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states."""
    STARTING = "starting"
    BUSY = "busy"
    STOPPED = "stopped"


class ConnectionWorker(threading.Thread):
    """
    Runs one task (serving one connection) on its own thread.

    Exceptions raised by the task are logged and counted, never
    propagated: one broken connection must not take down anything else.
    """

    def __init__(
        self,
        group: "WorkerGroup",
        worker_id: int,
        func: Callable[..., Any],
        args: tuple = (),
    ):
        # daemon=True: a stuck client never keeps the process alive
        super().__init__(name=f"ConnectionWorker-{worker_id}", daemon=True)
        self.group = group
        self.worker_id = worker_id
        self.func = func
        self.args = args
        self.state = WorkerState.STARTING

    def run(self):
        self.state = WorkerState.BUSY
        start_time = time.time()
        failed = False

        try:
            self.func(*self.args)
        except Exception as e:
            failed = True
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.STOPPED
            self.group._worker_finished(self, failed)


class WorkerGroup:
    """
    Spawns and tracks one ConnectionWorker per connection.

    Usage:
        workers = WorkerGroup()
        workers.start()
        workers.spawn(handle_connection, conn)
        ...
        workers.shutdown(wait=True, timeout=5.0)
    """

    def __init__(self, max_workers: Optional[int] = None):
        """
        Args:
            max_workers: Cap on concurrently live workers. None means no
                         cap; spawn() then always succeeds while running.
        """
        self.max_workers = max_workers

        self._lock = threading.Lock()
        self._workers: Set[ConnectionWorker] = set()
        self._next_id = 0
        self._started = False
        self._shutdown = False

        # Metrics
        self.tasks_started = 0
        self.tasks_completed = 0
        self.tasks_failed = 0

    def start(self):
        """Allow spawn() to start workers."""
        with self._lock:
            self._started = True
            self._shutdown = False
        logger.debug("Worker group started")

    def spawn(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Run func(*args) on a new worker thread.

        Returns:
            True if a worker was started, False if the group is not
            running or max_workers workers are already live.

        Raises:
            RuntimeError: If the thread cannot be started. The worker is
                          not counted as live.
        """
        with self._lock:
            if not self._started or self._shutdown:
                logger.warning("Worker group is not running, rejecting task")
                return False

            if self.max_workers is not None and len(self._workers) >= self.max_workers:
                logger.warning(f"All {self.max_workers} workers busy, rejecting task")
                return False

            self._next_id += 1
            worker = ConnectionWorker(self, self._next_id, func, args)
            self._workers.add(worker)
            self.tasks_started += 1

        try:
            worker.start()
        except BaseException:
            # e.g. "can't start new thread": the slot must not stay taken
            with self._lock:
                self._workers.discard(worker)
                self.tasks_started -= 1
            raise
        return True

    def _worker_finished(self, worker: ConnectionWorker, failed: bool):
        """Called by each worker as its last action."""
        with self._lock:
            self._workers.discard(worker)
            if failed:
                self.tasks_failed += 1
            else:
                self.tasks_completed += 1

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop accepting tasks and optionally wait for live workers.

        Workers are never interrupted: each finishes its connection on its
        own. Daemon threads still running at interpreter exit are dropped.

        Args:
            wait: Join live workers before returning.
            timeout: Overall limit for the join, in seconds.
        """
        with self._lock:
            if not self._started:
                return
            self._shutdown = True
            self._started = False
            workers = list(self._workers)

        logger.info(f"Shutting down worker group ({len(workers)} live workers)...")

        if wait:
            deadline = time.time() + timeout if timeout is not None else None
            for worker in workers:
                remaining = None
                if deadline is not None:
                    remaining = max(deadline - time.time(), 0)
                worker.join(remaining)

            still_running = self.active_workers
            if still_running:
                logger.warning(f"{still_running} workers still running after shutdown timeout")

        logger.info("Worker group shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def active_workers(self) -> int:
        """Number of live workers."""
        with self._lock:
            return len(self._workers)

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logs and tests."""
        with self._lock:
            return {
                "workers": {
                    "active": len(self._workers),
                    "max": self.max_workers,
                },
                "tasks": {
                    "started": self.tasks_started,
                    "completed": self.tasks_completed,
                    "failed": self.tasks_failed,
                },
            }
