"""
=============================================================================
WORKER THREAD POOL
=============================================================================

The accept loop must never block on a slow request, so each accepted
connection is handed to a pool of worker threads through a bounded queue.

    ┌────────────┐  submit()  ┌───────────────────────┐   get()   ┌──────────┐
    │ accept loop│ ─────────► │ queue.Queue(maxsize)  │ ────────► │ Worker 0 │
    └────────────┘            │  task task task ...   │ ────────► │ Worker 1 │
         │                    └───────────────────────┘ ────────► │ Worker N │
         │ queue full → submit() returns False                    └──────────┘
         ▼
    caller answers 503 Service Unavailable

Workers start at min_workers and grow up to max_workers when every worker
is busy and tasks are waiting. Shutdown puts one None ("poison pill") on
the queue per worker.

Handler failures (including the database work behind a request) are
caught and logged inside the worker so one bad request can't kill a thread.

A task still queued after its timeout is not run. Its on_timeout callback
gets the same arguments instead (the server uses it to answer 503 and close
the connection).

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None
    """Drop the task if it waited in the queue longer than this."""
    on_timeout: Optional[Callable[..., Any]] = None
    """Called with the task's arguments instead of func when it is dropped."""
    submitted_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):
    """Pulls tasks off the shared queue until it receives a poison pill."""

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int, idle_timeout: float = 60.0):
        super().__init__(name=f"todoapi-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0
        self._shutdown = threading.Event()

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task) -> None:
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            waited = start_time - task.submitted_at
            if task.timeout and waited > task.timeout:
                logger.warning(f"Task dropped after waiting {waited:.2f}s (timeout {task.timeout}s)")
                if task.on_timeout is not None:
                    task.on_timeout(*task.args, **task.kwargs)
                self.tasks_failed += 1
                return

            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(f"Worker {self.worker_id} completed task in {time.monotonic() - start_time:.3f}s")

        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed after {time.monotonic() - start_time:.3f}s: {e}")

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self) -> None:
        self._shutdown.set()


class ThreadPool:
    """
    A bounded worker pool.

    Args:
        min_workers: Threads started by start().
        max_workers: Upper bound when scaling up under load.
        queue_size: Pending-task capacity; submit() fails beyond it.
        idle_timeout: How often idle workers wake to check for shutdown.
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0,
    ):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError("Need 1 <= min_workers <= max_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self) -> None:
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        for _ in range(self.min_workers):
            self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        with self._lock:
            return self._add_worker_locked()

    def _add_worker_locked(self) -> Worker:
        if len(self._workers) >= self.max_workers:
            raise RuntimeError("Maximum workers reached")

        worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        on_timeout: Optional[Callable[..., Any]] = None,
    ) -> bool:
        """
        Queue `func(*args, **kwargs)` without blocking.

        A task still queued after `timeout` seconds is not run; a worker
        calls `on_timeout(*args, **kwargs)` instead so the caller can
        release whatever the task owned.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {}, timeout=timeout, on_timeout=on_timeout)
        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self) -> None:
        with self._lock:
            all_busy = all(w.state == WorkerState.BUSY for w in self._workers)
            if all_busy and len(self._workers) < self.max_workers and self._task_queue.qsize() > 0:
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker_locked()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop all workers.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound on that wait; afterwards workers are told to stop.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.monotonic() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)

        for _ in self._workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break

        for worker in self._workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def active_workers(self) -> int:
        return sum(1 for w in self._workers if w.state != WorkerState.STOPPED)

    def stats(self) -> Dict[str, int]:
        return {
            "workers": len(self._workers),
            "busy": sum(1 for w in self._workers if w.state == WorkerState.BUSY),
            "queued": self._task_queue.qsize(),
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
