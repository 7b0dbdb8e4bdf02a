"""
=============================================================================
THREAD POOL
=============================================================================

Every accepted connection becomes one task. A pool of worker threads pulls
tasks from a shared queue, so a slow upload or a large download only ties
up the worker serving it.

    accept loop                 task queue (unbounded)              workers
    ───────────               ─────────────────────────       ─────────────────
    conn ──submit()──►  [conn] [conn] [conn] ...  ──get()──►  Worker-0 (busy)
                                                              Worker-1 (idle)
                                                              Worker-2 (busy)
                                                              ...

The queue has no size limit: a burst of connections waits its
turn rather than being refused. Concurrency is bounded by max_workers; the
pool starts with min_workers and adds one whenever every worker is busy and
work is waiting.

Shutdown uses the poison-pill pattern: one None per worker is queued after
the real tasks, and a worker exits when it takes one.

=============================================================================
"""

import threading
import queue
import time
import logging
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
    """A deferred call: func(*args, **kwargs)."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


class Worker(threading.Thread):
    """
    Daemon thread executing tasks until it receives a poison pill.

    A task that raises is logged; the worker keeps running.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"fileserver-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            logger.debug(
                f"Worker {self.worker_id} completed task in "
                f"{time.time() - start_time:.3f}s"
            )
        except Exception as e:
            logger.exception(
                f"Worker {self.worker_id} task failed after "
                f"{time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Pool of worker threads over an unbounded task queue.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        ...
        pool.shutdown()

    Args:
        min_workers: Workers started up front.
        max_workers: Upper bound on concurrently running tasks.
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"Invalid worker bounds: min={min_workers}, max={max_workers}"
            )

        self.min_workers = min_workers
        self.max_workers = max_workers

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._next_worker_id = 0
        self._started = False
        self._shutdown = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    def start(self):
        """Start the minimum number of workers. Idempotent."""
        with self._lock:
            if self._started:
                return
            logger.info(f"Starting thread pool with {self.min_workers} workers")
            for _ in range(self.min_workers):
                self._spawn_worker()
            self._started = True
            self._shutdown = False

    def _spawn_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._task_queue, self._next_worker_id)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None):
        """
        Queue a call for execution. Never blocks.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self.is_running:
            raise RuntimeError("Thread pool is not running")

        self._task_queue.put(Task(func=func, args=args, kwargs=kwargs or {}))
        self._maybe_scale_up()

    def _maybe_scale_up(self):
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if self.busy_workers < len(self._workers):
                return
            if self._task_queue.qsize() == 0:
                return
            logger.debug(
                f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
            )
            self._spawn_worker()

    def shutdown(self, timeout: Optional[float] = None):
        """
        Stop the pool once queued tasks have run.

        Args:
            timeout: Per-worker join timeout in seconds (None = no limit).
        """
        with self._lock:
            if not self._started:
                return
            self._shutdown = True
            workers = list(self._workers)

        logger.info("Shutting down thread pool...")

        for _ in workers:
            self._task_queue.put(None)

        for worker in workers:
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning(f"Worker {worker.worker_id} did not stop in time")

        with self._lock:
            self._workers.clear()
            self._started = False

        logger.info("Thread pool shutdown complete")
