"""
Bounded thread pool running recurring tasks on a timer.

Architecture:
- One dispatcher thread keeps a heap of due ticks and hands each due tick to a
  ThreadPoolExecutor capped at ``max_workers`` threads
- A task is re-queued only after its current attempt finishes, so a task never
  has two attempts in flight
- Tasks beyond the thread count queue on the executor and share its threads
"""

import heapq
import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from common.timing_policy import TimingPolicy

logger = logging.getLogger(__name__)


class RecurringTask:
    """Handle of a recurring task scheduled on a ScheduledPool.

    The handle is backed by a Future that never completes normally: it ends
    cancelled after ``cancel()`` or with the exception of a failed attempt.
    """

    def __init__(
        self,
        pool: "ScheduledPool",
        fn: Callable[[], None],
        period: float,
        policy: TimingPolicy,
        first_run_at: float,
    ):
        self._pool = pool
        self._fn = fn
        self.period = period
        self.policy = policy
        self.scheduled_at = first_run_at
        self.attempts = 0

        self._future: Future = Future()
        self._lock = threading.Lock()
        self._cancel_requested = False
        self._in_flight = False

    def cancel(self) -> bool:
        """Stop future ticks without interrupting an attempt in flight.

        Returns:
            True if the task was running or pending, False if it had already ended
        """
        with self._lock:
            if self._future.done():
                return False
            self._cancel_requested = True
            if not self._in_flight:
                self._future.cancel()
            return True

    def cancelled(self) -> bool:
        return self._future.cancelled()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> None:
        """Wait until the task has ended.

        Raises:
            concurrent.futures.CancelledError: If the task ended by cancellation
            Exception: The exception raised by a failed attempt
        """
        return self._future.result(timeout)

    def add_done_callback(self, fn: Callable[[Future], None]) -> None:
        self._future.add_done_callback(fn)

    def _run(self) -> None:
        """Execute one attempt, then hand the task back to the pool."""
        with self._lock:
            if self._cancel_requested or self._future.done():
                return
            self._in_flight = True

        try:
            self._fn()
        except Exception as e:
            with self._lock:
                self._in_flight = False
                self._future.set_exception(e)
            logger.debug(f"Recurring task failed after {self.attempts} attempts: {e!r}")
            return

        finished_at = time.monotonic()
        with self._lock:
            self._in_flight = False
            self.attempts += 1
            if self._cancel_requested:
                self._future.cancel()
                return
            self.scheduled_at = self.policy.next_run(self.scheduled_at, finished_at, self.period)

        self._pool._enqueue(self)


class ScheduledPool:
    """Thread pool executing RecurringTasks under a timing policy."""

    def __init__(self, max_workers: int, thread_name_prefix: str = "scheduled"):
        """Initialize the pool.

        Args:
            max_workers: Number of executor threads
            thread_name_prefix: Prefix for executor and dispatcher thread names
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")

        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._heap: List[Tuple[float, int, RecurringTask]] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()
        self._shutdown = False
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop, name=f"{thread_name_prefix}-dispatcher", daemon=True
        )
        self._dispatcher.start()

        logger.debug(f"Initialized ScheduledPool with {max_workers} workers")

    def schedule(
        self,
        fn: Callable[[], None],
        period: float,
        policy: TimingPolicy,
        initial_delay: float = 0.0,
    ) -> RecurringTask:
        """Schedule ``fn`` to run every ``period`` seconds under ``policy``.

        Args:
            fn: Attempt to execute on each tick
            period: Tick period in seconds
            policy: Timing policy deciding the next due time
            initial_delay: Delay before the first tick
        """
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")

        task = RecurringTask(self, fn, period, policy, time.monotonic() + initial_delay)
        self._enqueue(task)
        return task

    def _enqueue(self, task: RecurringTask) -> None:
        with self._condition:
            if self._shutdown:
                return
            heapq.heappush(self._heap, (task.scheduled_at, next(self._sequence), task))
            self._condition.notify()

    def _dispatch_loop(self) -> None:
        with self._condition:
            while not self._shutdown:
                if not self._heap:
                    self._condition.wait()
                    continue

                due_at, _, task = self._heap[0]
                delay = due_at - time.monotonic()
                if delay > 0:
                    self._condition.wait(delay)
                    continue

                heapq.heappop(self._heap)
                if task.done():
                    continue
                self._executor.submit(task._run)

    def shutdown(self, wait: bool = True) -> None:
        """Stop dispatching ticks and release the executor threads."""
        with self._condition:
            if self._shutdown:
                return
            self._shutdown = True
            self._heap.clear()
            self._condition.notify_all()

        self._dispatcher.join()
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("ScheduledPool shut down")

    def __enter__(self) -> "ScheduledPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
