"""
Rate-controlled scheduler driving a population of logical clients.

Each logical client is a recurring task issuing one request per tick through a
shared RequestMaker. All clients observe one deadline; the run ends with a
two-phase shutdown: cancel every future tick, then wait for in-flight attempts
to drain.
"""

import logging
import threading
import time
from concurrent.futures import CancelledError, Future
from functools import partial
from typing import Callable, List, Optional

from configuration import MAX_THREADS, MILLISECONDS_PER_SECOND, WORKER_THREAD_PREFIX
from common.exceptions import OutputWriteError, RequestFailedError
from common.run_config import RunConfig
from common.scheduled_pool import RecurringTask, ScheduledPool
from common.timing_policy import FIXED_DELAY, TimingPolicy
from persistence.latency_writer import LatencyWriter
from persistence.metrics_aggregator import ResultsAggregator
from systems.base import RequestMaker

logger = logging.getLogger(__name__)


def worker_pool_size(number_of_clients: int, requests_per_second: float, max_threads: int = MAX_THREADS) -> int:
    """Number of OS threads executing the ticks of a run.

    ``min(max_threads, min(clients, clients * rate))``, never below one.
    """
    min_threads = int(min(number_of_clients, number_of_clients * requests_per_second))
    return max(1, min(max_threads, min_threads))


def request_period_ms(requests_per_second: float) -> int:
    """Tick period of one client in whole milliseconds.

    Raises:
        ValueError: If the rate is too high for a millisecond period
    """
    period_ms = int(MILLISECONDS_PER_SECOND / requests_per_second)
    if period_ms < 1:
        raise ValueError(
            f"requests_per_second={requests_per_second} gives a period below 1 ms"
        )
    return period_ms


class RateScheduler:
    """Runs one scenario's clients until the deadline and collects their samples."""

    def __init__(
        self,
        request_maker: RequestMaker,
        policy: TimingPolicy = FIXED_DELAY,
        max_threads: int = MAX_THREADS,
        exporter=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the scheduler.

        Args:
            request_maker: Shared request maker used by every client
            policy: Timing policy for client ticks
            max_threads: Upper bound on worker threads
            exporter: Optional SimplePrometheusExporter fed with recorded samples
            clock: Monotonic clock used for the deadline checks
        """
        self.request_maker = request_maker
        self.policy = policy
        self.max_threads = max_threads
        self.exporter = exporter
        self.clock = clock

    def run(
        self,
        config: RunConfig,
        aggregator: ResultsAggregator,
        writer: Optional[LatencyWriter] = None,
    ) -> None:
        """Drive ``config.number_of_clients`` clients for ``config.test_duration_seconds``.

        Samples of attempts that started and completed before the deadline are
        appended to ``aggregator`` (and ``writer``). Returns once every client
        has stopped.

        Raises:
            RequestFailedError: If a request failed; all clients are stopped first
            OutputWriteError: If a sample could not be written to ``writer``
        """
        pool_size = worker_pool_size(config.number_of_clients, config.requests_per_second, self.max_threads)
        period_ms = request_period_ms(config.requests_per_second)
        period = period_ms / MILLISECONDS_PER_SECOND

        logger.info(
            f"Scheduling {config.number_of_clients} clients on {pool_size} threads: "
            f"{self.policy.name}, period={period_ms}ms"
        )

        abort = threading.Event()
        deadline = self.clock() + config.test_duration_seconds
        attempt = partial(self._attempt, config.target_name, deadline, aggregator, writer)

        def on_task_done(future: Future) -> None:
            if not future.cancelled() and future.exception() is not None:
                abort.set()

        with ScheduledPool(pool_size, thread_name_prefix=WORKER_THREAD_PREFIX) as pool:
            tasks: List[RecurringTask] = []
            for _ in range(config.number_of_clients):
                task = pool.schedule(attempt, period, self.policy)
                task.add_done_callback(on_task_done)
                tasks.append(task)

            if abort.wait(config.test_duration_seconds):
                logger.warning(f"Aborting run of {config.target_name}: an attempt failed")

            for task in tasks:
                task.cancel()

            failure = None
            for task in tasks:
                try:
                    task.result()
                except CancelledError:
                    pass
                except Exception as e:
                    if failure is None:
                        failure = e

        if failure is not None:
            raise failure

        logger.info(f"All {config.number_of_clients} clients of {config.target_name} stopped")

    def _attempt(
        self,
        target_name: str,
        deadline: float,
        aggregator: ResultsAggregator,
        writer: Optional[LatencyWriter],
    ) -> None:
        """One tick of one client."""
        if self.clock() > deadline:
            return

        try:
            latency_ms = self.request_maker.make_request()
        except Exception as e:
            raise RequestFailedError(target_name, e) from e

        # completion after the deadline: the sample is not part of the run
        if self.clock() > deadline:
            logger.debug(f"Discarding {latency_ms:.1f}ms sample completed after deadline")
            return

        aggregator.record_latency(latency_ms)
        if writer is not None:
            try:
                writer.write_latency(latency_ms)
            except OSError as e:
                raise OutputWriteError(writer.path, e) from e
        if self.exporter is not None:
            self.exporter.record_request(target_name, latency_ms)
