"""
Thread-safe collection of latency samples for one run.
"""

import threading
import logging
from typing import List, Optional, Tuple

from persistence.results import Results
from systems.sensors import CpuUsage

logger = logging.getLogger(__name__)


class ResultsAggregator:
    """Collects latency samples from concurrent workers and builds Results."""

    def __init__(self):
        """Initialize an empty aggregator."""
        self._latencies_ms: List[float] = []
        self._lock = threading.Lock()

    def record_latency(self, latency_ms: float) -> None:
        """Append a latency sample.

        Args:
            latency_ms: Round-trip duration of one request
        """
        with self._lock:
            self._latencies_ms.append(latency_ms)

    def latencies(self) -> Tuple[float, ...]:
        """Return a snapshot of the samples recorded so far, in append order."""
        with self._lock:
            return tuple(self._latencies_ms)

    def __len__(self) -> int:
        with self._lock:
            return len(self._latencies_ms)

    def build_results(
        self,
        name: str,
        total_energy_micro_joules: int,
        total_duration_seconds: float,
        cpu_delta: Optional[CpuUsage] = None,
    ) -> Results:
        """Build the raw (pre-baseline) Results of the run.

        Call after every writer has stopped.

        Args:
            name: Target name
            total_energy_micro_joules: Energy counter delta over the run
            total_duration_seconds: Wall clock of the run
            cpu_delta: CPU usage over the run
        """
        results = Results(
            name=name,
            latencies_ms=self.latencies(),
            total_energy_micro_joules=total_energy_micro_joules,
            total_duration_seconds=total_duration_seconds,
            cpu_delta=cpu_delta,
        )
        logger.debug(f"Built results for {name}: {results.request_count} samples")
        return results
