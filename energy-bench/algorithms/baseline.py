"""
Idle-system baseline measurement.
"""

import logging
import threading
import time
from typing import Callable, Optional

from configuration import BASELINE_MEASURE_SECONDS
from persistence.results import BaselineRecord
from systems.sensors import EnergySensor, cpu_snapshot

logger = logging.getLogger(__name__)


class BaselineMeasurement:
    """Measures the idle energy cost once and reuses it for every run.

    The record is created on the first call to ``measure_baseline`` and never
    invalidated afterwards.
    """

    def __init__(
        self,
        energy_sensor: Optional[EnergySensor],
        window_seconds: float = BASELINE_MEASURE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        record: Optional[BaselineRecord] = None,
    ):
        """Initialize the measurement.

        Args:
            energy_sensor: Cumulative energy counter
            window_seconds: Idle window to measure over
            sleep: Function used to idle
            clock: Monotonic clock timing the window
            record: Pre-measured baseline; skips measuring entirely
        """
        self.energy_sensor = energy_sensor
        self.window_seconds = window_seconds
        self._sleep = sleep
        self._clock = clock
        self._record = record
        self._lock = threading.Lock()

    @classmethod
    def from_record(cls, record: BaselineRecord) -> "BaselineMeasurement":
        """Use a baseline measured elsewhere."""
        return cls(energy_sensor=None, record=record)

    @classmethod
    def disabled(cls) -> "BaselineMeasurement":
        """A zero baseline: results keep their raw energy."""
        return cls.from_record(BaselineRecord(energy_micro_joules=0, measure_duration_seconds=0.0))

    @property
    def record(self) -> Optional[BaselineRecord]:
        return self._record

    @property
    def is_measured(self) -> bool:
        return self._record is not None

    def measure_baseline(self) -> BaselineRecord:
        """Measure the baseline unless it is already known.

        Raises:
            SensorError: If a sensor cannot be read
        """
        with self._lock:
            if self._record is not None:
                return self._record

            logger.info(f"Measuring idle baseline for {self.window_seconds:.1f}s...")
            snap = cpu_snapshot()
            start_energy = self.energy_sensor.read_micro_joules()
            start = self._clock()

            self._sleep(self.window_seconds)

            energy = self.energy_sensor.read_micro_joules() - start_energy
            duration = self._clock() - start
            cpu = cpu_snapshot().diff_from(snap)

            self._record = BaselineRecord(energy_micro_joules=energy, measure_duration_seconds=duration)
            logger.info(
                f"Baseline: {energy}uJ over {duration:.2f}s (idle cpu {cpu.utilization:.1%})"
            )
            return self._record
