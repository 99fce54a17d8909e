"""
Fake systems shared by the tests.
"""

import itertools
import threading
import time
from contextlib import contextmanager
from typing import Iterable, List, Optional

from systems.base import RequestMaker, ScopedProcess
from systems.sensors import EnergySensor


class FakeRequestMaker(RequestMaker):
    """Sleeps for a fixed latency and reports it; optionally fails on the Nth call."""

    def __init__(self, latency_seconds: float = 0.01, fail_on: Optional[int] = None,
                 energy_readings: Optional[Iterable[int]] = None):
        self.latency_seconds = latency_seconds
        self.fail_on = fail_on
        self.calls = 0
        self.closed = 0
        self.started_at: List[float] = []
        self._energy = iter(energy_readings) if energy_readings is not None else itertools.count(0, 1000)
        self._lock = threading.Lock()

    def make_request(self) -> float:
        with self._lock:
            self.calls += 1
            call = self.calls
            self.started_at.append(time.monotonic())
        if self.fail_on is not None and call == self.fail_on:
            raise ConnectionError(f"request {call} refused")
        time.sleep(self.latency_seconds)
        return self.latency_seconds * 1000

    def energy_measure_micro_joules(self) -> int:
        with self._lock:
            return next(self._energy)

    def close(self) -> None:
        self.closed += 1


class FakeProcess(ScopedProcess):
    """Records start/stop events into a shared list."""

    def __init__(self, name: str, events: List[str], fail_start: bool = False):
        super().__init__(name, url=f"http://{name}.test")
        self.events = events
        self.fail_start = fail_start

    @contextmanager
    def start(self):
        if self.fail_start:
            raise RuntimeError(f"{self.name} failed to start")
        self.events.append(f"start:{self.name}")
        try:
            yield self
        finally:
            self.events.append(f"stop:{self.name}")


class SequenceEnergySensor(EnergySensor):
    """Returns the given readings in order."""

    def __init__(self, readings: Iterable[int]):
        self._readings = iter(readings)
        self.reads = 0

    def read_micro_joules(self) -> int:
        self.reads += 1
        return next(self._readings)
