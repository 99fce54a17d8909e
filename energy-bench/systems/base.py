"""
Base classes for the systems a benchmark drives.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import ContextManager, Iterator, Optional


class RequestMaker(ABC):
    """Performs single requests against a running target.

    One instance is shared by every client of a run, so implementations must
    tolerate concurrent calls to ``make_request``.
    """

    @abstractmethod
    def make_request(self) -> float:
        """Perform one request and return its latency in milliseconds.

        Any failure must be raised; it aborts the run.
        """

    @abstractmethod
    def energy_measure_micro_joules(self) -> int:
        """Read the cumulative energy counter in microjoules."""

    def close(self) -> None:
        """Release connections held by the maker. Called once its run has ended."""


class ScopedProcess(ABC):
    """A server or auxiliary process with a scoped start/stop lifecycle."""

    def __init__(self, name: str, url: Optional[str] = None):
        self.name = name
        self.url = url

    @abstractmethod
    def start(self) -> ContextManager["ScopedProcess"]:
        """Start the process; leaving the returned context stops it."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}')"


class NullProcess(ScopedProcess):
    """Auxiliary process placeholder that starts and stops nothing."""

    def __init__(self, name: str = "none", url: Optional[str] = None):
        super().__init__(name, url)

    @contextmanager
    def start(self) -> Iterator["NullProcess"]:
        yield self
