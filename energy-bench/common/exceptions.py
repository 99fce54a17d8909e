"""
Exception hierarchy for the energy benchmark.
"""


class BenchmarkError(Exception):
    """Base class for benchmark failures."""


class RequestFailedError(BenchmarkError):
    """A request attempt failed; the whole run is aborted.

    The underlying exception is chained as ``__cause__``.
    """

    def __init__(self, target_name: str, cause: BaseException):
        self.target_name = target_name
        self.cause = cause
        super().__init__(f"Request against '{target_name}' failed: {cause!r}")


class OutputWriteError(BenchmarkError):
    """A recorded sample could not be written to the run's output file.

    The underlying I/O error is chained as ``__cause__``.
    """

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Writing latencies to '{path}' failed: {cause!r}")


class SensorError(BenchmarkError):
    """A CPU or energy sensor could not be read."""


class ProcessStartError(BenchmarkError):
    """A scoped process failed to start or never became ready."""


class UnknownTargetError(BenchmarkError, KeyError):
    """No configured variation matches the requested target name."""

    def __init__(self, target_name: str):
        self.target_name = target_name
        super().__init__(target_name)

    def __str__(self) -> str:
        return f"Unknown target: {self.target_name}"
