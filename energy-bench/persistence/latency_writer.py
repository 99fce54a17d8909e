"""
Per-scenario text output of recorded latencies.
"""

import logging
import os
import threading
from typing import Optional, TextIO

from common.run_config import RunConfig

logger = logging.getLogger(__name__)


def latency_file_name(config: RunConfig) -> str:
    """File name encoding target, duration, client count and rate."""
    return f"{config.scenario_name}.txt"


class LatencyWriter:
    """Writes one integer-millisecond line per recorded sample.

    Every worker of a run writes through the same instance; writes are
    serialized so lines never interleave.
    """

    def __init__(self, path: str):
        """Open the output file, creating its directory if needed.

        Args:
            path: File to write
        """
        self.path = path
        self.lines_written = 0
        self._lock = threading.Lock()

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._file: Optional[TextIO] = open(path, "w")

        logger.info(f"Writing latencies to {path}")

    @classmethod
    def for_scenario(cls, output_dir: str, config: RunConfig) -> "LatencyWriter":
        return cls(os.path.join(output_dir, latency_file_name(config)))

    def write_latency(self, latency_ms: float) -> None:
        """Append one sample, truncated to whole milliseconds.

        Raises:
            OSError: If the write fails
            ValueError: If the writer is closed
        """
        with self._lock:
            if self._file is None:
                raise ValueError(f"Latency writer for {self.path} is closed")
            self._file.write(f"{int(latency_ms)}\n")
            self.lines_written += 1

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
                logger.debug(f"Closed {self.path} after {self.lines_written} lines")

    def __enter__(self) -> "LatencyWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
