"""
CPU and energy sensors.

CPU usage comes from psutil's system-wide CPU times; energy comes from the
cumulative RAPL package counter exposed by the Linux powercap driver.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import psutil

from configuration import RAPL_ENERGY_PATH
from common.exceptions import SensorError

logger = logging.getLogger(__name__)

# CPU time fields that count as waiting rather than working
_IDLE_FIELDS = ("idle", "iowait")


@dataclass(frozen=True)
class CpuUsage:
    """CPU time spent between two snapshots, summed over all cores."""

    busy_seconds: float
    total_seconds: float

    @property
    def utilization(self) -> float:
        """Fraction of available CPU time spent busy."""
        if self.total_seconds <= 0:
            return 0.0
        return self.busy_seconds / self.total_seconds


@dataclass(frozen=True)
class CpuSnapshot:
    """Point-in-time reading of cumulative CPU times."""

    times: Dict[str, float]

    @classmethod
    def take(cls) -> "CpuSnapshot":
        """Read the current system-wide CPU times.

        Raises:
            SensorError: If psutil cannot read CPU times
        """
        try:
            times = psutil.cpu_times()
        except (OSError, psutil.Error) as e:
            raise SensorError(f"Failed to read CPU times: {e}") from e
        return cls(times=dict(times._asdict()))

    @property
    def total(self) -> float:
        # guest time is already included in user time on Linux
        return sum(v for k, v in self.times.items() if not k.startswith("guest"))

    @property
    def idle(self) -> float:
        return sum(self.times.get(k, 0.0) for k in _IDLE_FIELDS)

    def diff_from(self, earlier: "CpuSnapshot") -> CpuUsage:
        """Return the CPU usage accumulated since ``earlier``."""
        total = self.total - earlier.total
        idle = self.idle - earlier.idle
        return CpuUsage(busy_seconds=max(total - idle, 0.0), total_seconds=total)


def cpu_snapshot() -> CpuSnapshot:
    return CpuSnapshot.take()


class EnergySensor:
    """Cumulative energy counter in microjoules."""

    def read_micro_joules(self) -> int:
        raise NotImplementedError


class RaplEnergySensor(EnergySensor):
    """Reads the RAPL package energy counter from sysfs."""

    def __init__(self, path: Optional[str] = None):
        """Initialize the sensor.

        Args:
            path: Path of the ``energy_uj`` file (default: from configuration)
        """
        self.path = Path(path or RAPL_ENERGY_PATH)
        logger.debug(f"Initialized RAPL energy sensor at {self.path}")

    def read_micro_joules(self) -> int:
        """Read the counter.

        Raises:
            SensorError: If the counter is missing, unreadable or malformed
        """
        try:
            return int(self.path.read_text().strip())
        except (OSError, ValueError) as e:
            raise SensorError(f"Failed to read energy counter {self.path}: {e}") from e
