"""
Result values produced by a benchmark run.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from systems.sensors import CpuUsage


@dataclass(frozen=True)
class BaselineRecord:
    """Idle-system energy cost measured over a fixed window."""

    energy_micro_joules: int
    measure_duration_seconds: float


@dataclass(frozen=True)
class Results:
    """Measurements of one scenario run.

    Attributes:
        name: Name of the target that was driven
        latencies_ms: Recorded request latencies, in append order
        total_energy_micro_joules: Energy counter delta over the run (net once
            the baseline is applied)
        total_duration_seconds: Wall clock of the whole run, not a sum of latencies
        cpu_delta: CPU usage between the start and end of the run
        baseline_energy_micro_joules: Baseline energy that was subtracted
        baseline_applied: Whether ``subtract_baseline`` produced this value
    """

    name: str
    latencies_ms: Tuple[float, ...]
    total_energy_micro_joules: int
    total_duration_seconds: float
    cpu_delta: Optional[CpuUsage] = None
    baseline_energy_micro_joules: int = 0
    baseline_duration_seconds: float = 0.0
    baseline_applied: bool = field(default=False)

    @property
    def request_count(self) -> int:
        return len(self.latencies_ms)

    def subtract_baseline(
        self, baseline_energy_micro_joules: int, baseline_duration_seconds: float
    ) -> "Results":
        """Return a copy with the baseline energy removed.

        The baseline is subtracted as measured, without scaling by the ratio of
        run duration to baseline window. The result is not clamped at zero.

        Raises:
            ValueError: If the baseline was already applied to this value
        """
        if self.baseline_applied:
            raise ValueError(f"Baseline already subtracted from results of '{self.name}'")

        return replace(
            self,
            total_energy_micro_joules=self.total_energy_micro_joules - baseline_energy_micro_joules,
            baseline_energy_micro_joules=baseline_energy_micro_joules,
            baseline_duration_seconds=baseline_duration_seconds,
            baseline_applied=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "request_count": self.request_count,
            "total_energy_micro_joules": self.total_energy_micro_joules,
            "total_duration_seconds": self.total_duration_seconds,
            "cpu_utilization": self.cpu_delta.utilization if self.cpu_delta else None,
            "cpu_busy_seconds": self.cpu_delta.busy_seconds if self.cpu_delta else None,
            "baseline_energy_micro_joules": self.baseline_energy_micro_joules,
            "baseline_duration_seconds": self.baseline_duration_seconds,
        }

    def __str__(self) -> str:
        cpu = f"{self.cpu_delta.utilization:.1%}" if self.cpu_delta else "n/a"
        return (
            f"Results(name={self.name}, requests={self.request_count}, "
            f"energy={self.total_energy_micro_joules}uJ, "
            f"duration={self.total_duration_seconds:.3f}s, cpu={cpu})"
        )
