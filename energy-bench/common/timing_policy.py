"""
Timing disciplines for recurring client ticks.

Both policies answer one question: once an attempt has finished, when is the
next one due?
"""

import logging
from typing import Dict

logger = logging.getLogger(__name__)


class TimingPolicy:
    """Strategy deciding the due time of the next tick."""

    name: str = ""

    def next_run(self, scheduled_at: float, finished_at: float, period: float) -> float:
        """Return the monotonic due time of the next tick.

        Args:
            scheduled_at: When the finished attempt was due to start
            finished_at: When the finished attempt completed
            period: Tick period in seconds
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FixedDelay(TimingPolicy):
    """Next tick is due ``period`` after the previous attempt completes.

    A slow response pushes back the following attempt, so throughput
    degrades gracefully under load.
    """

    name = "fixed-delay"

    def next_run(self, scheduled_at: float, finished_at: float, period: float) -> float:
        return finished_at + period


class FixedRate(TimingPolicy):
    """Next tick is due ``period`` after the previous tick's scheduled start.

    Due times never drift with response time. When an attempt overruns, the
    next due time is already in the past and fires immediately, so attempts
    bunch up until the schedule catches up.
    """

    name = "fixed-rate"

    def next_run(self, scheduled_at: float, finished_at: float, period: float) -> float:
        return scheduled_at + period


FIXED_DELAY = FixedDelay()
FIXED_RATE = FixedRate()

TIMING_POLICIES: Dict[str, TimingPolicy] = {
    FIXED_DELAY.name: FIXED_DELAY,
    FIXED_RATE.name: FIXED_RATE,
}


def get_timing_policy(name: str) -> TimingPolicy:
    """Look up a timing policy by name.

    Raises:
        ValueError: If the name is not a known policy
    """
    try:
        return TIMING_POLICIES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported timing policy: {name}. Must be one of {sorted(TIMING_POLICIES)}."
        ) from None
