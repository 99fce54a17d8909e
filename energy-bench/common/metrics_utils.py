"""
Shared utilities for benchmark metrics: latency statistics, request rates and energy units.
"""

import pandas as pd
import logging
from typing import Sequence

from configuration import MICROJOULES_PER_JOULE

logger = logging.getLogger(__name__)


def calculate_latency_stats(latencies_ms: Sequence[float]) -> dict:
    """
    Calculate latency statistics (mean and percentiles) from recorded samples.

    This is a shared utility to ensure consistent latency calculations across
    the report and the parquet export.

    Args:
        latencies_ms: Latency samples in milliseconds

    Returns:
        Dictionary with avg, p50, p95, p99 latency statistics
    """
    if len(latencies_ms) == 0:
        return {
            'avg': 0.0,
            'p50': 0.0,
            'p95': 0.0,
            'p99': 0.0
        }

    latencies = pd.Series(latencies_ms, dtype=float)

    return {
        'avg': latencies.mean(),
        'p50': latencies.quantile(0.5),
        'p95': latencies.quantile(0.95),
        'p99': latencies.quantile(0.99)
    }


def calculate_requests_per_second(request_count: int, duration_seconds: float) -> float:
    """
    Calculate requests per second (RPS) from request count and duration.

    Args:
        request_count: Number of requests
        duration_seconds: Duration in seconds

    Returns:
        Requests per second (RPS)
    """
    if duration_seconds <= 0:
        return 0.0
    return request_count / duration_seconds


def micro_joules_to_joules(energy_micro_joules: float) -> float:
    return energy_micro_joules / MICROJOULES_PER_JOULE


def energy_per_request_joules(energy_micro_joules: float, request_count: int) -> float:
    """
    Average net energy attributed to each recorded request, in joules.
    """
    if request_count <= 0:
        return 0.0
    return micro_joules_to_joules(energy_micro_joules) / request_count
