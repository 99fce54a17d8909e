"""
Combined textual report of a sweep.
"""

import logging
from typing import Mapping

import pandas as pd

from common.metrics_utils import (
    calculate_latency_stats,
    calculate_requests_per_second,
    energy_per_request_joules,
    micro_joules_to_joules,
)
from persistence.results import Results

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    'scenario', 'target', 'requests', 'rps', 'avg_latency_ms', 'p50_latency_ms',
    'p95_latency_ms', 'p99_latency_ms', 'net_energy_j', 'energy_per_request_j',
    'duration_s', 'cpu_utilization',
]


def summarize_results(results: Mapping[str, Results]) -> pd.DataFrame:
    """Build one summary row per scenario.

    Args:
        results: Results keyed by scenario name, in run order

    Returns:
        DataFrame with REPORT_COLUMNS
    """
    rows = []
    for scenario, r in results.items():
        stats = calculate_latency_stats(r.latencies_ms)
        rows.append({
            'scenario': scenario,
            'target': r.name,
            'requests': r.request_count,
            'rps': calculate_requests_per_second(r.request_count, r.total_duration_seconds),
            'avg_latency_ms': stats['avg'],
            'p50_latency_ms': stats['p50'],
            'p95_latency_ms': stats['p95'],
            'p99_latency_ms': stats['p99'],
            'net_energy_j': micro_joules_to_joules(r.total_energy_micro_joules),
            'energy_per_request_j': energy_per_request_joules(r.total_energy_micro_joules, r.request_count),
            'duration_s': r.total_duration_seconds,
            'cpu_utilization': r.cpu_delta.utilization if r.cpu_delta else float('nan'),
        })

    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def format_report(summary: pd.DataFrame) -> str:
    """Render a summary DataFrame as a fixed-width text table."""
    if summary.empty:
        return "No results"
    return summary.to_string(index=False, float_format=lambda v: f"{v:.3f}")
