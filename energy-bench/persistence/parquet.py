"""
Parquet persistence for benchmark results.
"""

import os
import logging
from typing import Mapping, Optional
from datetime import datetime

import pandas as pd

from configuration import DEFAULT_OUTPUT_DIR, RESULTS_TIMESTAMP_FORMAT
from persistence.results import Results

logger = logging.getLogger(__name__)


class ParquetPersistence:
    """Parquet file persistence for the latency samples of a sweep.

    Attributes:
        output_dir: Directory where Parquet files will be saved
    """

    def __init__(self, output_dir: str = DEFAULT_OUTPUT_DIR):
        """Initialize Parquet persistence.

        Args:
            output_dir: Directory for saving Parquet files (default: 'results')
        """
        self.output_dir: str = output_dir

    @staticmethod
    def to_dataframe(results: Mapping[str, Results]) -> pd.DataFrame:
        """Flatten results into one row per latency sample."""
        data = []
        for scenario, r in results.items():
            for seq, latency_ms in enumerate(r.latencies_ms):
                data.append({
                    'scenario': scenario,
                    'target': r.name,
                    'seq': seq,
                    'latency_ms': latency_ms,
                    'net_energy_uj': r.total_energy_micro_joules,
                    'baseline_energy_uj': r.baseline_energy_micro_joules,
                    'duration_s': r.total_duration_seconds,
                    'cpu_utilization': r.cpu_delta.utilization if r.cpu_delta else None,
                })

        return pd.DataFrame(data, columns=[
            'scenario', 'target', 'seq', 'latency_ms', 'net_energy_uj',
            'baseline_energy_uj', 'duration_s', 'cpu_utilization',
        ])

    def save_results(self, results: Mapping[str, Results], filename_prefix: str = "benchmark") -> Optional[str]:
        """Save all samples to a Parquet file.

        Args:
            results: Results keyed by scenario name
            filename_prefix: Prefix for the generated filename (default: 'benchmark')

        Returns:
            Path to the saved file, or None if there is nothing to save
        """
        df = self.to_dataframe(results)
        if df.empty:
            return None

        os.makedirs(self.output_dir, exist_ok=True)
        timestamp = datetime.now().strftime(RESULTS_TIMESTAMP_FORMAT)
        filepath = os.path.join(self.output_dir, f"{filename_prefix}_{timestamp}.parquet")

        logger.info(f"Saving {len(df)} samples to {filepath}")
        df.to_parquet(filepath, index=False)

        return filepath
