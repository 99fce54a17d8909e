"""
Benchmark orchestration: one scenario at a time, with baseline normalization.
"""

import os
import logging
import time
from collections import OrderedDict
from contextlib import ExitStack
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from configuration import (
    DEFAULT_OUTPUT_DIR,
    MAX_THREADS,
    REPORT_FILENAME,
    RESULTS_TIMESTAMP_FORMAT,
)
from algorithms.baseline import BaselineMeasurement
from common.exceptions import UnknownTargetError
from common.rate_scheduler import RateScheduler
from common.run_config import RunConfig
from common.timing_policy import FIXED_DELAY, TimingPolicy
from persistence.latency_writer import LatencyWriter
from persistence.metrics_aggregator import ResultsAggregator
from persistence.parquet import ParquetPersistence
from persistence.report import format_report, summarize_results
from persistence.results import Results
from systems.base import NullProcess, RequestMaker, ScopedProcess
from systems.sensors import CpuSnapshot, cpu_snapshot

logger = logging.getLogger(__name__)


class BenchmarkRunner:
    """Runs scenarios against a set of server variations.

    Scenarios never overlap: each one gets the whole thread cap, and the
    target and database processes only live for the span of their scenario.
    """

    def __init__(
        self,
        variations: Sequence[ScopedProcess],
        request_maker_factory: Callable[[ScopedProcess], RequestMaker],
        baseline: BaselineMeasurement,
        policy: TimingPolicy = FIXED_DELAY,
        database_process: Optional[ScopedProcess] = None,
        write_results: bool = False,
        output_dir: str = DEFAULT_OUTPUT_DIR,
        max_threads: int = MAX_THREADS,
        exporter=None,
        cpu_snapshot_fn: Callable[[], CpuSnapshot] = cpu_snapshot,
    ):
        """Initialize the runner.

        Args:
            variations: Server processes selectable by name
            request_maker_factory: Builds the request maker bound to a started process
            baseline: Baseline service, measured lazily on the first run
            policy: Timing policy of every client
            database_process: Auxiliary process started around each run
            write_results: Write per-scenario latency files, the report and a parquet file
            output_dir: Root directory for written results
            max_threads: Upper bound on scheduler threads
            exporter: Optional SimplePrometheusExporter
            cpu_snapshot_fn: CPU sensor
        """
        self.variations = list(variations)
        self.request_maker_factory = request_maker_factory
        self.baseline = baseline
        self.policy = policy
        self.database_process = database_process or NullProcess()
        self.write_results = write_results
        self.max_threads = max_threads
        self.exporter = exporter
        self.cpu_snapshot_fn = cpu_snapshot_fn

        timestamp = datetime.now().strftime(RESULTS_TIMESTAMP_FORMAT)
        self.base_folder = os.path.join(output_dir, f"{policy.name}-{timestamp}")

        logger.info(
            f"Initialized benchmark runner: {len(self.variations)} variations, "
            f"policy={policy.name}, write_results={write_results}"
        )

    def get_variation(self, target_name: str) -> ScopedProcess:
        for process in self.variations:
            if process.name == target_name:
                return process
        raise UnknownTargetError(target_name)

    def run(self, config: RunConfig) -> Results:
        """Run one scenario against the variation named by ``config.target_name``.

        Raises:
            UnknownTargetError: If no variation has that name
            RequestFailedError: If any request attempt failed
            OutputWriteError: If a sample could not be written to the latency file
        """
        return self.run_process(self.get_variation(config.target_name), config)

    def run_process(self, process: ScopedProcess, config: RunConfig) -> Results:
        """Run one scenario against ``process`` and return baseline-adjusted Results.

        The processes and the output file are released on every exit path.
        """
        baseline = self.baseline.measure_baseline()

        logger.info(
            f"Starting {process.name} with {config.number_of_clients} clients and "
            f"{config.requests_per_second:.2f} reqs/sec for {config.test_duration_seconds:.0f}s. "
            f"Expected requests: {config.expected_request_count:.2f}"
        )

        with ExitStack() as stack:
            stack.enter_context(self.database_process.start())
            stack.enter_context(process.start())

            writer = None
            if self.write_results:
                writer = stack.enter_context(LatencyWriter.for_scenario(self.base_folder, config))

            maker = self.request_maker_factory(process)
            stack.callback(maker.close)
            scheduler = RateScheduler(
                maker, policy=self.policy, max_threads=self.max_threads, exporter=self.exporter
            )
            aggregator = ResultsAggregator()
            if self.exporter is not None:
                self.exporter.update_run(process.name, config.number_of_clients, config.requests_per_second)

            snap = self.cpu_snapshot_fn()
            start_energy = maker.energy_measure_micro_joules()
            t0 = time.monotonic()

            scheduler.run(config, aggregator, writer)

            total_energy = maker.energy_measure_micro_joules() - start_energy
            total_time = time.monotonic() - t0
            cpu_delta = self.cpu_snapshot_fn().diff_from(snap)

        results = aggregator.build_results(
            process.name, total_energy, total_time, cpu_delta
        ).subtract_baseline(baseline.energy_micro_joules, baseline.measure_duration_seconds)

        if self.exporter is not None:
            self.exporter.update_energy(process.name, results.total_energy_micro_joules)

        logger.info(f"Finished {process.name} with {results.request_count} requests and results: {results}")
        return results

    def run_all(self, configs: Iterable[RunConfig]) -> Dict[str, Results]:
        """Run scenarios sequentially; the first failure stops the sweep.

        Returns:
            Results keyed by scenario name, in run order
        """
        configs = list(configs)
        results: Dict[str, Results] = OrderedDict()
        for i, config in enumerate(configs, start=1):
            logger.info(f"=== Scenario {i}/{len(configs)}: {config.scenario_name} ===")
            results[config.scenario_name] = self.run(config)
        return results

    def run_variations(
        self, test_duration_seconds: float, number_of_clients: int, requests_per_second: float
    ) -> Dict[str, Results]:
        """Run every variation with the same parameters.

        Returns:
            Results keyed by variation name
        """
        self.baseline.measure_baseline()
        results: Dict[str, Results] = OrderedDict()
        for process in self.variations:
            config = RunConfig(process.name, test_duration_seconds, number_of_clients, requests_per_second)
            results[process.name] = self.run_process(process, config)
        return results

    def run_all_write_results(self, configs: Iterable[RunConfig]) -> str:
        """Run scenarios sequentially and return the combined text report.

        With result writing enabled the report and a parquet file of every
        sample are also saved under the run's base folder.
        """
        results = self.run_all(configs)
        report = format_report(summarize_results(results))

        if self.write_results:
            os.makedirs(self.base_folder, exist_ok=True)
            report_path = os.path.join(self.base_folder, REPORT_FILENAME)
            with open(report_path, "w") as f:
                f.write(report + "\n")
            logger.info(f"Report saved to {report_path}")

            parquet_file = ParquetPersistence(self.base_folder).save_results(results)
            if parquet_file:
                logger.info(f"Detailed results saved to: {parquet_file}")

        return report

    @property
    def variation_names(self) -> List[str]:
        return [p.name for p in self.variations]
