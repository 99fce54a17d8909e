"""
Command line interface of the energy benchmark.
"""

import os
import sys
import logging
import argparse
from typing import Dict, List, Tuple

# Ensure project root is in path (for running as script)
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from configuration import (
    BASELINE_MEASURE_SECONDS,
    DEFAULT_METRICS_PORT,
    DEFAULT_NUMBER_OF_CLIENTS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_REQUESTS_PER_SECOND,
    DEFAULT_REQUEST_PATH,
    DEFAULT_TEST_DURATION_SECONDS,
    DEFAULT_TIMING_POLICY,
    MAX_THREADS,
    SWEEP_START_CLIENTS,
    SWEEP_START_RATE,
)
from algorithms.baseline import BaselineMeasurement
from algorithms.sweep import build_sweep
from common.exceptions import BenchmarkError
from common.run_config import RunConfig
from common.timing_policy import TIMING_POLICIES, get_timing_policy
from systems.base import NullProcess, ScopedProcess
from systems.http import HttpRequestMaker
from systems.process import ServerProcess
from systems.sensors import RaplEnergySensor

# Set up logging (only if not already configured)
if not logging.root.handlers:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def parse_assignment(value: str) -> Tuple[str, str]:
    """Parse ``NAME=VALUE``."""
    name, sep, rest = value.partition("=")
    if not sep or not name or not rest:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got '{value}'")
    return name, rest


class EnergyBenchCLI:
    """CLI interface for the energy benchmark."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description='Energy Benchmark CLI',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Measure the idle baseline only
  energy-bench baseline --seconds 10

  # One scenario: 4 clients at 2 req/s each for 60s against a running server
  energy-bench run --target app=http://localhost:8080 --clients 4 --rate 2 --duration 60

  # Start the server per scenario and sweep 8x1, 4x2, 2x4, 1x8 req/s
  energy-bench sweep --target app=http://localhost:8080 --command "app=./server --port 8080" \\
      --duration 120 --policy fixed-rate --write-results
            """
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        baseline_parser = subparsers.add_parser('baseline', help='Measure the idle baseline')
        baseline_parser.add_argument('--seconds', type=float, default=BASELINE_MEASURE_SECONDS,
                                     help=f'Measurement window (default: {BASELINE_MEASURE_SECONDS})')
        baseline_parser.add_argument('--energy-path', type=str, default=None,
                                     help='Energy counter file (default: RAPL package 0)')

        run_parser = subparsers.add_parser('run', help='Run a single scenario')
        self._add_common_arguments(run_parser)
        run_parser.add_argument('--name', type=str, default=None,
                                help='Target to run (default: the first --target)')
        run_parser.add_argument('--clients', type=int, default=DEFAULT_NUMBER_OF_CLIENTS,
                                help=f'Number of clients (default: {DEFAULT_NUMBER_OF_CLIENTS})')
        run_parser.add_argument('--rate', type=float, default=DEFAULT_REQUESTS_PER_SECOND,
                                help=f'Requests per second per client (default: {DEFAULT_REQUESTS_PER_SECOND})')

        sweep_parser = subparsers.add_parser('sweep', help='Run a client/rate sweep over every target')
        self._add_common_arguments(sweep_parser)
        sweep_parser.add_argument('--start-clients', type=int, default=SWEEP_START_CLIENTS,
                                  help=f'Clients of the first step (default: {SWEEP_START_CLIENTS})')
        sweep_parser.add_argument('--start-rate', type=float, default=SWEEP_START_RATE,
                                  help=f'Per-client rate of the first step (default: {SWEEP_START_RATE})')
        sweep_parser.add_argument('--shuffle-seed', type=int, default=None,
                                  help='Shuffle the target order with this seed')

        return parser

    def _add_common_arguments(self, parser):
        parser.add_argument('--target', type=parse_assignment, action='append', required=True,
                            metavar='NAME=URL', help='Target name and base URL (repeatable)')
        parser.add_argument('--command', dest='commands', type=parse_assignment, action='append',
                            default=[], metavar='NAME=COMMAND',
                            help='Command starting the target for each scenario (repeatable)')
        parser.add_argument('--database-command', type=str, default=None,
                            help='Command of an auxiliary process started around each scenario')
        parser.add_argument('--path', type=str, default=DEFAULT_REQUEST_PATH,
                            help=f'Request path (default: {DEFAULT_REQUEST_PATH})')
        parser.add_argument('--duration', type=float, default=DEFAULT_TEST_DURATION_SECONDS,
                            help=f'Test duration in seconds (default: {DEFAULT_TEST_DURATION_SECONDS})')
        parser.add_argument('--policy', choices=sorted(TIMING_POLICIES), default=DEFAULT_TIMING_POLICY,
                            help=f'Timing policy (default: {DEFAULT_TIMING_POLICY})')
        parser.add_argument('--max-threads', type=int, default=MAX_THREADS,
                            help=f'Worker thread cap (default: {MAX_THREADS})')
        parser.add_argument('--baseline-seconds', type=float, default=BASELINE_MEASURE_SECONDS,
                            help=f'Baseline window, 0 disables the baseline (default: {BASELINE_MEASURE_SECONDS})')
        parser.add_argument('--energy-path', type=str, default=None,
                            help='Energy counter file (default: RAPL package 0)')
        parser.add_argument('--write-results', action='store_true',
                            help='Write latency files, report and parquet output')
        parser.add_argument('--output-dir', type=str, default=DEFAULT_OUTPUT_DIR,
                            help=f'Output directory (default: {DEFAULT_OUTPUT_DIR})')
        parser.add_argument('--metrics-port', type=int, default=None,
                            help=f'Expose Prometheus metrics on this port (e.g. {DEFAULT_METRICS_PORT})')

    def _build_runner(self, args):
        """Build a BenchmarkRunner from parsed arguments."""
        from cli.benchmark import BenchmarkRunner

        urls: Dict[str, str] = dict(args.target)
        commands: Dict[str, str] = dict(args.commands)
        unknown = set(commands) - set(urls)
        if unknown:
            raise ValueError(f"--command given for unknown targets: {sorted(unknown)}")

        variations: List[ScopedProcess] = []
        for name, url in urls.items():
            if name in commands:
                process = ServerProcess(name, commands[name], url=url, ready_url=url)
            else:
                process = NullProcess(name, url=url)
            variations.append(process)

        energy_sensor = RaplEnergySensor(args.energy_path)
        if args.baseline_seconds > 0:
            baseline = BaselineMeasurement(energy_sensor, window_seconds=args.baseline_seconds)
        else:
            baseline = BaselineMeasurement.disabled()

        database = None
        if args.database_command:
            database = ServerProcess("database", args.database_command)

        exporter = None
        if args.metrics_port:
            from observability.prom import SimplePrometheusExporter
            exporter = SimplePrometheusExporter(port=args.metrics_port)
            exporter.start_server()

        return BenchmarkRunner(
            variations=variations,
            request_maker_factory=lambda p: HttpRequestMaker(
                p.url, args.path, energy_sensor=energy_sensor, pool_size=args.max_threads
            ),
            baseline=baseline,
            policy=get_timing_policy(args.policy),
            database_process=database,
            write_results=args.write_results,
            output_dir=args.output_dir,
            max_threads=args.max_threads,
            exporter=exporter,
        )

    def run_baseline(self, args):
        """Measure and print the idle baseline."""
        logger.info("=== Baseline Measurement ===")
        baseline = BaselineMeasurement(RaplEnergySensor(args.energy_path), window_seconds=args.seconds)
        record = baseline.measure_baseline()
        print(f"Baseline energy: {record.energy_micro_joules} uJ over {record.measure_duration_seconds:.2f}s")
        return 0

    def run_single(self, args):
        """Run one scenario."""
        logger.info("=== Single Scenario ===")
        runner = self._build_runner(args)
        name = args.name or runner.variation_names[0]
        results = runner.run(RunConfig(name, args.duration, args.clients, args.rate))
        print(results)
        return 0

    def run_sweep(self, args):
        """Run a sweep and print the combined report."""
        logger.info("=== Sweep ===")
        runner = self._build_runner(args)
        scenarios = build_sweep(
            runner.variation_names,
            args.duration,
            start_clients=args.start_clients,
            start_rate=args.start_rate,
            shuffle_seed=args.shuffle_seed,
        )
        print(runner.run_all_write_results(scenarios))
        return 0

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            if parsed_args.command == 'baseline':
                return self.run_baseline(parsed_args)
            elif parsed_args.command == 'run':
                return self.run_single(parsed_args)
            elif parsed_args.command == 'sweep':
                return self.run_sweep(parsed_args)
            else:
                logger.error(f"Unknown command: {parsed_args.command}")
                return 1

        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return 1
        except (BenchmarkError, ValueError) as e:
            logger.error(f"Benchmark failed: {e}")
            return 1


def main():
    """Main entry point."""
    cli = EnergyBenchCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
