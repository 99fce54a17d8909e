"""
Tests for the benchmark runner: baseline normalization, process lifecycle and sweeps.
"""

import unittest
import sys
import os
import glob
import tempfile
from unittest import mock

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pandas as pd

from bench_fakes import FakeProcess, FakeRequestMaker, SequenceEnergySensor
from algorithms.baseline import BaselineMeasurement
from cli.benchmark import BenchmarkRunner
from common.exceptions import OutputWriteError, RequestFailedError, UnknownTargetError
from common.run_config import RunConfig
from common.timing_policy import FIXED_RATE
from persistence.latency_writer import LatencyWriter
from persistence.results import BaselineRecord


class TestBenchmarkRunner(unittest.TestCase):
    """Runs short scenarios against fake processes and request makers."""

    def setUp(self):
        self.events = []
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def make_runner(self, makers, baseline=None, fail_start=(), **kwargs):
        variations = [FakeProcess(name, self.events, fail_start=name in fail_start) for name in makers]
        return BenchmarkRunner(
            variations=variations,
            request_maker_factory=lambda p: makers[p.name],
            baseline=baseline or BaselineMeasurement.from_record(BaselineRecord(1000, 1.0)),
            database_process=FakeProcess("database", self.events),
            output_dir=self.tmpdir.name,
            **kwargs,
        )

    def test_net_energy_subtracts_baseline(self):
        """Counter readings 0 and 5000 with a 1000uJ baseline give 4000uJ net."""
        maker = FakeRequestMaker(latency_seconds=0.01, energy_readings=[0, 5000])
        runner = self.make_runner({"app": maker})

        results = runner.run(RunConfig("app", 0.3, 1, 10.0))

        self.assertEqual(results.total_energy_micro_joules, 4000)
        self.assertEqual(results.baseline_energy_micro_joules, 1000)
        self.assertTrue(results.baseline_applied)
        self.assertGreater(results.request_count, 0)
        self.assertAlmostEqual(results.total_duration_seconds, 0.3, delta=0.2)
        self.assertIsNotNone(results.cpu_delta)

    def test_processes_started_and_stopped_in_order(self):
        runner = self.make_runner({"app": FakeRequestMaker(0.005)})
        runner.run(RunConfig("app", 0.2, 1, 10.0))

        self.assertEqual(self.events, ["start:database", "start:app", "stop:app", "stop:database"])

    def test_processes_stopped_when_request_fails(self):
        runner = self.make_runner({"app": FakeRequestMaker(0.005, fail_on=1)})

        with self.assertRaises(RequestFailedError):
            runner.run(RunConfig("app", 5, 1, 10.0))

        self.assertEqual(self.events, ["start:database", "start:app", "stop:app", "stop:database"])

    def test_request_maker_closed_after_run(self):
        maker = FakeRequestMaker(0.005)
        runner = self.make_runner({"app": maker})

        runner.run(RunConfig("app", 0.2, 1, 10.0))

        self.assertEqual(maker.closed, 1)

    def test_request_maker_closed_when_request_fails(self):
        maker = FakeRequestMaker(0.005, fail_on=1)
        runner = self.make_runner({"app": maker})

        with self.assertRaises(RequestFailedError):
            runner.run(RunConfig("app", 5, 1, 10.0))

        self.assertEqual(maker.closed, 1)

    def test_latency_file_closed_when_request_fails(self):
        runner = self.make_runner({"app": FakeRequestMaker(0.005, fail_on=2)}, write_results=True)
        config = RunConfig("app", 5, 1, 10.0)
        close = LatencyWriter.close

        with mock.patch.object(LatencyWriter, "close", autospec=True, side_effect=close) as writer_close:
            with self.assertRaises(RequestFailedError):
                runner.run(config)

        writer_close.assert_called_once()
        self.assertIsNone(writer_close.call_args[0][0]._file)
        self.assertEqual(self.events, ["start:database", "start:app", "stop:app", "stop:database"])
        with open(os.path.join(runner.base_folder, f"{config.scenario_name}.txt")) as f:
            self.assertEqual(f.read(), "5\n")

    def test_output_write_failure_fails_run(self):
        maker = FakeRequestMaker(0.005)
        runner = self.make_runner({"app": maker}, write_results=True)

        with mock.patch.object(LatencyWriter, "write_latency", side_effect=OSError("No space left on device")):
            with self.assertRaises(OutputWriteError) as ctx:
                runner.run(RunConfig("app", 5, 2, 10.0))

        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertNotIsInstance(ctx.exception, RequestFailedError)
        self.assertEqual(maker.closed, 1)
        self.assertEqual(self.events, ["start:database", "start:app", "stop:app", "stop:database"])

    def test_database_stopped_when_target_fails_to_start(self):
        runner = self.make_runner({"app": FakeRequestMaker(0.005)}, fail_start=("app",))

        with self.assertRaises(RuntimeError):
            runner.run(RunConfig("app", 0.2, 1, 10.0))

        self.assertEqual(self.events, ["start:database", "stop:database"])

    def test_unknown_target(self):
        runner = self.make_runner({"app": FakeRequestMaker(0.005)})

        with self.assertRaises(UnknownTargetError) as ctx:
            runner.run(RunConfig("missing", 0.2, 1, 10.0))

        self.assertIsInstance(ctx.exception, KeyError)
        self.assertEqual(str(ctx.exception), "Unknown target: missing")
        self.assertEqual(self.events, [])

    def test_baseline_measured_once_across_runs(self):
        sensor = SequenceEnergySensor([100, 600])
        baseline = BaselineMeasurement(sensor, window_seconds=0.0, sleep=lambda s: None)
        makers = {"a": FakeRequestMaker(0.005), "b": FakeRequestMaker(0.005)}
        runner = self.make_runner(makers, baseline=baseline)

        results = runner.run_variations(0.2, 1, 10.0)

        self.assertEqual(list(results), ["a", "b"])
        self.assertEqual(sensor.reads, 2)
        self.assertTrue(all(r.baseline_energy_micro_joules == 500 for r in results.values()))

    def test_run_all_keyed_by_scenario(self):
        runner = self.make_runner({"a": FakeRequestMaker(0.005), "b": FakeRequestMaker(0.005)})
        configs = [RunConfig("a", 0.2, 1, 10.0), RunConfig("b", 0.2, 2, 5.0), RunConfig("a", 0.2, 2, 5.0)]

        results = runner.run_all(configs)

        self.assertEqual(list(results), ["a-0s-1-10.00", "b-0s-2-5.00", "a-0s-2-5.00"])
        self.assertEqual(results["b-0s-2-5.00"].name, "b")

    def test_run_all_stops_at_first_failure(self):
        makers = {"a": FakeRequestMaker(0.005), "b": FakeRequestMaker(0.005, fail_on=1),
                  "c": FakeRequestMaker(0.005)}
        runner = self.make_runner(makers)

        with self.assertRaises(RequestFailedError):
            runner.run_all([RunConfig(n, 0.2, 1, 10.0) for n in ("a", "b", "c")])

        self.assertEqual(makers["c"].calls, 0)
        self.assertNotIn("start:c", self.events)

    def test_write_results(self):
        runner = self.make_runner({"app": FakeRequestMaker(0.005)}, write_results=True, policy=FIXED_RATE)
        config = RunConfig("app", 0.3, 2, 10.0)

        report = runner.run_all_write_results([config])

        self.assertTrue(runner.base_folder.startswith(os.path.join(self.tmpdir.name, "fixed-rate-")))
        self.assertIn(config.scenario_name, report)

        latency_path = os.path.join(runner.base_folder, f"{config.scenario_name}.txt")
        with open(latency_path) as f:
            lines = f.read().splitlines()
        self.assertGreater(len(lines), 0)
        self.assertTrue(all(line == "5" for line in lines))

        with open(os.path.join(runner.base_folder, "report.txt")) as f:
            self.assertIn(config.scenario_name, f.read())

        parquet_files = glob.glob(os.path.join(runner.base_folder, "*.parquet"))
        self.assertEqual(len(parquet_files), 1)
        df = pd.read_parquet(parquet_files[0])
        self.assertEqual(len(df), len(lines))

    def test_nothing_written_by_default(self):
        runner = self.make_runner({"app": FakeRequestMaker(0.005)})
        runner.run_all_write_results([RunConfig("app", 0.2, 1, 10.0)])

        self.assertFalse(os.path.exists(runner.base_folder))


if __name__ == '__main__':
    unittest.main()
