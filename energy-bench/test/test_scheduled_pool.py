"""
Tests for the scheduled pool and its timing policies.
"""

import unittest
import sys
import os
import threading
import time
from concurrent.futures import CancelledError

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.scheduled_pool import ScheduledPool
from common.timing_policy import FIXED_DELAY, FIXED_RATE, FixedDelay, FixedRate, get_timing_policy


def run_for(pool, policy, period, work_seconds, run_seconds):
    """Schedule one task that sleeps ``work_seconds`` and return its start times."""
    starts = []

    def work():
        starts.append(time.monotonic())
        time.sleep(work_seconds)

    task = pool.schedule(work, period, policy)
    time.sleep(run_seconds)
    task.cancel()
    try:
        task.result(timeout=5)
    except CancelledError:
        pass
    return starts


def mean_gap(starts):
    gaps = [b - a for a, b in zip(starts, starts[1:])]
    return sum(gaps) / len(gaps)


class TestTimingPolicies(unittest.TestCase):
    """Test the next-run arithmetic of each policy."""

    def test_fixed_delay_counts_from_completion(self):
        self.assertAlmostEqual(FixedDelay().next_run(10.0, 10.3, 0.5), 10.8)

    def test_fixed_rate_counts_from_scheduled_start(self):
        self.assertAlmostEqual(FixedRate().next_run(10.0, 10.3, 0.5), 10.5)

    def test_fixed_rate_overrun_is_already_due(self):
        """An attempt longer than the period leaves the next tick in the past."""
        self.assertLess(FixedRate().next_run(10.0, 10.7, 0.5), 10.7)

    def test_lookup_by_name(self):
        self.assertIs(get_timing_policy("fixed-delay"), FIXED_DELAY)
        self.assertIs(get_timing_policy("FIXED-RATE"), FIXED_RATE)
        with self.assertRaises(ValueError):
            get_timing_policy("poisson")


class TestScheduledPoolTiming(unittest.TestCase):
    """Start-time spacing under each policy."""

    def test_fixed_delay_spacing_is_latency_plus_period(self):
        with ScheduledPool(2) as pool:
            starts = run_for(pool, FIXED_DELAY, period=0.1, work_seconds=0.05, run_seconds=1.0)
        self.assertGreaterEqual(len(starts), 4)
        self.assertAlmostEqual(mean_gap(starts), 0.15, delta=0.03)

    def test_fixed_rate_spacing_is_period_when_fast(self):
        with ScheduledPool(2) as pool:
            starts = run_for(pool, FIXED_RATE, period=0.1, work_seconds=0.03, run_seconds=1.0)
        self.assertGreaterEqual(len(starts), 7)
        self.assertAlmostEqual(mean_gap(starts), 0.1, delta=0.02)

    def test_fixed_rate_back_to_back_when_slow(self):
        with ScheduledPool(2) as pool:
            starts = run_for(pool, FIXED_RATE, period=0.05, work_seconds=0.12, run_seconds=1.0)
        self.assertGreaterEqual(len(starts), 5)
        self.assertAlmostEqual(mean_gap(starts), 0.12, delta=0.03)


class TestScheduledPoolSemantics(unittest.TestCase):
    """Cancellation, failure and in-flight guarantees."""

    def test_never_two_attempts_in_flight(self):
        """A slow fixed-rate task never overlaps itself, even with idle threads."""
        in_flight = 0
        max_in_flight = 0
        lock = threading.Lock()

        def work():
            nonlocal in_flight, max_in_flight
            with lock:
                in_flight += 1
                max_in_flight = max(max_in_flight, in_flight)
            time.sleep(0.05)
            with lock:
                in_flight -= 1

        with ScheduledPool(8) as pool:
            task = pool.schedule(work, 0.01, FIXED_RATE)
            time.sleep(0.5)
            task.cancel()
            with self.assertRaises(CancelledError):
                task.result(timeout=5)

        self.assertEqual(max_in_flight, 1)
        self.assertGreater(task.attempts, 3)

    def test_cancel_waits_for_in_flight_attempt(self):
        started = threading.Event()
        finished = threading.Event()

        def work():
            started.set()
            time.sleep(0.3)
            finished.set()

        with ScheduledPool(1) as pool:
            task = pool.schedule(work, 10.0, FIXED_DELAY)
            self.assertTrue(started.wait(2))
            self.assertTrue(task.cancel())
            self.assertFalse(finished.is_set())
            with self.assertRaises(CancelledError):
                task.result(timeout=5)
            self.assertTrue(finished.is_set())
            self.assertTrue(task.cancelled())

    def test_cancel_before_first_tick_has_no_effect(self):
        calls = []

        with ScheduledPool(1) as pool:
            task = pool.schedule(lambda: calls.append(1), 0.1, FIXED_DELAY, initial_delay=0.5)
            task.cancel()
            with self.assertRaises(CancelledError):
                task.result(timeout=1)
            time.sleep(0.7)

        self.assertEqual(calls, [])

    def test_cancel_is_idempotent(self):
        with ScheduledPool(1) as pool:
            task = pool.schedule(lambda: None, 0.1, FIXED_DELAY, initial_delay=1.0)
            self.assertTrue(task.cancel())
            self.assertFalse(task.cancel())

    def test_failure_ends_task(self):
        calls = []

        def work():
            calls.append(1)
            if len(calls) == 2:
                raise ValueError("boom")

        with ScheduledPool(1) as pool:
            task = pool.schedule(work, 0.02, FIXED_DELAY)
            with self.assertRaises(ValueError):
                task.result(timeout=5)
            time.sleep(0.2)

        self.assertEqual(len(calls), 2)
        self.assertFalse(task.cancel())

    def test_tasks_share_threads(self):
        """More tasks than threads still all get ticks."""
        counts = [0] * 6

        def make(i):
            def work():
                counts[i] += 1
                time.sleep(0.01)
            return work

        with ScheduledPool(2) as pool:
            tasks = [pool.schedule(make(i), 0.05, FIXED_DELAY) for i in range(6)]
            time.sleep(0.5)
            for task in tasks:
                task.cancel()
            for task in tasks:
                with self.assertRaises(CancelledError):
                    task.result(timeout=5)

        self.assertTrue(all(c >= 3 for c in counts), counts)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            ScheduledPool(0)
        with ScheduledPool(1) as pool:
            with self.assertRaises(ValueError):
                pool.schedule(lambda: None, 0, FIXED_DELAY)


if __name__ == '__main__':
    unittest.main()
