"""
Tests for CPU and energy sensors.
"""

import os
import sys

import pytest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.exceptions import SensorError
from systems.sensors import CpuSnapshot, CpuUsage, RaplEnergySensor, cpu_snapshot


def test_cpu_diff():
    before = CpuSnapshot({"user": 10.0, "system": 5.0, "idle": 80.0, "iowait": 5.0})
    after = CpuSnapshot({"user": 14.0, "system": 6.0, "idle": 93.0, "iowait": 7.0})

    usage = after.diff_from(before)

    assert usage.total_seconds == pytest.approx(20.0)
    assert usage.busy_seconds == pytest.approx(5.0)
    assert usage.utilization == pytest.approx(0.25)


def test_guest_time_not_counted_twice():
    before = CpuSnapshot({"user": 10.0, "idle": 10.0, "guest": 5.0, "guest_nice": 1.0})
    after = CpuSnapshot({"user": 20.0, "idle": 20.0, "guest": 15.0, "guest_nice": 2.0})

    assert after.diff_from(before).total_seconds == pytest.approx(20.0)


def test_zero_window_utilization():
    assert CpuUsage(busy_seconds=0.0, total_seconds=0.0).utilization == 0.0


def test_real_snapshot():
    first = cpu_snapshot()
    second = cpu_snapshot()

    assert first.total > 0
    usage = second.diff_from(first)
    assert usage.total_seconds >= 0
    assert 0.0 <= usage.utilization <= 1.0


def test_rapl_reads_counter(tmp_path):
    counter = tmp_path / "energy_uj"
    counter.write_text("123456789\n")

    assert RaplEnergySensor(str(counter)).read_micro_joules() == 123456789


def test_rapl_malformed_counter(tmp_path):
    counter = tmp_path / "energy_uj"
    counter.write_text("not a number")

    with pytest.raises(SensorError):
        RaplEnergySensor(str(counter)).read_micro_joules()


def test_rapl_missing_counter(tmp_path):
    with pytest.raises(SensorError):
        RaplEnergySensor(str(tmp_path / "nope")).read_micro_joules()
