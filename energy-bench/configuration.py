"""
Configuration constants for the energy benchmark.

This module contains all configuration parameters including:
- Target request path and process management settings
- Scheduler limits (worker thread cap)
- Baseline measurement window and energy sensor location
- Sweep parameters used by the default scenario generator
- Output locations and unit conversion factors
"""

import os

# =============================================================================
# TARGET CONFIGURATION
# =============================================================================

# Default path requested by the HTTP request maker
DEFAULT_REQUEST_PATH: str = os.getenv("BENCH_REQUEST_PATH", "/")

# =============================================================================
# SCHEDULER CONFIGURATION
# =============================================================================

# Hard cap on OS threads executing client ticks, regardless of client count
MAX_THREADS: int = 32

# Name prefix for scheduler worker threads
WORKER_THREAD_PREFIX: str = "bench-worker"

# Default timing policy ("fixed-delay" or "fixed-rate")
DEFAULT_TIMING_POLICY: str = os.getenv("BENCH_TIMING_POLICY", "fixed-delay")

# =============================================================================
# BASELINE / SENSOR CONFIGURATION
# =============================================================================

# Idle window used to measure the baseline energy cost
BASELINE_MEASURE_SECONDS: float = float(os.getenv("BASELINE_MEASURE_SECONDS", "10"))

# Cumulative package energy counter (Intel RAPL via powercap)
RAPL_ENERGY_PATH: str = os.getenv(
    "RAPL_ENERGY_PATH", "/sys/class/powercap/intel-rapl:0/energy_uj"
)

# =============================================================================
# PROCESS MANAGEMENT
# =============================================================================

PROCESS_STARTUP_TIMEOUT_SECONDS: float = 60.0  # Max wait for a readiness probe
PROCESS_STOP_TIMEOUT_SECONDS: float = 10.0  # Grace period before SIGKILL
READY_POLL_INTERVAL_SECONDS: float = 0.5  # Delay between readiness probes
READY_PROBE_TIMEOUT_SECONDS: float = 2.0  # Timeout of a single readiness probe

# =============================================================================
# BENCHMARK PARAMETERS
# =============================================================================

DEFAULT_TEST_DURATION_SECONDS: int = 120
DEFAULT_NUMBER_OF_CLIENTS: int = 8
DEFAULT_REQUESTS_PER_SECOND: float = 1.0

# Sweep: start with many slow clients, halve clients and double the rate
SWEEP_START_CLIENTS: int = 8
SWEEP_START_RATE: float = 1.0

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================

DEFAULT_OUTPUT_DIR: str = "results"
RESULTS_TIMESTAMP_FORMAT: str = "%Y%m%d_%H%M%S"
REPORT_FILENAME: str = "report.txt"

# =============================================================================
# OBSERVABILITY
# =============================================================================

DEFAULT_METRICS_PORT: int = 9100

# =============================================================================
# UNIT CONSTANTS
# =============================================================================

MILLISECONDS_PER_SECOND: int = 1000
MICROJOULES_PER_JOULE: int = 1_000_000
