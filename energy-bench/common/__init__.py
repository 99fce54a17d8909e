"""
Common utilities for the energy benchmark.
"""

from .run_config import RunConfig
from .timing_policy import FIXED_DELAY, FIXED_RATE, get_timing_policy

__all__ = ['RunConfig', 'FIXED_DELAY', 'FIXED_RATE', 'get_timing_policy']
