"""
Scenario sweep generation.
"""

import logging
import random
from typing import List, Optional, Sequence

from configuration import SWEEP_START_CLIENTS, SWEEP_START_RATE
from common.run_config import RunConfig

logger = logging.getLogger(__name__)


def build_sweep(
    target_names: Sequence[str],
    test_duration_seconds: float,
    start_clients: int = SWEEP_START_CLIENTS,
    start_rate: float = SWEEP_START_RATE,
    shuffle_seed: Optional[int] = None,
) -> List[RunConfig]:
    """Build scenarios trading clients for rate at constant demanded load.

    For every target, clients are halved and the per-client rate doubled until
    a single client remains; the final list is reversed so the fewest-client
    scenarios run first.

    Args:
        target_names: Targets to sweep
        test_duration_seconds: Duration of every scenario
        start_clients: Client count of the first step
        start_rate: Per-client rate of the first step
        shuffle_seed: If set, shuffle the target order with this seed
    """
    names = list(target_names)
    if shuffle_seed is not None:
        random.Random(shuffle_seed).shuffle(names)

    scenarios = []
    for name in names:
        clients = start_clients
        rate = start_rate
        while clients >= 1:
            scenarios.append(RunConfig(name, test_duration_seconds, clients, rate))
            clients //= 2
            rate *= 2.0

    scenarios.reverse()
    logger.info(f"Built sweep of {len(scenarios)} scenarios over {len(names)} targets")
    return scenarios
