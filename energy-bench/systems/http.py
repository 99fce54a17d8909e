"""
HTTP request maker for servers under test.
"""

import logging
import time
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from configuration import DEFAULT_REQUEST_PATH, MAX_THREADS, MILLISECONDS_PER_SECOND
from systems.base import RequestMaker
from systems.sensors import EnergySensor, RaplEnergySensor

logger = logging.getLogger(__name__)


class HttpRequestMaker(RequestMaker):
    """Issues GET requests through a shared session and times them."""

    def __init__(
        self,
        base_url: str,
        path: Optional[str] = None,
        energy_sensor: Optional[EnergySensor] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        pool_size: int = MAX_THREADS,
    ):
        """Initialize the request maker.

        Args:
            base_url: Root URL of the target, e.g. ``http://localhost:8080``
            path: Path requested on every attempt (default: from configuration)
            energy_sensor: Energy counter to read (default: RAPL)
            session: HTTP session to reuse (default: a new session)
            timeout: Per-request timeout in seconds (default: none)
            pool_size: Keep-alive connections kept by a new session; match the
                number of worker threads so no connection is discarded
        """
        self.url = base_url.rstrip("/") + "/" + (path or DEFAULT_REQUEST_PATH).lstrip("/")
        self.energy_sensor = energy_sensor or RaplEnergySensor()
        self.session = session or self._create_session(pool_size)
        self.timeout = timeout

        logger.info(f"Initialized HTTP request maker for {self.url}")

    @staticmethod
    def _create_session(pool_size: int) -> requests.Session:
        """Create a session whose connection pool holds ``pool_size`` connections per host."""
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_size)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        logger.debug(f"Configured connection pool: {pool_size} connections")
        return session

    def make_request(self) -> float:
        """Perform a GET and return its latency in milliseconds.

        Raises:
            requests.RequestException: On connection errors and non-2xx responses
        """
        start = time.perf_counter()
        response = self.session.get(self.url, timeout=self.timeout)
        response.raise_for_status()
        # the body is part of the round trip
        _ = response.content
        return (time.perf_counter() - start) * MILLISECONDS_PER_SECOND

    def energy_measure_micro_joules(self) -> int:
        return self.energy_sensor.read_micro_joules()

    def close(self) -> None:
        """Release the pooled connections of the session."""
        self.session.close()
