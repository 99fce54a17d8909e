"""
Simple Prometheus metrics exporter for the energy benchmark.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from configuration import DEFAULT_METRICS_PORT, MILLISECONDS_PER_SECOND

logger = logging.getLogger(__name__)


class SimplePrometheusExporter:
    """Simple Prometheus metrics exporter."""

    def __init__(self, port: int = DEFAULT_METRICS_PORT, registry: Optional[CollectorRegistry] = None):
        self.port = port
        self.registry = registry or CollectorRegistry()
        self.server_started = False

        # Define metrics
        self.requests_total = Counter(
            'energy_bench_requests_total', 'Recorded requests', ['target'],
            registry=self.registry,
        )
        self.request_duration = Histogram(
            'energy_bench_request_duration_seconds', 'Request duration', ['target'],
            registry=self.registry,
        )
        self.clients = Gauge(
            'energy_bench_clients', 'Logical clients of the current run', ['target'],
            registry=self.registry,
        )
        self.target_rate = Gauge(
            'energy_bench_target_rate', 'Requests per second demanded per client', ['target'],
            registry=self.registry,
        )
        self.net_energy = Gauge(
            'energy_bench_net_energy_microjoules', 'Baseline-adjusted energy of the last run', ['target'],
            registry=self.registry,
        )

    def start_server(self):
        """Start the Prometheus HTTP server."""
        if not self.server_started:
            start_http_server(self.port, registry=self.registry)
            self.server_started = True
            logger.info(f"Prometheus server started on port {self.port}")

    def record_request(self, target: str, latency_ms: float):
        """Record one recorded request."""
        self.requests_total.labels(target=target).inc()
        self.request_duration.labels(target=target).observe(latency_ms / MILLISECONDS_PER_SECOND)

    def update_run(self, target: str, clients: int, requests_per_second: float):
        """Publish the parameters of the run that is starting."""
        self.clients.labels(target=target).set(clients)
        self.target_rate.labels(target=target).set(requests_per_second)

    def update_energy(self, target: str, energy_micro_joules: int):
        self.net_energy.labels(target=target).set(energy_micro_joules)
