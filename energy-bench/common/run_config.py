"""
Scenario parameters for a single benchmark run.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RunConfig:
    """Immutable parameters of one scenario.

    Attributes:
        target_name: Name of the server variation to drive
        test_duration_seconds: Length of the measured window
        number_of_clients: Number of logical clients (independent request streams)
        requests_per_second: Target rate of each client, not of the whole population
    """

    target_name: str
    test_duration_seconds: float
    number_of_clients: int
    requests_per_second: float

    def __post_init__(self):
        if self.number_of_clients < 1:
            raise ValueError(
                f"number_of_clients must be at least 1, got {self.number_of_clients}"
            )
        if self.requests_per_second <= 0:
            raise ValueError(
                f"requests_per_second must be positive, got {self.requests_per_second}"
            )
        if self.test_duration_seconds <= 0:
            raise ValueError(
                f"test_duration_seconds must be positive, got {self.test_duration_seconds}"
            )

    @property
    def expected_request_count(self) -> float:
        """Requests the run would issue if every tick fired on time (advisory)."""
        return self.number_of_clients * self.test_duration_seconds * self.requests_per_second

    @property
    def scenario_name(self) -> str:
        """Label encoding every parameter, also used as the output file stem."""
        return (
            f"{self.target_name}-{int(self.test_duration_seconds)}s-"
            f"{self.number_of_clients}-{self.requests_per_second:.2f}"
        )
