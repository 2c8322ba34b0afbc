"""Metrics collection for the REST clients."""

from dataclasses import dataclass, field
from typing import ClassVar

from fluent_rest.errors import ErrorKind


@dataclass
class RestMetrics:
    """Metrics for buffered and streaming fetch operations.

    Singleton class that tracks request counts, failures by kind and
    streamed element counts.
    """

    requests_total: dict[int, int] = field(default_factory=dict)
    failures_total: dict[str, int] = field(default_factory=dict)
    stream_elements_total: int = 0
    stream_outcomes_total: dict[str, int] = field(default_factory=dict)
    request_duration_ms_total: float = 0.0
    request_count: int = 0

    _instance: ClassVar["RestMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RestMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, status_code: int, duration_ms: float) -> None:
        """Record a request that received a response.

        Args:
            status_code: HTTP status code.
            duration_ms: Duration of the network phase in milliseconds.
        """
        self.requests_total[status_code] = self.requests_total.get(status_code, 0) + 1
        self.request_duration_ms_total += duration_ms
        self.request_count += 1

    def record_failure(self, kind: ErrorKind) -> None:
        """Record a failure reported in an envelope.

        Args:
            kind: Classification of the failure.
        """
        key = kind.value
        self.failures_total[key] = self.failures_total.get(key, 0) + 1

    def record_stream_element(self) -> None:
        """Record one element decoded from a stream."""
        self.stream_elements_total += 1

    def record_stream_outcome(self, outcome: str) -> None:
        """Record how a stream ended.

        Args:
            outcome: Terminal stream state value.
        """
        self.stream_outcomes_total[outcome] = (
            self.stream_outcomes_total.get(outcome, 0) + 1
        )

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "requests_total": dict(self.requests_total),
            "failures_total": dict(self.failures_total),
            "stream_elements_total": self.stream_elements_total,
            "stream_outcomes_total": dict(self.stream_outcomes_total),
            "request_duration_ms_total": self.request_duration_ms_total,
            "request_count": self.request_count,
        }

    @property
    def avg_duration_ms(self) -> float:
        """Average network-phase duration in milliseconds."""
        if self.request_count == 0:
            return 0.0
        return self.request_duration_ms_total / self.request_count
