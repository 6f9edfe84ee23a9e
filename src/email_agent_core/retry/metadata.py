"""
Retry metadata tracking.

RetryMetadata captures the attempt history of one RetryAction invocation so
it can travel with RetryExhausted for diagnostics.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RetryMetadata:
    """
    Attempt history of one retried invocation.

    Attributes:
        total_attempts: Number of times the wrapped unit was invoked
        total_latency_ms: Time from first attempt to final result (ms)
        failures: ``"ErrorType: message"`` per failed attempt, in order
    """

    total_attempts: int
    total_latency_ms: int
    failures: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate metadata invariants."""
        if self.total_attempts < 1:
            raise ValueError("total_attempts must be >= 1")

        if self.total_latency_ms < 0:
            raise ValueError("total_latency_ms must be >= 0")

        if len(self.failures) > self.total_attempts:
            raise ValueError("failures cannot outnumber attempts")
