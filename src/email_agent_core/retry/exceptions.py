"""
Retry wrapper exceptions.
"""

from email_agent_core.core.exceptions import EngineError
from email_agent_core.retry.metadata import RetryMetadata


class RetryExhausted(EngineError):
    """
    Raised when every attempt of a RetryAction failed.

    Attributes:
        action_name: Name of the wrapped unit
        retry_metadata: Attempt history
        last_error: Error raised by the final attempt (also ``__cause__``)
    """

    def __init__(
        self,
        action_name: str,
        retry_metadata: RetryMetadata,
        last_error: BaseException,
    ) -> None:
        self.action_name = action_name
        self.retry_metadata = retry_metadata
        self.last_error = last_error

        super().__init__(
            f"{action_name} failed after {retry_metadata.total_attempts} attempts. "
            f"Final error: {type(last_error).__name__}",
            details={
                "attempts": retry_metadata.total_attempts,
                "total_latency_ms": retry_metadata.total_latency_ms,
                "failures": retry_metadata.failures,
            },
        )
