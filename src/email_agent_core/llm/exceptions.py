"""
Custom exceptions for the backend adapter layer.

Backend errors propagate unchanged through ``Action.invoke`` and its
failure observers, so callers (and wrapping units such as RetryAction) can
tell failure modes apart and pick a recovery strategy.
"""


class LLMClientError(Exception):
    """
    Base exception for all backend adapter errors.

    All backend-specific exceptions inherit from this to allow catching
    any backend error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMConnectionError(LLMClientError):
    """
    Raised when unable to reach the generation backend.

    Includes network errors, DNS failures, refused connections.
    Adapters retry these with backoff before raising.
    """
    pass


class LLMGenerationError(LLMClientError):
    """
    Raised when the backend fails during generation.

    Examples:
    - Invalid parameters
    - Out of memory
    - Empty or malformed response body
    """
    pass


class LLMRateLimitError(LLMClientError):
    """
    Raised when a hosted API rate-limits the request (HTTP 429).

    Good candidate for ``RetryAction(retry_on=(LLMRateLimitError,))``.
    """
    pass


class LLMTimeoutError(LLMConnectionError):
    """
    Raised when a backend request exceeds the adapter's HTTP timeout.

    Separate from generic connection errors to allow specific handling.
    """
    pass


class LLMModelNotAvailableError(LLMGenerationError):
    """
    Raised when the requested model is not available on the backend.

    Not retried by adapters; ``FallbackAction`` can route to another model.
    """
    pass
