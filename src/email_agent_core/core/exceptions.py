"""
Exceptions raised by the orchestration core.

Every error carries a human-readable message plus a ``details`` dict with
structured data for logging. Backend failures live in
``email_agent_core.llm.exceptions`` and pass through the core unchanged.
"""

from typing import Any


class EngineError(Exception):
    """
    Base exception for all orchestration-core errors.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class PromptValidationError(EngineError):
    """
    Raised when a prompt is rendered without all of its required variables.

    Caller-correctable; never retried automatically.
    """

    def __init__(self, missing_variables: list[str]):
        self.missing_variables = list(missing_variables)
        super().__init__(
            f"Missing required input variables: {', '.join(self.missing_variables)}",
            details={"missing_variables": self.missing_variables},
        )

    def __str__(self) -> str:
        return self.message


class OutputParserError(EngineError):
    """
    Raised when generated text cannot be turned into the expected structure.

    Keeps the complete original text and the underlying cause so nothing is
    lost for diagnostics.
    """

    def __init__(
        self,
        message: str,
        llm_output: str | None = None,
        original_error: BaseException | None = None,
    ):
        details = {}
        if llm_output:
            # Snippet only, the full text stays on the attribute
            details["content_snippet"] = llm_output[:500]
        if original_error is not None:
            details["cause"] = f"{type(original_error).__name__}: {original_error}"

        super().__init__(message, details)
        self.llm_output = llm_output
        self.original_error = original_error


class ContractViolationError(EngineError, NotImplementedError):
    """
    Raised when a concrete Action does not implement its transform.

    This is a programming error, not a runtime condition.
    """


class ActionTimeoutError(EngineError, TimeoutError):
    """
    Raised when an invocation exceeds the deadline set on its run context.
    """

    def __init__(self, action_name: str, timeout: float):
        super().__init__(
            f"{action_name} exceeded its deadline of {timeout}s",
            details={"action": action_name, "timeout": timeout},
        )
        self.action_name = action_name
        self.timeout = timeout


class BatchExecutionError(EngineError):
    """
    Raised by ``Action.batch`` when at least one input failed.

    Every sibling has run to completion by the time this is raised.
    ``results`` holds one entry per input: the output, or the exception
    for failed slots. ``errors`` maps input index to its exception.
    """

    def __init__(self, action_name: str, results: list[Any], errors: dict[int, BaseException]):
        super().__init__(
            f"{action_name} batch failed for {len(errors)} of {len(results)} input(s)",
            details={
                "action": action_name,
                "failed_indexes": sorted(errors),
                "error_types": sorted({type(e).__name__ for e in errors.values()}),
            },
        )
        self.results = results
        self.errors = errors

    @property
    def successes(self) -> dict[int, Any]:
        """Outputs of the inputs that succeeded, keyed by input index."""
        return {
            index: value
            for index, value in enumerate(self.results)
            if index not in self.errors
        }
