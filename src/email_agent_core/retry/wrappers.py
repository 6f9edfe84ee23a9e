"""
Wrapping units adding recovery around any Action.

- RetryAction: re-invoke the same unit with exponential backoff
- FallbackAction: try alternative units in order (e.g. another model)

Both are plain Actions, so they chain, batch and stream like any other unit:

    classifier = RetryAction(EmailClassifier(llm), retry_on=(OutputParserError,))
    llm = FallbackAction(OllamaLLM(), [OpenAICompatibleLLM()], fallback_on=(LLMConnectionError,))
"""

import asyncio
import time
from typing import Any, Callable, Iterable

import structlog

from email_agent_core.config import settings
from email_agent_core.core.action import Action, coerce_action
from email_agent_core.core.context import ActionContext
from email_agent_core.monitoring.metrics import retries_total
from email_agent_core.retry.exceptions import RetryExhausted
from email_agent_core.retry.metadata import RetryMetadata


logger = structlog.get_logger(__name__)

ExceptionTypes = type[BaseException] | tuple[type[BaseException], ...]


class RetryAction(Action):
    """
    Retry a unit on matching errors.

    Attempt N > 1 is preceded by ``backoff_base ** N`` seconds of sleep.
    Errors not matching ``retry_on`` propagate immediately. When every
    attempt fails, raises RetryExhausted chained to the last error.
    """

    def __init__(
        self,
        inner: Action | Callable[[Any], Any],
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        retry_on: ExceptionTypes = (Exception,),
        name: str | None = None,
    ):
        self.inner = coerce_action(inner)
        super().__init__(name or f"Retry({self.inner.name})")
        self.max_attempts = max_attempts if max_attempts is not None else settings.MAX_RETRIES
        self.backoff_base = backoff_base if backoff_base is not None else settings.RETRY_BACKOFF_BASE
        self.retry_on = retry_on

        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    async def _execute(self, input: Any, context: ActionContext) -> Any:
        start_time = time.time()
        failures: list[str] = []
        last_error: BaseException | None = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                backoff_seconds = self.backoff_base ** attempt
                logger.info(
                    "Applying exponential backoff",
                    action=self.inner.name,
                    attempt=attempt,
                    backoff_seconds=backoff_seconds,
                )
                await asyncio.sleep(backoff_seconds)

            try:
                result = await self.inner.invoke(input, context)
            except self.retry_on as e:
                last_error = e
                failures.append(f"{type(e).__name__}: {e}")
                logger.warning(
                    "Attempt failed",
                    action=self.inner.name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error_type=type(e).__name__,
                )
                if attempt < self.max_attempts:
                    retries_total.labels(action=self.inner.name, outcome="retry").inc()
                continue

            if attempt > 1:
                retries_total.labels(action=self.inner.name, outcome="success").inc()
                logger.info("Retry succeeded", action=self.inner.name, attempt=attempt)
            return result

        retries_total.labels(action=self.inner.name, outcome="exhausted").inc()
        metadata = RetryMetadata(
            total_attempts=self.max_attempts,
            total_latency_ms=int((time.time() - start_time) * 1000),
            failures=failures,
        )
        logger.error(
            "All attempts exhausted",
            action=self.inner.name,
            total_attempts=metadata.total_attempts,
            total_latency_ms=metadata.total_latency_ms,
        )
        raise RetryExhausted(self.inner.name, metadata, last_error) from last_error


class FallbackAction(Action):
    """
    Try ``primary`` then each fallback in order until one succeeds.

    Errors not matching ``fallback_on`` propagate immediately. When every
    unit fails, the last error is raised unchanged.
    """

    def __init__(
        self,
        primary: Action | Callable[[Any], Any],
        fallbacks: Iterable[Action | Callable[[Any], Any]],
        fallback_on: ExceptionTypes = (Exception,),
        name: str | None = None,
    ):
        self.candidates: tuple[Action, ...] = (
            coerce_action(primary),
            *(coerce_action(fallback) for fallback in fallbacks),
        )
        super().__init__(name or f"Fallback({self.candidates[0].name})")
        self.fallback_on = fallback_on

        if len(self.candidates) < 2:
            raise ValueError("FallbackAction needs at least one fallback")

    async def _execute(self, input: Any, context: ActionContext) -> Any:
        last_error: BaseException | None = None

        for index, candidate in enumerate(self.candidates):
            try:
                result = await candidate.invoke(input, context)
            except self.fallback_on as e:
                last_error = e
                logger.warning(
                    "Unit failed, trying next",
                    action=candidate.name,
                    position=index,
                    remaining=len(self.candidates) - index - 1,
                    error_type=type(e).__name__,
                )
                continue

            if index > 0:
                logger.info("Fallback succeeded", action=candidate.name, position=index)
            return result

        raise last_error
