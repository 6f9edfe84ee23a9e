"""
Lifecycle observers for Action invocations.

Observers react to three events: start, end (success) and error. They are
attached through ``ActionContext.callbacks`` and are the only built-in
side-effecting mechanism of the core.
"""

import inspect
import time
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Sequence

import structlog

if TYPE_CHECKING:
    from email_agent_core.core.action import Action
    from email_agent_core.core.context import ActionContext


logger = structlog.get_logger(__name__)


class ActionCallback:
    """
    Base class for lifecycle observers.

    Every hook is a no-op; subclasses override the ones they need. Hooks may
    be plain or async methods.
    """

    async def on_start(self, action: "Action", input: Any, context: "ActionContext") -> None:
        pass

    async def on_end(self, action: "Action", output: Any, context: "ActionContext") -> None:
        pass

    async def on_error(self, action: "Action", error: BaseException, context: "ActionContext") -> None:
        pass


class CallbackManager:
    """
    Fan lifecycle events out to every observer, in registration order.

    An observer that raises is logged and skipped: it can neither replace a
    successful output nor mask the original error.
    """

    def __init__(self, callbacks: Sequence[Any] | None = None):
        self.callbacks = list(callbacks or [])

    async def handle_start(self, action: "Action", input: Any, context: "ActionContext") -> None:
        await self._dispatch("on_start", action, input, context)

    async def handle_end(self, action: "Action", output: Any, context: "ActionContext") -> None:
        await self._dispatch("on_end", action, output, context)

    async def handle_error(self, action: "Action", error: BaseException, context: "ActionContext") -> None:
        await self._dispatch("on_error", action, error, context)

    async def _dispatch(self, hook: str, action: "Action", payload: Any, context: "ActionContext") -> None:
        for callback in self.callbacks:
            method = getattr(callback, hook, None)
            if method is None:
                continue
            try:
                result = method(action, payload, context)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    "Callback failed",
                    hook=hook,
                    callback=type(callback).__name__,
                    action=action.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )


class InvocationTimer:
    """
    Start times of the invocations currently open in the running task.

    Concurrent invocations (batch items, gathered calls) run in separate
    asyncio tasks, each with its own copy of the context variable, so they
    never share an entry. Within one task invocations nest, so the
    innermost open start for an action is the one that is ending.
    """

    def __init__(self):
        self._starts: ContextVar[tuple[tuple[int, float], ...]] = ContextVar(
            f"invocation_starts_{id(self)}", default=()
        )

    def start(self, action: "Action") -> None:
        self._starts.set((*self._starts.get(), (id(action), time.perf_counter())))

    def stop(self, action: "Action") -> float | None:
        """Seconds since the matching start, or None when none is open."""
        starts = self._starts.get()
        for index in range(len(starts) - 1, -1, -1):
            key, started = starts[index]
            if key == id(action):
                # Entries above the match are inner streams the consumer abandoned
                self._starts.set(starts[:index])
                return time.perf_counter() - started
        return None

    def pending(self) -> int:
        """Number of open invocations in the running task."""
        return len(self._starts.get())


class LoggingCallback(ActionCallback):
    """
    Observer that logs every lifecycle event with structlog.

    One observer may watch concurrently running invocations; durations are
    tracked by an InvocationTimer.
    """

    def __init__(self, level: str = "info"):
        self.level = level
        self.timer = InvocationTimer()

    def _log(self, event: str, **fields: Any) -> None:
        getattr(logger, self.level)(event, **fields)

    async def on_start(self, action, input, context):
        self.timer.start(action)
        self._log(
            "Action started",
            action=action.name,
            input_type=type(input).__name__,
            tags=context.tags,
        )

    async def on_end(self, action, output, context):
        self._log(
            "Action finished",
            action=action.name,
            output_type=type(output).__name__,
            duration_ms=self._elapsed_ms(action),
            tags=context.tags,
        )

    async def on_error(self, action, error, context):
        logger.error(
            "Action failed",
            action=action.name,
            error=str(error),
            error_type=type(error).__name__,
            duration_ms=self._elapsed_ms(action),
            tags=context.tags,
        )

    def _elapsed_ms(self, action: "Action") -> int | None:
        elapsed = self.timer.stop(action)
        return None if elapsed is None else int(elapsed * 1000)
