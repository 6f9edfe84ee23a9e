"""
Action: the execution-unit abstraction every processing step implements.

Contract:
- invoke(input, context) -> output          single-shot execution
- stream(input, context) -> async iterator  lazy, finite, non-restartable
- batch(inputs, context) -> list            concurrent, input-ordered
- chain(other) -> ActionPipeline            sequential composition

Concrete units implement exactly one method, ``_execute``. Units with
genuine incremental output also set ``supports_streaming = True`` and
implement ``_stream``.

Usage:
    classify = prompt | llm | parser
    result = await classify.invoke({"subject": "...", "body": "..."})
"""

import asyncio
import inspect
from typing import Any, AsyncIterator, Callable, ClassVar, Iterable, Mapping

from email_agent_core.core.callbacks import CallbackManager
from email_agent_core.core.context import ActionContext
from email_agent_core.core.exceptions import (
    ActionTimeoutError,
    BatchExecutionError,
    ContractViolationError,
)


ContextLike = ActionContext | Mapping[str, Any] | None


class Action:
    """
    Base class for all composable units.

    Units are stateless by default: configuration (a bound backend, a bound
    template) is fixed at construction, so one instance may be invoked
    concurrently by many callers.

    Attributes:
        name: Diagnostic name, defaults to the concrete class name
        supports_streaming: True when ``_stream`` yields partial output
    """

    supports_streaming: ClassVar[bool] = False

    def __init__(self, name: str | None = None):
        self.name = name or type(self).__name__

    # ------------------------------------------------------------------
    # Methods for subclasses
    # ------------------------------------------------------------------

    async def _execute(self, input: Any, context: ActionContext) -> Any:
        """
        Transform one input into one output.

        Never called directly by users of the unit: ``invoke`` wraps it
        with lifecycle notification and the context deadline.
        """
        raise ContractViolationError(
            f"{self.name} must implement _execute()",
            details={"action": self.name},
        )

    async def _stream(self, input: Any, context: ActionContext) -> AsyncIterator[Any]:
        """Yield partial outputs. Only used when ``supports_streaming`` is True."""
        raise ContractViolationError(
            f"{self.name} declares streaming support but does not implement _stream()",
            details={"action": self.name},
        )
        yield  # pragma: no cover

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    async def invoke(self, input: Any, context: ContextLike = None) -> Any:
        """
        Run the unit on a single input.

        Notifies start observers, executes the transform, then notifies
        success observers with the output, or failure observers with the
        error before re-raising that same error.

        Raises:
            ActionTimeoutError: The context deadline expired
            Exception: Whatever the transform raised, unchanged
        """
        ctx = ActionContext.ensure(context)
        callbacks = CallbackManager(ctx.callbacks)

        try:
            await callbacks.handle_start(self, input, ctx)
            output = await self._with_deadline(self._execute(input, ctx), ctx)
            await callbacks.handle_end(self, output, ctx)
            return output
        except Exception as e:
            await callbacks.handle_error(self, e, ctx)
            raise

    async def stream(self, input: Any, context: ContextLike = None) -> AsyncIterator[Any]:
        """
        Yield output chunks in production order.

        Units without native streaming yield exactly one chunk: the result
        of ``invoke``. With native streaming, success observers receive the
        list of all chunks once the stream is exhausted. The context
        deadline covers production of the whole stream, not the time the
        consumer spends between chunks.
        """
        ctx = ActionContext.ensure(context)

        if not self.supports_streaming:
            yield await self.invoke(input, ctx)
            return

        callbacks = CallbackManager(ctx.callbacks)
        deadline = None
        if ctx.timeout is not None:
            deadline = asyncio.get_running_loop().time() + ctx.timeout

        await callbacks.handle_start(self, input, ctx)
        chunks: list[Any] = []
        iterator = self._stream(input, ctx)
        try:
            while True:
                try:
                    chunk = await self._next_chunk(iterator, deadline, ctx)
                except StopAsyncIteration:
                    break
                chunks.append(chunk)
                yield chunk
        except Exception as e:
            await callbacks.handle_error(self, e, ctx)
            raise
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        await callbacks.handle_end(self, chunks, ctx)

    async def batch(
        self,
        inputs: Iterable[Any],
        context: ContextLike = None,
        *,
        return_exceptions: bool = False,
    ) -> list[Any]:
        """
        Invoke the unit on every input concurrently.

        Results come back in input order whatever the completion order.
        A failing input never cancels its siblings: every invocation runs
        to completion first. Every item runs with ``clear_history`` set, so
        no backend adapter inside the unit carries turns from one input to
        another.

        Args:
            inputs: Inputs to process
            context: Shared run context; ``max_concurrency`` bounds how many
                invocations are in flight at once
            return_exceptions: Put exceptions in the failed slots instead
                of raising

        Raises:
            BatchExecutionError: At least one input failed and
                ``return_exceptions`` is False
        """
        ctx = ActionContext.ensure(context)
        items = list(inputs)
        if not items:
            return []

        semaphore = asyncio.Semaphore(ctx.max_concurrency) if ctx.max_concurrency else None
        # Adapters anywhere below this unit reset their history for every item
        item_ctx = ctx.with_generation(clear_history=True)

        async def run_one(item: Any) -> Any:
            if semaphore is None:
                return await self.invoke(item, item_ctx)
            async with semaphore:
                return await self.invoke(item, item_ctx)

        results = list(
            await asyncio.gather(*(run_one(item) for item in items), return_exceptions=True)
        )

        errors = {
            index: result
            for index, result in enumerate(results)
            if isinstance(result, BaseException)
        }
        if errors and not return_exceptions:
            raise BatchExecutionError(self.name, results, errors)
        return results

    def chain(self, other: "Action | Callable[[Any], Any]") -> "ActionPipeline":
        """
        Compose this unit with ``other``: the output of this unit becomes
        the input of ``other``.

        Always returns a new flat pipeline; neither operand is modified.
        Plain callables are wrapped in an ``ActionLambda``.
        """
        return ActionPipeline([*_steps_of(self), *_steps_of(coerce_action(other))])

    def __or__(self, other: "Action | Callable[[Any], Any]") -> "ActionPipeline":
        return self.chain(other)

    def __ror__(self, other: Callable[[Any], Any]) -> "ActionPipeline":
        return coerce_action(other).chain(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _with_deadline(self, awaitable: Any, ctx: ActionContext) -> Any:
        if ctx.timeout is None:
            return await awaitable
        scope = asyncio.timeout(ctx.timeout)
        try:
            async with scope:
                return await awaitable
        except TimeoutError as e:
            if scope.expired():
                raise ActionTimeoutError(self.name, ctx.timeout) from e
            raise

    async def _next_chunk(
        self,
        iterator: AsyncIterator[Any],
        deadline: float | None,
        ctx: ActionContext,
    ) -> Any:
        if deadline is None:
            return await anext(iterator)
        scope = asyncio.timeout_at(deadline)
        try:
            async with scope:
                return await anext(iterator)
        except TimeoutError as e:
            if scope.expired():
                raise ActionTimeoutError(self.name, ctx.timeout) from e
            raise


class ActionLambda(Action):
    """
    Wrap a plain function (sync or async) taking one input as an Action.
    """

    def __init__(self, func: Callable[[Any], Any], name: str | None = None):
        if not callable(func):
            raise TypeError(f"ActionLambda expects a callable, got {type(func).__name__}")
        self.func = func
        super().__init__(name or getattr(func, "__name__", None))

    async def _execute(self, input: Any, context: ActionContext) -> Any:
        result = self.func(input)
        if inspect.isawaitable(result):
            result = await result
        return result


class ActionPipeline(Action):
    """
    Ordered composition of Actions; itself an Action.

    The output of step n is the input of step n+1. Steps are an immutable
    tuple: chaining returns a new pipeline and never touches this one.
    """

    supports_streaming = True

    def __init__(self, steps: Iterable[Action]):
        steps = tuple(steps)
        if not steps:
            raise ValueError("ActionPipeline requires at least one step")
        for step in steps:
            if not isinstance(step, Action):
                raise TypeError(f"Pipeline steps must be Actions, got {type(step).__name__}")
        self.steps: tuple[Action, ...] = steps
        super().__init__()

    async def _execute(self, input: Any, context: ActionContext) -> Any:
        output = input
        for step in self.steps:
            output = await step.invoke(output, context)
        return output

    async def _stream(self, input: Any, context: ActionContext) -> AsyncIterator[Any]:
        # Only the tail streams incrementally
        output = input
        for step in self.steps[:-1]:
            output = await step.invoke(output, context)

        async for chunk in self.steps[-1].stream(output, context):
            yield chunk

    def chain(self, other: "Action | Callable[[Any], Any]") -> "ActionPipeline":
        return ActionPipeline([*self.steps, *_steps_of(coerce_action(other))])

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"ActionPipeline([{', '.join(step.name for step in self.steps)}])"


def coerce_action(value: "Action | Callable[[Any], Any]") -> Action:
    """Return ``value`` as an Action, wrapping plain callables."""
    if isinstance(value, Action):
        return value
    if callable(value):
        return ActionLambda(value)
    raise TypeError(f"Cannot chain object of type {type(value).__name__}")


def _steps_of(action: Action) -> tuple[Action, ...]:
    if isinstance(action, ActionPipeline):
        return action.steps
    return (action,)
