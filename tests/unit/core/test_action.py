"""Unit tests for the Action execution contract (invoke, stream, batch, deadlines)."""

import asyncio

import pytest
from pydantic import ValidationError

from email_agent_core.core.action import Action, ActionLambda
from email_agent_core.core.callbacks import ActionCallback
from email_agent_core.core.context import ActionContext
from email_agent_core.core.exceptions import (
    ActionTimeoutError,
    BatchExecutionError,
    ContractViolationError,
)


class Double(Action):
    async def _execute(self, input, context):
        return input * 2


class Sleepy(Action):
    """Sleeps for ``input`` seconds and returns it."""

    async def _execute(self, input, context):
        await asyncio.sleep(input)
        return input


class FailOn(Action):
    def __init__(self, bad):
        super().__init__()
        self.bad = bad
        self.finished = []

    async def _execute(self, input, context):
        await asyncio.sleep(0.01)
        if input == self.bad:
            raise ValueError(f"bad input {input}")
        self.finished.append(input)
        return input


class Counter(Action):
    supports_streaming = True

    def __init__(self, n, delay=0.0):
        super().__init__()
        self.n = n
        self.delay = delay
        self.closed = False

    async def _execute(self, input, context):
        return list(range(self.n))

    async def _stream(self, input, context):
        try:
            for i in range(self.n):
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield i
        finally:
            self.closed = True


class TestInvoke:
    """Test single-shot execution and lifecycle notification."""

    @pytest.mark.asyncio
    async def test_invoke_returns_transform_output(self):
        assert await Double().invoke(21) == 42

    @pytest.mark.asyncio
    async def test_missing_execute_is_contract_violation(self):
        with pytest.raises(ContractViolationError) as exc_info:
            await Action().invoke("x")
        assert isinstance(exc_info.value, NotImplementedError)

    @pytest.mark.asyncio
    async def test_observers_see_start_then_end(self, recorder):
        result = await Double().invoke(2, {"callbacks": [recorder]})

        assert result == 4
        assert recorder.events == [("start", "Double", 2), ("end", "Double", 4)]

    @pytest.mark.asyncio
    async def test_error_notifies_observers_and_reraises_same_error(self, recorder):
        action = FailOn(bad=1)

        with pytest.raises(ValueError) as exc_info:
            await action.invoke(1, ActionContext(callbacks=[recorder]))

        assert recorder.hooks() == ["start", "error"]
        assert recorder.events[1][2] is exc_info.value

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_replace_output(self, recorder):
        class Broken(ActionCallback):
            async def on_end(self, action, output, context):
                raise RuntimeError("observer bug")

        result = await Double().invoke(5, {"callbacks": [Broken(), recorder]})

        assert result == 10
        assert recorder.hooks() == ["start", "end"]

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_mask_original_error(self):
        class Broken(ActionCallback):
            def on_error(self, action, error, context):
                raise RuntimeError("observer bug")

        with pytest.raises(ValueError, match="bad input"):
            await FailOn(bad=3).invoke(3, {"callbacks": [Broken()]})

    @pytest.mark.asyncio
    async def test_no_context_means_default_context(self):
        assert await Double().invoke(1, None) == 2

    @pytest.mark.asyncio
    async def test_unknown_context_key_is_rejected(self):
        with pytest.raises(ValidationError):
            await Double().invoke(1, {"callbackz": []})

    @pytest.mark.asyncio
    async def test_context_of_wrong_type_is_rejected(self):
        with pytest.raises(TypeError):
            await Double().invoke(1, ["not", "a", "context"])

    @pytest.mark.asyncio
    async def test_concurrent_invocations_of_one_instance(self):
        action = Double()
        results = await asyncio.gather(*(action.invoke(i) for i in range(20)))
        assert results == [i * 2 for i in range(20)]


class TestActionLambda:
    @pytest.mark.asyncio
    async def test_wraps_sync_function(self):
        action = ActionLambda(lambda text: text.upper())
        assert await action.invoke("hi") == "HI"

    @pytest.mark.asyncio
    async def test_wraps_async_function(self):
        async def shout(text):
            return text + "!"

        action = ActionLambda(shout)
        assert action.name == "shout"
        assert await action.invoke("hi") == "hi!"

    def test_rejects_non_callable(self):
        with pytest.raises(TypeError):
            ActionLambda(42)


class TestStream:
    """Test streaming with and without native support."""

    @pytest.mark.asyncio
    async def test_non_streaming_unit_yields_single_invoke_result(self):
        chunks = [chunk async for chunk in Double().stream(4)]
        assert chunks == [8]

    @pytest.mark.asyncio
    async def test_native_stream_yields_in_order(self, recorder):
        action = Counter(3)
        chunks = [chunk async for chunk in action.stream(None, {"callbacks": [recorder]})]

        assert chunks == [0, 1, 2]
        assert recorder.events[-1] == ("end", "Counter", [0, 1, 2])

    @pytest.mark.asyncio
    async def test_early_exit_closes_underlying_stream(self):
        action = Counter(10)
        stream = action.stream(None)
        async for chunk in stream:
            if chunk == 1:
                break
        await stream.aclose()

        assert action.closed is True

    @pytest.mark.asyncio
    async def test_stream_deadline(self):
        action = Counter(5, delay=0.2)

        with pytest.raises(ActionTimeoutError):
            async for _ in action.stream(None, {"timeout": 0.05}):
                pass


class TestBatch:
    """Test concurrent batch execution."""

    @pytest.mark.asyncio
    async def test_results_follow_input_order(self):
        results = await Sleepy().batch([0.05, 0.0, 0.02])
        assert results == [0.05, 0.0, 0.02]

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await Double().batch([]) == []

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self):
        action = FailOn(bad=2)

        with pytest.raises(BatchExecutionError) as exc_info:
            await action.batch([1, 2, 3])

        error = exc_info.value
        assert sorted(action.finished) == [1, 3]
        assert list(error.errors) == [1]
        assert isinstance(error.errors[1], ValueError)
        assert error.successes == {0: 1, 2: 3}

    @pytest.mark.asyncio
    async def test_return_exceptions_keeps_failed_slots(self):
        results = await FailOn(bad=2).batch([1, 2, 3], return_exceptions=True)

        assert results[0] == 1
        assert isinstance(results[1], ValueError)
        assert results[2] == 3

    @pytest.mark.asyncio
    async def test_max_concurrency_bounds_in_flight(self):
        in_flight = 0
        peak = 0

        async def track(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return item

        results = await ActionLambda(track).batch(range(10), {"max_concurrency": 3})

        assert results == list(range(10))
        assert peak <= 3


class TestDeadline:
    @pytest.mark.asyncio
    async def test_timeout_raises_action_timeout(self, recorder):
        with pytest.raises(ActionTimeoutError) as exc_info:
            await Sleepy().invoke(1.0, {"timeout": 0.05, "callbacks": [recorder]})

        assert isinstance(exc_info.value, TimeoutError)
        assert exc_info.value.action_name == "Sleepy"
        assert recorder.hooks() == ["start", "error"]

    @pytest.mark.asyncio
    async def test_fast_call_within_deadline(self):
        assert await Sleepy().invoke(0.0, {"timeout": 1.0}) == 0.0

    @pytest.mark.asyncio
    async def test_inner_timeout_error_is_not_relabelled(self):
        class RaisesTimeout(Action):
            async def _execute(self, input, context):
                raise TimeoutError("backend timeout")

        with pytest.raises(TimeoutError) as exc_info:
            await RaisesTimeout().invoke(None, {"timeout": 5})

        assert not isinstance(exc_info.value, ActionTimeoutError)
