"""Unit test fixtures (mocks and stubs).

Provides a scripted backend adapter and a recording observer for testing
without external dependencies.
"""

import asyncio
from typing import Any

import pytest

from email_agent_core.core.callbacks import ActionCallback
from email_agent_core.llm.base_client import BaseLLM
from email_agent_core.models.llm_models import LLMGenerationResponse


class FakeLLM(BaseLLM):
    """
    Scripted adapter.

    Each call consumes the next entry of ``responses`` (the last entry
    repeats). An entry that is an exception instance is raised instead.
    Every call is recorded as ``(system_prompt, messages, config)``.
    """

    def __init__(self, responses=None, chunks=None, delay: float = 0.0, **kwargs):
        super().__init__(model="fake-model", **kwargs)
        self.responses = list(responses or ["ok"])
        self.chunks = chunks
        self.delay = delay
        self.calls: list[tuple[str, list, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _next_response(self):
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        return self.responses[index]

    async def _generate(self, system_prompt, messages, config):
        self.calls.append((system_prompt, list(messages), config))
        response = self._next_response()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        if isinstance(response, BaseException):
            raise response
        return LLMGenerationResponse(
            content=response,
            model_version=self.model,
            prompt_tokens=3,
            completion_tokens=5,
        )

    async def _generate_stream(self, system_prompt, messages, config):
        self.calls.append((system_prompt, list(messages), config))
        for chunk in self.chunks if self.chunks is not None else [self._next_response()]:
            yield chunk


class RecordingCallback(ActionCallback):
    """Observer keeping every lifecycle event as (hook, action name, payload)."""

    def __init__(self):
        self.events: list[tuple[str, str, Any]] = []

    async def on_start(self, action, input, context):
        self.events.append(("start", action.name, input))

    async def on_end(self, action, output, context):
        self.events.append(("end", action.name, output))

    async def on_error(self, action, error, context):
        self.events.append(("error", action.name, error))

    def hooks(self, action_name: str | None = None) -> list[str]:
        return [hook for hook, name, _ in self.events if action_name in (None, name)]


@pytest.fixture
def make_llm():
    """Factory fixture to create a FakeLLM.

    Usage:
        def test_something(make_llm):
            llm = make_llm(responses=['{"a": 1}'])
    """
    def _create(responses=None, **kwargs) -> FakeLLM:
        return FakeLLM(responses=responses, **kwargs)

    return _create


@pytest.fixture
def recorder() -> RecordingCallback:
    """Fresh recording observer."""
    return RecordingCallback()
