"""Unit tests for the Ollama adapter against a mocked HTTP transport."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from email_agent_core.llm.exceptions import (
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from email_agent_core.llm.ollama_client import OllamaLLM
from email_agent_core.messages import AIMessage, HumanMessage, SystemMessage, ToolCall
from email_agent_core.models.llm_models import GenerationConfig


CHAT_RESPONSE = {
    "model": "qwen2.5:7b",
    "message": {"role": "assistant", "content": '{"category": "booking"}'},
    "done": True,
    "done_reason": "stop",
    "prompt_eval_count": 50,
    "eval_count": 12,
}


def make_ollama(handler, **kwargs) -> OllamaLLM:
    """Ollama adapter whose requests are answered by ``handler``."""
    options = {
        "model": "qwen2.5:7b",
        "base_url": "http://ollama.test",
        "transport": httpx.MockTransport(handler),
        "backoff_base": 0.0,
        "temperature": 0.1,
    }
    options.update(kwargs)
    return OllamaLLM(**options)


class TestOllamaPayload:
    """Test request construction."""

    def test_payload_structure(self):
        llm = make_ollama(lambda request: httpx.Response(200), format="json")
        config = llm.resolve_generation().model_copy(update={"seed": 42})

        payload = llm.build_payload("Be brief", [HumanMessage("Hi")], config)

        assert payload["model"] == "qwen2.5:7b"
        assert payload["stream"] is False
        assert payload["format"] == "json"
        assert payload["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hi"},
        ]
        assert payload["options"] == {
            "temperature": 0.1,
            "num_predict": 2048,
            "top_p": 0.9,
            "top_k": 40,
            "repeat_penalty": 1.1,
            "seed": 42,
            "stop": ["Human:", "User:", "\n\nHuman:", "\n\nUser:"],
        }

    def test_no_system_entry_when_empty(self):
        llm = make_ollama(lambda request: httpx.Response(200))

        payload = llm.build_payload("", [HumanMessage("Hi")], llm.defaults)

        assert [m["role"] for m in payload["messages"]] == ["user"]
        assert "format" not in payload

    def test_model_override(self):
        llm = make_ollama(lambda request: httpx.Response(200))
        config = GenerationConfig(model="llama3.1:8b").merged_over(llm.defaults)

        assert llm.build_payload("", [], config)["model"] == "llama3.1:8b"

    def test_tool_calls_projected(self):
        llm = make_ollama(lambda request: httpx.Response(200))
        message = AIMessage("", tool_calls=[ToolCall(name="availability", arguments={"date": "2025-03-20"})])

        payload = llm.build_payload("", [message], llm.defaults)

        assert payload["messages"][0]["tool_calls"] == [
            {"function": {"name": "availability", "arguments": {"date": "2025-03-20"}}}
        ]


class TestOllamaGenerate:
    """Test non-streaming generation."""

    @pytest.mark.asyncio
    async def test_successful_generation(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=CHAT_RESPONSE)

        async with make_ollama(handler) as llm:
            reply = await llm.invoke([SystemMessage("Classify"), HumanMessage("Email")])

        assert seen["path"] == "/api/chat"
        assert seen["body"]["messages"][0] == {"role": "system", "content": "Classify"}
        assert reply.content == '{"category": "booking"}'
        assert reply.additional_kwargs["prompt_tokens"] == 50
        assert reply.additional_kwargs["completion_tokens"] == 12
        assert reply.additional_kwargs["finish_reason"] == "stop"

    @pytest.mark.asyncio
    async def test_incomplete_finish_reason(self):
        body = {"model": "qwen2.5:7b", "message": {"content": "partial"}, "done": False}

        async with make_ollama(lambda request: httpx.Response(200, json=body)) as llm:
            reply = await llm.invoke("x")

        assert reply.additional_kwargs["finish_reason"] == "incomplete"

    @pytest.mark.asyncio
    async def test_error_field_raises(self):
        body = {"error": "model crashed"}

        async with make_ollama(lambda request: httpx.Response(200, json=body)) as llm:
            with pytest.raises(LLMGenerationError, match="model crashed"):
                await llm.invoke("x")

    @pytest.mark.asyncio
    async def test_model_not_found(self):
        async with make_ollama(lambda request: httpx.Response(404, text="not found")) as llm:
            with pytest.raises(LLMModelNotAvailableError) as exc_info:
                await llm.invoke("x")

        assert exc_info.value.details["status"] == 404

    @pytest.mark.asyncio
    async def test_rate_limit_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429, text="slow down")

        async with make_ollama(handler, max_retries=3) as llm:
            with pytest.raises(LLMRateLimitError):
                await llm.invoke("x")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried_then_succeeds(self):
        responses = [httpx.Response(503, text="busy"), httpx.Response(200, json=CHAT_RESPONSE)]

        async with make_ollama(lambda request: responses.pop(0), max_retries=2) as llm:
            reply = await llm.invoke("x")

        assert reply.content == '{"category": "booking"}'
        assert responses == []

    @pytest.mark.asyncio
    async def test_backoff_after_each_failed_attempt(self):
        responses = [httpx.Response(503), httpx.Response(503), httpx.Response(200, json=CHAT_RESPONSE)]

        with patch("email_agent_core.llm.http_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with make_ollama(lambda request: responses.pop(0), max_retries=3, backoff_base=2.0) as llm:
                await llm.invoke("x")

        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, text="bad request")

        async with make_ollama(handler, max_retries=3) as llm:
            with pytest.raises(LLMGenerationError, match="client error: 400"):
                await llm.invoke("x")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connection_error_after_all_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("Connection refused", request=request)

        async with make_ollama(handler, max_retries=2) as llm:
            with pytest.raises(LLMConnectionError):
                await llm.invoke("x")

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_ollama(handler, max_retries=1) as llm:
            with pytest.raises(LLMTimeoutError):
                await llm.invoke("x")

    @pytest.mark.asyncio
    async def test_invalid_json_body(self):
        async with make_ollama(lambda request: httpx.Response(200, text="not json")) as llm:
            with pytest.raises(LLMGenerationError, match="Invalid JSON"):
                await llm.invoke("x")


class TestOllamaStream:
    """Test NDJSON streaming."""

    @pytest.mark.asyncio
    async def test_stream_deltas(self):
        lines = [
            {"message": {"content": "Dear "}, "done": False},
            {"message": {"content": "guest"}, "done": False},
            {"message": {"content": ""}, "done": True, "eval_count": 2},
        ]
        body = "\n".join(json.dumps(line) for line in lines) + "\n"

        def handler(request):
            assert json.loads(request.content)["stream"] is True
            return httpx.Response(200, text=body)

        async with make_ollama(handler) as llm:
            chunks = [chunk.content async for chunk in llm.stream("x")]

        assert chunks == ["Dear ", "guest"]

    @pytest.mark.asyncio
    async def test_stream_error_chunk(self):
        body = json.dumps({"error": "out of memory"}) + "\n"

        async with make_ollama(lambda request: httpx.Response(200, text=body)) as llm:
            with pytest.raises(LLMGenerationError, match="out of memory"):
                async for _ in llm.stream("x"):
                    pass

    @pytest.mark.asyncio
    async def test_stream_http_error(self):
        async with make_ollama(lambda request: httpx.Response(404, text="missing")) as llm:
            with pytest.raises(LLMModelNotAvailableError):
                async for _ in llm.stream("x"):
                    pass


class TestOllamaIntrospection:
    @pytest.mark.asyncio
    async def test_health_check(self):
        async with make_ollama(lambda request: httpx.Response(200, json={"models": []})) as llm:
            assert await llm.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_failure(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        async with make_ollama(handler) as llm:
            assert await llm.health_check() is False

    @pytest.mark.asyncio
    async def test_list_models(self):
        body = {"models": [{"name": "qwen2.5:7b"}, {"name": "llama3.1:8b"}]}

        async with make_ollama(lambda request: httpx.Response(200, json=body)) as llm:
            assert await llm.list_models() == ["qwen2.5:7b", "llama3.1:8b"]

    @pytest.mark.asyncio
    async def test_list_models_failure(self):
        async with make_ollama(lambda request: httpx.Response(500)) as llm:
            with pytest.raises(LLMConnectionError):
                await llm.list_models()

    @pytest.mark.asyncio
    async def test_model_info_not_found(self):
        async with make_ollama(lambda request: httpx.Response(404)) as llm:
            with pytest.raises(LLMModelNotAvailableError):
                await llm.get_model_info("missing:1b")

    @pytest.mark.asyncio
    async def test_model_info(self):
        def handler(request):
            assert json.loads(request.content) == {"name": "qwen2.5:7b"}
            return httpx.Response(200, json={"details": {"family": "qwen2"}})

        async with make_ollama(handler) as llm:
            info = await llm.get_model_info()

        assert info["details"]["family"] == "qwen2"

    def test_from_settings(self, test_settings):
        llm = OllamaLLM.from_settings(test_settings)

        assert llm.model == "qwen2.5:7b"
        assert llm.timeout == 30
        assert llm.max_retries == 1
        assert llm.defaults.temperature == 0.2
