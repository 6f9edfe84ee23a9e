"""
Adapter for hosted and self-hosted OpenAI-compatible chat APIs.

Works with any server exposing POST {base_url}/chat/completions (OpenAI,
vLLM, SGLang, llama.cpp server, LM Studio). Streaming uses server-sent
events terminated by ``data: [DONE]``.
"""

import contextlib
import json
import time
from typing import Any, AsyncIterator, Optional

import structlog

from email_agent_core.config import Settings, settings
from email_agent_core.llm.exceptions import LLMGenerationError
from email_agent_core.llm.http_client import HTTPBackendLLM
from email_agent_core.messages import AIMessage, BaseMessage, ToolMessage
from email_agent_core.models.llm_models import GenerationConfig, LLMGenerationResponse


logger = structlog.get_logger(__name__)

SSE_PREFIX = "data:"
SSE_DONE = "[DONE]"


class OpenAICompatibleLLM(HTTPBackendLLM):
    """
    OpenAI-compatible chat completions adapter.

    ``top_k`` and ``repeat_penalty`` have no OpenAI equivalent and are not
    sent. HTTP 429 surfaces as LLMRateLimitError.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        response_format: Optional[dict[str, Any]] = None,
        **kwargs,
    ):
        """
        Args:
            model: Model name (default: settings.OPENAI_MODEL)
            base_url: API root including version, e.g. https://api.openai.com/v1
            api_key: Bearer token (default: settings.OPENAI_API_KEY)
            timeout: Request timeout in seconds (default: settings.OPENAI_TIMEOUT)
            max_retries: Total attempts for retryable failures
            response_format: Passed through, e.g. {"type": "json_object"}
            **kwargs: Generation defaults and HTTP options
        """
        api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        headers = dict(kwargs.pop("headers", None) or {})
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        super().__init__(
            model or settings.OPENAI_MODEL,
            base_url or settings.OPENAI_BASE_URL,
            timeout=timeout if timeout is not None else settings.OPENAI_TIMEOUT,
            max_retries=max_retries if max_retries is not None else settings.LLM_MAX_RETRIES,
            headers=headers,
            **kwargs,
        )
        self.response_format = response_format

        logger.info(
            "OpenAI-compatible adapter initialized",
            base_url=self.base_url,
            model=self.model,
            has_api_key=bool(api_key),
        )

    @classmethod
    def _settings_options(cls, config: Settings) -> dict[str, Any]:
        return {
            **super()._settings_options(config),
            "model": config.OPENAI_MODEL,
            "base_url": config.OPENAI_BASE_URL,
            "api_key": config.OPENAI_API_KEY,
            "timeout": config.OPENAI_TIMEOUT,
            "max_retries": config.LLM_MAX_RETRIES,
        }

    def build_payload(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
        stream: bool = False,
    ) -> dict[str, Any]:
        chat: list[dict[str, Any]] = []
        if system_prompt:
            chat.append({"role": "system", "content": system_prompt})
        chat.extend(_to_openai_message(message) for message in messages)

        payload: dict[str, Any] = {
            "model": config.model or self.model,
            "messages": chat,
            "stream": stream,
        }
        if config.temperature is not None:
            payload["temperature"] = config.temperature
        if config.top_p is not None:
            payload["top_p"] = config.top_p
        if config.max_tokens is not None:
            payload["max_tokens"] = config.max_tokens
        if config.seed is not None:
            payload["seed"] = config.seed
        if config.stop_strings:
            # OpenAI accepts at most 4 stop sequences
            payload["stop"] = list(config.stop_strings)[:4]
        if self.response_format is not None:
            payload["response_format"] = self.response_format
        return payload

    async def _generate(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
    ) -> LLMGenerationResponse:
        start_time = time.time()
        payload = self.build_payload(system_prompt, messages, config)
        model = payload["model"]

        logger.info(
            "Sending chat completion request",
            model=model,
            message_count=len(payload["messages"]),
            temperature=config.temperature,
        )

        try:
            data = await self._post_json("/chat/completions", payload, model)
        except Exception:
            self._record_metrics(model, self._elapsed_ms(start_time), success=False)
            raise

        latency_ms = self._elapsed_ms(start_time)
        choices = data.get("choices") or []
        if not choices:
            raise LLMGenerationError("Response contained no choices", details={"response": data})

        choice = choices[0]
        content = (choice.get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}
        model_version = data.get("model", model)

        logger.info(
            "Chat completion successful",
            model=model_version,
            latency_ms=latency_ms,
            finish_reason=choice.get("finish_reason"),
        )
        self._record_metrics(
            model_version,
            latency_ms,
            True,
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
        )

        return LLMGenerationResponse(
            content=content,
            model_version=model_version,
            finish_reason=choice.get("finish_reason") or "stop",
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
            latency_ms=latency_ms,
            raw_metadata={"id": data.get("id"), "system_fingerprint": data.get("system_fingerprint")},
        )

    async def _generate_stream(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
    ) -> AsyncIterator[str]:
        start_time = time.time()
        payload = self.build_payload(system_prompt, messages, config, stream=True)
        model = payload["model"]

        logger.info("Streaming chat completion request", model=model)

        async with contextlib.aclosing(self._stream_lines("/chat/completions", payload, model)) as lines:
            async for line in lines:
                if not line.startswith(SSE_PREFIX):
                    continue
                data = line[len(SSE_PREFIX):].strip()
                if data == SSE_DONE:
                    break
                try:
                    event = json.loads(data)
                except ValueError as e:
                    raise LLMGenerationError(
                        "Invalid JSON event in completion stream",
                        details={"line": line[:200], "parse_error": str(e)},
                    ) from e

                for choice in event.get("choices") or []:
                    delta = (choice.get("delta") or {}).get("content")
                    if delta:
                        yield delta

        self._record_metrics(model, self._elapsed_ms(start_time))

    async def health_check(self) -> bool:
        """Check the API via GET /models."""
        try:
            client = await self._get_client()
            response = await client.get("/models", timeout=5.0)
            response.raise_for_status()
            return True
        except Exception as e:
            logger.warning("OpenAI-compatible health check failed", error=str(e))
            return False


def _to_openai_message(message: BaseMessage) -> dict[str, Any]:
    item: dict[str, Any] = {"role": message.role, "content": message.content}
    if isinstance(message, AIMessage) and message.tool_calls:
        item["tool_calls"] = [
            {
                "id": call.id or f"call_{index}",
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
            }
            for index, call in enumerate(message.tool_calls)
        ]
    elif isinstance(message, ToolMessage):
        item["tool_call_id"] = message.tool_call_id
    return item
