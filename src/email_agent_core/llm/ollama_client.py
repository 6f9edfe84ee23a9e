"""
Ollama adapter for local model inference.

Communicates with the Ollama chat API using httpx AsyncClient. Supports:
- Chat-style generation from typed messages (POST /api/chat)
- Streaming via newline-delimited JSON
- JSON output mode and structured output via JSON Schema (format parameter)
- Connection pooling and retry logic
- Health checks and model introspection
"""

import contextlib
import json
import time
from typing import Any, AsyncIterator, Optional

import structlog

from email_agent_core.config import Settings, settings
from email_agent_core.llm.exceptions import (
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
)
from email_agent_core.llm.http_client import HTTPBackendLLM
from email_agent_core.messages import AIMessage, BaseMessage
from email_agent_core.models.llm_models import GenerationConfig, LLMGenerationResponse


logger = structlog.get_logger(__name__)


class OllamaLLM(HTTPBackendLLM):
    """
    Ollama backend adapter.

    API Endpoints:
    - POST /api/chat: Generate a reply from a message list
    - GET /api/tags: List available models
    - POST /api/show: Get model details

    Example:
        llm = OllamaLLM(model="qwen2.5:7b", temperature=0.1)
        reply = await llm.invoke([SystemMessage("Be brief"), HumanMessage("Hi")])
    """

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        format: Optional[str | dict[str, Any]] = None,
        **kwargs,
    ):
        """
        Initialize Ollama adapter.

        Args:
            model: Model tag (default: settings.OLLAMA_MODEL)
            base_url: Ollama server URL (default: settings.OLLAMA_BASE_URL)
            timeout: Request timeout in seconds (default: settings.OLLAMA_TIMEOUT)
            max_retries: Total attempts for retryable failures
            format: "json" for JSON mode, or a JSON Schema for structured output
            **kwargs: Generation defaults and HTTP options
        """
        super().__init__(
            model or settings.OLLAMA_MODEL,
            base_url or settings.OLLAMA_BASE_URL,
            timeout=timeout if timeout is not None else settings.OLLAMA_TIMEOUT,
            max_retries=max_retries if max_retries is not None else settings.LLM_MAX_RETRIES,
            **kwargs,
        )
        self.format = format

        logger.info(
            "Ollama adapter initialized",
            base_url=self.base_url,
            model=self.model,
            timeout=self.timeout,
            max_retries=self.max_retries,
            has_format=format is not None,
        )

    @classmethod
    def _settings_options(cls, config: Settings) -> dict[str, Any]:
        return {
            **super()._settings_options(config),
            "model": config.OLLAMA_MODEL,
            "base_url": config.OLLAMA_BASE_URL,
            "timeout": config.OLLAMA_TIMEOUT,
            "max_retries": config.LLM_MAX_RETRIES,
        }

    def build_payload(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
        stream: bool = False,
    ) -> dict[str, Any]:
        """
        Build the /api/chat payload.

        {
            "model": "qwen2.5:7b",
            "messages": [{"role": "system", "content": "..."}, ...],
            "stream": false,
            "format": "json",
            "options": {
                "temperature": 0.1,
                "num_predict": 2048,
                "top_p": 0.9,
                "top_k": 40,
                "repeat_penalty": 1.1,
                "seed": 42,
                "stop": ["Human:"]
            }
        }
        """
        chat: list[dict[str, Any]] = []
        if system_prompt:
            chat.append({"role": "system", "content": system_prompt})
        for message in messages:
            chat.append(_to_ollama_message(message))

        options: dict[str, Any] = {}
        if config.temperature is not None:
            options["temperature"] = config.temperature
        if config.max_tokens is not None:
            options["num_predict"] = config.max_tokens
        if config.top_p is not None:
            options["top_p"] = config.top_p
        if config.top_k is not None:
            options["top_k"] = config.top_k
        if config.repeat_penalty is not None:
            options["repeat_penalty"] = config.repeat_penalty
        if config.seed is not None:
            options["seed"] = config.seed
        if config.stop_strings:
            options["stop"] = list(config.stop_strings)

        payload: dict[str, Any] = {
            "model": config.model or self.model,
            "messages": chat,
            "stream": stream,
            "options": options,
        }
        if self.format is not None:
            payload["format"] = self.format
        return payload

    async def _generate(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
    ) -> LLMGenerationResponse:
        """
        Generate a reply using POST /api/chat.

        Response:
        {
            "model": "qwen2.5:7b",
            "message": {"role": "assistant", "content": "..."},
            "done": true,
            "done_reason": "stop",
            "prompt_eval_count": 50,
            "eval_count": 150
        }
        """
        start_time = time.time()
        payload = self.build_payload(system_prompt, messages, config)
        model = payload["model"]

        logger.info(
            "Sending chat request to Ollama",
            model=model,
            message_count=len(payload["messages"]),
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

        try:
            data = await self._post_json("/api/chat", payload, model)
        except Exception:
            self._record_metrics(model, self._elapsed_ms(start_time), success=False)
            raise

        latency_ms = self._elapsed_ms(start_time)
        if "error" in data:
            raise LLMGenerationError(f"Ollama error: {data['error']}", details={"response": data})

        content = (data.get("message") or {}).get("content", "")
        model_version = data.get("model", model)
        finish_reason = data.get("done_reason") or ("stop" if data.get("done") else "incomplete")
        prompt_tokens = data.get("prompt_eval_count")
        completion_tokens = data.get("eval_count")

        logger.info(
            "Ollama generation successful",
            model=model_version,
            latency_ms=latency_ms,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            finish_reason=finish_reason,
        )
        self._record_metrics(model_version, latency_ms, True, prompt_tokens, completion_tokens)

        return LLMGenerationResponse(
            content=content,
            model_version=model_version,
            finish_reason=finish_reason,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms,
            raw_metadata={
                "total_duration": data.get("total_duration"),
                "load_duration": data.get("load_duration"),
                "eval_duration": data.get("eval_duration"),
            },
        )

    async def _generate_stream(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
    ) -> AsyncIterator[str]:
        """Stream deltas from POST /api/chat with ``stream: true`` (one JSON object per line)."""
        start_time = time.time()
        payload = self.build_payload(system_prompt, messages, config, stream=True)
        model = payload["model"]

        logger.info("Streaming chat request to Ollama", model=model)

        async with contextlib.aclosing(self._stream_lines("/api/chat", payload, model)) as lines:
            async for line in lines:
                try:
                    chunk = json.loads(line)
                except ValueError as e:
                    raise LLMGenerationError(
                        "Invalid JSON line in Ollama stream",
                        details={"line": line[:200], "parse_error": str(e)},
                    ) from e

                if "error" in chunk:
                    raise LLMGenerationError(f"Ollama error: {chunk['error']}", details={"response": chunk})

                delta = (chunk.get("message") or {}).get("content", "")
                if delta:
                    yield delta

                if chunk.get("done"):
                    self._record_metrics(
                        chunk.get("model", model),
                        self._elapsed_ms(start_time),
                        True,
                        chunk.get("prompt_eval_count"),
                        chunk.get("eval_count"),
                    )
                    return

    async def health_check(self) -> bool:
        """
        Check Ollama server health via GET /api/tags.

        Returns True if server responds, False otherwise.
        """
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=5.0)
            response.raise_for_status()
            logger.debug("Ollama health check passed")
            return True
        except Exception as e:
            logger.warning("Ollama health check failed", error=str(e))
            return False

    async def list_models(self) -> list[str]:
        """
        List all available models via GET /api/tags.

        Returns:
            List of model names (e.g., ["qwen2.5:7b", "llama3.1:8b"])
        """
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=10.0)
            response.raise_for_status()
            models = [m["name"] for m in response.json().get("models", [])]
        except Exception as e:
            logger.error("Failed to list models", error=str(e))
            raise LLMConnectionError(f"Failed to list models: {e}", details={"error": str(e)}) from e

        logger.debug("Listed available models", count=len(models), models=models)
        return models

    async def get_model_info(self, model_name: Optional[str] = None) -> dict[str, Any]:
        """
        Get model information via POST /api/show.

        Raises:
            LLMModelNotAvailableError: Model is not pulled on the server
            LLMConnectionError: Any other failure
        """
        model_name = model_name or self.model
        client = await self._get_client()
        try:
            response = await client.post("/api/show", json={"name": model_name}, timeout=10.0)
        except Exception as e:
            raise LLMConnectionError(
                f"Error getting model info: {e}", details={"model": model_name}
            ) from e

        if response.status_code == 404:
            raise LLMModelNotAvailableError(f"Model not found: {model_name}", details={"model": model_name})
        if response.status_code >= 400:
            raise LLMConnectionError(
                f"Failed to get model info: {response.status_code}",
                details={"model": model_name, "status": response.status_code},
            )
        return response.json()


def _to_ollama_message(message: BaseMessage) -> dict[str, Any]:
    item = {"role": message.role, "content": message.content}
    if isinstance(message, AIMessage) and message.tool_calls:
        item["tool_calls"] = [
            {"function": {"name": call.name, "arguments": call.arguments}}
            for call in message.tool_calls
        ]
    return item
