"""
Shared HTTP transport for backend adapters.

Both the Ollama and the OpenAI-compatible adapters speak JSON over HTTP
using a persistent httpx AsyncClient. This module owns what they share:

- Connection pooling via one lazily created AsyncClient
- Retry with exponential backoff on timeouts, network errors and 5xx
- Mapping HTTP failures onto the LLMClientError tree
- Line streaming for NDJSON / SSE responses
- Latency and token metrics
"""

import asyncio
import time
from abc import abstractmethod
from typing import Any, AsyncIterator, Optional

import httpx
import structlog

from email_agent_core.llm.base_client import BaseLLM
from email_agent_core.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from email_agent_core.monitoring.metrics import llm_latency_seconds, llm_tokens_total


logger = structlog.get_logger(__name__)


class HTTPBackendLLM(BaseLLM):
    """
    Base class for adapters that reach their backend over HTTP.

    ``max_retries`` counts total attempts, so ``max_retries=2`` means one
    initial request plus one retry. Streaming requests are never retried
    because deltas may already have been delivered.
    """

    def __init__(
        self,
        model: str,
        base_url: str,
        timeout: float = 60,
        max_retries: int = 2,
        backoff_base: float = 2.0,
        headers: Optional[dict[str, str]] = None,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ):
        """
        Args:
            model: Model name/identifier
            base_url: Backend server URL
            timeout: Request timeout in seconds
            max_retries: Total attempts for retryable failures
            backoff_base: Sleep ``backoff_base ** n`` seconds after failed attempt n
            headers: Extra headers sent with every request
            connection_limits: httpx connection pool limits
            transport: Custom httpx transport (tests use httpx.MockTransport)
            **kwargs: Generation defaults forwarded to BaseLLM
        """
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_base = backoff_base
        self._headers = dict(headers or {})
        self._connection_limits = connection_limits or httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                headers=self._headers,
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("Created new httpx AsyncClient", base_url=self.base_url)
        return self._client

    def _status_error(self, status_code: int, error_text: str, model: str) -> tuple[LLMClientError, bool]:
        """
        Map an HTTP error status onto an adapter exception.

        Returns:
            Tuple of (exception to raise, whether the request may be retried)
        """
        details = {"status": status_code, "error": error_text, "model": model}
        if status_code == 404:
            return LLMModelNotAvailableError(f"Model not found: {model}", details=details), False
        if status_code == 429:
            return LLMRateLimitError(f"Rate limited by {self.name}", details=details), False
        if status_code >= 500:
            return LLMGenerationError(f"{self.name} server error: {status_code}", details=details), True
        return LLMGenerationError(f"{self.name} client error: {status_code}", details=details), False

    async def _backoff(self, attempt: int, reason: str) -> None:
        backoff = self.backoff_base ** attempt
        logger.info("Retrying backend request", adapter=self.name, reason=reason, backoff=backoff)
        await asyncio.sleep(backoff)

    async def _post_json(self, path: str, payload: dict[str, Any], model: str) -> dict[str, Any]:
        """
        POST a JSON payload and return the decoded JSON body, with retries.

        Raises:
            LLMTimeoutError: Timed out on every attempt
            LLMConnectionError: Network failure on every attempt
            LLMModelNotAvailableError: HTTP 404
            LLMRateLimitError: HTTP 429
            LLMGenerationError: Other HTTP errors or an undecodable body
        """
        last_error: Optional[LLMClientError] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                client = await self._get_client()
                response = await client.post(path, json=payload)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                logger.warning(
                    "Backend request timeout",
                    adapter=self.name,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    timeout=self.timeout,
                    error=str(e),
                )
                last_error = LLMTimeoutError(
                    f"Request timeout after {self.timeout}s",
                    details={"attempt": attempt, "timeout": self.timeout},
                )
                if attempt < self.max_retries:
                    await self._backoff(attempt, "timeout")
                    continue
                raise last_error

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                error_text = e.response.text

                logger.error(
                    "Backend HTTP error",
                    adapter=self.name,
                    status_code=status_code,
                    error_text=error_text,
                    attempt=attempt,
                )
                last_error, retryable = self._status_error(status_code, error_text, model)
                if retryable and attempt < self.max_retries:
                    await self._backoff(attempt, f"status {status_code}")
                    continue
                raise last_error

            except httpx.NetworkError as e:
                logger.warning(
                    "Backend network error",
                    adapter=self.name,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(e),
                )
                last_error = LLMConnectionError(
                    f"Network error: {e}",
                    details={"attempt": attempt, "error_type": type(e).__name__},
                )
                if attempt < self.max_retries:
                    await self._backoff(attempt, "network error")
                    continue
                raise last_error

            except ValueError as e:
                # json.JSONDecodeError is a ValueError
                logger.error("Failed to parse backend response JSON", adapter=self.name, error=str(e))
                raise LLMGenerationError(
                    f"Invalid JSON response from {self.name}",
                    details={"parse_error": str(e)},
                )

        raise last_error or LLMGenerationError("Generation failed after all retries")

    async def _stream_lines(self, path: str, payload: dict[str, Any], model: str) -> AsyncIterator[str]:
        """
        POST a payload and yield non-empty response lines as they arrive.

        Raises the same exception tree as ``_post_json``, without retries.
        """
        client = await self._get_client()
        try:
            async with client.stream("POST", path, json=payload) as response:
                if response.status_code >= 400:
                    await response.aread()
                    error, _ = self._status_error(response.status_code, response.text, model)
                    logger.error(
                        "Backend HTTP error while streaming",
                        adapter=self.name,
                        status_code=response.status_code,
                    )
                    raise error
                async for line in response.aiter_lines():
                    if line.strip():
                        yield line
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(
                f"Stream timeout after {self.timeout}s",
                details={"timeout": self.timeout, "error": str(e)},
            ) from e
        except httpx.NetworkError as e:
            raise LLMConnectionError(
                f"Network error: {e}",
                details={"error_type": type(e).__name__},
            ) from e

    def _record_metrics(
        self,
        model: str,
        latency_ms: int,
        success: bool = True,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None,
    ) -> None:
        llm_latency_seconds.labels(
            model=model, success="true" if success else "false"
        ).observe(latency_ms / 1000.0)
        if prompt_tokens:
            llm_tokens_total.labels(model=model, token_type="prompt").inc(prompt_tokens)
        if completion_tokens:
            llm_tokens_total.labels(model=model, token_type="completion").inc(completion_tokens)

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.time() - start_time) * 1000)

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the backend answers, False otherwise."""

    async def aclose(self) -> None:
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed backend client connection", adapter=self.name)
