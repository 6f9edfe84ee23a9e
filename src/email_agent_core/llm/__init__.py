"""
Backend adapters.

- base_client.py: BaseLLM contract (an Action from messages to AIMessage)
- http_client.py: shared httpx transport, retries and error mapping
- ollama_client.py: local Ollama server
- openai_client.py: OpenAI-compatible chat completions APIs
- text_utils.py: truncation and token estimates
"""

from email_agent_core.llm.base_client import DEFAULT_STOP_STRINGS, BaseLLM
from email_agent_core.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from email_agent_core.llm.http_client import HTTPBackendLLM
from email_agent_core.llm.ollama_client import OllamaLLM
from email_agent_core.llm.openai_client import OpenAICompatibleLLM
from email_agent_core.llm.text_utils import (
    count_tokens_approximate,
    truncate_at_sentence_boundary,
)

__all__ = [
    # Adapters
    "BaseLLM",
    "HTTPBackendLLM",
    "OllamaLLM",
    "OpenAICompatibleLLM",
    "DEFAULT_STOP_STRINGS",
    # Exceptions
    "LLMClientError",
    "LLMConnectionError",
    "LLMGenerationError",
    "LLMModelNotAvailableError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    # Text utilities
    "truncate_at_sentence_boundary",
    "count_tokens_approximate",
]
