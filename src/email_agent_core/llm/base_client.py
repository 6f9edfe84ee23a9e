"""
Abstract backend adapter.

Defines the contract every generation backend (local model runner, hosted
API) satisfies to plug into a pipeline: given an ordered list of messages
and a generation config, produce one assistant message, or a sequence of
partial assistant messages when streaming.
"""

import asyncio
import contextlib
import random
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional, Sequence

import structlog

from email_agent_core.config import Settings, settings
from email_agent_core.core.action import Action
from email_agent_core.core.context import ActionContext
from email_agent_core.messages import (
    AIMessage,
    BaseMessage,
    SystemMessage,
    coerce_messages,
)
from email_agent_core.models.llm_models import GenerationConfig, LLMGenerationResponse


logger = structlog.get_logger(__name__)

DEFAULT_STOP_STRINGS = ["Human:", "User:", "\n\nHuman:", "\n\nUser:"]
MAX_SEED = 1_000_000


class BaseLLM(Action, ABC):
    """
    Abstract base class for backend adapters.

    Concrete adapters implement ``_generate`` and ``_generate_stream``.
    The base class handles everything backends share:

    - input coercion (string, message, message list)
    - merging per-call generation overrides from the run context over the
      adapter defaults
    - a fresh random seed per call when temperature > 0 and no seed is set
    - optional conversation history (``keep_history``), reset per call by
      ``clear_history`` and always reset for every batch item
    - bounding in-flight generations (``max_concurrency``)

    Does NOT handle:
    - Prompt construction (prompts are upstream pipeline steps)
    - Output parsing (parsers are downstream pipeline steps)
    """

    supports_streaming = True

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        top_p: float = 0.9,
        top_k: int = 40,
        max_tokens: int = 2048,
        repeat_penalty: float = 1.1,
        stop_strings: Optional[list[str]] = None,
        keep_history: bool = False,
        max_concurrency: Optional[int] = None,
    ):
        """
        Initialize adapter defaults.

        Args:
            model: Model name/identifier
            temperature: Sampling temperature (lower = more deterministic)
            top_p: Nucleus sampling threshold
            top_k: Top-K sampling parameter
            max_tokens: Maximum tokens to generate
            repeat_penalty: Penalty for repeating tokens
            stop_strings: Strings that stop generation (default: chat separators)
            keep_history: Prepend previous turns to each call
            max_concurrency: Maximum generations in flight (None = unbounded)
        """
        super().__init__()
        self.model = model
        self.defaults = GenerationConfig(
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            max_tokens=max_tokens,
            repeat_penalty=repeat_penalty,
            stop_strings=list(stop_strings) if stop_strings is not None else list(DEFAULT_STOP_STRINGS),
            model=model,
        )
        self.keep_history = keep_history
        self.history: list[BaseMessage] = []
        self._history_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

        logger.info(
            "Initialized LLM adapter",
            adapter=self.name,
            model=model,
            temperature=temperature,
            keep_history=keep_history,
            max_concurrency=max_concurrency,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, **overrides):
        """
        Build an adapter from application settings.

        Keyword overrides win over values read from settings.
        """
        options = {**cls._settings_options(config or settings), **overrides}
        return cls(**options)

    @classmethod
    def _settings_options(cls, config: Settings) -> dict[str, Any]:
        return {
            "temperature": config.LLM_TEMPERATURE,
            "top_p": config.LLM_TOP_P,
            "top_k": config.LLM_TOP_K,
            "max_tokens": config.LLM_MAX_TOKENS,
            "repeat_penalty": config.LLM_REPEAT_PENALTY,
            "max_concurrency": config.LLM_MAX_CONCURRENCY,
        }

    # ------------------------------------------------------------------
    # Backend-specific primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def _generate(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
    ) -> LLMGenerationResponse:
        """
        Produce one complete reply.

        Args:
            system_prompt: System-level instruction ("" when none)
            messages: Conversation without the extracted system message
            config: Fully resolved generation config

        Raises:
            LLMClientError: Any backend failure
        """

    @abstractmethod
    def _generate_stream(
        self,
        system_prompt: str,
        messages: list[BaseMessage],
        config: GenerationConfig,
    ) -> AsyncIterator[str]:
        """Yield text deltas in production order."""

    # ------------------------------------------------------------------
    # Action implementation
    # ------------------------------------------------------------------

    async def _execute(self, input: Any, context: ActionContext) -> AIMessage:
        messages = coerce_messages(input)
        config = self.resolve_generation(context)

        async with self._exclusive():
            conversation = self._conversation(messages, config)
            system_prompt, history = self.split_system(conversation)
            response = await self._generate(system_prompt, history, config)
            reply = AIMessage(
                response.content,
                additional_kwargs={
                    "model": response.model_version,
                    "finish_reason": response.finish_reason,
                    "prompt_tokens": response.prompt_tokens,
                    "completion_tokens": response.completion_tokens,
                    "latency_ms": response.latency_ms,
                },
            )
            self._remember(conversation, reply)

        return reply

    async def _stream(self, input: Any, context: ActionContext) -> AsyncIterator[AIMessage]:
        messages = coerce_messages(input)
        config = self.resolve_generation(context)

        async with self._exclusive():
            conversation = self._conversation(messages, config)
            system_prompt, history = self.split_system(conversation)
            parts: list[str] = []
            deltas = self._generate_stream(system_prompt, history, config)
            async with contextlib.aclosing(deltas):
                async for delta in deltas:
                    if not delta:
                        continue
                    parts.append(delta)
                    yield AIMessage(delta, additional_kwargs={"chunk": True})
            self._remember(conversation, AIMessage("".join(parts)))

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    def resolve_generation(self, context: ActionContext | None = None) -> GenerationConfig:
        """
        Merge the context's generation overrides over the adapter defaults.

        A random seed is drawn for every call that samples (temperature > 0)
        without an explicit seed, so repeated calls are not accidentally
        deterministic.
        """
        overrides = context.generation if context is not None else None
        config = overrides.merged_over(self.defaults) if overrides else self.defaults

        if config.seed is None and (config.temperature or 0) > 0:
            config = config.model_copy(update={"seed": random.randrange(MAX_SEED)})
        return config

    @staticmethod
    def split_system(messages: Sequence[BaseMessage]) -> tuple[str, list[BaseMessage]]:
        """
        Extract the first system message as the system instruction.

        Returns:
            Tuple of (system prompt or "", remaining messages in order)
        """
        for index, message in enumerate(messages):
            if isinstance(message, SystemMessage):
                return message.content, [*messages[:index], *messages[index + 1:]]
        return "", list(messages)

    def clear_history(self) -> None:
        self.history = []

    def _conversation(self, messages: list[BaseMessage], config: GenerationConfig) -> list[BaseMessage]:
        if not self.keep_history:
            return messages
        if config.clear_history:
            self.clear_history()
        return [*self.history, *messages]

    def _remember(self, conversation: list[BaseMessage], reply: AIMessage) -> None:
        if self.keep_history:
            self.history = [*conversation, reply]

    @contextlib.asynccontextmanager
    async def _exclusive(self):
        async with contextlib.AsyncExitStack() as stack:
            if self._semaphore is not None:
                await stack.enter_async_context(self._semaphore)
            if self.keep_history:
                # History is shared state: serialize calls that read/write it
                await stack.enter_async_context(self._history_lock)
            yield

    async def aclose(self) -> None:
        """
        Release backend resources.

        Default implementation does nothing. Adapters holding connections
        override it.
        """
        logger.debug("Closing LLM adapter", adapter=self.name)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model})"
