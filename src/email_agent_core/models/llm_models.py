"""
LLM-specific data models for the request/response cycle.

These models are shared between the orchestration core (which carries a
generation config in the run context) and the backend adapters (which turn
it into provider-specific options).
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


class GenerationConfig(BaseModel):
    """
    Per-call generation parameters.

    Every field is optional: unset fields fall back to the adapter's
    defaults. This is the standardized format every backend adapter
    accepts, independently of its provider.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0, description="Sampling temperature")
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Nucleus sampling parameter")
    top_k: Optional[int] = Field(default=None, ge=0, description="Top-K sampling parameter")
    max_tokens: Optional[int] = Field(default=None, ge=1, description="Maximum tokens to generate")
    repeat_penalty: Optional[float] = Field(default=None, ge=0.0, description="Penalty for repeated tokens")
    stop_strings: Optional[list[str]] = Field(default=None, description="Strings that stop generation")
    seed: Optional[int] = Field(default=None, description="Fixed random seed for reproducibility")
    clear_history: Optional[bool] = Field(
        default=None,
        description="Drop any conversation history the adapter keeps before this call"
    )
    model: Optional[str] = Field(default=None, description="Override the adapter's model name")

    def merged_over(self, defaults: "GenerationConfig") -> "GenerationConfig":
        """Return a config where fields set on self override ``defaults``."""
        return defaults.model_copy(update=self.model_dump(exclude_none=True))


class LLMGenerationResponse(BaseModel):
    """
    Response from one non-streaming generation.

    Contains the raw generated text plus metadata for audit/logging.
    Adapters wrap ``content`` into an ``AIMessage`` and keep the rest in
    its additional kwargs.
    """
    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Generated text")
    model_version: str = Field(..., description="Model that actually answered")
    finish_reason: str = Field(default="stop", description="Why generation stopped: 'stop', 'length', ...")
    prompt_tokens: Optional[int] = Field(default=None, description="Tokens in prompt")
    completion_tokens: Optional[int] = Field(default=None, description="Tokens in completion")
    latency_ms: int = Field(default=0, ge=0, description="Generation latency in milliseconds")
    raw_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Provider-specific metadata (for debugging)"
    )

    @property
    def usage_tokens(self) -> Optional[int]:
        if self.prompt_tokens is None or self.completion_tokens is None:
            return None
        return self.prompt_tokens + self.completion_tokens
