"""
Run context passed alongside every Action input.

A closed set of per-invocation settings: lifecycle observers, generation
overrides for backend adapters, a deadline, a batch concurrency bound and
diagnostic labels.
"""

from typing import TYPE_CHECKING, Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from email_agent_core.models.llm_models import GenerationConfig

if TYPE_CHECKING:
    from email_agent_core.core.callbacks import ActionCallback


class ActionContext(BaseModel):
    """
    Configuration for a single ``invoke``/``stream``/``batch`` call.

    Passing no context is the same as passing ``ActionContext()``.
    """
    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    callbacks: list[Any] = Field(
        default_factory=list,
        description="Lifecycle observers (ActionCallback instances)"
    )
    generation: Optional[GenerationConfig] = Field(
        default=None,
        description="Generation overrides read by backend adapters"
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Deadline in seconds for each invoke/stream call"
    )
    max_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum concurrently scheduled invocations in batch()"
    )
    tags: list[str] = Field(default_factory=list, description="Labels for observers")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Caller annotations for observers")

    @classmethod
    def ensure(cls, value: "ActionContext | Mapping[str, Any] | None") -> "ActionContext":
        """Normalize None, a mapping or a context into a context."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.model_validate(dict(value))
        raise TypeError(
            f"context must be an ActionContext, a mapping or None, got {type(value).__name__}"
        )

    def with_callbacks(self, *callbacks: "ActionCallback") -> "ActionContext":
        """Return a copy with extra observers appended."""
        return self.model_copy(update={"callbacks": [*self.callbacks, *callbacks]})

    def with_generation(self, **overrides: Any) -> "ActionContext":
        """Return a copy whose generation config has ``overrides`` applied."""
        base = self.generation or GenerationConfig()
        return self.model_copy(update={"generation": base.model_copy(update=overrides)})
