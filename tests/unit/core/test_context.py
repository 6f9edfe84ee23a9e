"""Unit tests for ActionContext."""

import pytest
from pydantic import ValidationError

from email_agent_core.core.context import ActionContext
from email_agent_core.models.llm_models import GenerationConfig


class TestActionContext:
    def test_defaults(self):
        ctx = ActionContext()

        assert ctx.callbacks == []
        assert ctx.generation is None
        assert ctx.timeout is None
        assert ctx.max_concurrency is None

    def test_ensure_none(self):
        assert ActionContext.ensure(None) == ActionContext()

    def test_ensure_passes_context_through(self):
        ctx = ActionContext(tags=["a"])
        assert ActionContext.ensure(ctx) is ctx

    def test_ensure_mapping(self):
        ctx = ActionContext.ensure({"timeout": 2, "tags": ["x"]})
        assert ctx.timeout == 2
        assert ctx.tags == ["x"]

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            ActionContext.ensure({"timeout": 1, "retries": 3})

    @pytest.mark.parametrize("field,value", [
        ("timeout", 0),
        ("timeout", -1),
        ("max_concurrency", 0),
    ])
    def test_bounds(self, field, value):
        with pytest.raises(ValidationError):
            ActionContext(**{field: value})

    def test_frozen(self):
        with pytest.raises(ValidationError):
            ActionContext().timeout = 5

    def test_with_callbacks_returns_copy(self):
        first, second = object(), object()
        ctx = ActionContext(callbacks=[first])

        extended = ctx.with_callbacks(second)

        assert extended.callbacks == [first, second]
        assert ctx.callbacks == [first]

    def test_with_generation_overlays_existing(self):
        ctx = ActionContext(generation=GenerationConfig(temperature=0.1))

        updated = ctx.with_generation(max_tokens=50)

        assert updated.generation.temperature == 0.1
        assert updated.generation.max_tokens == 50
        assert ctx.generation.max_tokens is None
