"""
Message base model.

Messages are typed, immutable conversational turns passed to backend
adapters. Each variant projects itself into the backend-neutral shape
``{"role": ..., "content": ..., **variant_fields}``.
"""

import secrets
import time
from typing import Any, ClassVar, Dict

from pydantic import BaseModel, ConfigDict, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


def _generate_id() -> str:
    return f"msg_{_now_ms()}_{secrets.token_hex(4)[:7]}"


class BaseMessage(BaseModel):
    """
    Common fields of every message variant.

    Attributes:
        content: Message text
        id: Generated unique identifier
        timestamp: Creation time, epoch milliseconds
        additional_kwargs: Open bag of extra attributes
    """
    model_config = ConfigDict(frozen=True)

    role: ClassVar[str] = "user"

    type: str = "base"
    content: str = ""
    id: str = Field(default_factory=_generate_id)
    timestamp: int = Field(default_factory=_now_ms)
    additional_kwargs: Dict[str, Any] = Field(default_factory=dict)

    def __init__(self, content: str = "", **data: Any):
        super().__init__(content=content, **data)

    def to_prompt_format(self) -> dict[str, Any]:
        """Backend-neutral projection."""
        return {"role": self.role, "content": self.content}

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "timestamp": self.timestamp,
            **self.additional_kwargs,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "BaseMessage":
        fields = dict(data)
        fields.pop("type", None)
        known = {
            key: fields.pop(key)
            for key in ("id", "timestamp")
            if key in fields
        }
        content = fields.pop("content", "")
        return cls(content, **known, additional_kwargs=fields)

    def __str__(self) -> str:
        return f"{self.type}: {self.content}"
