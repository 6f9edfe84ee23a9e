"""
Message variants: system, human, assistant (AI) and tool result.
"""

from typing import Any, ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from email_agent_core.messages.base import BaseMessage


class ToolCall(BaseModel):
    """A tool invocation requested by the assistant."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool arguments")
    id: Optional[str] = Field(default=None, description="Correlation id for the tool result")


class SystemMessage(BaseMessage):
    """System-level instruction."""

    role: ClassVar[str] = "system"
    type: Literal["system"] = "system"


class HumanMessage(BaseMessage):
    """User turn."""

    role: ClassVar[str] = "user"
    type: Literal["human"] = "human"


class AIMessage(BaseMessage):
    """
    Assistant turn, possibly requesting tool calls.

    Streaming adapters emit partial AIMessages with ``chunk=True`` in their
    additional kwargs.
    """

    role: ClassVar[str] = "assistant"
    type: Literal["ai"] = "ai"
    tool_calls: list[ToolCall] = Field(default_factory=list)

    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    @property
    def is_chunk(self) -> bool:
        return bool(self.additional_kwargs.get("chunk"))

    def to_prompt_format(self) -> dict[str, Any]:
        projection = {"role": self.role, "content": self.content}
        if self.tool_calls:
            projection["tool_calls"] = [call.model_dump(exclude_none=True) for call in self.tool_calls]
        return projection

    def to_json(self) -> dict[str, Any]:
        data = super().to_json()
        data["tool_calls"] = [call.model_dump(exclude_none=True) for call in self.tool_calls]
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "AIMessage":
        fields = dict(data)
        tool_calls = fields.pop("tool_calls", None) or fields.pop("toolCalls", None) or []
        message = super().from_json(fields)
        return message.model_copy(
            update={"tool_calls": [ToolCall.model_validate(call) for call in tool_calls]}
        )


class ToolMessage(BaseMessage):
    """Result of a tool invocation, correlated by ``tool_call_id``."""

    role: ClassVar[str] = "tool"
    type: Literal["tool"] = "tool"
    tool_call_id: str

    def __init__(self, content: str = "", tool_call_id: Optional[str] = None, **data: Any):
        if tool_call_id is not None:
            data["tool_call_id"] = tool_call_id
        super().__init__(content, **data)

    def to_prompt_format(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "tool_call_id": self.tool_call_id,
        }

    def to_json(self) -> dict[str, Any]:
        data = super().to_json()
        data["tool_call_id"] = self.tool_call_id
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ToolMessage":
        fields = dict(data)
        fields.pop("type", None)
        tool_call_id = fields.pop("tool_call_id", None) or fields.pop("toolCallId", None)
        known = {key: fields.pop(key) for key in ("id", "timestamp") if key in fields}
        content = fields.pop("content", "")
        return cls(content, tool_call_id=tool_call_id, **known, additional_kwargs=fields)
