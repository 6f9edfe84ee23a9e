"""Helpers for working with message lists."""

from typing import Any, Mapping, Sequence

from email_agent_core.messages.base import BaseMessage
from email_agent_core.messages.types import (
    AIMessage,
    HumanMessage,
    SystemMessage,
    ToolCall,
    ToolMessage,
)


_TYPES: dict[str, type[BaseMessage]] = {
    "system": SystemMessage,
    "human": HumanMessage,
    "ai": AIMessage,
    "tool": ToolMessage,
}


def messages_to_prompt_format(messages: Sequence[BaseMessage]) -> list[dict[str, Any]]:
    return [message.to_prompt_format() for message in messages]


def filter_messages_by_type(messages: Sequence[BaseMessage], message_type: str) -> list[BaseMessage]:
    return [message for message in messages if message.type == message_type]


def get_last_messages(messages: Sequence[BaseMessage], n: int) -> list[BaseMessage]:
    if n <= 0:
        return []
    return list(messages[-n:])


def message_from_json(data: Mapping[str, Any]) -> BaseMessage:
    """Rebuild a message from ``to_json`` output, dispatching on ``type``."""
    message_type = data.get("type")
    if message_type not in _TYPES:
        raise ValueError(f"Unknown message type: {message_type!r}")
    return _TYPES[message_type].from_json(dict(data))


def message_from_prompt_format(data: Mapping[str, Any]) -> BaseMessage:
    """Rebuild a message from its ``{"role", "content", ...}`` projection."""
    role = data.get("role")
    content = data.get("content") or ""

    if role == "system":
        return SystemMessage(content)
    if role == "user":
        return HumanMessage(content)
    if role == "assistant":
        calls = [ToolCall.model_validate(call) for call in data.get("tool_calls") or []]
        return AIMessage(content, tool_calls=calls)
    if role == "tool":
        return ToolMessage(content, tool_call_id=data.get("tool_call_id"))
    raise ValueError(f"Unknown message role: {role!r}")


def coerce_messages(value: Any) -> list[BaseMessage]:
    """
    Normalize backend input into a list of messages.

    Accepts a string (one human turn), a message, a role/content mapping
    or a sequence of messages and mappings.

    Raises:
        TypeError: For any other input
    """
    if isinstance(value, str):
        return [HumanMessage(value)]
    if isinstance(value, BaseMessage):
        return [value]
    if isinstance(value, Mapping) and "role" in value:
        return [message_from_prompt_format(value)]
    if isinstance(value, Sequence):
        messages = []
        for item in value:
            if isinstance(item, BaseMessage):
                messages.append(item)
            elif isinstance(item, Mapping) and "role" in item:
                messages.append(message_from_prompt_format(item))
            else:
                raise TypeError(
                    f"Message lists may only contain messages or role/content mappings, got {type(item).__name__}"
                )
        return messages
    raise TypeError(
        "Input must be a string or a list of messages. "
        'Example: "Hello" or [HumanMessage("Hello")]'
    )
