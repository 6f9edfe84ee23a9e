"""
Typed conversational messages passed to backend adapters.

- BaseMessage: common fields (content, id, timestamp, additional kwargs)
- SystemMessage / HumanMessage / AIMessage / ToolMessage: the variants
- utils: projection, filtering and input coercion helpers
"""

from email_agent_core.messages.base import BaseMessage
from email_agent_core.messages.types import (
    AIMessage,
    HumanMessage,
    SystemMessage,
    ToolCall,
    ToolMessage,
)
from email_agent_core.messages.utils import (
    coerce_messages,
    filter_messages_by_type,
    get_last_messages,
    message_from_json,
    message_from_prompt_format,
    messages_to_prompt_format,
)

__all__ = [
    "BaseMessage",
    "SystemMessage",
    "HumanMessage",
    "AIMessage",
    "ToolMessage",
    "ToolCall",
    "coerce_messages",
    "filter_messages_by_type",
    "get_last_messages",
    "message_from_json",
    "message_from_prompt_format",
    "messages_to_prompt_format",
]
