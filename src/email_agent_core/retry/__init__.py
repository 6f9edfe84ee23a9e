"""
Recovery wrappers around Actions.

Exports:
- RetryAction: retry with exponential backoff
- FallbackAction: ordered alternatives
- RetryExhausted: raised when retries run out
- RetryMetadata: attempt history carried by RetryExhausted
"""

from email_agent_core.retry.exceptions import RetryExhausted
from email_agent_core.retry.metadata import RetryMetadata
from email_agent_core.retry.wrappers import FallbackAction, RetryAction

__all__ = [
    "RetryAction",
    "FallbackAction",
    "RetryExhausted",
    "RetryMetadata",
]
