"""Monitoring and metrics instrumentation for email-agent-core.

Exports the Prometheus metrics. The MetricsCallback observer lives in
``email_agent_core.monitoring.callbacks``.
"""

from email_agent_core.monitoring.metrics import (
    action_invocations_total,
    action_latency_seconds,
    llm_latency_seconds,
    llm_tokens_total,
    parse_failures_total,
    retries_total,
)

__all__ = [
    "action_invocations_total",
    "action_latency_seconds",
    "parse_failures_total",
    "retries_total",
    "llm_latency_seconds",
    "llm_tokens_total",
]
