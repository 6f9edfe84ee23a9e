"""Prometheus metrics for email-agent-core.

The orchestration core never records metrics on its own. Action metrics are
fed by the opt-in ``MetricsCallback`` observer; backend adapters, parsers and
retry wrappers record their own counters. Exposing them (an HTTP endpoint,
a push gateway) is left to the embedding application.
"""

from prometheus_client import Counter, Histogram

# === Action Metrics (MetricsCallback) ===

action_invocations_total = Counter(
    "action_invocations_total",
    "Total Action invocations by action name and outcome",
    ["action", "outcome"],
)
"""
Labels:
- action: Action name (class name by default)
- outcome: success, error
"""

action_latency_seconds = Histogram(
    "action_latency_seconds",
    "Action invocation latency in seconds",
    ["action"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# === Parser Metrics ===

parse_failures_total = Counter(
    "parse_failures_total",
    "Total output parser failures by parser and error type",
    ["parser", "error_type"],
)
"""
Labels:
- parser: Parser name (JsonOutputParser, ...)
- error_type: json_decode_error, schema_mismatch
"""

# === Retry Metrics ===

retries_total = Counter(
    "retries_total",
    "Total retry attempts by wrapped action and outcome",
    ["action", "outcome"],
)
"""
Labels:
- action: Name of the wrapped Action
- outcome: retry (attempt failed, another follows), success (a retry
  succeeded), exhausted
"""

# === LLM Performance Metrics ===

llm_latency_seconds = Histogram(
    "llm_latency_seconds",
    "LLM generation latency in seconds",
    ["model", "success"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
LLM generation latency histogram.

Labels:
- model: Model name (e.g., qwen2.5:7b, gpt-4o-mini)
- success: true (generation succeeded), false (generation failed)

Buckets optimized for LLM inference (0.5s to 120s).
"""

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total tokens consumed by model and type",
    ["model", "token_type"],
)
"""
Labels:
- model: Model name
- token_type: prompt (input tokens), completion (output tokens)
"""
