"""Lifecycle observer recording Action metrics."""

from email_agent_core.core.callbacks import ActionCallback, InvocationTimer
from email_agent_core.monitoring.metrics import (
    action_invocations_total,
    action_latency_seconds,
)


class MetricsCallback(ActionCallback):
    """
    Record invocation counts and latency for every observed Action.

    Attach through the run context:
        await pipeline.invoke(email, {"callbacks": [MetricsCallback()]})
    """

    def __init__(self):
        self.timer = InvocationTimer()

    async def on_start(self, action, input, context):
        self.timer.start(action)

    async def on_end(self, action, output, context):
        self._observe(action, "success")

    async def on_error(self, action, error, context):
        self._observe(action, "error")

    def _observe(self, action, outcome: str) -> None:
        action_invocations_total.labels(action=action.name, outcome=outcome).inc()
        elapsed = self.timer.stop(action)
        if elapsed is not None:
            action_latency_seconds.labels(action=action.name).observe(elapsed)
