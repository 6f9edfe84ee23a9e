"""
Reply-drafting agent.

Renders ``prompts/response_prompt.txt`` with the original email and a
ResponseContext, and returns the backend's reply as plain text.
"""

from typing import Any, Mapping

from email_agent_core.agents.base import EmailAgent
from email_agent_core.core.action import Action, ActionLambda, ActionPipeline
from email_agent_core.core.parsers import StringOutputParser
from email_agent_core.core.prompt import JinjaPrompt
from email_agent_core.llm.exceptions import LLMGenerationError
from email_agent_core.models.email_models import EmailRecord
from email_agent_core.models.output_models import ResponseContext


RESPONSE_TEMPLATE = "response_prompt.txt"


class EmailResponseGenerator(EmailAgent):
    """
    Draft a reply to a guest email.

    Input: ``{"original_email": str | EmailRecord, "context": ResponseContext | dict}``
    Output: reply text with surrounding whitespace and code fences removed.

    Raises:
        LLMGenerationError: The backend produced an empty reply
    """

    system_prompt = "You are a friendly and professional hotel receptionist writing an email response."

    def __init__(self, llm: Action, prompt: JinjaPrompt | None = None):
        self.prompt = prompt or JinjaPrompt.from_package(RESPONSE_TEMPLATE)
        self.parser = StringOutputParser()
        super().__init__(llm)

    def build_pipeline(self) -> ActionPipeline:
        return (
            self.prompt
            | self.to_messages()
            | self.llm
            | self.parser
            | ActionLambda(require_content, name="require_content")
        )

    def prepare_input(self, input: Any) -> dict[str, Any]:
        if not isinstance(input, Mapping):
            raise TypeError(
                f"EmailResponseGenerator expects a mapping, got {type(input).__name__}"
            )

        original = input.get("original_email", input.get("originalEmail", ""))
        if isinstance(original, EmailRecord):
            original = original.text or original.html

        ctx = input.get("context")
        if not isinstance(ctx, ResponseContext):
            ctx = ResponseContext.model_validate(ctx)

        return {"original_email": original, "ctx": ctx}


def require_content(reply: str) -> str:
    if not reply:
        raise LLMGenerationError("LLM returned empty response")
    return reply
