"""
Shared plumbing for the email agents.

Every agent is an Action wrapping a fixed pipeline:

    prompt -> messages -> backend adapter -> parser [-> post-processing]

so the run context (observers, generation overrides, deadline) flows
through to the adapter unchanged.
"""

from abc import ABC, abstractmethod
from typing import Any

import structlog

from email_agent_core.core.action import Action, ActionLambda, ActionPipeline
from email_agent_core.core.context import ActionContext
from email_agent_core.messages import HumanMessage, SystemMessage


logger = structlog.get_logger(__name__)


class EmailAgent(Action, ABC):
    """
    Base class for agents built around one backend adapter.

    Subclasses build ``self.pipeline`` and implement ``prepare_input`` to
    turn caller input into the prompt's variables.
    """

    system_prompt: str = ""

    def __init__(self, llm: Action, name: str | None = None):
        super().__init__(name)
        self.llm = llm
        self.pipeline: ActionPipeline = self.build_pipeline()

    @abstractmethod
    def build_pipeline(self) -> ActionPipeline:
        """Assemble the prompt, adapter and parser steps."""

    @abstractmethod
    def prepare_input(self, input: Any) -> dict[str, Any]:
        """Turn caller input into the prompt variables."""

    async def _execute(self, input: Any, context: ActionContext) -> Any:
        variables = self.prepare_input(input)
        logger.debug("Running agent", agent=self.name, variables=sorted(variables))
        return await self.pipeline.invoke(variables, context)

    def to_messages(self) -> ActionLambda:
        """Step turning a rendered prompt into ``[SystemMessage, HumanMessage]``."""
        system_prompt = self.system_prompt

        def wrap(prompt: str) -> list:
            return [SystemMessage(system_prompt), HumanMessage(prompt)]

        return ActionLambda(wrap, name="to_messages")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(llm={self.llm!r})"
