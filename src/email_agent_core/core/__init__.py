"""
Orchestration core.

- action.py: Action (invoke/stream/batch/chain), ActionLambda, ActionPipeline
- context.py: ActionContext run context
- callbacks.py: lifecycle observers (ActionCallback, CallbackManager, LoggingCallback)
- prompt.py: BasePrompt, TemplatePrompt, JinjaPrompt
- parsers.py: BaseOutputParser, JsonOutputParser, StringOutputParser
- exceptions.py: error taxonomy
"""

from email_agent_core.core.action import (
    Action,
    ActionLambda,
    ActionPipeline,
    coerce_action,
)
from email_agent_core.core.callbacks import (
    ActionCallback,
    CallbackManager,
    LoggingCallback,
)
from email_agent_core.core.context import ActionContext
from email_agent_core.core.exceptions import (
    ActionTimeoutError,
    BatchExecutionError,
    ContractViolationError,
    EngineError,
    OutputParserError,
    PromptValidationError,
)
from email_agent_core.core.parsers import (
    BaseOutputParser,
    JsonOutputParser,
    StringOutputParser,
)
from email_agent_core.core.prompt import BasePrompt, JinjaPrompt, TemplatePrompt

__all__ = [
    # Execution units
    "Action",
    "ActionLambda",
    "ActionPipeline",
    "coerce_action",
    "ActionContext",
    # Observers
    "ActionCallback",
    "CallbackManager",
    "LoggingCallback",
    # Prompts
    "BasePrompt",
    "TemplatePrompt",
    "JinjaPrompt",
    # Parsers
    "BaseOutputParser",
    "JsonOutputParser",
    "StringOutputParser",
    # Exceptions
    "EngineError",
    "PromptValidationError",
    "OutputParserError",
    "ContractViolationError",
    "ActionTimeoutError",
    "BatchExecutionError",
]
