"""
Prompt templates.

- TemplatePrompt: ``{variable}`` placeholders, plain string substitution
- JinjaPrompt: Jinja2 templates (conditionals, loops) for longer prompts

Both are Actions: invoking one with a mapping of variables returns the
rendered string, so a prompt can head a pipeline.
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
from jinja2 import (
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    Template,
    meta,
)
from jinja2 import UndefinedError

from email_agent_core.core.action import Action
from email_agent_core.core.context import ActionContext
from email_agent_core.core.exceptions import PromptValidationError


logger = structlog.get_logger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class BasePrompt(Action, ABC):
    """
    Base class for all prompt templates.

    Holds the required variable names and the partial (default) bindings.
    Supplied variables always override partial bindings.
    """

    def __init__(
        self,
        input_variables: Optional[list[str]] = None,
        partial_variables: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__()
        self.input_variables: list[str] = list(input_variables or [])
        self.partial_variables: dict[str, Any] = dict(partial_variables or {})

    @abstractmethod
    def render(self, values: Mapping[str, Any]) -> str:
        """Render the prompt with ``values``."""

    def partial(self, **values: Any) -> "BasePrompt":
        """Return a copy of this prompt with extra partial bindings."""
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.input_variables = list(self.input_variables)
        clone.partial_variables = {**self.partial_variables, **values}
        return clone

    async def _execute(self, input: Any, context: ActionContext) -> str:
        if input is None:
            input = {}
        if not isinstance(input, Mapping):
            raise TypeError(
                f"{self.name} expects a mapping of template variables, got {type(input).__name__}"
            )
        return self.render(input)

    def validate(self, values: Mapping[str, Any]) -> None:
        """
        Check that every required variable is bound.

        Raises:
            PromptValidationError: Naming every missing variable, in
                declaration order
        """
        merged = self.merge_variables(values)
        missing = [name for name in self.input_variables if name not in merged]
        if missing:
            raise PromptValidationError(missing)

    def merge_variables(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Merge partial bindings with supplied values (supplied win)."""
        return {**self.partial_variables, **values}


class TemplatePrompt(BasePrompt):
    """
    Prompt using ``{variable}`` placeholders.

    Required variables are detected from the template unless given
    explicitly. Every occurrence of every bound placeholder is replaced
    with ``str(value)``; placeholders without a binding are left as is.

    Example:
        >>> prompt = TemplatePrompt("Classify: {subject}")
        >>> prompt.render({"subject": "Booking"})
        'Classify: Booking'
    """

    def __init__(
        self,
        template: str,
        input_variables: Optional[list[str]] = None,
        partial_variables: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(input_variables, partial_variables)
        self.template = template

        if input_variables is None:
            self.input_variables = self.extract_variables(template)

    @staticmethod
    def extract_variables(template: str) -> list[str]:
        """Return placeholder names in order of first occurrence, deduplicated."""
        return list(dict.fromkeys(_PLACEHOLDER.findall(template)))

    def render(self, values: Mapping[str, Any]) -> str:
        self.validate(values)
        merged = self.merge_variables(values)

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            return str(merged[name]) if name in merged else match.group(0)

        # One pass, so substituted values are never re-expanded
        return _PLACEHOLDER.sub(substitute, self.template)

    @classmethod
    def from_template(cls, template: str, **options: Any) -> "TemplatePrompt":
        """Create directly from a template string."""
        return cls(template=template, **options)

    def __repr__(self) -> str:
        return f"TemplatePrompt(input_variables={self.input_variables!r})"


class JinjaPrompt(BasePrompt):
    """
    Prompt rendered with Jinja2.

    Required variables are the template's undeclared variables (sorted).
    Rendering uses StrictUndefined, so referencing an unbound variable in a
    branch that is actually taken fails loudly instead of rendering empty.
    """

    def __init__(
        self,
        template: str | Template,
        input_variables: Optional[list[str]] = None,
        partial_variables: Optional[Mapping[str, Any]] = None,
        environment: Optional[Environment] = None,
    ):
        super().__init__(input_variables, partial_variables)
        self.environment = environment or _make_environment()

        if isinstance(template, Template):
            self.template = template
            source = None
        else:
            self.template = self.environment.from_string(template)
            source = template

        if input_variables is None and source is not None:
            self.input_variables = sorted(
                meta.find_undeclared_variables(self.environment.parse(source))
            )

    def render(self, values: Mapping[str, Any]) -> str:
        self.validate(values)
        try:
            return self.template.render(**self.merge_variables(values)).strip()
        except UndefinedError as e:
            raise PromptValidationError([str(e)]) from e

    @classmethod
    def from_file(cls, path: str | Path, **options: Any) -> "JinjaPrompt":
        """Load a template file."""
        path = Path(path)
        environment = _make_environment(FileSystemLoader(str(path.parent)))
        return cls._from_loader(environment, path.name, **options)

    @classmethod
    def from_package(cls, name: str, **options: Any) -> "JinjaPrompt":
        """Load a template bundled under ``email_agent_core/agents/prompts``."""
        environment = _make_environment(PackageLoader("email_agent_core", "agents/prompts"))
        return cls._from_loader(environment, name, **options)

    @classmethod
    def _from_loader(cls, environment: Environment, name: str, **options: Any) -> "JinjaPrompt":
        source, _filename, _uptodate = environment.loader.get_source(environment, name)
        prompt = cls(source, environment=environment, **options)
        logger.debug("Loaded prompt template", template=name, variables=prompt.input_variables)
        return prompt


def _make_environment(loader=None) -> Environment:
    return Environment(
        loader=loader,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=False,  # Generating prompts, not HTML
        keep_trailing_newline=False,
    )
