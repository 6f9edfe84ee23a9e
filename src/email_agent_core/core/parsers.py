"""
Output parsers: turn raw generated text into structured data.

- JsonOutputParser: extraction + repair of near-valid JSON, optional
  field-kind schema and optional JSON Schema (jsonschema)
- StringOutputParser: trimmed text with fenced code-block wrappers removed

Parsers are Actions, so they sit at the tail of a pipeline and accept the
AIMessage produced by a backend adapter directly.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Literal, Mapping, Optional

import structlog
from jsonschema import Draft7Validator

from email_agent_core.core.action import Action
from email_agent_core.core.context import ActionContext
from email_agent_core.core.exceptions import OutputParserError
from email_agent_core.messages.base import BaseMessage
from email_agent_core.monitoring.metrics import parse_failures_total


logger = structlog.get_logger(__name__)

JsonKind = Literal["string", "number", "boolean", "object", "array"]
JsonKindSchema = Mapping[str, JsonKind]

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
_OBJECT = re.compile(r"\{[\s\S]*\}")
_ARRAY = re.compile(r"\[[\s\S]*\]")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_MARKDOWN_FENCE = re.compile(r"```\w*\n([\s\S]*?)\n```")


class BaseOutputParser(Action, ABC):
    """
    Base class for all output parsers.

    Subclasses implement ``parse``. Invoking the parser accepts a string, a
    message (its ``content`` is parsed) or a mapping with a ``content`` key.
    """

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse model output text into a value."""

    def get_format_instructions(self) -> str:
        """Instructions to embed in a prompt describing the expected format."""
        return ""

    async def _execute(self, input: Any, context: ActionContext) -> Any:
        return self.parse(_text_of(input))

    def parse_with_prompt(self, text: str, prompt: str) -> Any:
        """
        Parse, wrapping any failure in an OutputParserError.

        Raises:
            OutputParserError: Carrying the original text and cause
        """
        try:
            return self.parse(text)
        except Exception as e:
            message = e.message if isinstance(e, OutputParserError) else str(e)
            raise OutputParserError(
                f"Failed to parse output from prompt: {message}",
                llm_output=text,
                original_error=e,
            ) from e


class JsonOutputParser(BaseOutputParser):
    """
    Parser that extracts JSON from LLM output.

    Handles markdown code blocks, surrounding prose, trailing commas,
    unclosed braces/brackets and bare ``key: value`` pairs. Empty output
    parses to ``{}``.

    Args:
        schema: Optional field name -> kind mapping, kinds are
            string | number | boolean | object | array
        json_schema: Optional full JSON Schema, validated after ``schema``
    """

    def __init__(
        self,
        schema: Optional[JsonKindSchema] = None,
        json_schema: Optional[dict[str, Any]] = None,
    ):
        super().__init__()
        self.schema: dict[str, str] | None = dict(schema) if schema else None
        self.json_schema = json_schema
        self._validator: Draft7Validator | None = None
        if json_schema is not None:
            Draft7Validator.check_schema(json_schema)
            self._validator = Draft7Validator(json_schema)

    def parse(self, text: str) -> Any:
        """
        Parse JSON from text.

        Raises:
            OutputParserError: The text could not be repaired into JSON, or
                the result does not match the schema
        """
        raw = text or ""
        try:
            json_text = self.repair_json(self.extract_json(raw))
            parsed = json.loads(json_text)

            if self.schema:
                self._validate_kinds(parsed)
            if self._validator is not None:
                self._validate_json_schema(parsed)

            return parsed

        except (ValueError, RecursionError) as e:
            error_type = _error_type(e)
            parse_failures_total.labels(parser=self.name, error_type=error_type).inc()
            logger.debug("JSON output parse failed", error=str(e), error_type=error_type)
            raise OutputParserError(
                f"Failed to parse JSON: {e}",
                llm_output=raw,
                original_error=e,
            ) from e

    @staticmethod
    def extract_json(text: str) -> str:
        """
        Locate the JSON payload in ``text``.

        Tried in order: the whole trimmed text, a fenced code block, the
        largest ``{...}`` span, the largest ``[...]`` span, the trimmed text
        when it opens a structure that was never closed, bare ``key: value``
        pairs wrapped in braces. Falls back to ``{}``.
        """
        trimmed = text.strip()
        if not trimmed:
            return "{}"

        try:
            json.loads(trimmed)
            return trimmed
        except json.JSONDecodeError:
            pass

        match = _FENCED_BLOCK.search(text)
        if match:
            return match.group(1).strip() or "{}"

        match = _OBJECT.search(text)
        if match:
            return match.group(0)

        match = _ARRAY.search(text)
        if match:
            return match.group(0)

        if trimmed[0] in "{[":
            return trimmed

        if ":" in trimmed:
            return "{" + trimmed + "}"

        return "{}"

    @staticmethod
    def repair_json(text: str) -> str:
        """
        Best-effort textual repair.

        Drops trailing commas before ``}``/``]`` and appends the missing
        closers, counting brackets and braces independently. Brackets are
        closed first, which fits the usual truncated object-with-array
        output. Nesting is not tracked.
        """
        repaired = _TRAILING_COMMA.sub(r"\1", text)

        missing_brackets = repaired.count("[") - repaired.count("]")
        if missing_brackets > 0:
            repaired += "]" * missing_brackets

        missing_braces = repaired.count("{") - repaired.count("}")
        if missing_braces > 0:
            repaired += "}" * missing_braces

        return repaired

    def _validate_kinds(self, parsed: Any) -> None:
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON object for schema validation, got {json_kind(parsed)}")

        for key, expected in self.schema.items():
            if key not in parsed:
                raise ValueError(f"Missing required field: {key}")

            actual = json_kind(parsed[key])
            if actual != expected:
                raise ValueError(f"Field {key} should be {expected}, got {actual}")

    def _validate_json_schema(self, parsed: Any) -> None:
        errors = list(self._validator.iter_errors(parsed))
        if errors:
            messages = []
            for error in errors[:10]:
                path = ".".join(str(p) for p in error.path) if error.path else "root"
                messages.append(f"{path}: {error.message}")
            raise ValueError(
                f"JSON Schema validation failed with {len(errors)} error(s): {'; '.join(messages)}"
            )

    def get_format_instructions(self) -> str:
        instructions = "Respond with valid JSON."

        if self.schema:
            schema_desc = ", ".join(f'"{key}": {kind}' for key, kind in self.schema.items())
            instructions += f" Schema: {{ {schema_desc} }}"

        return instructions


class StringOutputParser(BaseOutputParser):
    """
    Parser that returns cleaned string output.

    Strips surrounding whitespace and, unless disabled, removes every
    fenced code-block wrapper while keeping the inner content.
    """

    def __init__(self, strip_markdown: bool = True):
        super().__init__()
        self.strip_markdown = strip_markdown

    def parse(self, text: str) -> str:
        cleaned = (text or "").strip()

        if self.strip_markdown:
            cleaned = self.strip_markdown_code_blocks(cleaned)

        return cleaned

    @staticmethod
    def strip_markdown_code_blocks(text: str) -> str:
        return _MARKDOWN_FENCE.sub(lambda m: m.group(1), text).strip()

    def get_format_instructions(self) -> str:
        return "Respond with plain text. No markdown formatting."


def json_kind(value: Any) -> str:
    """Name the JSON kind of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _error_type(error: BaseException) -> str:
    if isinstance(error, RecursionError):
        return "nesting_too_deep"
    if isinstance(error, json.JSONDecodeError):
        return "json_decode_error"
    return "schema_mismatch"


def _text_of(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseMessage):
        return value.content
    if isinstance(value, Mapping) and "content" in value:
        return str(value["content"])
    raise TypeError(
        f"Output parsers expect a string, a message or a mapping with 'content', got {type(value).__name__}"
    )
