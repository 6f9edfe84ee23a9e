"""
Email classification agent.

Renders a classification prompt from subject/body, asks the backend for
JSON, checks field kinds with JsonOutputParser and validates the result
into an EmailClassification.
"""

import json
from typing import Any, Mapping

import structlog
from pydantic import ValidationError

from email_agent_core.agents.base import EmailAgent
from email_agent_core.config import settings
from email_agent_core.core.action import Action, ActionLambda, ActionPipeline
from email_agent_core.core.exceptions import OutputParserError
from email_agent_core.core.parsers import JsonOutputParser
from email_agent_core.core.prompt import TemplatePrompt
from email_agent_core.llm.text_utils import truncate_at_sentence_boundary
from email_agent_core.models.email_models import EmailRecord
from email_agent_core.models.output_models import EmailClassification


logger = structlog.get_logger(__name__)

CLASSIFICATION_SCHEMA = {
    "advert": "boolean",
    "category": "string",
    "priority": "string",
    "sentiment": "string",
    "extractedInfo": "object",
    "suggestedAction": "string",
}

CLASSIFICATION_TEMPLATE = """\
Analyze the following email and return ONLY valid JSON.

Required fields:
- category: booking | inquiry | complaint | cancellation | other
- priority: urgent | high | medium | low
- sentiment: positive | neutral | negative
- advert: boolean
- extractedInfo: { guestName?, checkIn?, checkOut?, roomType?, numberOfGuests? }
- suggestedAction: string
- confidence: number between 0.000 and 1.000

Email Subject: {subject}
Email Body: {body}

Respond ONLY with valid JSON."""


class EmailClassifier(EmailAgent):
    """
    Classify an inbound hotel email.

    Input: mapping with ``subject`` and ``body``, or an EmailRecord.
    Output: EmailClassification.

    Raises:
        OutputParserError: Output is not JSON, lacks a required field, or
            carries a value outside the closed taxonomies
    """

    system_prompt = "You are an email classification assistant for a hotel."

    def __init__(self, llm: Action, body_limit: int | None = None):
        self.body_limit = body_limit if body_limit is not None else settings.BODY_TRUNCATION_LIMIT
        self.prompt = TemplatePrompt(CLASSIFICATION_TEMPLATE)
        self.parser = JsonOutputParser(schema=CLASSIFICATION_SCHEMA)
        super().__init__(llm)

    def build_pipeline(self) -> ActionPipeline:
        return (
            self.prompt
            | self.to_messages()
            | self.llm
            | self.parser
            | ActionLambda(to_classification, name="to_classification")
        )

    def prepare_input(self, input: Any) -> dict[str, Any]:
        if isinstance(input, EmailRecord):
            input = email_to_classifier_input(input)
        if not isinstance(input, Mapping):
            raise TypeError(f"EmailClassifier expects a mapping or EmailRecord, got {type(input).__name__}")

        body = str(input.get("body", ""))
        truncated = truncate_at_sentence_boundary(body, self.body_limit)
        if len(truncated) < len(body):
            logger.info(
                "Truncated email body for classification",
                original_length=len(body),
                truncated_length=len(truncated),
            )
        return {"subject": str(input.get("subject", "")), "body": truncated}


def to_classification(parsed: Any) -> EmailClassification:
    """Validate parsed JSON into the closed classification model."""
    try:
        return EmailClassification.model_validate(parsed)
    except ValidationError as e:
        raise OutputParserError(
            f"Classification does not match the expected values: {e.error_count()} error(s)",
            llm_output=json.dumps(parsed, ensure_ascii=False, default=str),
            original_error=e,
        ) from e


def email_to_classifier_input(record: EmailRecord) -> dict[str, str]:
    """Project a fetched email onto the classifier's ``{subject, body}`` input."""
    return {"subject": record.subject, "body": record.text or record.html}
