"""
Keyword extraction agent.

Asks the backend for the most salient keywords of an email as a JSON
array (or an object with a ``keywords`` array) and returns them as a
deduplicated list.
"""

from typing import Any, Mapping

import structlog

from email_agent_core.agents.base import EmailAgent
from email_agent_core.agents.classifier import email_to_classifier_input
from email_agent_core.config import settings
from email_agent_core.core.action import Action, ActionLambda, ActionPipeline
from email_agent_core.core.exceptions import OutputParserError
from email_agent_core.core.parsers import JsonOutputParser
from email_agent_core.core.prompt import TemplatePrompt
from email_agent_core.llm.text_utils import truncate_at_sentence_boundary
from email_agent_core.models.email_models import EmailRecord


logger = structlog.get_logger(__name__)

KEYWORD_TEMPLATE = """\
Extract at most {max_keywords} keywords that best describe the following email.
Prefer nouns and short noun phrases that appear in the text.

Email Subject: {subject}
Email Body: {body}

Respond ONLY with a JSON array of strings, for example ["booking", "late check-in"]."""


class KeywordExtractor(EmailAgent):
    """
    Extract keywords from an email.

    Input: mapping with ``subject`` and ``body``, or an EmailRecord.
    Output: list of keyword strings in the model's order, case-insensitively
    deduplicated and capped at ``max_keywords``.
    """

    system_prompt = "You extract keywords from emails."

    def __init__(self, llm: Action, max_keywords: int | None = None, body_limit: int | None = None):
        self.max_keywords = max_keywords if max_keywords is not None else settings.MAX_KEYWORDS
        if self.max_keywords < 1:
            raise ValueError("max_keywords must be at least 1")
        self.body_limit = body_limit if body_limit is not None else settings.BODY_TRUNCATION_LIMIT
        self.prompt = TemplatePrompt(KEYWORD_TEMPLATE).partial(max_keywords=self.max_keywords)
        self.parser = JsonOutputParser()
        super().__init__(llm)

    def build_pipeline(self) -> ActionPipeline:
        return (
            self.prompt
            | self.to_messages()
            | self.llm
            | self.parser
            | ActionLambda(self.normalize_keywords, name="normalize_keywords")
        )

    def prepare_input(self, input: Any) -> dict[str, Any]:
        if isinstance(input, EmailRecord):
            input = email_to_classifier_input(input)
        if not isinstance(input, Mapping):
            raise TypeError(f"KeywordExtractor expects a mapping or EmailRecord, got {type(input).__name__}")
        return {
            "subject": str(input.get("subject", "")),
            "body": truncate_at_sentence_boundary(str(input.get("body", "")), self.body_limit),
        }

    def normalize_keywords(self, parsed: Any) -> list[str]:
        if isinstance(parsed, Mapping):
            parsed = parsed.get("keywords")
        if not isinstance(parsed, list):
            raise OutputParserError(
                "Expected a JSON array of keywords",
                llm_output=repr(parsed),
            )

        keywords: list[str] = []
        seen: set[str] = set()
        for item in parsed:
            if not isinstance(item, str):
                continue
            keyword = item.strip()
            if not keyword or keyword.casefold() in seen:
                continue
            seen.add(keyword.casefold())
            keywords.append(keyword)

        if len(keywords) > self.max_keywords:
            logger.debug("Capping keywords", returned=len(keywords), max_keywords=self.max_keywords)
        return keywords[: self.max_keywords]
