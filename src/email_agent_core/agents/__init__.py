"""
Email agents built from the orchestration core.

- classifier.py: EmailClassifier -> EmailClassification
- response_generator.py: EmailResponseGenerator -> reply text
- keyword_extractor.py: KeywordExtractor -> list of keywords
- prompts/: bundled Jinja2 prompt templates
"""

from email_agent_core.agents.base import EmailAgent
from email_agent_core.agents.classifier import (
    CLASSIFICATION_SCHEMA,
    EmailClassifier,
    email_to_classifier_input,
)
from email_agent_core.agents.keyword_extractor import KeywordExtractor
from email_agent_core.agents.response_generator import EmailResponseGenerator

__all__ = [
    "EmailAgent",
    "EmailClassifier",
    "EmailResponseGenerator",
    "KeywordExtractor",
    "CLASSIFICATION_SCHEMA",
    "email_to_classifier_input",
]
