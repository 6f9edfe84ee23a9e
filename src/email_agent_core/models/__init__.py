"""
Pydantic data models for email-agent-core.

Includes:
- Enums (CategoryEnum, PriorityEnum, SentimentEnum, RequestTypeEnum)
- Agent outputs and inputs (EmailClassification, ExtractedInfo, ResponseContext, HotelPolicies)
- Mail models (EmailRecord, SendEmailOptions, SendEmailResult, ImapConfig, SmtpConfig, EmailConfig)
- LLM models (GenerationConfig, LLMGenerationResponse)
"""

from email_agent_core.models.email_models import (
    EmailConfig,
    EmailRecord,
    ImapConfig,
    SendEmailOptions,
    SendEmailResult,
    SmtpConfig,
)
from email_agent_core.models.enums import (
    CategoryEnum,
    PriorityEnum,
    RequestTypeEnum,
    SentimentEnum,
)
from email_agent_core.models.llm_models import GenerationConfig, LLMGenerationResponse
from email_agent_core.models.output_models import (
    EmailClassification,
    ExtractedInfo,
    HotelPolicies,
    ResponseContext,
)

__all__ = [
    # Enums
    "CategoryEnum",
    "PriorityEnum",
    "SentimentEnum",
    "RequestTypeEnum",
    # Agent models
    "EmailClassification",
    "ExtractedInfo",
    "HotelPolicies",
    "ResponseContext",
    # Mail models
    "EmailRecord",
    "SendEmailOptions",
    "SendEmailResult",
    "ImapConfig",
    "SmtpConfig",
    "EmailConfig",
    # LLM models
    "GenerationConfig",
    "LLMGenerationResponse",
]
