"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from email_agent_core.config import Settings
from email_agent_core.models.email_models import EmailRecord
from email_agent_core.models.output_models import ResponseContext


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.OLLAMA_BASE_URL = "http://custom:11434"
    """
    return Settings(
        # === Application ===
        APP_NAME="email-agent-core (Test)",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Backends ===
        OLLAMA_BASE_URL="http://localhost:11434",
        OLLAMA_MODEL="qwen2.5:7b",
        OLLAMA_TIMEOUT=30,
        OPENAI_BASE_URL="https://llm.example.com/v1",
        OPENAI_API_KEY="test-key",
        OPENAI_MODEL="test-model",

        # === Generation ===
        LLM_TEMPERATURE=0.2,
        LLM_MAX_TOKENS=512,
        LLM_MAX_RETRIES=1,

        # === Retry ===
        MAX_RETRIES=2,
        RETRY_BACKOFF_BASE=0.0,  # No sleeping in tests
    )


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_raw_email(fixtures_dir: Path) -> bytes:
    """Raw RFC 822 bytes of the sample booking request."""
    return (fixtures_dir / "sample_email.eml").read_bytes()


@pytest.fixture
def sample_email_record() -> EmailRecord:
    """Parsed sample email as handed over by a fetcher."""
    return EmailRecord(
        uid=42,
        from_addr="Maria Rossi <maria.rossi@example.com>",
        to="Reservations <reservations@hotel-example.com>",
        subject="Booking request for March",
        text=(
            "Hello, I would like to book a double room from March 20 to March 23 "
            "for two guests. Is breakfast included?"
        ),
        message_id="<booking-123@example.com>",
    )


@pytest.fixture
def valid_classification_data(fixtures_dir: Path) -> Dict[str, Any]:
    """Classifier JSON output matching EmailClassification."""
    with open(fixtures_dir / "valid_classification.json") as f:
        return json.load(f)


@pytest.fixture
def response_context(fixtures_dir: Path) -> ResponseContext:
    """ResponseContext for the sample booking."""
    with open(fixtures_dir / "response_context.json") as f:
        return ResponseContext.model_validate(json.load(f))
