"""
Configuration settings for email-agent-core.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "email-agent-core"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Ollama Backend ===
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "qwen2.5:7b"
    OLLAMA_TIMEOUT: int = 120  # seconds

    # === OpenAI-compatible Backend ===
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT: int = 60

    # === Generation Defaults ===
    LLM_TEMPERATURE: float = 0.7
    LLM_TOP_P: float = 0.9
    LLM_TOP_K: int = 40
    LLM_MAX_TOKENS: int = 2048
    LLM_REPEAT_PENALTY: float = 1.1
    LLM_MAX_RETRIES: int = 2  # Connection-level retries inside adapters
    LLM_MAX_CONCURRENCY: Optional[int] = None  # None = adapter decides

    # === Agents ===
    BODY_TRUNCATION_LIMIT: int = 8000  # chars
    MAX_KEYWORDS: int = 10

    # === Retry Wrappers ===
    MAX_RETRIES: int = 3
    RETRY_BACKOFF_BASE: float = 2.0

    # === Mail Collaborators ===
    EMAIL_CONFIG_FILE: str = "email-agent-core.config.json"


# Global settings instance
settings = Settings()
