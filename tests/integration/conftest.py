"""Integration test fixtures (service checks and prerequisites).

Integration tests talk to a real Ollama server and are skipped when it is
not reachable or has no model pulled.
"""

import httpx
import pytest

from email_agent_core.llm.ollama_client import OllamaLLM


@pytest.fixture(scope="session")
def ollama_models(integration_base_url):
    """Names of the models pulled on the local Ollama server.

    Skips the requesting test if Ollama is not reachable.
    """
    try:
        response = httpx.get(f"{integration_base_url}/api/tags", timeout=5)
    except Exception as e:
        pytest.skip(f"Ollama not available: {e}")
    if response.status_code != 200:
        pytest.skip("Ollama not available (non-200 status)")

    models = [m["name"] for m in response.json().get("models", [])]
    if not models:
        pytest.skip("No models available in Ollama (run: ollama pull qwen2.5:7b)")
    return models


@pytest.fixture(scope="session")
def integration_base_url() -> str:
    return "http://localhost:11434"


@pytest.fixture
def real_ollama(ollama_models, integration_base_url):
    """Factory for real OllamaLLM adapters on the first available model.

    Usage:
        async with real_ollama(temperature=0.0) as llm:
            ...
    """
    def _create(**kwargs) -> OllamaLLM:
        options = {
            "model": ollama_models[0],
            "base_url": integration_base_url,
            "timeout": 120,
            "max_retries": 2,
        }
        options.update(kwargs)
        return OllamaLLM(**options)

    return _create
