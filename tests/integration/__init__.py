"""
Integration tests for email-agent-core.

Test components against real external services:
- Ollama adapter (real calls, marked with @pytest.mark.integration)
- Agents running on a real model
"""
