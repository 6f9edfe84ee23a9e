"""
Unit tests for email-agent-core.

Test individual components in isolation:
- Core (Action contract, pipelines, prompts, parsers, observers)
- Messages (variants, projections, coercion)
- Backend adapters (scripted adapter, mocked HTTP transports)
- Agents (classifier, reply generator, keyword extractor)
- Retry and fallback wrappers
- Mail collaborators and CLI
"""
