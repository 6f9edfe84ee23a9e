"""
email-agent-core: composable LLM orchestration for email workflows.

Building blocks:
- core: Action (invoke/stream/batch/chain), ActionPipeline, prompts, output parsers
- messages: typed conversational turns
- llm: backend adapters (Ollama, OpenAI-compatible)
- agents: email classification, reply drafting, keyword extraction
- retry: retry and fallback wrappers
- mail: mail config file, fetch/send interfaces, raw message parsing

Architecture: prompt | llm | parser pipelines over async backend adapters
"""

__version__ = "0.1.0"
