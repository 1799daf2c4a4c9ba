"""xAI Grok provider using openai SDK (OpenAI-compatible API)."""

from llm_council.providers.openai_provider import OpenAIProvider


class XAIProvider(OpenAIProvider):
    """xAI Grok provider via OpenAI-compatible API."""

    label = "xAI"
    requires_base_url = True
