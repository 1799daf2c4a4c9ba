"""Groq provider (Llama models) using openai SDK against Groq's OpenAI-compatible API."""

from llm_council.providers.openai_provider import OpenAIProvider


class GroqProvider(OpenAIProvider):
    """Groq-hosted open models via OpenAI-compatible API."""

    label = "Groq"
    requires_base_url = True
