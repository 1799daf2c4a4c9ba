"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from llm_council.cancellation import CancellationToken
from llm_council.models import Attachment, ModelResponse
from llm_council.providers.base import AIProvider, ProviderError, QueryCancelledError, run_cancellable
from llm_council.providers.message import build_openai_content

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK.

    Also the base for OpenAI-compatible endpoints (xAI, Groq), which only
    differ in ``base_url`` and log label.
    """

    label = "OpenAI"
    requires_base_url = False

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        if self.requires_base_url and not config.base_url:
            raise ProviderError(config.name, f"base_url is required for {self.label} provider")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _messages(self, prompt: str, attachments: list[Attachment] | None) -> list[dict]:
        return [{"role": "user", "content": build_openai_content(prompt, attachments)}]

    async def query(
        self,
        prompt: str,
        *,
        attachments: list[Attachment] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await run_cancellable(
                lambda: asyncio.wait_for(
                    self._client.chat.completions.create(
                        model=self._config.model,
                        messages=self._messages(prompt, attachments),
                        max_tokens=self._config.max_tokens,
                    ),
                    timeout=self._config.timeout_sec,
                ),
                cancel_token,
                self._config.name,
            )
        except QueryCancelledError:
            raise
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"{self._config.model} API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, f"{self._config.model}: empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("%s %s: %.2fs, %s tokens", self.label, self._config.model, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )

    async def query_stream(
        self,
        prompt: str,
        *,
        attachments: list[Attachment] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(self._config.name)
        try:
            stream = await self._client.chat.completions.create(
                model=self._config.model,
                messages=self._messages(prompt, attachments),
                max_tokens=self._config.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(self._config.name)
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except QueryCancelledError:
            raise
        except Exception as exc:
            raise ProviderError(self._config.name, f"{self._config.model} stream failed: {exc}") from exc
