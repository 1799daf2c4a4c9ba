"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from llm_council.cancellation import CancellationToken
from llm_council.models import Attachment, ModelResponse
from llm_council.providers.base import AIProvider, ProviderError, QueryCancelledError, run_cancellable
from llm_council.providers.message import build_anthropic_content

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _messages(self, prompt: str, attachments: list[Attachment] | None) -> list[dict]:
        return [{"role": "user", "content": build_anthropic_content(prompt, attachments)}]

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
                    self._client.messages.create(
                        model=self._config.model,
                        max_tokens=self._config.max_tokens,
                        messages=self._messages(prompt, attachments),
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

        if not response.content:
            raise ProviderError(self._config.name, f"{self._config.model}: empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, f"{self._config.model}: no text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic %s: %.2fs, %s tokens", self._config.model, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content="\n".join(text_blocks),
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
            async with self._client.messages.stream(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                messages=self._messages(prompt, attachments),
            ) as stream:
                async for text in stream.text_stream:
                    if cancel_token is not None:
                        cancel_token.raise_if_cancelled(self._config.name)
                    yield text
        except QueryCancelledError:
            raise
        except Exception as exc:
            raise ProviderError(self._config.name, f"{self._config.model} stream failed: {exc}") from exc
