"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from llm_council.cancellation import CancellationToken
from llm_council.models import Attachment, ModelResponse
from llm_council.providers.base import AIProvider, ProviderError, QueryCancelledError, run_cancellable
from llm_council.providers.message import build_gemini_contents

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _generation_config(self) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(max_output_tokens=self._config.max_tokens)

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
                    self._client.aio.models.generate_content(
                        model=self._config.model,
                        contents=build_gemini_contents(prompt, attachments),
                        config=self._generation_config(),
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

        if not response.text:
            raise ProviderError(self._config.name, f"{self._config.model}: empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %.2fs, %s tokens", self._config.model, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=response.text,
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
            stream = await self._client.aio.models.generate_content_stream(
                model=self._config.model,
                contents=build_gemini_contents(prompt, attachments),
                config=self._generation_config(),
            )
            async for chunk in stream:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(self._config.name)
                if chunk.text:
                    yield chunk.text
        except QueryCancelledError:
            raise
        except Exception as exc:
            raise ProviderError(self._config.name, f"{self._config.model} stream failed: {exc}") from exc
