"""Council dispatch: fan one prompt out to every seat concurrently."""

import asyncio
import logging
import time
from collections.abc import Callable

from llm_council.cancellation import CancellationToken
from llm_council.models import Attachment, DeliberationResult, ModelResponse, ProgressUpdate
from llm_council.providers.base import AIProvider

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]


class Council:
    """A fixed, ordered roster of seats queried in parallel.

    Seat failures never abort siblings and never raise out of deliberate():
    each one becomes a ModelResponse with ``error`` set. There is no
    built-in timeout; only the caller's cancellation token stops a query.
    """

    def __init__(self, providers: list[AIProvider]) -> None:
        if not providers:
            raise ValueError("Council requires at least one provider")
        names = [p.name() for p in providers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate seat names: {', '.join(duplicates)}")
        self._providers = list(providers)

    def provider_names(self) -> list[str]:
        return [p.name() for p in self._providers]

    def __len__(self) -> int:
        return len(self._providers)

    async def _query_seat(
        self,
        provider: AIProvider,
        prompt: str,
        attachments: list[Attachment] | None,
        cancel_token: CancellationToken | None,
    ) -> ModelResponse:
        """Query one seat. Never raises — failures come back as error responses."""
        start = time.monotonic()
        try:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(provider.name())
            return await provider.query(prompt, attachments=attachments, cancel_token=cancel_token)
        except Exception as exc:
            logger.warning("Seat %s failed: %s", provider.name(), exc)
            return ModelResponse(
                provider=provider.name(),
                model=provider.model_string(),
                content="",
                latency_sec=time.monotonic() - start,
                error=str(exc),
            )

    async def deliberate(
        self,
        prompt: str,
        *,
        on_progress: ProgressCallback | None = None,
        attachments: list[Attachment] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> DeliberationResult:
        """Send ``prompt`` to every seat and wait until all have settled.

        Args:
            prompt: The question every seat answers independently.
            on_progress: Optional callback invoked after each seat settles,
                in completion order.
            attachments: Optional files forwarded to every seat.
            cancel_token: Optional token; seats that have not finished when it
                fires are recorded as failed.

        Returns:
            DeliberationResult with one response per seat, in roster order.
        """
        total = len(self._providers)
        completed = 0
        start = time.monotonic()

        logger.info("Starting deliberation with %d seats", total)

        async def run_seat(provider: AIProvider) -> ModelResponse:
            nonlocal completed
            response = await self._query_seat(provider, prompt, attachments, cancel_token)
            completed += 1
            if on_progress:
                update = ProgressUpdate(
                    provider=provider.name(),
                    success=response.ok,
                    completed=completed,
                    total=total,
                )
                try:
                    on_progress(update)
                except Exception:
                    logger.exception("Progress callback failed for seat %s", provider.name())
            return response

        responses = list(await asyncio.gather(*(run_seat(p) for p in self._providers)))

        success_count = sum(1 for r in responses if r.ok)
        failure_count = len(responses) - success_count
        total_latency = time.monotonic() - start

        logger.info(
            "Deliberation complete: %d/%d seats succeeded (%.1fs)",
            success_count,
            total,
            total_latency,
        )

        return DeliberationResult(
            prompt=prompt,
            responses=responses,
            success_count=success_count,
            failure_count=failure_count,
            total_latency_sec=total_latency,
        )
