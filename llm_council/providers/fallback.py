"""Fallback seat: rotate across ordered candidate models with cooldown health."""

import logging
import time
from collections.abc import AsyncIterator, Callable

from llm_council.cancellation import CancellationToken
from llm_council.models import Attachment, ModelResponse
from llm_council.providers.base import AIProvider, ProviderError, QueryCancelledError

logger = logging.getLogger(__name__)


class FallbackProvider(AIProvider):
    """One seat backed by several candidate providers, primary first.

    Calls start at the candidate that last succeeded. Candidates that failed
    within ``cooldown_sec`` are skipped unless every candidate is cooling
    down, in which case all of them are tried in rotated order anyway.
    Health state is private to this instance.
    """

    def __init__(
        self,
        name: str,
        candidates: list[AIProvider],
        cooldown_sec: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not candidates:
            raise ValueError("FallbackProvider requires at least one candidate")
        self._name = name
        self._candidates = list(candidates)
        self._cooldown_sec = cooldown_sec
        self._clock = clock
        self._failure_times: list[float | None] = [None] * len(self._candidates)
        self._last_success_index = 0

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return self._candidates[self._last_success_index].model_string()

    def _is_healthy(self, index: int) -> bool:
        last_failure = self._failure_times[index]
        if last_failure is None:
            return True
        return self._clock() - last_failure > self._cooldown_sec

    def _mark_failure(self, index: int, exc: Exception) -> None:
        self._failure_times[index] = self._clock()
        logger.warning(
            "Seat %s: candidate %s failed, cooling down for %.0fs: %s",
            self._name,
            self._candidates[index].model_string(),
            self._cooldown_sec,
            exc,
        )

    def _candidate_indexes(self) -> list[int]:
        n = len(self._candidates)
        rotated = [(self._last_success_index + i) % n for i in range(n)]
        healthy = [i for i in rotated if self._is_healthy(i)]
        if healthy:
            if len(healthy) < n:
                logger.debug(
                    "Seat %s: skipping %d candidate(s) in cooldown",
                    self._name,
                    n - len(healthy),
                )
            return healthy
        logger.debug("Seat %s: all candidates cooling down, trying all", self._name)
        return rotated

    def _no_candidate_error(self, last_error: Exception | None) -> Exception:
        if last_error is not None:
            return last_error
        return ProviderError(self._name, "All fallback candidates failed")

    async def query(
        self,
        prompt: str,
        *,
        attachments: list[Attachment] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ModelResponse:
        last_error: Exception | None = None

        for index in self._candidate_indexes():
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(self._name)
            try:
                response = await self._candidates[index].query(
                    prompt, attachments=attachments, cancel_token=cancel_token
                )
            except QueryCancelledError:
                raise
            except Exception as exc:
                if cancel_token is not None and cancel_token.cancelled:
                    raise
                self._mark_failure(index, exc)
                last_error = exc
                continue

            if index != self._last_success_index:
                logger.info("Seat %s: now routing to %s", self._name, response.model)
            self._last_success_index = index
            return response

        raise self._no_candidate_error(last_error)

    async def query_stream(
        self,
        prompt: str,
        *,
        attachments: list[Attachment] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        last_error: Exception | None = None

        for index in self._candidate_indexes():
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(self._name)
            yielded = False
            try:
                async for chunk in self._candidates[index].query_stream(
                    prompt, attachments=attachments, cancel_token=cancel_token
                ):
                    yielded = True
                    yield chunk
            except QueryCancelledError:
                raise
            except Exception as exc:
                # No rotation once a chunk has been yielded.
                if yielded or (cancel_token is not None and cancel_token.cancelled):
                    raise
                self._mark_failure(index, exc)
                last_error = exc
                continue

            self._last_success_index = index
            return

        raise self._no_candidate_error(last_error)
