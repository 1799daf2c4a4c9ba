"""Cooperative cancellation shared by every concurrent seat query."""

import asyncio

from llm_council.providers.base import QueryCancelledError


class CancellationToken:
    """One-shot flag that callers fire and backends observe.

    Backends that never look at the token simply finish late; new work must
    check ``cancelled`` before it starts.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self, provider_name: str) -> None:
        if self._event.is_set():
            raise QueryCancelledError(provider_name)
