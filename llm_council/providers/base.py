"""Abstract base for all AI model providers."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from llm_council.models import Attachment, ModelResponse

if TYPE_CHECKING:
    from llm_council.cancellation import CancellationToken

T = TypeVar("T")


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class QueryCancelledError(ProviderError):
    """Raised when the caller's cancellation token fired during a query."""

    def __init__(self, provider_name: str, message: str = "Request cancelled by caller") -> None:
        super().__init__(provider_name, message)


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the seat name (e.g. 'gemini', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the model identifier string currently in use."""
        ...

    @abstractmethod
    async def query(
        self,
        prompt: str,
        *,
        attachments: list[Attachment] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ModelResponse:
        """Send the prompt and return the complete answer.

        Args:
            prompt: The full prompt text to send.
            attachments: Optional files to include with the prompt.
            cancel_token: Optional token; when fired the call stops early.

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            QueryCancelledError: If the cancellation token fired.
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...

    @abstractmethod
    def query_stream(
        self,
        prompt: str,
        *,
        attachments: list[Attachment] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Yield text chunks as they arrive. Same failure rules as query()."""
        ...


async def run_cancellable(
    make_call: Callable[[], Awaitable[T]],
    cancel_token: CancellationToken | None,
    provider_name: str,
) -> T:
    """Await ``make_call()`` unless the token fires first.

    The call is only created once the token is known to be clear. When the
    token wins the race, the in-flight call is cancelled so it stops
    consuming the connection, and QueryCancelledError is raised.
    """
    if cancel_token is None:
        return await make_call()
    cancel_token.raise_if_cancelled(provider_name)

    call_task = asyncio.ensure_future(make_call())
    cancel_task = asyncio.ensure_future(cancel_token.wait())
    try:
        done, _ = await asyncio.wait({call_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_task.cancel()
        if not call_task.done():
            call_task.cancel()

    if call_task in done:
        return call_task.result()
    raise QueryCancelledError(provider_name)
