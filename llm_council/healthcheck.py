"""Seat health checks — ping each seat before starting a consultation."""

import asyncio
import logging

from llm_council.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, provider: AIProvider) -> tuple[str, bool, str]:
    """Ping a single seat. Returns (name, ok, error_message)."""
    try:
        response = await asyncio.wait_for(provider.query(_PING_PROMPT), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        return name, False, f"no answer within {_TIMEOUT_SEC:.0f}s"
    except Exception as exc:
        return name, False, str(exc)
    logger.debug("Seat %s answered health check via %s", name, response.model)
    return name, True, ""


async def run_health_checks(
    providers: dict[str, AIProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping all seats in parallel.

    Fallback seats rotate on failure here, so a passing seat has already
    settled on a working candidate model.

    Returns:
        Dict mapping seat name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    return {name: (ok, err) for name, ok, err in results}
