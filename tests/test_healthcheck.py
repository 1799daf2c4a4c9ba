"""Unit tests for llm_council/healthcheck.py — no real API calls."""

import asyncio
from unittest.mock import AsyncMock

import llm_council.healthcheck as hc
from llm_council.healthcheck import run_health_checks
from llm_council.models import ModelResponse
from llm_council.providers.base import ProviderError
from llm_council.providers.fallback import FallbackProvider
from tests.conftest import MockProvider


def _ok_response(name: str) -> ModelResponse:
    return ModelResponse(provider=name, model="mock-model", content="OK", latency_sec=0.1, token_count=1)


async def test_all_seats_pass():
    providers = {"claude": MockProvider("claude"), "gemini": MockProvider("gemini")}
    providers["claude"].query = AsyncMock(return_value=_ok_response("claude"))
    providers["gemini"].query = AsyncMock(return_value=_ok_response("gemini"))

    results = await run_health_checks(providers)

    assert results["claude"] == (True, "")
    assert results["gemini"] == (True, "")


async def test_one_seat_fails():
    providers = {"claude": MockProvider("claude"), "grok": MockProvider("grok")}
    providers["grok"].query = AsyncMock(side_effect=ProviderError("grok", "403 Forbidden"))

    results = await run_health_checks(providers)

    assert results["claude"] == (True, "")
    ok, err = results["grok"]
    assert ok is False
    assert "403" in err


async def test_all_seats_fail():
    providers = {"gpt": MockProvider("gpt"), "llama": MockProvider("llama")}
    for name, p in providers.items():
        p.query = AsyncMock(side_effect=Exception(f"{name} down"))

    results = await run_health_checks(providers)

    for name in providers:
        ok, err = results[name]
        assert ok is False
        assert name in err


async def test_empty_seats():
    assert await run_health_checks({}) == {}


async def test_timeout_counts_as_failure(monkeypatch):
    providers = {"slow": MockProvider("slow")}

    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    providers["slow"].query = AsyncMock(side_effect=hang)
    monkeypatch.setattr(hc, "_TIMEOUT_SEC", 0.05)

    results = await run_health_checks(providers)

    ok, err = results["slow"]
    assert ok is False
    assert "no answer" in err


async def test_fallback_seat_settles_on_working_candidate():
    primary = MockProvider("gpt", model="gpt-5.2")
    backup = MockProvider("gpt", model="gpt-4o")
    primary.query = AsyncMock(side_effect=ProviderError("gpt", "model not found"))
    seat = FallbackProvider("gpt", [primary, backup], cooldown_sec=120)

    results = await run_health_checks({"gpt": seat})

    assert results["gpt"] == (True, "")
    assert seat.model_string() == "gpt-4o"
