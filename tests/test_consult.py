"""Tests for llm_council/consult.py."""

from unittest.mock import AsyncMock

import pytest

from llm_council.consult import ConsultRequest, build_prompt, consult_council
from llm_council.models import Attachment, ProgressUpdate
from llm_council.providers.base import ProviderError
from tests.conftest import MockProvider

INSTRUCTION = "Weigh the council's answers."


def test_build_prompt_without_context():
    assert build_prompt(ConsultRequest(prompt="  Which ORM?  ")) == "Which ORM?"


def test_build_prompt_with_context():
    request = ConsultRequest(prompt="Which ORM?", context="Django shop")
    assert build_prompt(request) == "Context: Django shop\n\nQuestion: Which ORM?"


def test_build_prompt_ignores_blank_context():
    assert build_prompt(ConsultRequest(prompt="Which ORM?", context="   ")) == "Which ORM?"


async def test_consult_requires_providers():
    with pytest.raises(ValueError, match="No council seats"):
        await consult_council(ConsultRequest(prompt="q"), [], instruction=INSTRUCTION)


async def test_consult_includes_synthesis_by_default():
    providers = [MockProvider(n, "Use strict null checks.") for n in ("claude", "gpt", "grok")]

    response = await consult_council(ConsultRequest(prompt="q"), providers, instruction=INSTRUCTION)

    assert response.summary.models_consulted == 3
    assert response.summary.models_responded == 3
    assert response.synthesis_instruction == INSTRUCTION
    assert response.synthesis_data is not None
    assert response.synthesis_data.agreement_points == ["Use strict null checks."]


async def test_consult_show_raw_skips_synthesis(two_mock_providers):
    response = await consult_council(
        ConsultRequest(prompt="q", show_raw=True), two_mock_providers, instruction=INSTRUCTION
    )

    assert response.synthesis_data is None
    payload = response.to_dict()
    assert "synthesis_data" not in payload
    assert "synthesis_instruction" not in payload


async def test_failed_seat_becomes_error_critique():
    good = MockProvider("claude", "Prefer Postgres.")
    bad = MockProvider("gpt", model="gpt-4o")
    bad.query = AsyncMock(side_effect=ProviderError("gpt", "rate limited"))

    response = await consult_council(ConsultRequest(prompt="q"), [good, bad], instruction=INSTRUCTION)

    assert response.summary.models_responded == 1
    assert response.summary.models_failed == 1
    failed = response.critiques[1]
    assert failed.error == "[gpt] rate limited"
    assert failed.response == failed.error
    assert failed.to_dict()["error"] == "[gpt] rate limited"
    assert "error" not in response.critiques[0].to_dict()
    # Synthesis only sees the successful answer.
    assert [k.source for k in response.synthesis_data.key_insights] == ["claude"]
    assert response.synthesis_data.confidence == 0.5


async def test_consult_passes_prompt_and_attachments(mock_provider):
    attachment = Attachment(media_type="text/plain", data="aGVsbG8=", filename="notes.txt")
    request = ConsultRequest(prompt="Review", context="Legacy code", attachments=[attachment])

    await consult_council(request, [mock_provider], instruction=INSTRUCTION)

    args, kwargs = mock_provider.query.await_args
    assert args[0] == "Context: Legacy code\n\nQuestion: Review"
    assert kwargs["attachments"] == [attachment]


async def test_consult_reports_progress(two_mock_providers):
    updates: list[ProgressUpdate] = []
    await consult_council(
        ConsultRequest(prompt="q"), two_mock_providers, instruction=INSTRUCTION, on_progress=updates.append
    )
    assert sorted(u.completed for u in updates) == [1, 2]


async def test_to_dict_envelope(two_mock_providers):
    response = await consult_council(ConsultRequest(prompt="q"), two_mock_providers, instruction=INSTRUCTION)
    payload = response.to_dict()

    assert set(payload) == {"critiques", "summary", "synthesis_data", "synthesis_instruction"}
    assert set(payload["critiques"][0]) == {"model", "model_id", "response", "latency_ms"}
    assert payload["summary"]["models_consulted"] == 2
