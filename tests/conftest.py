"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    InboxConfig,
    ModelConfig,
    PromptsConfig,
    SeatConfig,
)
from llm_council.models import ModelResponse
from llm_council.providers.base import AIProvider


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_seat",
        sdk="anthropic",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_seat_config() -> SeatConfig:
    return SeatConfig(
        name="claude",
        sdk="anthropic",
        api_key_env="TEST_CLAUDE_KEY",
        models=["claude-primary", "claude-backup"],
        timeout_sec=60,
        max_tokens=4096,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        consult="Context: {context}\n\nQuestion: {question}",
        synthesis_instruction="Weigh the council's answers.",
    )


@pytest.fixture
def sample_app_config(
    tmp_path: Path,
    sample_seat_config: SeatConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    gpt = SeatConfig(
        name="gpt",
        sdk="openai",
        api_key_env="TEST_OPENAI_KEY",
        models=["gpt-4o"],
        timeout_sec=None,
        max_tokens=2048,
    )
    return AppConfig(
        defaults=DefaultsConfig(
            output_dir=tmp_path / "output",
            fallback_cooldown_sec=120,
            seats=["claude", "gpt"],
        ),
        seats={"claude": sample_seat_config, "gpt": gpt},
        prompts=sample_prompts_config,
        inbox=InboxConfig(dir=tmp_path / "inbox", archive_dir=tmp_path / "inbox" / "archive"),
        available_seats={"claude", "gpt"},
    )


@pytest.fixture
def sample_response() -> ModelResponse:
    return ModelResponse(
        provider="claude",
        model="claude-sonnet-4-5-20250929",
        content="Use YAML for human-editable config, JSON for machine interchange.",
        latency_sec=1.5,
        token_count=42,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str = "Mock response",
        model: str = "mock-model",
    ) -> None:
        self._name = provider_name
        self._model = model
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because query is defined in the class body below.
        self.query = AsyncMock(  # type: ignore[method-assign]
            return_value=ModelResponse(
                provider=provider_name,
                model=model,
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )
        self.stream_chunks: list[str] = [response_content]
        self.stream_error: Exception | None = None

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return self._model

    async def query(self, prompt, *, attachments=None, cancel_token=None) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ModelResponse(self._name, self._model, self._response_content, 0.1, 10)

    async def query_stream(self, prompt, *, attachments=None, cancel_token=None):  # type: ignore[override]
        for chunk in self.stream_chunks:
            yield chunk
        if self.stream_error is not None:
            raise self.stream_error


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def two_mock_providers() -> list[MockProvider]:
    return [MockProvider("provider_a", "Response from A"), MockProvider("provider_b", "Response from B")]


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
