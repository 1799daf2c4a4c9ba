"""Pure dataclasses for the LLM Council consultation pipeline. No logic, no deps."""

from dataclasses import dataclass, field
from typing import Literal

Polarity = Literal["positive", "negative"]


@dataclass
class Attachment:
    media_type: str            # IANA media type, e.g. "image/png"
    data: str | None = None    # base64 payload
    url: str | None = None     # http(s) URL
    filename: str | None = None


@dataclass
class ModelResponse:
    provider: str              # seat name, e.g. "claude"
    model: str                 # concrete model id that answered
    content: str
    latency_sec: float
    token_count: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ProgressUpdate:
    provider: str
    success: bool
    completed: int
    total: int


@dataclass
class DeliberationResult:
    prompt: str
    responses: list[ModelResponse] = field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    total_latency_sec: float = 0.0


@dataclass
class Claim:
    raw: str
    tokens: list[str]          # sorted, unique, stop-word filtered
    key: str
    polarity: Polarity


@dataclass
class Position:
    sources: list[str]
    view: str


@dataclass
class Disagreement:
    topic: str
    positions: list[Position] = field(default_factory=list)


@dataclass
class KeyInsight:
    source: str
    insight: str


@dataclass
class SynthesisData:
    agreement_points: list[str] = field(default_factory=list)
    disagreements: list[Disagreement] = field(default_factory=list)
    key_insights: list[KeyInsight] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "agreement_points": list(self.agreement_points),
            "disagreements": [
                {
                    "topic": d.topic,
                    "positions": [{"sources": list(p.sources), "view": p.view} for p in d.positions],
                }
                for d in self.disagreements
            ],
            "key_insights": [{"source": k.source, "insight": k.insight} for k in self.key_insights],
            "confidence": self.confidence,
        }
