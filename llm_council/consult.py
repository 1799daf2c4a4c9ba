"""One council consultation: build prompt, deliberate, shape the response envelope."""

import logging
from dataclasses import dataclass, field

from llm_council.cancellation import CancellationToken
from llm_council.council import Council, ProgressCallback
from llm_council.models import Attachment, ModelResponse, SynthesisData
from llm_council.providers.base import AIProvider
from llm_council.synthesis import extract_synthesis_data

logger = logging.getLogger(__name__)

DEFAULT_CONSULT_TEMPLATE = "Context: {context}\n\nQuestion: {question}"


@dataclass
class ConsultRequest:
    prompt: str
    context: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    show_raw: bool = False


@dataclass
class Critique:
    model: str                 # seat name
    model_id: str
    response: str              # answer text, or the error text for a failed seat
    latency_ms: int
    error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "model": self.model,
            "model_id": self.model_id,
            "response": self.response,
            "latency_ms": self.latency_ms,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ConsultSummary:
    models_consulted: int
    models_responded: int
    models_failed: int
    total_latency_ms: int


@dataclass
class ConsultResponse:
    prompt: str
    critiques: list[Critique]
    summary: ConsultSummary
    synthesis_data: SynthesisData | None = None
    synthesis_instruction: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "critiques": [c.to_dict() for c in self.critiques],
            "summary": {
                "models_consulted": self.summary.models_consulted,
                "models_responded": self.summary.models_responded,
                "models_failed": self.summary.models_failed,
                "total_latency_ms": self.summary.total_latency_ms,
            },
        }
        if self.synthesis_data is not None:
            data["synthesis_data"] = self.synthesis_data.to_dict()
            data["synthesis_instruction"] = self.synthesis_instruction
        return data


def build_prompt(request: ConsultRequest, template: str = DEFAULT_CONSULT_TEMPLATE) -> str:
    prompt = request.prompt.strip()
    context = (request.context or "").strip()
    if not context:
        return prompt
    return template.format(context=context, question=prompt)


def _to_critique(response: ModelResponse) -> Critique:
    return Critique(
        model=response.provider,
        model_id=response.model,
        response=response.error if response.error is not None else response.content,
        latency_ms=round(response.latency_sec * 1000),
        error=response.error,
    )


async def consult_council(
    request: ConsultRequest,
    providers: list[AIProvider],
    *,
    instruction: str,
    template: str = DEFAULT_CONSULT_TEMPLATE,
    on_progress: ProgressCallback | None = None,
    cancel_token: CancellationToken | None = None,
) -> ConsultResponse:
    """Run one consultation against ``providers``.

    Raises:
        ValueError: If no providers are available.
    """
    if not providers:
        raise ValueError("No council seats available")

    prompt = build_prompt(request, template)
    council = Council(providers)
    result = await council.deliberate(
        prompt,
        on_progress=on_progress,
        attachments=request.attachments or None,
        cancel_token=cancel_token,
    )

    if result.success_count == 0:
        logger.warning("Every seat failed for this consultation")

    response = ConsultResponse(
        prompt=prompt,
        critiques=[_to_critique(r) for r in result.responses],
        summary=ConsultSummary(
            models_consulted=len(providers),
            models_responded=result.success_count,
            models_failed=result.failure_count,
            total_latency_ms=round(result.total_latency_sec * 1000),
        ),
    )
    if request.show_raw:
        return response

    # Failed critiques carry error text in ``response``; extract_synthesis_data skips them.
    response.synthesis_data = extract_synthesis_data(result.responses)
    response.synthesis_instruction = instruction
    return response
