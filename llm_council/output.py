"""Rich console output and markdown file save for consultation results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from llm_council.consult import ConsultResponse
from llm_council.models import ProgressUpdate, SynthesisData

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _preview(text: str, words: int = 80) -> str:
    all_words = text.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def progress_line(update: ProgressUpdate) -> str:
    mark = "[green]OK  [/green]" if update.success else "[red]FAIL[/red]"
    return f"{mark} {update.provider} ({update.completed}/{update.total})"


def print_critiques(response: ConsultResponse) -> None:
    """One panel per seat, roster order."""
    console.print(Rule("[bold cyan]Council Responses[/bold cyan]"))
    for critique in response.critiques:
        if critique.error is not None:
            console.print(
                Panel(
                    Text(critique.error, style="red"),
                    title=f"[bold]{critique.model}[/bold] ({critique.model_id})",
                    subtitle="failed",
                    border_style="red",
                )
            )
            continue
        console.print(
            Panel(
                _preview(critique.response),
                title=f"[bold]{critique.model}[/bold] ({critique.model_id})",
                subtitle=f"{critique.latency_ms / 1000:.1f}s",
                border_style="dim",
            )
        )


def print_synthesis(response: ConsultResponse) -> None:
    summary = response.summary
    console.print(
        Text(
            f"Responded: {summary.models_responded}/{summary.models_consulted} | "
            f"Failed: {summary.models_failed} | "
            f"Total: {summary.total_latency_ms / 1000:.1f}s",
            style="dim",
        )
    )
    if response.synthesis_data is None:
        return
    console.print(Rule("[bold green]Synthesis Summary[/bold green]"))
    console.print(Markdown("\n".join(_synthesis_lines(response.synthesis_data))))


def _synthesis_lines(data: SynthesisData) -> list[str]:
    lines = [f"**Confidence:** {round(data.confidence * 100)}%"]
    if data.agreement_points:
        lines += ["", "**Agreement Points:**"]
        lines += [f"- {point}" for point in data.agreement_points]
    if data.disagreements:
        lines += ["", "**Disagreements:**"]
        for item in data.disagreements:
            lines.append(f"- {item.topic}")
            for position in item.positions:
                lines.append(f"  - {', '.join(position.sources)}: {position.view}")
    if data.key_insights:
        lines += ["", "**Key Insights:**"]
        lines += [f"- *{k.source}*: {k.insight}" for k in data.key_insights]
    return lines


def format_markdown(response: ConsultResponse) -> str:
    """Render the consultation as a markdown report."""
    summary = response.summary
    lines: list[str] = [
        "# Council Consultation Results",
        "",
        f"**Models Responded:** {summary.models_responded}/{summary.models_consulted}",
        f"**Total Time:** {summary.total_latency_ms / 1000:.1f}s",
        "",
    ]

    for critique in response.critiques:
        if critique.error is not None:
            lines.append(f"## {critique.model} ✗")
            lines.append(f"**Model ID:** {critique.model_id}")
            lines.append(f"**Error:** {critique.error}")
        else:
            lines.append(f"## {critique.model} ✓")
            lines.append(f"**Model ID:** {critique.model_id}")
            lines.append(critique.response)
        lines.append("")

    if response.synthesis_data is not None:
        lines.append("## Synthesis Summary")
        lines += _synthesis_lines(response.synthesis_data)
        lines.append("")

    return "\n".join(lines)


def save_to_file(response: ConsultResponse, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the consultation as a markdown file.

    Args:
        response: The completed ConsultResponse.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the prompt. Useful for inbox mode.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(response.prompt)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    header = [
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "**Prompt:**",
        "",
        response.prompt,
        "",
        "---",
        "",
    ]
    filepath.write_text("\n".join(header) + format_markdown(response), encoding="utf-8")
    logger.info("Consultation saved to: %s", filepath)
    return filepath
