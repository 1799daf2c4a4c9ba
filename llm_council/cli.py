"""Click CLI — orchestrates config loading, seat construction, consultation, and output."""

import asyncio
import base64
import json
import logging
import mimetypes
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, SeatConfig, load_config
from llm_council.cancellation import CancellationToken
from llm_council.consult import ConsultRequest, ConsultResponse, consult_council
from llm_council.healthcheck import run_health_checks
from llm_council.inbox import archive_file, ensure_dirs, parse_question_file, scan_inbox
from llm_council.models import Attachment, ProgressUpdate
from llm_council.output import print_critiques, print_synthesis, progress_line, save_to_file
from llm_council.providers.anthropic import AnthropicProvider
from llm_council.providers.base import AIProvider
from llm_council.providers.fallback import FallbackProvider
from llm_council.providers.gemini import GeminiProvider
from llm_council.providers.groq import GroqProvider
from llm_council.providers.openai_provider import OpenAIProvider
from llm_council.providers.xai import XAIProvider

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "xai": XAIProvider,
    "groq": GroqProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )


def _build_seat(seat: SeatConfig, cooldown_sec: float) -> AIProvider | None:
    """Build one seat: a single candidate directly, several behind a FallbackProvider."""
    provider_cls = PROVIDER_CLASSES.get(seat.sdk)
    if provider_cls is None:
        logger.warning("Seat '%s' uses unknown sdk '%s', skipping", seat.name, seat.sdk)
        return None

    candidates: list[AIProvider] = []
    for model_cfg in seat.candidate_configs():
        try:
            candidates.append(provider_cls(model_cfg))
        except Exception as exc:
            logger.warning("Failed to instantiate %s for seat '%s': %s", model_cfg.model, seat.name, exc)

    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]
    return FallbackProvider(seat.name, candidates, cooldown_sec)


def _build_all_seats(config: AppConfig) -> dict[str, AIProvider]:
    """Build every seat that has an API key. Returns dict keyed by seat name."""
    seats: dict[str, AIProvider] = {}
    for name, seat_cfg in config.seats.items():
        if name not in config.available_seats:
            continue
        provider = _build_seat(seat_cfg, config.defaults.fallback_cooldown_sec)
        if provider is not None:
            seats[name] = provider
    return seats


def _determine_roster(config: AppConfig, seats_arg: str | list[str] | None) -> list[str]:
    """Seat names to consult, in roster order. --seats overrides the config default."""
    if isinstance(seats_arg, str):
        return [s.strip() for s in seats_arg.split(",") if s.strip()]
    if seats_arg:
        return list(seats_arg)
    return list(config.defaults.seats)


def _load_attachments(paths: tuple[str, ...]) -> list[Attachment]:
    attachments: list[Attachment] = []
    for raw_path in paths:
        path = Path(raw_path)
        media_type, _ = mimetypes.guess_type(path.name)
        attachments.append(
            Attachment(
                media_type=media_type or "application/octet-stream",
                data=base64.b64encode(path.read_bytes()).decode("ascii"),
                filename=path.name,
            )
        )
    return attachments


async def _check_and_filter_seats(all_seats: dict[str, AIProvider]) -> dict[str, AIProvider]:
    """Run health checks, print results, and ask the user what to do on failures.

    Returns the filtered dict of working seats. Exits if the user declines
    to continue or no seat passes.
    """
    console.print("\n[bold]Checking seats...[/bold]")
    results: dict[str, tuple[bool, str]] = await run_health_checks(all_seats)

    failed_names: list[str] = []
    for name in all_seats:
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name} ({all_seats[name].model_string()})")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed_names.append(name)

    if not failed_names:
        console.print()
        return all_seats

    working = {n: p for n, p in all_seats.items() if n not in failed_names}

    if not working:
        console.print("\n[bold red]Error:[/bold red] No seats passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed_names)} seat(s) failed:[/yellow] {', '.join(failed_names)}")
    console.print(f"Working seats: {', '.join(working)}")

    if not click.confirm("Continue with working seats only?", default=True):
        sys.exit(0)

    console.print()
    return working


def _install_interrupt(token: CancellationToken) -> bool:
    """Route Ctrl-C to the cancellation token so finished seats are still reported."""
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        return False
    return True


async def _run_single(
    request: ConsultRequest,
    config: AppConfig,
    all_seats: dict[str, AIProvider],
    seats_arg: str | list[str] | None,
    output_dir: Path | None,
    as_json: bool,
    slug_override: str | None = None,
) -> ConsultResponse:
    """Run one consultation, print it, and optionally save it."""
    roster = _determine_roster(config, seats_arg)
    unknown = [n for n in roster if n not in all_seats]
    if unknown:
        logger.warning("Seats not available, skipping: %s", ", ".join(unknown))
    providers = [all_seats[n] for n in roster if n in all_seats]

    if not providers:
        console.print("[bold red]Error:[/bold red] No seats available. Check API keys in .env or adjust --seats.")
        sys.exit(1)

    token = CancellationToken()
    interrupt_installed = _install_interrupt(token)

    if not as_json:
        console.print(f"\n[bold cyan]LLM Council[/bold cyan] — {len(providers)} seats")
        console.print(f"Seats: {', '.join(p.name() for p in providers)}")
        console.print(f"Question: [italic]{request.prompt[:80]}{'...' if len(request.prompt) > 80 else ''}[/italic]\n")

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
            disable=as_json,
        ) as progress:
            task = progress.add_task("Council is deliberating...", total=None)

            def on_progress(update: ProgressUpdate) -> None:
                if not as_json:
                    progress.print(progress_line(update))
                progress.update(task, description=f"Council deliberating... ({update.completed}/{update.total})")

            response = await consult_council(
                request,
                providers,
                instruction=config.prompts.synthesis_instruction,
                template=config.prompts.consult,
                on_progress=on_progress,
                cancel_token=token,
            )
    finally:
        if interrupt_installed:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    if token.cancelled:
        logger.warning("Consultation cancelled; reporting seats that finished in time")

    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_critiques(response)
        print_synthesis(response)

    if output_dir is not None:
        saved_path = save_to_file(response, output_dir, slug_override=slug_override)
        if not as_json:
            console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return response


async def _consult_once(
    request: ConsultRequest,
    config: AppConfig,
    all_seats: dict[str, AIProvider],
    seats_arg: str | None,
    output_dir: Path | None,
    as_json: bool,
    check_seats: bool,
) -> ConsultResponse:
    """Optional health check, then one consultation, both on the same event loop."""
    if check_seats:
        all_seats = await _check_and_filter_seats(all_seats)
    return await _run_single(
        request=request,
        config=config,
        all_seats=all_seats,
        seats_arg=seats_arg,
        output_dir=output_dir,
        as_json=as_json,
    )


async def _run_inbox(
    config: AppConfig,
    all_seats: dict[str, AIProvider],
    inbox_dir: Path,
    archive_dir: Path,
    seats_cli: str | None,
    show_raw_cli: bool,
    output_dir: Path,
    check_seats: bool = False,
) -> None:
    """Process all .md files in the inbox folder.

    Precedence for per-file settings: CLI flag > frontmatter > config default.
    """
    if check_seats:
        all_seats = await _check_and_filter_seats(all_seats)
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return

    for file_path in files:
        try:
            request, file_seats = parse_question_file(file_path)
            request.show_raw = show_raw_cli or request.show_raw
            response = await _run_single(
                request=request,
                config=config,
                all_seats=all_seats,
                seats_arg=seats_cli if seats_cli is not None else file_seats,
                output_dir=output_dir,
                as_json=False,
                slug_override=file_path.stem,
            )
            failed = response.summary.models_responded == 0
            archived = archive_file(file_path, archive_dir, failed=failed)
            click.echo(f"Processed: {file_path.name} (archived: {archived.name})")
        except Exception as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)


@click.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True), help="Read question from .md file")
@click.option("--context", default=None, help="Extra context sent along with the question")
@click.option("--attach", "attach_paths", multiple=True, type=click.Path(exists=True, dir_okay=False),
              help="File to attach (repeatable)")
@click.option("--seats", default=None, help="Comma-separated seat list, overrides the configured roster")
@click.option("--show-raw", is_flag=True, default=False, help="Skip synthesis and return raw responses only")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON")
@click.option("--output", "output_path", default=None, help="Save a markdown report in this directory")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--inbox", "use_inbox", is_flag=True, default=False,
              help="Process all .md files in inbox folder")
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    question: str | None,
    question_file: str | None,
    context: str | None,
    attach_paths: tuple[str, ...],
    seats: str | None,
    show_raw: bool,
    as_json: bool,
    output_path: str | None,
    verbose: bool,
    use_inbox: bool,
    inbox_dir_override: str | None,
    skip_health_check: bool,
) -> None:
    """LLM Council -- ask several model families the same question at once.

    \b
    Examples:
      llm-council "Should we use REST or GraphQL?"
      llm-council "SQL or NoSQL?" --seats claude,gpt
      llm-council --file question.md --context "Team of 4, Postgres shop"
      llm-council "Review this schema" --attach schema.sql --json
      llm-council --inbox
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    all_seats = _build_all_seats(config)

    if not all_seats:
        console.print("[bold red]Error:[/bold red] No seats available. Check API keys in .env.")
        sys.exit(1)

    check_seats = not skip_health_check and not as_json

    if use_inbox:
        inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
        asyncio.run(
            _run_inbox(
                config=config,
                all_seats=all_seats,
                inbox_dir=inbox_dir,
                archive_dir=config.inbox.archive_dir,
                seats_cli=seats,
                show_raw_cli=show_raw,
                output_dir=Path(output_path) if output_path else config.defaults.output_dir,
                check_seats=check_seats,
            )
        )
        return

    if question_file:
        question_text = Path(question_file).read_text(encoding="utf-8").strip()
    elif question:
        question_text = question
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument, --file, or --inbox.")
        sys.exit(1)

    request = ConsultRequest(
        prompt=question_text,
        context=context,
        attachments=_load_attachments(attach_paths),
        show_raw=show_raw or config.defaults.show_raw,
    )
    response = asyncio.run(
        _consult_once(
            request=request,
            config=config,
            all_seats=all_seats,
            seats_arg=seats,
            output_dir=Path(output_path) if output_path else None,
            as_json=as_json,
            check_seats=check_seats,
        )
    )
    if response.summary.models_responded == 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
