"""Load settings.yaml into typed dataclasses. Reports which seats have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

KNOWN_SDKS = {"anthropic", "openai", "gemini", "xai", "groq"}


@dataclass
class ModelConfig:
    """One concrete candidate model inside a seat."""
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: float | None
    max_tokens: int
    base_url: str | None = None


@dataclass
class SeatConfig:
    name: str
    sdk: str
    api_key_env: str
    models: list[str]
    timeout_sec: float | None
    max_tokens: int
    base_url: str | None = None

    def candidate_configs(self) -> list[ModelConfig]:
        """One ModelConfig per model id, primary first."""
        return [
            ModelConfig(
                name=self.name,
                sdk=self.sdk,
                model=model,
                api_key_env=self.api_key_env,
                timeout_sec=self.timeout_sec,
                max_tokens=self.max_tokens,
                base_url=self.base_url,
            )
            for model in self.models
        ]


@dataclass
class PromptsConfig:
    consult: str
    synthesis_instruction: str


@dataclass
class DefaultsConfig:
    output_dir: Path
    fallback_cooldown_sec: float = 120.0
    seats: list[str] = field(default_factory=list)
    show_raw: bool = False


@dataclass
class InboxConfig:
    dir: Path
    archive_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    seats: dict[str, SeatConfig]
    prompts: PromptsConfig
    inbox: InboxConfig
    available_seats: set[str] = field(default_factory=set)


def _parse_seat(name: str, raw: dict) -> SeatConfig:
    sdk = str(raw["sdk"])
    if sdk not in KNOWN_SDKS:
        raise ValueError(f"Seat '{name}': unknown sdk '{sdk}'")
    models = [str(m) for m in raw.get("models") or []]
    if not models:
        raise ValueError(f"Seat '{name}': at least one model is required")
    timeout = raw.get("timeout_sec")
    return SeatConfig(
        name=name,
        sdk=sdk,
        api_key_env=str(raw["api_key_env"]),
        models=models,
        timeout_sec=float(timeout) if timeout is not None else None,
        max_tokens=int(raw.get("max_tokens", 4096)),
        base_url=raw.get("base_url"),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on an
    invalid seat definition. Missing API keys are logged, not raised —
    callers check available_seats.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    seats: dict[str, SeatConfig] = {}
    available_seats: set[str] = set()
    for seat_name, seat_raw in raw["seats"].items():
        seat = _parse_seat(seat_name, seat_raw)
        seats[seat_name] = seat

        api_key = os.environ.get(seat.api_key_env, "").strip()
        if api_key:
            available_seats.add(seat_name)
            logger.info("Seat available: %s (%d candidate models)", seat_name, len(seat.models))
        else:
            logger.info(
                "Seat skipped (no API key): %s — set %s in .env",
                seat_name,
                seat.api_key_env,
            )

    defaults_raw = raw.get("defaults", {})
    defaults = DefaultsConfig(
        output_dir=Path(defaults_raw.get("output_dir", "./output")),
        fallback_cooldown_sec=float(defaults_raw.get("fallback_cooldown_sec", 120)),
        seats=list(defaults_raw.get("seats") or seats.keys()),
        show_raw=bool(defaults_raw.get("show_raw", False)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        consult=prompts_raw["consult"],
        synthesis_instruction=prompts_raw["synthesis_instruction"].strip(),
    )

    inbox_raw = raw.get("inbox", {})
    inbox_dir = Path(inbox_raw.get("dir", "./inbox"))
    inbox = InboxConfig(
        dir=inbox_dir,
        archive_dir=Path(inbox_raw.get("archive_dir", inbox_dir / "archive")),
    )

    return AppConfig(
        defaults=defaults,
        seats=seats,
        prompts=prompts,
        inbox=inbox,
        available_seats=available_seats,
    )
