"""Inbox folder scanning, question-file parsing, and archive logic."""

import shutil
from datetime import datetime
from pathlib import Path

import frontmatter

from llm_council.consult import ConsultRequest


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    """Create inbox and archive directories if they don't exist."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return all .md files in inbox_dir, oldest first."""
    return sorted(inbox_dir.glob("*.md"), key=lambda p: p.stat().st_mtime)


def _parse_seats(value: object) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        names = [s.strip() for s in value.split(",")]
    else:
        names = [str(s).strip() for s in value]
    return [n for n in names if n] or None


def parse_question_file(file_path: Path) -> tuple[ConsultRequest, list[str] | None]:
    """Parse a markdown question with optional YAML frontmatter.

    The body is the prompt. Recognised frontmatter keys:
    ``context`` (str), ``seats`` (comma string or list), ``show_raw`` (bool).

    Returns:
        (request, seat_names) where seat_names is None when the file does
        not restrict the roster.

    Raises:
        ValueError: If the body is empty.
    """
    post = frontmatter.load(str(file_path))
    prompt = post.content.strip()
    if not prompt:
        raise ValueError(f"{file_path.name}: question body is empty")

    meta = post.metadata
    context = meta.get("context")
    request = ConsultRequest(
        prompt=prompt,
        context=str(context) if context else None,
        show_raw=bool(meta.get("show_raw", False)),
    )
    return request, _parse_seats(meta.get("seats"))


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move a processed question into archive_dir with a timestamp prefix.

    Failed questions get an extra ``FAILED_`` prefix so they are easy to
    re-queue.
    """
    stamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    dest = archive_dir / f"{'FAILED_' if failed else ''}{stamp}_{file_path.name}"
    shutil.move(str(file_path), str(dest))
    return dest
