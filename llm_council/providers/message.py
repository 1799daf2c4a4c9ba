"""Translate prompt + attachments into each SDK's user-message content."""

import base64
import binascii
import logging

from google.genai import types as genai_types

from llm_council.models import Attachment

logger = logging.getLogger(__name__)


def _is_text(media_type: str) -> bool:
    return media_type.startswith("text/") or media_type == "application/json"


def _decode_text(attachment: Attachment) -> str | None:
    if attachment.data is None:
        return None
    try:
        return base64.b64decode(attachment.data).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        logger.warning("Attachment %s is not valid base64, skipping", attachment.filename or attachment.media_type)
        return None


def _text_block(attachment: Attachment, text: str) -> str:
    label = attachment.filename or attachment.media_type
    return f"--- Attachment: {label} ---\n{text}"


def _data_url(attachment: Attachment) -> str:
    return f"data:{attachment.media_type};base64,{attachment.data}"


def build_anthropic_content(prompt: str, attachments: list[Attachment] | None) -> str | list[dict]:
    """Anthropic messages API: plain string, or text/image/document blocks."""
    if not attachments:
        return prompt

    blocks: list[dict] = [{"type": "text", "text": prompt}]
    for att in attachments:
        if _is_text(att.media_type):
            text = _decode_text(att)
            if text is not None:
                blocks.append({"type": "text", "text": _text_block(att, text)})
            continue

        if att.media_type.startswith("image/"):
            block_type = "image"
        elif att.media_type == "application/pdf":
            block_type = "document"
        else:
            logger.warning("Anthropic does not accept %s attachments, skipping", att.media_type)
            continue

        if att.data:
            source = {"type": "base64", "media_type": att.media_type, "data": att.data}
        elif att.url:
            source = {"type": "url", "url": att.url}
        else:
            continue
        blocks.append({"type": block_type, "source": source})
    return blocks


def build_openai_content(prompt: str, attachments: list[Attachment] | None) -> str | list[dict]:
    """OpenAI-compatible chat completions: string, or content parts."""
    if not attachments:
        return prompt

    parts: list[dict] = [{"type": "text", "text": prompt}]
    for att in attachments:
        if _is_text(att.media_type):
            text = _decode_text(att)
            if text is not None:
                parts.append({"type": "text", "text": _text_block(att, text)})
        elif att.media_type.startswith("image/"):
            url = _data_url(att) if att.data else att.url
            if url:
                parts.append({"type": "image_url", "image_url": {"url": url}})
        elif att.data:
            parts.append({
                "type": "file",
                "file": {"filename": att.filename or "attachment", "file_data": _data_url(att)},
            })
        else:
            logger.warning("URL attachments of type %s are not supported here, skipping", att.media_type)
    return parts


def build_gemini_contents(prompt: str, attachments: list[Attachment] | None) -> str | list:
    """google-genai: prompt string followed by inline or URI parts."""
    if not attachments:
        return prompt

    contents: list = [prompt]
    for att in attachments:
        if _is_text(att.media_type):
            text = _decode_text(att)
            if text is not None:
                contents.append(_text_block(att, text))
        elif att.data:
            try:
                raw = base64.b64decode(att.data)
            except (binascii.Error, ValueError):
                logger.warning("Attachment %s is not valid base64, skipping", att.filename or att.media_type)
                continue
            contents.append(genai_types.Part.from_bytes(data=raw, mime_type=att.media_type))
        elif att.url:
            contents.append(genai_types.Part.from_uri(file_uri=att.url, mime_type=att.media_type))
    return contents
