"""First/last message previews streamed from a session file."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Optional

from .models import MessagePreview

# Checked in order; the first string field of a content part wins.
_TEXT_FIELDS = ("text", "input_text", "output_text")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_message_text(payload: Any) -> str:
    """Join the text parts of a ``message`` payload; "" for anything else."""
    if not isinstance(payload, dict) or payload.get("type") != "message":
        return ""
    content = payload.get("content")
    if not isinstance(content, list):
        return ""
    parts: list[str] = []
    for part in content:
        if not isinstance(part, dict):
            continue
        text = ""
        for key in _TEXT_FIELDS:
            value = part.get(key)
            if isinstance(value, str):
                text = value
                break
        if text:
            parts.append(text)
    return normalize_whitespace(" ".join(parts))


def extract_preview_from_line(line: str) -> Optional[str]:
    try:
        parsed = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    text = extract_message_text(parsed.get("payload"))
    return text or None


def truncate_text(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    if max_chars <= 3:
        return text[: max(0, max_chars)]
    return text[: max_chars - 3] + "..."


def read_message_previews(file_path: Path, max_chars: int) -> Optional[MessagePreview]:
    """Single pass over the file, keeping only the first and latest message.

    Returns None when the file holds no message records, so callers can
    tell "nothing to show" apart from "not loaded yet".
    """
    first: Optional[str] = None
    last: Optional[str] = None
    with open(file_path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            preview = extract_preview_from_line(line)
            if not preview:
                continue
            if first is None:
                first = preview
            last = preview

    if first is None:
        return None
    return MessagePreview(
        first=truncate_text(first, max_chars),
        last=truncate_text(last or first, max_chars),
    )
