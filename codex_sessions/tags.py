"""Tag vocabulary and autocomplete for the tag editor."""

from __future__ import annotations

import re

from .models import SessionRecord
from .session_store import parse_tags_input

# prefix keeps everything up to and including the last separator
_FRAGMENT_RE = re.compile(r"^(.*?)([^,\s]*)$", re.DOTALL)


def build_tag_index(sessions: list[SessionRecord]) -> list[str]:
    """All tags across sessions, deduped case-insensitively and sorted."""
    seen: set[str] = set()
    result: list[str] = []
    for session in sessions:
        for tag in session.tags:
            key = tag.lower()
            if key in seen:
                continue
            seen.add(key)
            result.append(tag)
    result.sort(key=str.lower)
    return result


def get_tag_fragment(text: str) -> tuple[str, str]:
    """Split input into (already typed prefix, trailing fragment)."""
    match = _FRAGMENT_RE.match(text)
    if not match:
        return text, ""
    return match.group(1), match.group(2)


def get_tag_suggestions(text: str, all_tags: list[str], limit: int) -> list[str]:
    """Vocabulary tags that complete the trailing fragment and aren't used yet."""
    if not all_tags:
        return []
    _, fragment = get_tag_fragment(text)
    fragment_lower = fragment.lower()
    used = {tag.lower() for tag in parse_tags_input(text)}
    if fragment_lower:
        used.discard(fragment_lower)

    matches = [
        tag
        for tag in all_tags
        if tag.lower() not in used and tag.lower().startswith(fragment_lower)
    ]
    matches.sort(key=str.lower)
    return matches[: max(0, limit)]


def apply_tag_suggestion(text: str, suggestion: str) -> str:
    prefix, _ = get_tag_fragment(text)
    return f"{prefix}{suggestion}"
