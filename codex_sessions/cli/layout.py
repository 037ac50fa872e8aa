"""Frame layout for the session browser.

Everything here is a pure function of the browser state and the terminal
size; the painter in ``browser_tui`` writes the returned lines as-is and
nothing is kept between frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..models import DetailState, InputKind, MessagePreview, SessionRecord
from ..tags import get_tag_suggestions

if TYPE_CHECKING:
    from .browser_tui import BrowserState

DEFAULT_ROWS = 24
DEFAULT_COLUMNS = 80
TAG_SUGGESTION_LIMIT = 5
PREVIEW_CHAR_LIMIT = 240
DETAIL_MIN_COLUMNS = 80
LIST_WIDTH_RATIO = 0.45
LIST_MIN_WIDTH = 30
DETAIL_MIN_WIDTH = 20
DETAIL_SEPARATOR = " | "

# title, options, counters, actions, selection
_BASE_HEADER_ROWS = 5

HELP_LINES = [
    "Help (toggle with h or ?)",
    "",
    "Navigation",
    "  up/down (j/k): move selection",
    "  g or Home: jump to top",
    "  G or End: jump to bottom",
    "  /: search",
    "  f: show filter (active/archived/active+archived)",
    "  s: sort order (desc/asc)",
    "  d: toggle details pane",
    "",
    "Selection",
    "  space or Tab: toggle selected session",
    "  A: select all visible",
    "  I: invert selection (visible)",
    "  C: clear selection",
    "",
    "Actions",
    "  r: rename session",
    "  t: edit tags",
    "  a: toggle archive focused",
    "  B: toggle archive selected",
    "",
    "q: quit",
]


@dataclass
class LayoutSettings:
    """Tunable layout knobs (overridable from the ``ui`` config section)."""
    list_width_ratio: float = LIST_WIDTH_RATIO
    list_min_width: int = LIST_MIN_WIDTH
    detail_min_width: int = DETAIL_MIN_WIDTH
    detail_min_columns: int = DETAIL_MIN_COLUMNS
    tag_suggestion_limit: int = TAG_SUGGESTION_LIMIT

    @classmethod
    def from_config(cls, ui_config: dict) -> "LayoutSettings":
        return cls(
            list_width_ratio=float(ui_config.get("list_width_ratio", LIST_WIDTH_RATIO)),
            list_min_width=int(ui_config.get("list_min_width", LIST_MIN_WIDTH)),
            detail_min_width=int(ui_config.get("detail_min_width", DETAIL_MIN_WIDTH)),
            detail_min_columns=int(ui_config.get("detail_min_columns", DETAIL_MIN_COLUMNS)),
            tag_suggestion_limit=int(ui_config.get("tag_suggestion_limit", TAG_SUGGESTION_LIMIT)),
        )


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."


def pad_right(text: str, width: int) -> str:
    return truncate(text, width).ljust(max(0, width))


def wrap_text(text: str, width: int) -> list[str]:
    """Greedy word wrap; words wider than ``width`` are hard-split."""
    if width <= 0:
        return []
    lines: list[str] = []
    current = ""
    for word in text.split(" "):
        if not word:
            continue
        if len(word) > width:
            if current:
                lines.append(current)
                current = ""
            while len(word) > width:
                lines.append(word[:width])
                word = word[width:]
            current = word
            continue
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    if not lines:
        lines.append("")
    return [truncate(line, width) for line in lines]


def get_list_window(total: int, view_size: int, selected_index: int) -> tuple[int, int]:
    """Rows [start, end) to show so the focused row stays centred on screen."""
    if total <= view_size:
        return 0, total
    start = max(0, selected_index - view_size // 2)
    if start + view_size > total:
        start = max(0, total - view_size)
    return start, min(total, start + view_size)


def format_session_line(session: SessionRecord, selected: bool, current: bool, width: int) -> str:
    cursor = ">" if current else " "
    marker = "[x]" if selected else "[ ]"
    tag_text = f" tags:{','.join(session.tags)}" if session.tags else ""
    archive_text = " [archived]" if session.archived else ""
    date_text = f" {session.date_label}" if session.date_label else ""
    return truncate(f"{cursor} {marker} {session.display_name}{tag_text}{archive_text}{date_text}", width)


def compute_pane_widths(
    cols: int,
    ratio: float = LIST_WIDTH_RATIO,
    list_min_width: int = LIST_MIN_WIDTH,
    detail_min_width: int = DETAIL_MIN_WIDTH,
    separator_width: int = len(DETAIL_SEPARATOR),
) -> tuple[int, int]:
    """Return (list_width, detail_width); together with the separator they fill ``cols``."""
    list_width = max(list_min_width, int(cols * ratio))
    list_width = min(list_width, cols - separator_width - detail_min_width)
    list_width = max(0, list_width)
    return list_width, max(0, cols - list_width - separator_width)


def _preview_lines(
    session: SessionRecord,
    detail_state: DetailState,
    detail_cache: dict[Path, Optional[MessagePreview]],
) -> list[str]:
    if detail_state.loading and detail_state.file_path == session.file_path:
        return ["(loading preview...)"]
    if session.file_path in detail_cache:
        preview = detail_cache[session.file_path]
        if preview is None:
            return ["(no preview available)"]
        return ["First:", preview.first, "", "Last:", preview.last]
    return ["(preview unavailable)"]


def build_detail_lines(
    session: SessionRecord,
    width: int,
    detail_state: DetailState,
    detail_cache: dict[Path, Optional[MessagePreview]],
) -> list[str]:
    fields: list[tuple[str, Optional[str]]] = [
        ("Name", session.display_name),
        ("Title", session.title),
        ("Status", "archived" if session.archived else "active"),
        ("Timestamp", session.timestamp),
        ("Cwd", session.cwd),
        ("Tags", ", ".join(session.tags) if session.tags else None),
        ("Id", session.id),
        ("Originator", session.originator),
        ("CLI", session.cli_version),
        ("Model", session.model_provider),
    ]
    if session.git:
        fields.extend(
            [
                ("Repo", session.git.repository_url),
                ("Branch", session.git.branch),
                ("Commit", session.git.commit_hash),
            ]
        )

    lines = wrap_text("Details", width)
    lines.append("")
    for label, value in fields:
        if value:
            lines.extend(wrap_text(f"{label}: {value}", width))

    lines.append("")
    lines.extend(wrap_text("Preview:", width))
    for text in _preview_lines(session, detail_state, detail_cache):
        if text:
            lines.extend(wrap_text(text, width))
        else:
            lines.append("")
    return lines


def render_list_with_details(
    list_lines: list[str],
    detail_lines: list[str],
    list_width: int,
    detail_width: int,
    list_size: int,
) -> list[str]:
    """Join both panes row by row, padding to exactly ``list_size`` rows."""
    rows = []
    for i in range(list_size):
        left = pad_right(list_lines[i] if i < len(list_lines) else "", list_width)
        right = pad_right(detail_lines[i] if i < len(detail_lines) else "", detail_width)
        rows.append(f"{left}{DETAIL_SEPARATOR}{right}")
    return rows


def build_help_lines(rows: int, cols: int) -> list[str]:
    return [truncate(line, cols) for line in HELP_LINES[: max(0, rows)]]


def current_session(state: "BrowserState") -> Optional[SessionRecord]:
    if not state.filtered:
        return None
    if 0 <= state.selected_index < len(state.filtered):
        return state.filtered[state.selected_index]
    return None


def build_frame(
    state: "BrowserState",
    rows: int = DEFAULT_ROWS,
    cols: int = DEFAULT_COLUMNS,
    settings: Optional[LayoutSettings] = None,
) -> list[str]:
    """Compose the full screen for the current state."""
    settings = settings or LayoutSettings()
    if state.show_help:
        return build_help_lines(rows, cols)

    suggestions: list[str] = []
    if state.input_state is not None and state.input_state.kind is InputKind.TAGS:
        suggestions = get_tag_suggestions(
            state.input_state.value, state.tag_index, settings.tag_suggestion_limit
        )
    suggestion_line = (
        f"Suggestions: {', '.join(suggestions)} (tab to autocomplete)" if suggestions else ""
    )

    has_status = bool(state.status_message)
    header_rows = _BASE_HEADER_ROWS + (1 if has_status else 0)
    footer_rows = 1 + (1 if suggestion_line else 0)
    list_size = max(1, rows - header_rows - footer_rows)

    search_display = state.search_query.strip() or "none"
    lines = [
        truncate("Codex Session Manager", cols),
        truncate(
            f"Search (/): {search_display} | Show (f): {state.archive_filter.label} | "
            f"Sort (s): {state.sort_order.value} | Details (d): {'on' if state.show_details else 'off'} | Help (h/?)",
            cols,
        ),
        truncate(
            f"Selected (space): {len(state.selected_paths)} | Showing: {len(state.filtered)}/{len(state.sessions)} | "
            "Nav: up/down | Top/Bottom: g/G | Quit: q",
            cols,
        ),
        truncate("Actions: rename (r) | tags (t) | toggle focused (a) | toggle selected (B)", cols),
        truncate("Selection: select all (A) | invert (I) | clear (C)", cols),
    ]
    if has_status:
        lines.append(truncate(f"Status: {state.status_message}", cols))

    start, end = get_list_window(len(state.filtered), list_size, state.selected_index)
    list_lines: list[str] = []
    if not state.filtered:
        list_lines.append("(no sessions match the filter)")
    else:
        for index in range(start, end):
            session = state.filtered[index]
            list_lines.append(
                format_session_line(
                    session,
                    selected=session.file_path in state.selected_paths,
                    current=index == state.selected_index,
                    width=cols,
                )
            )

    if state.show_details and cols >= settings.detail_min_columns:
        list_width, detail_width = compute_pane_widths(
            cols,
            ratio=settings.list_width_ratio,
            list_min_width=settings.list_min_width,
            detail_min_width=settings.detail_min_width,
        )
        session = current_session(state)
        if session is not None:
            detail_lines = build_detail_lines(session, detail_width, state.detail_state, state.detail_cache)
        else:
            detail_lines = ["(no session selected)"]
        lines.extend(
            render_list_with_details(
                [truncate(line, list_width) for line in list_lines],
                detail_lines,
                list_width,
                detail_width,
                list_size,
            )
        )
    else:
        for i in range(list_size):
            lines.append(truncate(list_lines[i], cols) if i < len(list_lines) else "")

    footer: list[str] = []
    if suggestion_line:
        footer.append(truncate(suggestion_line, cols))
    if state.input_state is not None:
        footer.append(truncate(f"{state.input_state.prompt}{state.input_state.value}", cols))
    else:
        footer.append("")
    return _fit_rows(lines[:header_rows], lines[header_rows:], footer, rows)


def _fit_rows(header: list[str], body: list[str], footer: list[str], rows: int) -> list[str]:
    """Cut a frame down to `rows`, giving up header lines first, then list rows."""
    rows = max(0, rows)
    footer = footer[len(footer) - min(len(footer), rows):]
    body = body[: rows - len(footer)]
    header = header[: rows - len(footer) - len(body)]
    return header + body + footer
