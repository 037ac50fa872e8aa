"""Unit tests for browser frame layout."""

from __future__ import annotations

from pathlib import Path

from codex_sessions.cli.browser_tui import BrowserState
from codex_sessions.cli.layout import (
    DETAIL_SEPARATOR,
    LayoutSettings,
    build_detail_lines,
    build_frame,
    compute_pane_widths,
    format_session_line,
    get_list_window,
    pad_right,
    render_list_with_details,
    truncate,
    wrap_text,
)
from codex_sessions.models import (
    ArchiveFilter,
    DetailState,
    GitInfo,
    InputKind,
    InputState,
    MessagePreview,
    SessionRecord,
)


def _session(name: str, **kwargs) -> SessionRecord:
    return SessionRecord(
        file_path=Path(f"/tmp/{name}.jsonl"),
        file_name=f"{name}.jsonl",
        archived=kwargs.pop("archived", False),
        display_name=name,
        **kwargs,
    )


def _state(count: int = 3, **kwargs) -> BrowserState:
    sessions = [_session(f"session-{i}", sort_key=i) for i in range(count)]
    return BrowserState(sessions=sessions, filtered=list(sessions), **kwargs)


async def _noop(value: str) -> None:
    return None


def test_list_window_clamps_at_end():
    assert get_list_window(100, 10, 95) == (90, 100)


def test_list_window_centres_focus():
    assert get_list_window(100, 10, 50) == (45, 55)
    assert get_list_window(100, 10, 0) == (0, 10)
    assert get_list_window(5, 10, 3) == (0, 5)


def test_truncate_and_pad():
    assert truncate("abcdefgh", 5) == "ab..."
    assert truncate("abcdefgh", 2) == "ab"
    assert truncate("abc", 0) == ""
    assert pad_right("ab", 4) == "ab  "
    assert pad_right("abcdefgh", 5) == "ab..."


def test_wrap_text_greedy():
    assert wrap_text("hello world foo", 11) == ["hello world", "foo"]
    assert wrap_text("a  b", 10) == ["a b"]


def test_wrap_text_hard_splits_long_words():
    assert wrap_text("abcdefghij", 4) == ["abcd", "efgh", "ij"]
    assert wrap_text("xy abcdefghij", 4) == ["xy", "abcd", "efgh", "ij"]


def test_wrap_text_always_yields_a_line():
    assert wrap_text("", 10) == [""]
    assert wrap_text("   ", 10) == [""]
    assert wrap_text("anything", 0) == []


def test_compute_pane_widths():
    assert compute_pane_widths(100) == (45, 52)
    assert compute_pane_widths(80) == (36, 41)
    # list minimum wins over the ratio, detail minimum caps the list
    assert compute_pane_widths(60, list_min_width=50) == (37, 20)


def test_render_list_with_details_pads_to_viewport():
    rows = render_list_with_details(["one", "two"], ["detail"], 10, 8, 4)
    assert len(rows) == 4
    assert all(len(row) == 10 + len(DETAIL_SEPARATOR) + 8 for row in rows)
    assert rows[0] == "one       " + DETAIL_SEPARATOR + "detail  "
    assert rows[3].strip(" |") == ""


def test_format_session_line_markers():
    session = _session("deploy", tags=["a", "b"], archived=True, date_label="2025-11-03")
    assert format_session_line(session, selected=True, current=True, width=200) == (
        "> [x] deploy tags:a,b [archived] 2025-11-03"
    )
    assert format_session_line(_session("plain"), selected=False, current=False, width=200) == "  [ ] plain"


def test_detail_lines_fields_in_order_and_omitted_when_absent():
    session = _session(
        "deploy",
        title="Deploy",
        cwd="/work/repo",
        tags=["x"],
        id="abc",
        model_provider="openai",
        git=GitInfo(branch="main"),
    )
    lines = build_detail_lines(session, 60, DetailState(), {})
    labels = [line.split(":")[0] for line in lines if ":" in line]
    assert labels == ["Name", "Title", "Status", "Cwd", "Tags", "Id", "Model", "Branch", "Preview"]
    assert "Status: active" in lines


def test_detail_preview_states():
    session = _session("s")
    loading = build_detail_lines(session, 60, DetailState(file_path=session.file_path, loading=True), {})
    assert "(loading preview...)" in loading

    cached = build_detail_lines(
        session, 60, DetailState(file_path=session.file_path), {session.file_path: MessagePreview("hi", "bye")}
    )
    assert cached[-5:] == ["First:", "hi", "", "Last:", "bye"]

    empty = build_detail_lines(session, 60, DetailState(file_path=session.file_path), {session.file_path: None})
    assert "(no preview available)" in empty

    untried = build_detail_lines(session, 60, DetailState(), {})
    assert "(preview unavailable)" in untried


def test_frame_fills_terminal_exactly():
    state = _state(50, status_message="Renamed session.")
    lines = build_frame(state, rows=24, cols=100)
    assert len(lines) == 24
    assert all(len(line) <= 100 for line in lines)
    assert lines[0] == "Codex Session Manager"
    assert lines[5] == "Status: Renamed session."
    assert DETAIL_SEPARATOR in lines[6]


def test_frame_hides_details_on_narrow_terminal():
    state = _state(3)
    lines = build_frame(state, rows=20, cols=79)
    assert len(lines) == 20
    assert not any("Preview:" in line for line in lines)
    assert lines[5].startswith("> [ ] session-0")


def test_frame_respects_details_toggle():
    state = _state(3, show_details=False)
    lines = build_frame(state, rows=20, cols=120)
    assert not any(DETAIL_SEPARATOR in line for line in lines[5:])


def test_frame_empty_list_message():
    state = BrowserState(archive_filter=ArchiveFilter.ARCHIVED)
    lines = build_frame(state, rows=12, cols=100)
    assert "(no sessions match the filter)" in lines[5]
    assert "(no session selected)" in lines[5]
    assert "Show (f): archived" in lines[1]


def test_frame_shows_prompt_and_tag_suggestions():
    state = _state(2, tag_index=["beta", "bravo"])
    state.input_state = InputState(kind=InputKind.TAGS, prompt="Tags (comma separated): ", value="b", on_submit=_noop)
    lines = build_frame(state, rows=20, cols=120)
    assert len(lines) == 20
    assert lines[-2] == "Suggestions: beta, bravo (tab to autocomplete)"
    assert lines[-1] == "Tags (comma separated): b"


def test_frame_keeps_focus_visible():
    state = _state(100, selected_index=95)
    lines = build_frame(state, rows=16, cols=60)
    # 5 header rows, 10 list rows, 1 prompt row
    list_rows = lines[5:15]
    assert list_rows[0].startswith("  [ ] session-90")
    assert any(row.startswith("> [ ] session-95") for row in list_rows)


def test_help_overlay_replaces_frame():
    state = _state(3, show_help=True)
    lines = build_frame(state, rows=40, cols=100)
    assert lines[0] == "Help (toggle with h or ?)"
    assert "q: quit" in lines


def test_layout_settings_from_config():
    settings = LayoutSettings.from_config({"list_width_ratio": 0.5, "tag_suggestion_limit": 2})
    assert settings.list_width_ratio == 0.5
    assert settings.tag_suggestion_limit == 2
    assert settings.detail_min_columns == 80


def test_frame_never_exceeds_short_terminal():
    lines = build_frame(BrowserState(), rows=5, cols=80)
    assert len(lines) == 5
    assert lines[0] == "Codex Session Manager"
    assert "(no sessions match the filter)" in lines[3]
    assert lines[4] == ""


def test_short_terminal_keeps_prompt_and_suggestions():
    state = _state(2, tag_index=["beta", "bravo"], status_message="Updated tags.")
    state.input_state = InputState(kind=InputKind.TAGS, prompt="Tags (comma separated): ", value="b", on_submit=_noop)
    lines = build_frame(state, rows=4, cols=120)
    assert len(lines) == 4
    assert lines[0] == "Codex Session Manager"
    assert lines[1].startswith("> [ ] session-0")
    assert lines[-2].startswith("Suggestions: beta, bravo")
    assert lines[-1] == "Tags (comma separated): b"

    assert build_frame(state, rows=1, cols=120) == ["Tags (comma separated): b"]
    assert build_frame(state, rows=0, cols=120) == []
