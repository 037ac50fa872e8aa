"""Curses browser for Codex session files."""

from __future__ import annotations

import asyncio
import curses
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Coroutine, Optional

from ..models import (
    ArchiveFilter,
    CodexPaths,
    DetailState,
    InputKind,
    InputState,
    MessagePreview,
    SessionRecord,
    SortOrder,
)
from ..preview import read_message_previews
from ..session_store import (
    filter_sessions,
    load_sessions,
    parse_tags_input,
    set_archive_status,
    sort_sessions_by_date,
    update_session_metadata,
)
from ..tags import apply_tag_suggestion, build_tag_index, get_tag_suggestions
from .keys import decode_key, is_printable_key, resolve_list_action
from .layout import PREVIEW_CHAR_LIMIT, LayoutSettings, build_frame, current_session

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.03


@dataclass
class BrowserState:
    """All mutable state of one browser; the layout reads it, handlers mutate it."""

    sessions: list[SessionRecord] = field(default_factory=list)
    filtered: list[SessionRecord] = field(default_factory=list)
    search_query: str = ""
    archive_filter: ArchiveFilter = ArchiveFilter.ACTIVE
    sort_order: SortOrder = SortOrder.DESC
    selected_index: int = 0
    status_message: str = ""
    input_state: Optional[InputState] = None
    selected_paths: set[Path] = field(default_factory=set)
    tag_index: list[str] = field(default_factory=list)
    show_details: bool = True
    show_help: bool = False
    # None = checked, nothing found; missing key = not attempted yet
    detail_cache: dict[Path, Optional[MessagePreview]] = field(default_factory=dict)
    detail_state: DetailState = field(default_factory=DetailState)


class SessionBrowser:
    """Key-driven state machine over the session index.

    Store calls and preview reads run in worker threads behind asyncio tasks
    so the key loop never waits on disk; their continuations update state and
    request a repaint.
    """

    def __init__(
        self,
        paths: CodexPaths,
        state: Optional[BrowserState] = None,
        settings: Optional[LayoutSettings] = None,
        preview_chars: int = PREVIEW_CHAR_LIMIT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.paths = paths
        self.state = state or BrowserState()
        self.settings = settings or LayoutSettings()
        self.preview_chars = max(4, preview_chars)
        self.poll_interval = max(0.005, poll_interval)
        self.running = True
        self._tasks: set[asyncio.Task] = set()
        self._loading_paths: set[Path] = set()
        self._dirty = True

    # -- plumbing -------------------------------------------------------

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every background task (and any it spawned) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def request_render(self) -> None:
        self._dirty = True

    def set_status(self, message: str) -> None:
        self.state.status_message = message

    def current_session(self) -> Optional[SessionRecord]:
        return current_session(self.state)

    # -- index ----------------------------------------------------------

    def apply_filters(self) -> None:
        state = self.state
        filtered = filter_sessions(state.sessions, state.search_query, state.archive_filter)
        state.filtered = sort_sessions_by_date(filtered, state.sort_order)
        if state.selected_index >= len(state.filtered):
            state.selected_index = max(0, len(state.filtered) - 1)

    def prune_selection(self) -> None:
        valid = {session.file_path for session in self.state.sessions}
        self.state.selected_paths.intersection_update(valid)

    async def refresh_sessions(self) -> None:
        """Re-derive the whole index from disk."""
        sessions = await asyncio.to_thread(load_sessions, self.paths)
        self.state.sessions = sessions
        self.state.tag_index = build_tag_index(sessions)
        self.prune_selection()
        self.apply_filters()
        self.request_render()

    # -- selection ------------------------------------------------------

    def toggle_selection(self, session: SessionRecord) -> None:
        selected = self.state.selected_paths
        if session.file_path in selected:
            selected.discard(session.file_path)
        else:
            selected.add(session.file_path)

    def select_all_visible(self) -> None:
        self.state.selected_paths.update(session.file_path for session in self.state.filtered)

    def invert_selection_visible(self) -> None:
        for session in self.state.filtered:
            self.toggle_selection(session)

    def clear_selection(self) -> None:
        self.state.selected_paths.clear()

    def selected_sessions(self) -> list[SessionRecord]:
        by_path = {session.file_path: session for session in self.state.sessions}
        return [by_path[path] for path in self.state.selected_paths if path in by_path]

    # -- text entry -----------------------------------------------------

    def start_input(
        self,
        kind: InputKind,
        prompt: str,
        value: str,
        on_submit: Callable[[str], Awaitable[None]],
    ) -> None:
        self.state.input_state = InputState(kind=kind, prompt=prompt, value=value, on_submit=on_submit)

    def begin_search(self) -> None:
        async def submit(value: str) -> None:
            self.state.search_query = value
            self.apply_filters()

        self.start_input(InputKind.SEARCH, "Search: ", self.state.search_query, submit)

    def begin_rename(self, session: SessionRecord) -> None:
        async def submit(value: str) -> None:
            await asyncio.to_thread(update_session_metadata, session.file_path, title=value)
            self.set_status("Renamed session." if value.strip() else "Cleared session name.")
            await self.refresh_sessions()

        self.start_input(InputKind.RENAME, "Rename to: ", session.title or "", submit)

    def begin_tags(self, session: SessionRecord) -> None:
        async def submit(value: str) -> None:
            tags = parse_tags_input(value)
            await asyncio.to_thread(update_session_metadata, session.file_path, tags=tags)
            self.set_status("Updated tags." if tags else "Cleared tags.")
            await self.refresh_sessions()

        self.start_input(InputKind.TAGS, "Tags (comma separated): ", ", ".join(session.tags), submit)

    async def _commit(self, submit: Callable[[str], Awaitable[None]], value: str) -> None:
        try:
            await submit(value)
        except Exception as e:
            logger.warning(f"Action failed: {e}")
            self.set_status(str(e) or "Action failed.")
        finally:
            if self.state.input_state is None and not self.state.show_help:
                self.maybe_load_details()
            self.request_render()

    def handle_input_key(self, key: str) -> None:
        input_state = self.state.input_state
        if input_state is None:
            return
        if key == "enter":
            self.state.input_state = None
            self._spawn(self._commit(input_state.on_submit, input_state.value))
            return
        if key == "escape":
            self.state.input_state = None
            return
        if key == "backspace":
            input_state.value = input_state.value[:-1]
            return
        if key == "tab":
            if input_state.kind is InputKind.TAGS:
                suggestions = get_tag_suggestions(
                    input_state.value, self.state.tag_index, self.settings.tag_suggestion_limit
                )
                if suggestions:
                    input_state.value = apply_tag_suggestion(input_state.value, suggestions[0])
            return
        if is_printable_key(key):
            input_state.value += key[5:]

    # -- archive --------------------------------------------------------

    async def toggle_archive(self, session: SessionRecord) -> None:
        """Archive or restore the focused session; failures become status text."""
        target_archived = not session.archived
        was_selected = session.file_path in self.state.selected_paths
        try:
            new_path = await asyncio.to_thread(set_archive_status, session, target_archived, self.paths)
            if was_selected:
                self.state.selected_paths.discard(session.file_path)
                self.state.selected_paths.add(new_path)
            self.set_status("Archived session." if target_archived else "Restored session.")
            await self.refresh_sessions()
        except Exception as e:
            logger.warning(f"Archive toggle failed for {session.file_path}: {e}")
            self.set_status(str(e) or "Archive failed.")
        finally:
            self.maybe_load_details()
            self.request_render()

    async def toggle_selected_archive(self) -> None:
        """Flip archive state of every selected session, counting failures."""
        selected = self.selected_sessions()
        if not selected:
            self.set_status("No sessions selected.")
            self.request_render()
            return

        archived_count = 0
        restored_count = 0
        failed = 0
        for session in selected:
            target_archived = not session.archived
            try:
                await asyncio.to_thread(set_archive_status, session, target_archived, self.paths)
            except Exception as e:
                logger.warning(f"Bulk archive toggle failed for {session.file_path}: {e}")
                failed += 1
                continue
            if target_archived:
                archived_count += 1
            else:
                restored_count += 1

        try:
            await self.refresh_sessions()
        except Exception as e:
            logger.warning(f"Refresh after bulk archive failed: {e}")
            self.set_status(str(e) or "Toggle selected failed.")
            self.request_render()
            return

        self.clear_selection()
        parts = []
        if archived_count:
            parts.append(f"archived {archived_count}")
        if restored_count:
            parts.append(f"restored {restored_count}")
        if failed:
            parts.append(f"failed {failed}")
        summary = ", ".join(parts) if parts else "no changes"
        self.set_status(f"Toggle selected: {summary}.")
        self.maybe_load_details()
        self.request_render()

    # -- preview --------------------------------------------------------

    def maybe_load_details(self) -> None:
        """Start a preview read for the focused session if it needs one."""
        state = self.state
        session = self.current_session() if state.show_details else None
        if session is None:
            state.detail_state = DetailState()
            return

        path = session.file_path
        cached = path in state.detail_cache
        if state.detail_state.file_path == path and (cached or state.detail_state.loading):
            return
        state.detail_state = DetailState(file_path=path, loading=not cached)
        if not cached and path not in self._loading_paths:
            self._loading_paths.add(path)
            self._spawn(self._load_preview(path))

    async def _load_preview(self, path: Path) -> None:
        started = time.monotonic()
        try:
            preview = await asyncio.to_thread(read_message_previews, path, self.preview_chars)
        except Exception as e:
            logger.warning(f"Preview load failed for {path}: {e}")
            preview = None
            self.set_status(str(e) or "Failed to load preview.")
        finally:
            self._loading_paths.discard(path)

        self.state.detail_cache[path] = preview
        # Focus may have moved while reading; only the matching load clears it.
        if self.state.detail_state.file_path == path:
            self.state.detail_state.loading = False
        logger.debug(f"Preview for {path.name} loaded in {time.monotonic() - started:.3f}s")
        self.request_render()

    # -- key dispatch ---------------------------------------------------

    def handle_list_key(self, action: Optional[str]) -> None:
        state = self.state
        if action is None:
            return
        if action == "up":
            state.selected_index = max(0, state.selected_index - 1)
            return
        if action == "down":
            state.selected_index = min(max(0, len(state.filtered) - 1), state.selected_index + 1)
            return
        if action == "top":
            state.selected_index = 0
            return
        if action == "bottom":
            state.selected_index = max(0, len(state.filtered) - 1)
            return
        if action == "quit":
            self.running = False
            return
        if action == "search":
            self.begin_search()
            return
        if action == "filter":
            state.archive_filter = state.archive_filter.next()
            self.apply_filters()
            return
        if action == "sort":
            state.sort_order = state.sort_order.toggled()
            self.apply_filters()
            return
        if action == "toggle-details":
            state.show_details = not state.show_details
            return
        if action == "help":
            state.show_help = not state.show_help
            return
        if action == "select-all":
            self.select_all_visible()
            return
        if action == "invert-selection":
            self.invert_selection_visible()
            return
        if action == "clear-selection":
            self.clear_selection()
            return
        if action == "bulk-archive":
            self._spawn(self.toggle_selected_archive())
            return

        session = self.current_session()
        if session is None:
            return
        if action == "toggle-selection":
            self.toggle_selection(session)
        elif action == "rename":
            self.begin_rename(session)
        elif action == "tags":
            self.begin_tags(session)
        elif action == "archive":
            self._spawn(self.toggle_archive(session))

    def handle_key(self, key: Optional[str]) -> None:
        """Route one decoded key through the current mode."""
        if key is None:
            return
        if key == "interrupt":
            self.running = False
            return
        if key == "resize":
            self.request_render()
            return

        state = self.state
        if state.input_state is not None:
            self.handle_input_key(key)
        else:
            action = resolve_list_action(key)
            if state.show_help and action not in ("help", "quit"):
                return
            self.handle_list_key(action)

        if state.input_state is None and not state.show_help:
            self.maybe_load_details()
        self.request_render()

    # -- terminal -------------------------------------------------------

    def _paint(self, stdscr) -> None:
        height, width = stdscr.getmaxyx()
        lines = build_frame(self.state, height, width, self.settings)
        stdscr.erase()
        for y, line in enumerate(lines[:height]):
            attr = curses.A_BOLD if y == 0 else curses.A_NORMAL
            stdscr.addnstr(y, 0, line, max(0, width - 1), attr)
        stdscr.refresh()

    @staticmethod
    def _read_key(stdscr):
        try:
            return stdscr.get_wch()
        except curses.error:
            # nodelay mode: no input pending
            return None

    async def run(self, stdscr) -> None:
        """Run the browser until quit; the caller owns curses setup/teardown."""
        curses.curs_set(0)
        stdscr.nodelay(True)
        stdscr.keypad(True)

        await self.refresh_sessions()
        self.maybe_load_details()
        logger.info(f"Browser started with {len(self.state.sessions)} sessions")

        try:
            while self.running:
                if self._dirty:
                    self._dirty = False
                    self._paint(stdscr)
                raw = self._read_key(stdscr)
                if raw is None:
                    await asyncio.sleep(self.poll_interval)
                    continue
                self.handle_key(decode_key(raw))
                # let finished tasks run their continuations between keys
                await asyncio.sleep(0)
        finally:
            for task in list(self._tasks):
                task.cancel()


def run_browser_tui(browser: SessionBrowser) -> int:
    """Run the session browser under curses; terminal state is restored on every exit."""

    def _loop(stdscr):
        asyncio.run(browser.run(stdscr))

    curses.wrapper(_loop)
    return 0
