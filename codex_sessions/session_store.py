"""Session index: scan session files, filter, sort and mutate them on disk.

Every session file is newline-delimited JSON whose first line is a
``{"type": "session_meta", "payload": {...}}`` envelope. Only that line is
parsed here; the rest of the file is opaque payload.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from .models import ArchiveFilter, CodexPaths, GitInfo, SessionRecord, SortOrder

logger = logging.getLogger(__name__)

SESSION_META_TYPE = "session_meta"
SESSION_FILE_SUFFIX = ".jsonl"

_FILENAME_TS_RE = re.compile(r"(20\d{2})-(\d{2})-(\d{2})T(\d{2})-(\d{2})-(\d{2})")
# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION_RE = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")
_TAG_SPLIT_RE = re.compile(r"[\s,]+")


class SessionStoreError(RuntimeError):
    """Raised when a session file cannot be mutated."""


class SessionMetadataError(SessionStoreError):
    """The targeted file does not carry a usable metadata line."""


class ArchiveConflictError(SessionStoreError):
    """The archive/restore destination is already taken."""


def collect_jsonl_files(directory: Path) -> list[Path]:
    """Recursively collect session files under a directory (missing dir -> [])."""
    results: list[Path] = []
    pending = [Path(directory)]
    while pending:
        current = pending.pop()
        try:
            entries = sorted(current.iterdir())
        except FileNotFoundError:
            continue
        for entry in entries:
            if entry.is_dir():
                pending.append(entry)
            elif entry.is_file() and entry.name.endswith(SESSION_FILE_SUFFIX):
                results.append(entry)
    return sorted(results)


def read_first_line(path: Path) -> Optional[str]:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        line = f.readline()
    if not line:
        return None
    return line.rstrip("\r\n")


def unique_tags(tags: Iterable[str]) -> list[str]:
    """Drop case-insensitive duplicates, keeping first-seen casing and order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        key = tag.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(tag)
    return result


def normalize_tags(value: Any) -> list[str]:
    """Normalize a metadata ``tags`` value (list or delimited string)."""
    if value is None:
        return []
    if isinstance(value, list):
        raw = [item for item in value if isinstance(item, str)]
    elif isinstance(value, str):
        raw = _TAG_SPLIT_RE.split(value)
    else:
        return []
    return unique_tags(tag.strip() for tag in raw if tag.strip())


def parse_tags_input(text: str) -> list[str]:
    """Parse comma/whitespace separated tags typed by the user."""
    if not text.strip():
        return []
    return unique_tags(tag.strip() for tag in _TAG_SPLIT_RE.split(text) if tag.strip())


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        text = value.strip().replace("Z", "+00:00")
        text = _FRACTION_RE.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date_from_filename(file_name: str) -> Optional[datetime]:
    match = _FILENAME_TS_RE.search(file_name)
    if not match:
        return None
    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError:
        return None


def _mtime(path: Path) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return None


def resolve_session_date(
    timestamp: Optional[str],
    file_name: str,
    fallback: Optional[datetime],
) -> Optional[datetime]:
    """Timestamp field, then file-name date, then mtime."""
    return parse_timestamp(timestamp) or parse_date_from_filename(file_name) or fallback


def format_date_label(date: Optional[datetime]) -> Optional[str]:
    if date is None:
        return None
    return date.astimezone(timezone.utc).strftime("%Y-%m-%d")


def _optional_str(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def pick_title(payload: dict) -> Optional[str]:
    for key in ("title", "name"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def derive_display_name(payload: dict, file_name: str) -> str:
    title = pick_title(payload)
    if title:
        return title
    cwd = payload.get("cwd")
    if isinstance(cwd, str) and cwd.strip():
        base = Path(cwd.strip().rstrip("/\\")).name
        if base:
            return base
    stem = file_name[: -len(SESSION_FILE_SUFFIX)] if file_name.endswith(SESSION_FILE_SUFFIX) else file_name
    return stem or file_name


def parse_git(payload: dict) -> Optional[GitInfo]:
    git = payload.get("git")
    if not isinstance(git, dict):
        return None
    info = GitInfo(
        repository_url=_optional_str(git, "repository_url"),
        branch=_optional_str(git, "branch"),
        commit_hash=_optional_str(git, "commit_hash"),
    )
    if not (info.repository_url or info.branch or info.commit_hash):
        return None
    return info


def _decode_meta(line: str) -> Optional[dict]:
    """Return the envelope dict if ``line`` is a session_meta record."""
    try:
        meta = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(meta, dict) or meta.get("type") != SESSION_META_TYPE:
        return None
    if not isinstance(meta.get("payload"), dict):
        return None
    return meta


def parse_session_file(path: Path, archived: bool) -> Optional[SessionRecord]:
    """Build a record from a session file, or None if it isn't one."""
    path = Path(path)
    try:
        first_line = read_first_line(path)
    except OSError as e:
        logger.debug(f"Skipping unreadable session file {path}: {e}")
        return None
    if not first_line:
        return None

    meta = _decode_meta(first_line)
    if meta is None:
        return None

    payload = meta["payload"]
    timestamp = _optional_str(payload, "timestamp")
    file_name = path.name
    sort_date = resolve_session_date(timestamp, file_name, _mtime(path))

    return SessionRecord(
        id=_optional_str(payload, "id"),
        file_path=path,
        file_name=file_name,
        archived=archived,
        cwd=_optional_str(payload, "cwd"),
        title=pick_title(payload),
        tags=normalize_tags(payload.get("tags")),
        timestamp=timestamp,
        date_label=format_date_label(sort_date),
        display_name=derive_display_name(payload, file_name),
        sort_key=int(sort_date.timestamp() * 1000) if sort_date else 0,
        originator=_optional_str(payload, "originator"),
        cli_version=_optional_str(payload, "cli_version"),
        source=_optional_str(payload, "source"),
        model_provider=_optional_str(payload, "model_provider"),
        git=parse_git(payload),
    )


def load_sessions(paths: CodexPaths) -> list[SessionRecord]:
    """Full re-scan of the active and archived trees."""
    sessions: list[SessionRecord] = []
    for directory, archived in ((paths.sessions_dir, False), (paths.archived_dir, True)):
        for file_path in collect_jsonl_files(directory):
            session = parse_session_file(file_path, archived)
            if session:
                sessions.append(session)
    logger.debug(f"Loaded {len(sessions)} sessions from {paths.codex_dir}")
    return sessions


def filter_sessions(
    sessions: list[SessionRecord],
    query: str,
    archive_filter: ArchiveFilter,
) -> list[SessionRecord]:
    """Apply archive scope and a case-insensitive name/tag substring query."""
    needle = query.strip().lower()
    filtered = []
    for session in sessions:
        if archive_filter is ArchiveFilter.ARCHIVED and not session.archived:
            continue
        if archive_filter is ArchiveFilter.ACTIVE and session.archived:
            continue
        if needle:
            name = session.display_name.lower()
            tags = " ".join(session.tags).lower()
            if needle not in name and needle not in tags:
                continue
        filtered.append(session)
    return filtered


def sort_sessions_by_date(sessions: list[SessionRecord], order: SortOrder) -> list[SessionRecord]:
    return sorted(sessions, key=lambda s: s.sort_key, reverse=order is SortOrder.DESC)


def update_session_metadata(
    file_path: Path,
    title: Optional[str] = None,
    tags: Optional[list[str]] = None,
) -> None:
    """Rewrite the metadata line of a session file.

    A blank title removes ``title`` and its legacy alias ``name``; an empty
    tag list removes ``tags``. ``None`` leaves a field untouched. All lines
    after the first are written back unchanged.
    """
    path = Path(file_path)
    # newline="" keeps "\r\n" and lone "\r" in later lines as they are on disk
    with open(path, "r", encoding="utf-8", newline="") as f:
        content = f.read()
    lines = content.split("\n")
    if not lines[0]:
        raise SessionMetadataError("Session file is empty.")

    try:
        meta = json.loads(lines[0])
    except json.JSONDecodeError:
        raise SessionMetadataError("Failed to parse session metadata.")

    if not isinstance(meta, dict) or meta.get("type") != SESSION_META_TYPE or not isinstance(meta.get("payload"), dict):
        raise SessionMetadataError("First line is not session metadata.")

    payload = meta["payload"]

    if title is not None:
        cleaned = title.strip()
        if cleaned:
            payload["title"] = cleaned
            payload["name"] = cleaned
        else:
            payload.pop("title", None)
            payload.pop("name", None)

    if tags is not None:
        cleaned_tags = unique_tags(tag.strip() for tag in tags if tag.strip())
        if cleaned_tags:
            payload["tags"] = cleaned_tags
        else:
            payload.pop("tags", None)

    lines[0] = json.dumps(meta, ensure_ascii=False, separators=(",", ":"))
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write("\n".join(lines))
    logger.info(f"Updated metadata for {path.name} (title={title is not None}, tags={tags is not None})")


def resolve_active_path(
    file_name: str,
    timestamp: Optional[str],
    fallback: Optional[datetime],
    paths: CodexPaths,
) -> Path:
    """Date-bucketed destination under the active tree: YYYY/MM/DD/<file>."""
    label = format_date_label(resolve_session_date(timestamp, file_name, fallback))
    if not label:
        raise SessionStoreError("Unable to determine session date.")
    year, month, day = label.split("-")
    return paths.sessions_dir / year / month / day / file_name


def _move_file(source: Path, destination: Path) -> None:
    # shutil.move renames, or copies and unlinks across filesystems
    shutil.move(str(source), str(destination))


def set_archive_status(session: SessionRecord, target_archived: bool, paths: CodexPaths) -> Path:
    """Move a session into or out of the archive. Returns the new path."""
    if session.archived == target_archived:
        return session.file_path

    if target_archived:
        destination = paths.archived_dir / session.file_name
        paths.archived_dir.mkdir(parents=True, exist_ok=True)
        if destination.exists():
            raise ArchiveConflictError(f"Archived session already exists: {destination}")
    else:
        destination = resolve_active_path(
            session.file_name,
            session.timestamp,
            _mtime(session.file_path),
            paths,
        )
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.exists():
            raise ArchiveConflictError(f"Active session already exists: {destination}")

    _move_file(session.file_path, destination)
    logger.info(f"{'Archived' if target_archived else 'Restored'} {session.file_name} -> {destination}")
    return destination
