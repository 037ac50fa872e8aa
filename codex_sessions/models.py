"""Data models for the Codex session browser."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, List, Optional


class ArchiveFilter(Enum):
    """Which part of the index the list shows."""
    ALL = "all"
    ACTIVE = "active"
    ARCHIVED = "archived"

    def next(self) -> "ArchiveFilter":
        """Cycle active -> archived -> all -> active."""
        if self is ArchiveFilter.ACTIVE:
            return ArchiveFilter.ARCHIVED
        if self is ArchiveFilter.ARCHIVED:
            return ArchiveFilter.ALL
        return ArchiveFilter.ACTIVE

    @property
    def label(self) -> str:
        return "active+archived" if self is ArchiveFilter.ALL else self.value


class SortOrder(Enum):
    """Date ordering for the session list."""
    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> "SortOrder":
        return SortOrder.ASC if self is SortOrder.DESC else SortOrder.DESC


class InputKind(Enum):
    """Modes of the line editor."""
    SEARCH = "search"
    RENAME = "rename"
    TAGS = "tags"


def get_codex_home() -> Path:
    env = os.environ.get("CODEX_HOME")
    return Path(env).expanduser() if env else Path.home() / ".codex"


@dataclass(frozen=True)
class CodexPaths:
    """Root, active and archived session directories."""
    codex_dir: Path
    sessions_dir: Path
    archived_dir: Path

    @classmethod
    def from_home(cls, codex_dir: Optional[Path] = None) -> "CodexPaths":
        root = Path(codex_dir).expanduser() if codex_dir else get_codex_home()
        return cls(
            codex_dir=root,
            sessions_dir=root / "sessions",
            archived_dir=root / "archived_sessions",
        )


@dataclass
class GitInfo:
    """Git provenance recorded in session metadata."""
    repository_url: Optional[str] = None
    branch: Optional[str] = None
    commit_hash: Optional[str] = None


@dataclass
class SessionRecord:
    """One session file, derived from its metadata line."""
    file_path: Path
    file_name: str
    archived: bool
    display_name: str
    sort_key: int = 0  # ms since epoch, 0 when undetermined
    id: Optional[str] = None
    cwd: Optional[str] = None
    title: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    timestamp: Optional[str] = None
    date_label: Optional[str] = None  # YYYY-MM-DD
    originator: Optional[str] = None
    cli_version: Optional[str] = None
    source: Optional[str] = None
    model_provider: Optional[str] = None
    git: Optional[GitInfo] = None


@dataclass(frozen=True)
class MessagePreview:
    """First and last message text of a session."""
    first: str
    last: str


@dataclass
class DetailState:
    """The preview load currently tracked for the detail pane."""
    file_path: Optional[Path] = None
    loading: bool = False


@dataclass
class InputState:
    """A live line-editor prompt and the action it commits."""
    kind: InputKind
    prompt: str
    value: str
    on_submit: Callable[[str], Awaitable[None]]
