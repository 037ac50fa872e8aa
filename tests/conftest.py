"""Shared pytest fixtures for Codex session browser tests."""

import json
from pathlib import Path
from typing import Callable, Optional

import pytest

from codex_sessions.models import CodexPaths


@pytest.fixture
def codex_paths(tmp_path: Path) -> CodexPaths:
    """
    Create an empty Codex home with active and archived session directories.

    Returns:
        CodexPaths rooted in a temporary directory
    """
    paths = CodexPaths.from_home(tmp_path / "codex")
    paths.sessions_dir.mkdir(parents=True)
    paths.archived_dir.mkdir(parents=True)
    return paths


@pytest.fixture
def write_session_file() -> Callable[..., Path]:
    """
    Factory that writes a session file with a session_meta first line.

    Args (of the returned callable):
        file_path: Destination path (parents are created)
        payload: session_meta payload
        extra_lines: Records written after the metadata line

    Returns:
        Callable returning the written path
    """

    def _write(file_path: Path, payload: dict, extra_lines: Optional[list] = None) -> Path:
        meta = {"timestamp": payload.get("timestamp", "2025-01-01T00:00:00.000Z"), "type": "session_meta", "payload": payload}
        records = [meta] + (extra_lines if extra_lines is not None else [{"type": "noop"}])
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text("\n".join(json.dumps(record) for record in records) + "\n", encoding="utf-8")
        return file_path

    return _write

