"""Main entry point for the codex-sessions CLI."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from ..config import (
    DEFAULT_CONFIG_NAME,
    DEFAULT_LOG_NAME,
    archive_filter_from,
    load_config,
    sort_order_from,
)
from ..models import CodexPaths, get_codex_home
from .browser_tui import DEFAULT_POLL_INTERVAL, BrowserState, SessionBrowser, run_browser_tui
from .layout import PREVIEW_CHAR_LIMIT, LayoutSettings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codex-sessions",
        description="Browse, rename, tag and archive Codex session logs",
    )
    parser.add_argument("--codex-home", help="Codex home directory (default: $CODEX_HOME or ~/.codex)")
    parser.add_argument("--config", help=f"YAML config file (default: <codex home>/{DEFAULT_CONFIG_NAME})")
    parser.add_argument("--log-file", help=f"Log file (default: <codex home>/{DEFAULT_LOG_NAME})")
    parser.add_argument(
        "--show",
        choices=["active", "archived", "all"],
        help="Initial archive filter (default: active)",
    )
    parser.add_argument("--sort", choices=["asc", "desc"], help="Initial sort order (default: desc)")
    parser.add_argument("--no-details", action="store_true", help="Start with the details pane hidden")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def setup_logging(log_file: Path, level: int) -> None:
    # The TUI owns the terminal, so logs go to a file.
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(filename=str(log_file), level=level, format=LOG_FORMAT)


def build_browser(args: argparse.Namespace, config: dict, codex_home: Path) -> SessionBrowser:
    """Combine CLI flags, config file and defaults (in that precedence)."""
    ui_config = config.get("ui", {}) or {}

    state = BrowserState(
        archive_filter=archive_filter_from(args.show or ui_config.get("show")),
        sort_order=sort_order_from(args.sort or ui_config.get("sort")),
        show_details=False if args.no_details else bool(ui_config.get("show_details", True)),
    )
    return SessionBrowser(
        paths=CodexPaths.from_home(codex_home),
        state=state,
        settings=LayoutSettings.from_config(ui_config),
        preview_chars=int(ui_config.get("preview_chars", PREVIEW_CHAR_LIMIT)),
        poll_interval=float(ui_config.get("poll_interval", DEFAULT_POLL_INTERVAL)),
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for codex-sessions."""
    args = build_parser().parse_args(argv)

    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        print("This tool requires a TTY.", file=sys.stderr)
        return 1

    default_home = Path(args.codex_home).expanduser() if args.codex_home else get_codex_home()
    config_path = Path(args.config).expanduser() if args.config else default_home / DEFAULT_CONFIG_NAME
    log_file = Path(args.log_file).expanduser() if args.log_file else default_home / DEFAULT_LOG_NAME
    setup_logging(log_file, logging.DEBUG if args.verbose else logging.INFO)

    config = load_config(str(config_path))
    log_config = config.get("logging", {}) or {}
    if not args.verbose and log_config.get("level"):
        logging.getLogger().setLevel(getattr(logging, str(log_config["level"]).upper(), logging.INFO))

    paths_config = config.get("paths", {}) or {}
    if args.codex_home or not paths_config.get("codex_home"):
        codex_home = default_home
    else:
        codex_home = Path(paths_config["codex_home"]).expanduser()

    browser = build_browser(args, config, codex_home)
    logger.info(f"Starting session browser for {browser.paths.codex_dir}")

    try:
        return run_browser_tui(browser)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as e:
        logger.exception("Session browser crashed")
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run():
    """Entry point for console script."""
    sys.exit(main())


if __name__ == "__main__":
    run()
