"""Unit tests for key decoding and Normal-mode bindings."""

import curses

from codex_sessions.cli.keys import decode_key, is_printable_key, resolve_list_action


def test_decode_curses_function_keys():
    assert decode_key(curses.KEY_UP) == "up"
    assert decode_key(curses.KEY_DOWN) == "down"
    assert decode_key(curses.KEY_HOME) == "top"
    assert decode_key(curses.KEY_END) == "bottom"
    assert decode_key(curses.KEY_BACKSPACE) == "backspace"
    assert decode_key(curses.KEY_RESIZE) == "resize"


def test_decode_control_characters():
    assert decode_key("\x1b") == "escape"
    assert decode_key("\r") == "enter"
    assert decode_key("\n") == "enter"
    assert decode_key(10) == "enter"
    assert decode_key("\t") == "tab"
    assert decode_key("\x7f") == "backspace"
    assert decode_key(127) == "backspace"
    assert decode_key("\x03") == "interrupt"


def test_decode_raw_escape_sequences():
    assert decode_key("\x1b[A") == "up"
    assert decode_key("\x1b[B") == "down"
    assert decode_key("\x1b[1~") == "top"
    assert decode_key("\x1b[F") == "bottom"


def test_decode_printable_and_unknown():
    assert decode_key("q") == "char:q"
    assert decode_key(ord("j")) == "char:j"
    assert decode_key("é") == "char:é"
    assert decode_key("\x01") is None
    assert decode_key(curses.KEY_F1) is None
    assert decode_key(None) is None


def test_is_printable_key():
    assert is_printable_key("char:a")
    assert is_printable_key("char: ")
    assert not is_printable_key("enter")


def test_resolve_list_action_bindings():
    assert resolve_list_action("up") == "up"
    assert resolve_list_action("char:k") == "up"
    assert resolve_list_action("char:j") == "down"
    assert resolve_list_action("top") == "top"
    assert resolve_list_action("char:G") == "bottom"
    assert resolve_list_action("tab") == "toggle-selection"
    assert resolve_list_action("char: ") == "toggle-selection"
    assert resolve_list_action("char:/") == "search"
    assert resolve_list_action("char:B") == "bulk-archive"
    assert resolve_list_action("char:?") == "help"
    assert resolve_list_action("char:q") == "quit"
    assert resolve_list_action("char:x") is None
    assert resolve_list_action("enter") is None
    assert resolve_list_action(None) is None
