"""Key decoding for the session browser.

Raw input from curses ``get_wch`` (an ``int`` for function keys, a ``str``
for characters) is first decoded into a key name, then resolved into a
list action depending on the browser mode.
"""

from __future__ import annotations

import curses
from typing import Optional, Union

# Sequences that reach us undecoded when the terminal isn't in keypad mode.
_ESCAPE_SEQUENCES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[H": "top",
    "\x1b[1~": "top",
    "\x1b[7~": "top",
    "\x1b[F": "bottom",
    "\x1b[4~": "bottom",
    "\x1b[8~": "bottom",
}

_SPECIAL_CHARS = {
    "\x03": "interrupt",
    "\x1b": "escape",
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\b": "backspace",
}

_CURSES_KEYS = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_HOME: "top",
    curses.KEY_END: "bottom",
    curses.KEY_ENTER: "enter",
    curses.KEY_BACKSPACE: "backspace",
    curses.KEY_RESIZE: "resize",
}

# Normal-mode bindings for printable characters.
_CHAR_ACTIONS = {
    " ": "toggle-selection",
    "/": "search",
    "f": "filter",
    "r": "rename",
    "t": "tags",
    "a": "archive",
    "B": "bulk-archive",
    "d": "toggle-details",
    "s": "sort",
    "g": "top",
    "G": "bottom",
    "h": "help",
    "?": "help",
    "j": "down",
    "k": "up",
    "A": "select-all",
    "I": "invert-selection",
    "C": "clear-selection",
    "q": "quit",
}

_KEY_ACTIONS = {
    "up": "up",
    "down": "down",
    "top": "top",
    "bottom": "bottom",
    "tab": "toggle-selection",
    "interrupt": "quit",
}


def decode_key(raw: Union[int, str, None]) -> Optional[str]:
    """Translate one curses input into a key name.

    Returns names like ``up``/``enter``/``backspace``, ``char:<c>`` for a
    printable character, or None for input we don't handle.
    """
    if raw is None:
        return None
    if isinstance(raw, int):
        if raw in _CURSES_KEYS:
            return _CURSES_KEYS[raw]
        if 0 <= raw < 0x110000 and raw < curses.KEY_MIN:
            return decode_key(chr(raw))
        return None
    if raw in _ESCAPE_SEQUENCES:
        return _ESCAPE_SEQUENCES[raw]
    if raw in _SPECIAL_CHARS:
        return _SPECIAL_CHARS[raw]
    if len(raw) == 1 and raw.isprintable():
        return f"char:{raw}"
    return None


def is_printable_key(key: str) -> bool:
    return key.startswith("char:") and len(key) == 6 and key[5].isprintable()


def resolve_list_action(key: Optional[str]) -> Optional[str]:
    """Map a key name to a Normal-mode action."""
    if key is None:
        return None
    if key in _KEY_ACTIONS:
        return _KEY_ACTIONS[key]
    if key.startswith("char:"):
        return _CHAR_ACTIONS.get(key[5:])
    return None
