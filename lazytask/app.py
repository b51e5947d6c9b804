"""Running the console in a terminal: key decoding, clipboard and the main loop."""

from __future__ import annotations

import base64
import os
from typing import TextIO

from blessed import Terminal

from lazytask.event import EventLog
from lazytask.model import CopyTitle, Model, Quit
from lazytask.render import render
from lazytask.store import Store

_SEQUENCE_NAMES = {
    "KEY_ENTER": "enter",
    "KEY_TAB": "tab",
    "KEY_BTAB": "shift+tab",
    "KEY_ESCAPE": "esc",
    "KEY_BACKSPACE": "backspace",
    "KEY_DELETE": "delete",
    "KEY_LEFT": "left",
    "KEY_RIGHT": "right",
    "KEY_UP": "up",
    "KEY_DOWN": "down",
    "KEY_HOME": "home",
    "KEY_END": "end",
}
_CONTROL_NAMES = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x08": "backspace",
    "\x7f": "backspace",
    "\x1b": "esc",
}
_POLL_SECONDS = 0.5


def key_name(keystroke: str) -> str:
    """Name a key the way the model expects, e.g. 'ctrl+c', 'enter', 'up' or 'q'.

    Keys that have no name come back as an empty string.
    """
    name = getattr(keystroke, "name", None)
    if getattr(keystroke, "is_sequence", False):
        return _SEQUENCE_NAMES.get(name or "", "")
    text = str(keystroke)
    if len(text) != 1:
        return ""
    if text in _CONTROL_NAMES:
        return _CONTROL_NAMES[text]
    code = ord(text)
    if 1 <= code <= 26:
        return "ctrl+" + chr(ord("a") + code - 1)
    if not text.isprintable():
        return ""
    return text


def write_clipboard(text: str, stream: TextIO) -> None:
    """Ask the terminal to put text on the system clipboard (OSC 52)."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    stream.write(f"\x1b]52;c;{encoded}\x07")
    stream.flush()


def _draw(terminal: Terminal, model: Model) -> None:
    screen = render(model)
    terminal.stream.write(terminal.home + terminal.clear + screen)
    terminal.stream.flush()


def run_tui(path: str | os.PathLike[str]) -> None:
    """Open the log at path and run the console until the user quits."""
    store = Store.open(EventLog(path))
    model = Model(store)
    terminal = Terminal()
    with terminal.fullscreen(), terminal.cbreak(), terminal.hidden_cursor():
        size = (terminal.width, terminal.height)
        model.resize(*size)
        _draw(terminal, model)
        while True:
            keystroke = terminal.inkey(timeout=_POLL_SECONDS)
            current = (terminal.width, terminal.height)
            changed = current != size
            if changed:
                size = current
                model.resize(*size)
            if keystroke:
                command = model.handle_key(key_name(keystroke))
                if isinstance(command, Quit):
                    return
                if isinstance(command, CopyTitle):
                    try:
                        write_clipboard(command.title, terminal.stream)
                    except OSError as exc:
                        model.handle_copy_result(exc)
                    else:
                        model.handle_copy_result(None)
                changed = True
            if changed:
                _draw(terminal, model)