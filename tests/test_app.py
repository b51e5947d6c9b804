import base64
import io

import pytest
from blessed.keyboard import Keystroke

from lazytask.app import key_name, run_tui, write_clipboard
from lazytask.event import EventLog, EventLogError
from lazytask.model import Model, Pane
from lazytask.store import Store


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("q", "q"),
        (" ", " "),
        ("?", "?"),
        ("\x03", "ctrl+c"),
        ("\r", "enter"),
        ("\t", "tab"),
        ("\x7f", "backspace"),
        ("\x1b", "esc"),
    ],
)
def test_key_name_plain_keys(raw, expected):
    assert key_name(Keystroke(raw)) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("KEY_UP", "up"),
        ("KEY_DOWN", "down"),
        ("KEY_LEFT", "left"),
        ("KEY_RIGHT", "right"),
        ("KEY_BTAB", "shift+tab"),
        ("KEY_ENTER", "enter"),
        ("KEY_DELETE", "delete"),
    ],
)
def test_key_name_sequences(name, expected):
    assert key_name(Keystroke("\x1b[X", code=1, name=name)) == expected


def test_key_name_unknown_sequence_is_empty():
    assert key_name(Keystroke("\x1b[99~", code=1, name="KEY_F20")) == ""


def test_key_name_accepts_plain_strings():
    assert key_name("j") == "j"


def test_key_names_drive_model(tmp_path):
    store = Store.open(EventLog(tmp_path / "lazytask.jsonl"))
    model = Model(store)
    model.handle_key(key_name(Keystroke("?")))
    assert model.help_open
    model.handle_key(key_name(Keystroke("\x1b")))
    assert not model.help_open
    model.handle_key(key_name(Keystroke("\x1b[Z", code=1, name="KEY_BTAB")))
    assert model.focused_pane is Pane.NAV


@pytest.mark.parametrize("title", ["Copy only this title", "買い物をする"])
def test_write_clipboard_round_trip(title):
    stream = io.StringIO()
    write_clipboard(title, stream)
    written = stream.getvalue()
    assert written.startswith("\x1b]52;c;")
    assert written.endswith("\x07")
    encoded = written.removeprefix("\x1b]52;c;").removesuffix("\x07")
    assert base64.b64decode(encoded).decode("utf-8") == title


def test_run_tui_reports_malformed_log_before_drawing(tmp_path):
    path = tmp_path / "lazytask.jsonl"
    path.write_text("{bad json}\n", encoding="utf-8")
    with pytest.raises(EventLogError):
        run_tui(path)