"""Command-line entry point: open the console or compact the event log."""

from __future__ import annotations

import os
import sys

import platformdirs

from lazytask.app import run_tui
from lazytask.event import EventLog, EventLogError
from lazytask.store import StoreError, compact

DEFAULT_LOG_NAME = "lazytask.jsonl"

_ERRORS = (EventLogError, StoreError, OSError, ValueError)


def log_path_in_config_dir(config_dir: str) -> str:
    """The log file location inside a user configuration directory."""
    return os.path.join(config_dir, "lazytask", DEFAULT_LOG_NAME)


def default_log_path() -> str:
    """The log file location in the user's configuration directory."""
    try:
        config_dir = platformdirs.user_config_dir()
    except OSError as exc:
        raise OSError(f"resolve user config dir: {exc}") from exc
    return log_path_in_config_dir(config_dir)


def main(argv: list[str] | None = None) -> int:
    """Run 'lazytask [path]' or 'lazytask compact [path]'; return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        path = default_log_path()
    except OSError as exc:
        print(exc, file=sys.stderr)
        return 1
    if args:
        if args[0] == "compact":
            if len(args) > 1:
                path = args[1]
            if len(args) > 2:
                print("usage: lazytask compact [path]", file=sys.stderr)
                return 2
            try:
                result = compact(EventLog(path))
            except _ERRORS as exc:
                print(exc, file=sys.stderr)
                return 1
            print(f"compacted {result.before} events to {result.after} events")
            return 0
        if len(args) > 1:
            print("usage: lazytask [path]", file=sys.stderr)
            return 2
        path = args[0]
    try:
        run_tui(path)
    except _ERRORS as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0