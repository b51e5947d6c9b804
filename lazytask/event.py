"""The append-only JSON Lines event log that tasks are projected from."""

from __future__ import annotations

import contextlib
import json
import os
import re
import secrets
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from pathlib import Path
from typing import Any

from lazytask.task import Task

_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")
_ZERO_TIME = "0001-01-01T00:00:00Z"


class EventLogError(Exception):
    """Raised when the event log cannot be read or an event is malformed."""


class EventType(StrEnum):
    """The kinds of change recorded in the log."""

    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_COMPLETED = "task_completed"
    TASK_UNCOMPLETED = "task_uncompleted"
    TASK_CANCELED = "task_canceled"
    TASK_DELETED = "task_deleted"
    TASK_WIP_SELECTED = "task_wip_selected"
    TASK_WIP_CLEARED = "task_wip_cleared"


def _coerce_type(value: str) -> EventType | str:
    try:
        return EventType(value)
    except ValueError:
        return value


def _format_time(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _parse_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise EventLogError("timestamp must be a string")
    try:
        moment = datetime.fromisoformat(_EXCESS_FRACTION.sub(r"\1", value))
    except ValueError:
        raise EventLogError(f"invalid timestamp: {value!r}") from None
    if moment.tzinfo is None:
        raise EventLogError(f"timestamp lacks a time zone: {value!r}")
    if moment.utcoffset() == timedelta(0) and moment.replace(tzinfo=None) == datetime(1, 1, 1):
        return None
    return moment


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise EventLogError(f"event field {key} must be a string")
    return value


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


@dataclass(frozen=True)
class Event:
    """One recorded change; the payload is kept as raw JSON text."""

    event_id: str
    type: EventType | str
    task_id: str
    timestamp: datetime | None
    payload: str | None = None

    def to_json(self) -> str:
        """Encode the event as one JSON line (without the newline)."""
        data: dict[str, Any] = {
            "eventID": self.event_id,
            "type": str(self.type),
            "taskID": self.task_id,
            "timestamp": _format_time(self.timestamp),
        }
        if self.payload:
            data["payload"] = json.loads(self.payload)
        return _dump(data)

    @classmethod
    def from_json(cls, text: str | bytes) -> Event:
        """Decode one JSON line; missing fields come back empty."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise EventLogError(str(exc)) from None
        if not isinstance(data, dict):
            raise EventLogError("event must be a JSON object")
        payload = _dump(data["payload"]) if "payload" in data else None
        return cls(
            event_id=_text(data, "eventID"),
            type=_coerce_type(_text(data, "type")),
            task_id=_text(data, "taskID"),
            timestamp=_parse_time(data.get("timestamp")),
            payload=payload,
        )

    def payload_dict(self) -> dict[str, Any]:
        """Decode the payload as a JSON object; null decodes to an empty dict."""
        if self.payload is None:
            raise EventLogError(f"event {self.event_id} has no payload")
        try:
            value = json.loads(self.payload)
        except json.JSONDecodeError as exc:
            raise EventLogError(f"event {self.event_id} payload: {exc}") from None
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise EventLogError(f"event {self.event_id} payload must be an object")
        return value


class EventLog:
    """A JSON Lines file holding events in the order they happened."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"EventLog({str(self.path)!r})"

    def load(self) -> list[Event]:
        """Read every event; a missing file holds no events."""
        try:
            handle = self.path.open("r", encoding="utf-8", errors="replace", newline="\n")
        except FileNotFoundError:
            return []
        events: list[Event] = []
        with handle:
            for number, line in enumerate(handle, start=1):
                text = line.removesuffix("\n").removesuffix("\r")
                if not text:
                    continue
                try:
                    event = Event.from_json(text)
                except EventLogError as exc:
                    raise EventLogError(f"read {self.path} line {number}: {exc}") from exc
                if not (event.event_id and event.type and event.task_id and event.timestamp):
                    raise EventLogError(f"read {self.path} line {number}: invalid event")
                events.append(event)
        return events

    def append(self, event: Event) -> None:
        """Append one event and flush it to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = event.to_json() + "\n"
        with self.path.open("a", encoding="utf-8", newline="\n") as handle:
            handle.write(line)
            handle.flush()
            os.fsync(handle.fileno())

    def replace(self, events: Iterable[Event]) -> None:
        """Atomically replace the whole log with the given events."""
        fd, tmp_name = tempfile.mkstemp(
            prefix=self.path.name + ".", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                for event in events:
                    handle.write(event.to_json() + "\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.remove(tmp_name)


def new_id(prefix: str) -> str:
    """A random identifier such as 'evt_0123456789abcdef'."""
    return f"{prefix}_{secrets.token_hex(8)}"


def new_event(
    kind: EventType,
    task_id: str,
    now: datetime,
    payload: Task | dict[str, Any] | None = None,
) -> Event:
    """Build an event with a fresh id; a Task payload is stored as its JSON object."""
    raw = None
    if payload is not None:
        data = payload.to_dict() if isinstance(payload, Task) else payload
        raw = _dump(data)
    return Event(
        event_id=new_id("evt"),
        type=kind,
        task_id=task_id,
        timestamp=now,
        payload=raw,
    )