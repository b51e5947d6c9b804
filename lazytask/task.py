"""Tasks, task input, and the date and tag helpers they rely on."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import StrEnum
from typing import Any

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_ZERO_TIME = "0001-01-01T00:00:00Z"


class TaskError(ValueError):
    """Raised when task data is invalid."""


class Start(StrEnum):
    """When a task becomes relevant."""

    INBOX = "inbox"
    ANYTIME = "anytime"
    SOMEDAY = "someday"
    DATE = "date"


def _coerce_start(value: Any) -> Start | str:
    if isinstance(value, Start):
        return value
    try:
        return Start(value)
    except ValueError:
        return value


@dataclass
class TaskInput:
    """The user-editable fields of a task."""

    title: str = ""
    notes: str = ""
    start: Start | str = Start.INBOX
    start_date: str = ""
    deadline: str = ""
    project: str = ""
    area: str = ""
    tags: list[str] = field(default_factory=list)

    def validate(self) -> None:
        """Raise TaskError if the input cannot describe a task."""
        if not self.title.strip():
            raise TaskError("task title is required")
        start = _coerce_start(self.start or Start.INBOX)
        if not isinstance(start, Start):
            raise TaskError(f"invalid start: {start}")
        has_date = bool(self.start_date.strip())
        if start is Start.DATE and not has_date:
            raise TaskError("start date is required")
        if start is not Start.DATE and has_date:
            raise TaskError("start date requires date start")
        validate_date("startDate", self.start_date)
        validate_date("deadline", self.deadline)

    def normalized(self) -> TaskInput:
        """Return a copy with whitespace trimmed, start defaulted and tags cleaned."""
        return replace(
            self,
            title=self.title.strip(),
            notes=self.notes.strip(),
            start=_coerce_start(self.start or Start.INBOX),
            start_date=self.start_date.strip(),
            deadline=self.deadline.strip(),
            project=self.project.strip(),
            area=self.area.strip(),
            tags=normalize_tags(self.tags),
        )


@dataclass
class Task:
    """A todo item projected from the event log."""

    id: str = ""
    title: str = ""
    notes: str = ""
    start: Start | str = ""
    start_date: str = ""
    deadline: str = ""
    completed_at: str = ""
    canceled_at: str = ""
    wip: bool = False
    project: str = ""
    area: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted: bool = False

    def input(self) -> TaskInput:
        """Return the editable fields as a fresh TaskInput."""
        return TaskInput(
            title=self.title,
            notes=self.notes,
            start=self.start,
            start_date=self.start_date,
            deadline=self.deadline,
            project=self.project,
            area=self.area,
            tags=list(self.tags),
        )

    def active(self) -> bool:
        """True while the task is neither deleted, completed nor canceled."""
        return not self.deleted and not self.completed_at and not self.canceled_at

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON object stored in the event log."""
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.notes:
            data["notes"] = self.notes
        data["start"] = str(self.start)
        optional = (
            ("startDate", self.start_date),
            ("deadline", self.deadline),
            ("completedAt", self.completed_at),
            ("canceledAt", self.canceled_at),
        )
        data.update((key, value) for key, value in optional if value)
        if self.wip:
            data["wip"] = True
        if self.project:
            data["project"] = self.project
        if self.area:
            data["area"] = self.area
        if self.tags:
            data["tags"] = list(self.tags)
        data["createdAt"] = _format_timestamp(self.created_at)
        data["updatedAt"] = _format_timestamp(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Task:
        """Build a task from a decoded JSON object; unknown keys are ignored."""
        if not isinstance(data, dict):
            raise TaskError("task payload must be an object")

        def text(key: str) -> str:
            value = data.get(key)
            if value is None:
                return ""
            if not isinstance(value, str):
                raise TaskError(f"task field {key} must be a string")
            return value

        wip = data.get("wip")
        if wip is None:
            wip = False
        if not isinstance(wip, bool):
            raise TaskError("task field wip must be a boolean")
        tags = data.get("tags")
        if tags is None:
            tags = []
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise TaskError("task field tags must be a list of strings")

        return cls(
            id=text("id"),
            title=text("title"),
            notes=text("notes"),
            start=_coerce_start(text("start")),
            start_date=text("startDate"),
            deadline=text("deadline"),
            completed_at=text("completedAt"),
            canceled_at=text("canceledAt"),
            wip=wip,
            project=text("project"),
            area=text("area"),
            tags=list(tags),
            created_at=_parse_timestamp(data.get("createdAt"), "createdAt"),
            updated_at=_parse_timestamp(data.get("updatedAt"), "updatedAt"),
        )


def _format_timestamp(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _parse_timestamp(value: Any, key: str) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TaskError(f"task field {key} must be a timestamp string")
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        raise TaskError(f"task field {key} is not a valid timestamp") from None
    if moment.year == 1:
        return None
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment


def parse_local_date(value: str) -> datetime:
    """Parse a strict YYYY-MM-DD string as local midnight."""
    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        raise TaskError(f"invalid date: {value!r}")
    try:
        day = date.fromisoformat(value)
        return datetime(day.year, day.month, day.day).astimezone()
    except (ValueError, OverflowError):
        raise TaskError(f"invalid date: {value!r}") from None


def format_local_date(moment: datetime | date) -> str:
    """Format a moment's local calendar day as YYYY-MM-DD."""
    if isinstance(moment, datetime) and moment.tzinfo is not None:
        moment = moment.astimezone()
    return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"


def validate_date(name: str, value: str) -> None:
    """Raise TaskError unless value is blank or a valid YYYY-MM-DD date."""
    trimmed = value.strip()
    if not trimmed:
        return
    try:
        parse_local_date(trimmed)
    except TaskError:
        raise TaskError(f"{name} must use YYYY-MM-DD") from None


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Strip a leading '#', trim, drop blanks and duplicates, keep order."""
    seen: set[str] = set()
    out: list[str] = []
    for tag in tags or ():
        tag = tag.removeprefix("#").strip()
        if tag and tag not in seen:
            seen.add(tag)
            out.append(tag)
    return out


def split_tags(value: str) -> list[str]:
    """Split a comma separated tag list."""
    return normalize_tags(value.split(","))


def join_tags(tags: Iterable[str] | None) -> str:
    """Join tags for display."""
    return ", ".join(normalize_tags(tags))