"""The task projection built by replaying events, and the commands that change it."""

from __future__ import annotations

import contextlib
import os
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from lazytask.event import Event, EventLog, EventType, new_event, new_id
from lazytask.task import (
    Task,
    TaskInput,
    format_local_date,
    normalize_tags,
    validate_date,
)

Clock = Callable[[], datetime]


class StoreError(Exception):
    """Raised when an event cannot be applied to the current tasks."""


@dataclass(frozen=True)
class CompactResult:
    """Event counts before and after compacting a log."""

    before: int
    after: int


def _copy_task(task: Task) -> Task:
    return replace(task, tags=list(task.tags))


def _existing(tasks: dict[str, Task], task_id: str, *, allow_deleted: bool = False) -> Task:
    task = tasks.get(task_id)
    if task is None or (task.deleted and not allow_deleted):
        raise StoreError(f"task not found: {task_id}")
    return task


def _clear_wip(tasks: dict[str, Task]) -> None:
    for task in tasks.values():
        task.wip = False


def _payload_text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise StoreError(f"payload field {key} must be a string")
    return value


def _apply(tasks: dict[str, Task], order: list[str], event: Event) -> None:
    match event.type:
        case EventType.TASK_CREATED:
            task = Task.from_dict(event.payload_dict())
            if not task.id:
                task.id = event.task_id
            if not task.start:
                raise StoreError(
                    f"unsupported old task payload for {event.task_id}: "
                    "remove or recreate the JSONL log"
                )
            task.input().validate()
            if task.wip:
                if not task.active():
                    raise StoreError(f"task is not active: {task.id}")
                _clear_wip(tasks)
            if task.id not in tasks:
                order.append(task.id)
            tasks[task.id] = task
        case EventType.TASK_UPDATED:
            task = _existing(tasks, event.task_id)
            fields = Task.from_dict(event.payload_dict())
            task.title = fields.title
            task.notes = fields.notes
            task.start = fields.start
            task.start_date = fields.start_date
            task.deadline = fields.deadline
            task.project = fields.project
            task.area = fields.area
            task.tags = normalize_tags(fields.tags)
            task.updated_at = event.timestamp
            task.input().validate()
        case EventType.TASK_COMPLETED:
            task = _existing(tasks, event.task_id)
            task.completed_at = _payload_text(event.payload_dict(), "completedAt")
            task.wip = False
            task.updated_at = event.timestamp
        case EventType.TASK_UNCOMPLETED:
            task = _existing(tasks, event.task_id)
            task.completed_at = ""
            task.updated_at = event.timestamp
        case EventType.TASK_CANCELED:
            task = _existing(tasks, event.task_id)
            task.canceled_at = _payload_text(event.payload_dict(), "canceledAt")
            task.wip = False
            task.updated_at = event.timestamp
        case EventType.TASK_DELETED:
            task = _existing(tasks, event.task_id, allow_deleted=True)
            task.deleted = True
            task.wip = False
            task.updated_at = event.timestamp
        case EventType.TASK_WIP_SELECTED:
            task = _existing(tasks, event.task_id)
            if not task.active():
                raise StoreError(f"task is not active: {event.task_id}")
            _clear_wip(tasks)
            task.wip = True
            task.updated_at = event.timestamp
        case EventType.TASK_WIP_CLEARED:
            task = _existing(tasks, event.task_id)
            task.wip = False
            task.updated_at = event.timestamp
        case _:
            raise StoreError(f"unknown event type: {event.type}")


def _update_payload(task_input: TaskInput) -> dict[str, Any]:
    payload: dict[str, Any] = {"title": task_input.title}
    if task_input.notes:
        payload["notes"] = task_input.notes
    payload["start"] = str(task_input.start)
    optional = (
        ("startDate", task_input.start_date),
        ("deadline", task_input.deadline),
        ("project", task_input.project),
        ("area", task_input.area),
    )
    payload.update((key, value) for key, value in optional if value)
    if task_input.tags:
        payload["tags"] = list(task_input.tags)
    return payload


def _sort_key(task: Task) -> tuple[bool, str, float]:
    created = task.created_at.timestamp() if task.created_at else float("-inf")
    return (task.start_date == "", task.start_date, created)


class Store:
    """Tasks projected from events; every change is applied and then logged."""

    def __init__(
        self,
        log: EventLog | None = None,
        events: Iterable[Event] = (),
        clock: Clock | None = None,
    ) -> None:
        self._log = log
        self._clock: Clock = clock or datetime.now
        self._lock = threading.Lock()
        self._tasks: dict[str, Task] = {}
        self._order: list[str] = []
        for event in events:
            _apply(self._tasks, self._order, event)

    @classmethod
    def open(cls, log: EventLog) -> Store:
        """Build a store by replaying everything in the log."""
        return cls(log=log, events=log.load())

    def set_clock(self, clock: Clock) -> None:
        """Replace the source of the current time."""
        with self._lock:
            self._clock = clock

    def _now(self) -> datetime:
        return self._clock().astimezone()

    def _today(self) -> str:
        return format_local_date(self._clock())

    def create(self, task_input: TaskInput) -> Task:
        """Add a new task and return it."""
        task_input = task_input.normalized()
        task_input.validate()
        now = self._now()
        task = Task(
            id=new_id("task"),
            title=task_input.title,
            notes=task_input.notes,
            start=task_input.start,
            start_date=task_input.start_date,
            deadline=task_input.deadline,
            project=task_input.project,
            area=task_input.area,
            tags=list(task_input.tags),
            created_at=now,
            updated_at=now,
        )
        self._commit(new_event(EventType.TASK_CREATED, task.id, now, task))
        return _copy_task(task)

    def update(self, task_id: str, task_input: TaskInput) -> Task | None:
        """Replace the editable fields of a task and return the result."""
        task_input = task_input.normalized()
        task_input.validate()
        now = self._now()
        self._commit(new_event(EventType.TASK_UPDATED, task_id, now, _update_payload(task_input)))
        return self.get(task_id)

    def complete(self, task_id: str, date: str = "") -> None:
        """Mark a task completed on date, today if blank."""
        date = date or self._today()
        validate_date("completedAt", date)
        self._commit(
            new_event(EventType.TASK_COMPLETED, task_id, self._now(), {"completedAt": date})
        )

    def uncomplete(self, task_id: str) -> None:
        """Reopen a completed task."""
        self._commit(new_event(EventType.TASK_UNCOMPLETED, task_id, self._now(), None))

    def cancel(self, task_id: str, date: str = "") -> None:
        """Mark a task canceled on date, today if blank."""
        date = date or self._today()
        validate_date("canceledAt", date)
        self._commit(
            new_event(EventType.TASK_CANCELED, task_id, self._now(), {"canceledAt": date})
        )

    def delete(self, task_id: str) -> None:
        """Delete a task, leaving a tombstone in the projection."""
        self._commit(new_event(EventType.TASK_DELETED, task_id, self._now(), None))

    def set_wip(self, task_id: str) -> None:
        """Make an active task the single work-in-progress task."""
        self._commit(new_event(EventType.TASK_WIP_SELECTED, task_id, self._now(), None))

    def clear_wip(self, task_id: str) -> None:
        """Unmark a task as work in progress."""
        self._commit(new_event(EventType.TASK_WIP_CLEARED, task_id, self._now(), None))

    def get(self, task_id: str) -> Task | None:
        """The task with this id, or None if it is missing or deleted."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.deleted:
                return None
            return _copy_task(task)

    def list(self) -> list[Task]:
        """Live tasks: dated ones first by date, then by creation time."""
        with self._lock:
            tasks = list(self._live())
        return sorted(tasks, key=_sort_key)

    def _live(self) -> Iterator[Task]:
        for task_id in self._order:
            task = self._tasks[task_id]
            if not task.deleted:
                yield _copy_task(task)

    def _commit(self, event: Event) -> None:
        with self._lock:
            tasks = {task_id: _copy_task(task) for task_id, task in self._tasks.items()}
            order = list(self._order)
            _apply(tasks, order, event)
            if self._log is not None:
                self._log.append(event)
            self._tasks = tasks
            self._order = order


def _copy_file(source: Path, target: Path) -> None:
    with source.open("rb") as reader, target.open("wb") as writer:
        while chunk := reader.read(1 << 16):
            writer.write(chunk)
        writer.flush()
        os.fsync(writer.fileno())


def compact(log: EventLog) -> CompactResult:
    """Rewrite the log as one creation event per live task, keeping a .bak copy."""
    events = log.load()
    store = Store(events=events)
    now = datetime.now().astimezone()
    with store._lock:
        live = list(store._live())
    compacted = [new_event(EventType.TASK_CREATED, task.id, now, task) for task in live]

    log.path.parent.mkdir(parents=True, exist_ok=True)
    with contextlib.suppress(FileNotFoundError):
        _copy_file(log.path, log.path.with_name(log.path.name + ".bak"))
    log.replace(compacted)
    return CompactResult(before=len(events), after=len(compacted))