"""Selections of tasks for the Inbox, Today, Weekly and other views."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum

from lazytask.task import Start, Task, format_local_date, join_tags

_WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri")


class ViewKind(StrEnum):
    """The views a user can switch between."""

    INBOX = "Inbox"
    TODAY = "Today"
    WEEKLY = "Weekly"
    ANYTIME = "Anytime"
    SOMEDAY = "Someday"
    LOGBOOK = "Logbook"
    FILTER = "Filter"


@dataclass(frozen=True)
class Filter:
    """Criteria for the filter view; blank fields match everything."""

    tag: str = ""
    project: str = ""
    area: str = ""
    query: str = ""


@dataclass
class WeekDay:
    """One working day of the weekly view."""

    date: str
    label: str
    tasks: list[Task] = field(default_factory=list)


def _select(tasks: Iterable[Task], keep: Callable[[Task], bool]) -> list[Task]:
    return [task for task in tasks if keep(task)]


def inbox_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Active tasks not yet classified."""
    return _select(tasks, lambda task: task.active() and task.start == Start.INBOX)


def today_tasks(tasks: Iterable[Task], day: datetime) -> list[Task]:
    """Tasks starting, due, completed or canceled on the given day."""
    today = format_local_date(day)

    def keep(task: Task) -> bool:
        if task.deleted:
            return False
        if today in (task.completed_at, task.canceled_at):
            return True
        return task.active() and today in (task.start_date, task.deadline)

    return _select(tasks, keep)


def anytime_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Active tasks marked anytime."""
    return _select(tasks, lambda task: task.active() and task.start == Start.ANYTIME)


def someday_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Active tasks marked someday."""
    return _select(tasks, lambda task: task.active() and task.start == Start.SOMEDAY)


def logbook_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Completed or canceled tasks."""
    return _select(
        tasks, lambda task: not task.deleted and bool(task.completed_at or task.canceled_at)
    )


def _search_text(task: Task) -> str:
    return " ".join(
        [
            task.title,
            task.notes,
            task.project,
            task.area,
            join_tags(task.tags),
            task.start_date,
            task.deadline,
        ]
    )


def filtered_tasks(tasks: Iterable[Task], task_filter: Filter) -> list[Task]:
    """Tasks matching every non-blank criterion of the filter, case-insensitively."""
    query = task_filter.query.strip().lower()
    tag = task_filter.tag.strip().lower().removeprefix("#")
    project = task_filter.project.strip().lower()
    area = task_filter.area.strip().lower()

    def keep(task: Task) -> bool:
        if task.deleted:
            return False
        if tag and all(value.lower() != tag for value in task.tags):
            return False
        if project and task.project.lower() != project:
            return False
        if area and task.area.lower() != area:
            return False
        if query and query not in _search_text(task).lower():
            return False
        return True

    return _select(tasks, keep)


def monday_of(day: datetime) -> datetime:
    """The Monday of the local week containing day, at the same time of day."""
    local = day.astimezone() if day.tzinfo is not None else day
    return local - timedelta(days=local.weekday())


def work_week(tasks: Iterable[Task], day: datetime) -> list[WeekDay]:
    """Monday to Friday of the week containing day, each with its tasks.

    A task lands on the first weekday matching its start date, deadline,
    completion or cancellation date.
    """
    monday = date.fromisoformat(format_local_date(monday_of(day)))
    week = [
        WeekDay(date=format_local_date(monday + timedelta(days=offset)), label=label)
        for offset, label in enumerate(_WEEKDAY_LABELS)
    ]
    for task in tasks:
        if task.deleted:
            continue
        dates = (task.start_date, task.deadline, task.completed_at, task.canceled_at)
        target = next((weekday for weekday in week if weekday.date in dates), None)
        if target is not None:
            target.tasks.append(task)
    return week


def flatten_week(week: Iterable[WeekDay]) -> list[Task]:
    """All tasks of the week in day order, each task once."""
    seen: set[str] = set()
    out: list[Task] = []
    for weekday in week:
        for task in weekday.tasks:
            if task.id not in seen:
                seen.add(task.id)
                out.append(task)
    return out


def known_tags(tasks: Iterable[Task]) -> list[str]:
    """Sorted distinct tags in use."""
    return sorted({tag for task in tasks for tag in task.tags})


def known_projects(tasks: Iterable[Task]) -> list[str]:
    """Sorted distinct projects in use."""
    return sorted({task.project for task in tasks if task.project})


def known_areas(tasks: Iterable[Task]) -> list[str]:
    """Sorted distinct areas in use."""
    return sorted({task.area for task in tasks if task.area})


def active_tasks_first(tasks: Iterable[Task]) -> list[Task]:
    """Active tasks, then inactive ones, each group keeping its order."""
    tasks = list(tasks)
    return [task for task in tasks if task.active()] + [
        task for task in tasks if not task.active()
    ]