"""Quick-entry syntax for tasks: title words plus #tag >project /area !deadline @when."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from lazytask.task import (
    Start,
    TaskInput,
    format_local_date,
    validate_date,
)


def parse_quick_task(value: str, now: datetime) -> TaskInput:
    """Parse a quick-entry line into validated, normalized task input."""
    task_input = TaskInput(start=Start.INBOX)
    title: list[str] = []
    for word in value.split():
        marker, rest = word[0], word[1:]
        if not rest:
            title.append(word)
        elif marker == "#":
            task_input.tags.append(rest)
        elif marker == ">":
            task_input.project = rest
        elif marker == "/":
            task_input.area = rest
        elif marker == "!":
            task_input.deadline = rest
        elif marker == "@":
            _apply_start_word(task_input, rest, now)
        else:
            title.append(word)
    task_input.title = " ".join(title)
    task_input = task_input.normalized()
    task_input.validate()
    return task_input


def _apply_start_word(task_input: TaskInput, word: str, now: datetime) -> None:
    keyword = word.strip().lower()
    if keyword == "today":
        task_input.start = Start.DATE
        task_input.start_date = format_local_date(now)
    elif keyword == "tomorrow":
        today = date.fromisoformat(format_local_date(now))
        task_input.start = Start.DATE
        task_input.start_date = format_local_date(today + timedelta(days=1))
    elif keyword == "anytime":
        task_input.start = Start.ANYTIME
        task_input.start_date = ""
    elif keyword == "someday":
        task_input.start = Start.SOMEDAY
        task_input.start_date = ""
    elif keyword in ("inbox", "clear"):
        task_input.start = Start.INBOX
        task_input.start_date = ""
    else:
        validate_date("startDate", word)
        task_input.start = Start.DATE
        task_input.start_date = word


def apply_when(task_input: TaskInput, token: str, now: datetime) -> None:
    """Set the start of task_input from a when-word such as '@today' or a date."""
    _apply_start_word(task_input, token.strip().removeprefix("@"), now)


def apply_deadline(task_input: TaskInput, token: str) -> None:
    """Set or clear the deadline of task_input from a word such as '!2026-05-05'."""
    word = token.strip().removeprefix("!")
    if word == "clear":
        task_input.deadline = ""
        return
    validate_date("deadline", word)
    task_input.deadline = word


def encode_quick_task(task_input: TaskInput) -> str:
    """Render task input back into quick-entry syntax."""
    parts = [task_input.title]
    parts.extend("#" + tag for tag in task_input.tags)
    if task_input.start == Start.DATE:
        parts.append("@" + task_input.start_date)
    elif task_input.start in (Start.ANYTIME, Start.SOMEDAY, Start.INBOX):
        parts.append("@" + str(task_input.start))
    if task_input.deadline:
        parts.append("!" + task_input.deadline)
    if task_input.project:
        parts.append(">" + task_input.project)
    if task_input.area:
        parts.append("/" + task_input.area)
    return " ".join(parts)