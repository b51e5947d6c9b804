"""Drawing the console: header, panes, weekly grid, help and prompt popup."""

from __future__ import annotations

from datetime import datetime

from lazytask.model import LinePrompt, Model, NavMode, Pane, PromptKind
from lazytask.task import Start, Task, join_tags
from lazytask.text import (
    Style,
    boxed,
    cut,
    display_width,
    fill_height,
    fill_width_lines,
    join_horizontal,
    join_vertical,
    pad_right,
    truncate_display,
    truncate_runes,
    visible_indexes,
)
from lazytask.views import ViewKind, active_tasks_first, flatten_week, work_week

_HEADER = Style(foreground=231, background=25, bold=True)
_STATUS = Style(foreground=51, background=236, bold=True)
_SUBTLE = Style(foreground=246)
_META = Style(foreground=214)
_HELP = Style(foreground=109)
_SELECTED = Style(foreground=16, background=51, bold=True)
_DONE = Style(foreground=244, strikethrough=True)
_ERROR = Style(foreground=203, bold=True)
_DAY = Style(foreground=51, bold=True)
_GRID = Style(foreground=25)
_CURSOR = Style(reverse=True)

_DEFAULT_WIDTH = 120
_HELP_LINES = (
    "HELP",
    "",
    "0                  jump to task list pane",
    "1 / 2 / 3          jump to Inbox, Today, Weekly",
    "tab / shift+tab    cycle panes",
    "h / l              move between panes",
    "j / k              move selection",
    "enter              select nav view or filter",
    "a                  quick add",
    "/                  search",
    ":                  command palette",
    "w                  toggle selected task as WIP",
    "t                  schedule selected task today",
    "c                  copy selected task title",
    "space              complete or reopen selected task",
    "d                  delete selected task",
    "esc                close overlay or return nav to root",
    "q                  quit",
)


def _pane_content_height(height: int) -> int:
    return 0 if height <= 2 else height - 2


def _pane_text_width(width: int) -> int:
    return 0 if width <= 4 else width - 4


def _truncate_lines(lines: list[str], width: int) -> str:
    return "\n".join(truncate_display(line, width) for line in lines)


def render(model: Model) -> str:
    """The whole screen, with the prompt popup on top when one is open."""
    view = _base_view(model)
    if model.prompt is not None:
        popup = prompt_popup(model, _prompt_width(model))
        return overlay_prompt(view, popup, model.width, model.height)
    return view


def _base_view(model: Model) -> str:
    header = header_view(model)
    if model.err:
        header += " " + _ERROR.render(model.err)
    elif model.status:
        header += " " + _STATUS.render(f" {model.status} ")
    height = _body_height(model)
    if model.help_open:
        body = help_view(height, model.width)
    else:
        body = panes_view(model, height)
    return join_vertical(header, wip_view(model), "", body, "", _status_bar(model))


def _prompt_width(model: Model) -> int:
    width = model.width if model.width > 0 else 88
    if width < 48:
        return max(1, width - 2)
    return min(78, width - 10)


def _body_height(model: Model) -> int:
    if model.height <= 0:
        return 0
    return max(1, model.height - 5)


def header_view(model: Model) -> str:
    """Title, current view and task count."""
    title = _HEADER.render(" LAZYTASK // OPS CONSOLE ")
    view = _STATUS.render(f" VIEW [{model.title().upper()}] ")
    count = _SUBTLE.render(f" TARGETS {len(model.visible_tasks()):02d} ")
    return join_horizontal(title, " ", view, " ", count)


def wip_view(model: Model) -> str:
    """The one-line summary of the work-in-progress task."""
    width = model.width if model.width > 0 else _DEFAULT_WIDTH
    task = model.wip_task()
    if task is None:
        return _SUBTLE.render(truncate_display("WIP none", width))
    line = "WIP " + task.title
    meta = compact_wip_meta(task)
    if meta:
        line += "  " + meta
    return _META.render(truncate_display(line, width))


def _status_bar(model: Model) -> str:
    width = model.width if model.width > 0 else _DEFAULT_WIDTH
    line = (
        "[0] list  [tab] pane  [j/k] select  [w] wip  [?] help  "
        f"pane:{model.focused_pane}  [a] capture  [/] scan  [:] command  [q] exit"
    )
    return _HELP.render(truncate_display(line, width))


def panes_view(model: Model, height: int) -> str:
    """Navigation, list and (on wide terminals) detail panes side by side."""
    width = model.width if model.width > 0 else _DEFAULT_WIDTH
    show_detail = width >= 100
    nav_width = 18 if width < 72 else 22
    gap = " " * 2
    detail_width = max(26, width // 3) if show_detail else 0
    list_width = width - nav_width - len(gap)
    if show_detail:
        list_width -= detail_width + len(gap)
    list_width = max(list_width, 28)
    content_height = _pane_content_height(height)

    nav = boxed(
        nav_view(model, content_height, _pane_text_width(nav_width)),
        nav_width,
        height,
        model.focused_pane is Pane.NAV,
    )
    task_list = boxed(
        list_view(model, content_height, _pane_text_width(list_width)),
        list_width,
        height,
        model.focused_pane is Pane.LIST,
    )
    if not show_detail:
        return join_horizontal(nav, gap, task_list)
    detail = boxed(
        detail_view(model, content_height, _pane_text_width(detail_width)),
        detail_width,
        height,
        model.focused_pane is Pane.DETAIL,
    )
    return join_horizontal(nav, gap, task_list, gap, detail)


def nav_view(model: Model, height: int, width: int) -> str:
    """The navigation menu."""
    items = model.nav_items()
    lines = []
    if model.nav_mode is not NavMode.ROOT:
        lines.append(_SUBTLE.render(truncate_display("< " + str(model.nav_mode).upper(), width)))
    if not items:
        lines.append(_SUBTLE.render(truncate_display(f"No {model.nav_mode}", width)))
        return fill_height("\n".join(lines), height)
    for index, item in enumerate(items):
        selected = index == model.nav_selected
        label = item.label
        if item.mode is not None and item.mode is not NavMode.ROOT:
            label += " >"
        line = truncate_display(("> " if selected else "  ") + label, width)
        if selected:
            line = _SELECTED.render(line)
        elif model.nav_item_active(item):
            line = _STATUS.render(line)
        lines.append(line)
    return fill_height("\n".join(lines), height)


def detail_view(model: Model, height: int, width: int) -> str:
    """Metadata of the selected task, or a summary of the view."""
    task = model.selected_task()
    if task is None:
        lines = [
            "VIEW",
            model.title(),
            "",
            f"tasks: {len(model.visible_tasks())}",
            "",
            "Select a task in the list to inspect its metadata.",
        ]
        return fill_height(_truncate_lines(lines, width), height)
    lines = [
        "DETAIL",
        task.title,
        "",
        "status: " + task_status(task),
        "start: " + task_start(task),
    ]
    if task.deadline:
        lines.append("deadline: " + task.deadline)
    if task.project:
        lines.append("project: " + task.project)
    if task.area:
        lines.append("area: " + task.area)
    if task.tags:
        lines.append("tags: " + join_tags(task.tags))
    if task.notes:
        lines += ["", "notes:", task.notes]
    lines += [
        "",
        "created: " + format_task_time(task.created_at),
        "updated: " + format_task_time(task.updated_at),
        "",
        _HELP.render("w wip  t today  space done  d delete  e edit"),
    ]
    return fill_height(_truncate_lines(lines, width), height)


def help_view(height: int, width: int) -> str:
    """The key reference shown in place of the panes."""
    content = fill_height("\n".join(_HELP_LINES), _pane_content_height(height))
    if width > 0:
        return boxed(content, max(40, min(width, 72)), height, True)
    return content


def list_view(model: Model, height: int, width: int) -> str:
    """The task list of the current view."""
    if model.view is ViewKind.WEEKLY:
        return _weekly_view(model, height, width)
    tasks = model.visible_tasks()
    if not tasks:
        return fill_height(
            _SUBTLE.render(truncate_display("No tasks. Press a to capture one.", width)), height
        )
    lines = [
        task_line(tasks[index], index == model.selected, width)
        for index in visible_indexes(len(tasks), model.selected, height)
    ]
    if height > 0 and len(tasks) > len(lines):
        more = f"+{len(tasks) - len(lines)} more"
        lines.append(_SUBTLE.render(truncate_display(more, width)))
    return fill_height("\n".join(lines), height)


def weekly_view(model: Model, height: int) -> str:
    """Monday to Friday columns sized for the model's width."""
    return _weekly_view(model, height, model.width)


def _column(text: str, width: int) -> str:
    return "\n".join(
        pad_right(truncate_display(line, width), width) + " " for line in text.split("\n")
    )


def _visible_weekly_tasks(tasks: list[Task], selected_id: str, height: int) -> list[Task]:
    if height <= 0 or len(tasks) <= height:
        return tasks
    selected = next((i for i, task in enumerate(tasks) if task.id == selected_id), None)
    if selected is None:
        return tasks[:height]
    start = max(0, selected - height // 2)
    if start + height > len(tasks):
        start = len(tasks) - height
    return tasks[start : start + height]


def _weekly_view(model: Model, height: int, total_width: int) -> str:
    week = work_week(model.store.list(), model.clock())
    for day in week:
        day.tasks = active_tasks_first(day.tasks)
    flat = active_tasks_first(flatten_week(week))
    selected_id = flat[model.selected].id if 0 <= model.selected < len(flat) else ""
    width = max(1, total_width // 5 - 1) if total_width > 20 else 24
    task_height = max(0, height - 2) if height > 0 else 0

    headers, separators, bodies = [], [], []
    for day in week:
        shown = (
            _visible_weekly_tasks(day.tasks, selected_id, task_height)
            if task_height > 0
            else day.tasks
        )
        label = truncate_display(f"[{day.label} {day.date[5:]}]", width)
        headers.append(_column(_DAY.render(label), width))
        separators.append(_column(_GRID.render("═" * max(1, width)), width))
        lines = []
        if not day.tasks:
            lines.append(_SUBTLE.render(truncate_display("standby", width)))
        lines += [weekly_task_line(task, task.id == selected_id, width) for task in shown]
        if len(shown) < len(day.tasks):
            more = f"+{len(day.tasks) - len(shown)} more"
            lines.append(_SUBTLE.render(truncate_display(more, width)))
        body = "\n".join(lines)
        if task_height > 0:
            body = fill_height(body, task_height)
        bodies.append(_column(body, width))
    grid = join_vertical(
        join_horizontal(*headers), join_horizontal(*separators), join_horizontal(*bodies)
    )
    return fill_height(grid, height)


def _check(task: Task) -> str:
    if task.canceled_at:
        return "[-]"
    if task.completed_at:
        return "[x]"
    return "[ ]"


def _finish_line(task: Task, line: str, selected: bool) -> str:
    if selected:
        return _SELECTED.render(line)
    if task.completed_at or task.canceled_at:
        return _DONE.render(line)
    return line


def task_line(task: Task, selected: bool, width: int) -> str:
    """One row of the task list."""
    line = f"{'>' if selected else ' '} {_check(task)} {task.title}"
    meta = task_meta(task)
    if meta:
        if task.completed_at or task.canceled_at:
            line += "  " + meta
        else:
            line += _META.render("  " + meta)
    return _finish_line(task, truncate_display(line, width), selected)


def weekly_task_line(task: Task, selected: bool, width: int) -> str:
    """One entry of a weekly column."""
    prefix = f"{'>' if selected else ' '} {_check(task)} "
    meta = compact_weekly_meta(task)
    available = width - len(prefix)
    if meta:
        available -= len(meta.encode("utf-8")) + 1
    available = max(available, 4)
    line = prefix + truncate_runes(task.title, available)
    if meta:
        line += " " + meta
    return _finish_line(task, truncate_display(line, width), selected)


def _input_view(prompt: LinePrompt, width: int) -> str:
    value, cursor = prompt.value, prompt.cursor
    start = max(0, cursor - width + 1)
    visible = value[start : start + width]
    position = cursor - start
    under = visible[position] if position < len(visible) else " "
    return "> " + visible[:position] + _CURSOR.render(under) + visible[position + 1 :]


def prompt_popup(model: Model, width: int) -> str:
    """The bordered box holding the open prompt."""
    prompt = model.prompt
    if prompt is None:
        return ""
    content_width = _pane_text_width(width)
    lines = [
        _HEADER.render(truncate_display(f" {prompt.label.upper()} ", content_width)),
        _input_view(prompt, max(8, content_width)),
    ]
    if prompt.kind is PromptKind.SEARCH:
        hint = "try: #urgent  >Work  /Home  today  weekly"
        lines += ["", _SUBTLE.render(truncate_display(hint, content_width))]
        lines += [
            truncate_display(_SUBTLE.render(item), content_width)
            for item in model.search_hints(prompt.value)
        ]
    if prompt.kind is PromptKind.COMMAND:
        commands = "add/tag/untag/move/area/when/deadline/done/undone/cancel/delete"
        lines += ["", _SUBTLE.render(truncate_display(commands, content_width))]
    lines += ["", _SUBTLE.render("enter apply  esc cancel")]
    return boxed(fill_width_lines("\n".join(lines), content_width), width, 0, True)


def _overlay_line(base: str, popup: str, width: int) -> str:
    popup_width = display_width(popup)
    if popup_width >= width:
        return truncate_display(popup, width)
    left = max(0, (width - popup_width) // 2)
    right = left + popup_width
    return cut(base, 0, left) + popup + cut(base, right, width)


def overlay_prompt(base: str, popup: str, width: int, height: int) -> str:
    """Centre popup over base, keeping the base visible around it."""
    base_lines = base.split("\n")
    popup_lines = popup.split("\n")
    if width <= 0:
        width = max((display_width(line) for line in base_lines), default=0)
    if height <= 0:
        height = len(base_lines)
    base_lines = (base_lines + [""] * height)[:height]
    base_lines = [pad_right(truncate_display(line, width), width) for line in base_lines]
    top = max(0, (height - len(popup_lines)) // 2)
    for offset, line in enumerate(popup_lines):
        row = top + offset
        if row >= height:
            break
        base_lines[row] = _overlay_line(base_lines[row], truncate_display(line, width), width)
    return "\n".join(base_lines)


def _start_part(task: Task) -> list[str]:
    if task.start == Start.DATE and task.start_date:
        return ["@" + task.start_date]
    if task.start:
        return ["@" + str(task.start)]
    return []


def task_meta(task: Task) -> str:
    """Start, deadline, project, area and tags in quick-entry notation."""
    parts = _start_part(task)
    if task.deadline:
        parts.append("!" + task.deadline)
    if task.project:
        parts.append(">" + task.project)
    if task.area:
        parts.append("/" + task.area)
    parts += ["#" + tag for tag in task.tags]
    return " ".join(parts)


def compact_weekly_meta(task: Task) -> str:
    """The single most useful piece of metadata for a weekly cell."""
    if task.deadline:
        return "!" + task.deadline[5:]
    if task.tags:
        return "#" + task.tags[0]
    if task.project:
        return ">" + task.project
    return ""


def compact_wip_meta(task: Task) -> str:
    """Start, deadline, project and first tag for the WIP row."""
    parts = _start_part(task)
    if task.deadline:
        parts.append("!" + task.deadline)
    if task.project:
        parts.append(">" + task.project)
    if task.tags:
        parts.append("#" + task.tags[0])
    return " ".join(parts)


def task_status(task: Task) -> str:
    """Deleted, completed, canceled or active, with the date where there is one."""
    if task.deleted:
        return "deleted"
    if task.completed_at:
        return "completed " + task.completed_at
    if task.canceled_at:
        return "canceled " + task.canceled_at
    return "active"


def task_start(task: Task) -> str:
    """The start date, or the name of the start."""
    if task.start == Start.DATE and task.start_date:
        return task.start_date
    if not task.start:
        return str(Start.INBOX)
    return str(task.start)


def format_task_time(value: datetime | None) -> str:
    """A timestamp to the minute, or '-' when unknown."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")