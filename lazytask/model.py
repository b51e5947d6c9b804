"""Interactive state of the task console: panes, navigation, prompts and key handling."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, StrEnum, auto

from lazytask.event import EventLogError
from lazytask.parser import apply_deadline, apply_when, encode_quick_task, parse_quick_task
from lazytask.store import Store, StoreError
from lazytask.task import (
    Start,
    Task,
    TaskInput,
    format_local_date,
    normalize_tags,
    split_tags,
)
from lazytask.views import (
    Filter,
    ViewKind,
    active_tasks_first,
    anytime_tasks,
    filtered_tasks,
    flatten_week,
    inbox_tasks,
    known_areas,
    known_projects,
    known_tags,
    logbook_tasks,
    someday_tasks,
    today_tasks,
    work_week,
)

Clock = Callable[[], datetime]

_ERRORS = (ValueError, StoreError, EventLogError, OSError)
_MAX_HINTS = 8


class Pane(StrEnum):
    """The three panes that can hold focus."""

    NAV = "nav"
    LIST = "list"
    DETAIL = "detail"


class NavMode(StrEnum):
    """Which menu the navigation pane shows."""

    ROOT = "root"
    TAGS = "tags"
    PROJECTS = "projects"
    AREAS = "areas"


class PromptKind(Enum):
    """What a submitted prompt line is used for."""

    ADD = auto()
    SEARCH = auto()
    COMMAND = auto()


class PromptAction(Enum):
    """The outcome of a key pressed in a prompt."""

    NONE = auto()
    SUBMIT = auto()
    CANCEL = auto()
    QUIT = auto()


@dataclass(frozen=True)
class NavItem:
    """One entry of the navigation pane."""

    label: str
    view: ViewKind | None = None
    mode: NavMode | None = None
    value: str = ""


@dataclass(frozen=True)
class Quit:
    """Request to leave the application."""


@dataclass(frozen=True)
class CopyTitle:
    """Request to copy a task title to the clipboard."""

    title: str


Command = Quit | CopyTitle

_ROOT_NAV = (
    NavItem("[1] Inbox", view=ViewKind.INBOX),
    NavItem("[2] Today", view=ViewKind.TODAY),
    NavItem("[3] Weekly", view=ViewKind.WEEKLY),
    NavItem("Anytime", view=ViewKind.ANYTIME),
    NavItem("Someday", view=ViewKind.SOMEDAY),
    NavItem("Logbook", view=ViewKind.LOGBOOK),
    NavItem("Tags", mode=NavMode.TAGS),
    NavItem("Projects", mode=NavMode.PROJECTS),
    NavItem("Areas", mode=NavMode.AREAS),
)
_ROOT_INDEX = {NavMode.TAGS: 6, NavMode.PROJECTS: 7, NavMode.AREAS: 8}
_NAV_PREFIX = {NavMode.TAGS: "#", NavMode.PROJECTS: ">", NavMode.AREAS: "/"}
_FILTER_FIELD = {NavMode.TAGS: "tag", NavMode.PROJECTS: "project", NavMode.AREAS: "area"}
_PROMPT_KEYS = {
    "a": (PromptKind.ADD, "add"),
    "/": (PromptKind.SEARCH, "search"),
    ":": (PromptKind.COMMAND, "command"),
}
_TASK_KEYS = frozenset({"c", "e", "t", "w", " ", "d", "delete", "backspace"})
_SEARCH_VIEWS = {
    "inbox": ViewKind.INBOX,
    "today": ViewKind.TODAY,
    "weekly": ViewKind.WEEKLY,
    "week": ViewKind.WEEKLY,
    "anytime": ViewKind.ANYTIME,
    "someday": ViewKind.SOMEDAY,
    "logbook": ViewKind.LOGBOOK,
}
_SEARCH_PREFIXES = {"#": "tag", ">": "project", "/": "area"}


class LinePrompt:
    """A single-line text input with basic cursor editing."""

    width = 72
    char_limit = 500

    def __init__(self, kind: PromptKind, label: str) -> None:
        self.kind = kind
        self.label = label
        self._value = ""
        self.cursor = 0

    @property
    def value(self) -> str:
        """The text typed so far."""
        return self._value

    @value.setter
    def value(self, text: str) -> None:
        self._value = text[: self.char_limit]
        self.cursor = len(self._value)

    def handle_key(self, key: str) -> PromptAction:
        """Edit the line for one key and report whether the prompt ends."""
        text, pos = self._value, self.cursor
        match key:
            case "esc":
                return PromptAction.CANCEL
            case "enter":
                return PromptAction.SUBMIT
            case "ctrl+c":
                return PromptAction.QUIT
            case "left" | "ctrl+b":
                self.cursor = max(0, pos - 1)
            case "right" | "ctrl+f":
                self.cursor = min(len(text), pos + 1)
            case "home" | "ctrl+a":
                self.cursor = 0
            case "end" | "ctrl+e":
                self.cursor = len(text)
            case "backspace" | "ctrl+h":
                if pos > 0:
                    self._value = text[: pos - 1] + text[pos:]
                    self.cursor = pos - 1
            case "delete" | "ctrl+d":
                self._value = text[:pos] + text[pos + 1 :]
            case "ctrl+u":
                self._value = text[pos:]
                self.cursor = 0
            case "ctrl+k":
                self._value = text[:pos]
            case "ctrl+w":
                head = text[:pos].rstrip(" ")
                head = head[: head.rfind(" ") + 1]
                self._value = head + text[pos:]
                self.cursor = len(head)
            case _ if len(key) == 1 and key.isprintable():
                if len(text) < self.char_limit:
                    self._value = text[:pos] + key + text[pos:]
                    self.cursor = pos + 1
        return PromptAction.NONE


class Model:
    """All state of the console and the reactions to keys."""

    def __init__(self, store: Store, clock: Clock | None = None) -> None:
        self.store = store
        self.clock: Clock = clock or datetime.now
        self.view = ViewKind.INBOX
        self.filter = Filter()
        self.selected = 0
        self.width = 0
        self.height = 0
        self.prompt: LinePrompt | None = None
        self.err = ""
        self.status = ""
        self.focused_pane = Pane.LIST
        self.nav_selected = 0
        self.nav_mode = NavMode.ROOT
        self.help_open = False

    # -- events -----------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Record the terminal size; drop detail focus if the pane disappears."""
        self.width = width
        self.height = height
        if not self.detail_pane_visible() and self.focused_pane is Pane.DETAIL:
            self.focused_pane = Pane.LIST

    def handle_copy_result(self, error: BaseException | None) -> None:
        """Report the outcome of copying a title to the clipboard."""
        if error is not None:
            self.err = str(error)
            self.status = ""
        else:
            self.err = ""
            self.status = "copied title"

    def handle_key(self, key: str) -> Command | None:
        """React to one key press; return a command for the caller to carry out."""
        if self.prompt is not None:
            return self._prompt_key(key)
        if self.help_open:
            if key in ("?", "esc"):
                self.help_open = False
            elif key in ("ctrl+c", "q"):
                return Quit()
            return None
        self.status = ""
        match key:
            case "ctrl+c" | "q":
                return Quit()
            case "0":
                self.focused_pane = Pane.LIST
            case "1":
                self._apply_fixed_view(ViewKind.INBOX, 0, focus_list=True)
            case "2":
                self._apply_fixed_view(ViewKind.TODAY, 1, focus_list=True)
            case "3":
                self._apply_fixed_view(ViewKind.WEEKLY, 2, focus_list=True)
            case "?":
                self.help_open = True
            case "tab":
                self._focus_next_pane()
            case "shift+tab":
                self._focus_prev_pane()
            case "h" | "left":
                self._move_left()
            case "l" | "right":
                self._move_right()
            case "esc":
                self._return_to_root()
            case "j" | "down":
                self._move_selection(1)
            case "k" | "up":
                self._move_selection(-1)
            case "enter":
                if self.focused_pane is Pane.NAV:
                    self._apply_selected_nav(focus_list=True)
            case _ if key in _PROMPT_KEYS:
                if self._list_key_active():
                    self.prompt = LinePrompt(*_PROMPT_KEYS[key])
            case _:
                return self._task_key(key)
        return None

    def _prompt_key(self, key: str) -> Command | None:
        assert self.prompt is not None
        action = self.prompt.handle_key(key)
        if action is PromptAction.CANCEL:
            self.prompt = None
        elif action is PromptAction.QUIT:
            self.prompt = None
            return Quit()
        elif action is PromptAction.SUBMIT:
            self._attempt(self.run_prompt)
            self.status = ""
            self.prompt = None
            self._clamp_selection()
        return None

    def _task_key(self, key: str) -> Command | None:
        if key not in _TASK_KEYS or not self._list_key_active():
            return None
        task = self.selected_task()
        if task is None:
            return None
        match key:
            case "c":
                return CopyTitle(task.title)
            case "e":
                self.prompt = LinePrompt(PromptKind.COMMAND, "edit")
                self.prompt.value = "update " + encode_quick_task(task.input())
            case "t":
                task_input = task.input()
                task_input.start = Start.DATE
                task_input.start_date = format_local_date(self.clock())
                self._attempt(lambda: self.store.update(task.id, task_input))
                self._clamp_selection()
            case "w":
                if task.wip:
                    self._attempt(lambda: self.store.clear_wip(task.id))
                else:
                    self._attempt(lambda: self.store.set_wip(task.id))
            case " ":
                if not task.completed_at:
                    today = format_local_date(self.clock())
                    self._attempt(lambda: self.store.complete(task.id, today))
                else:
                    self._attempt(lambda: self.store.uncomplete(task.id))
            case _:
                self._attempt(lambda: self.store.delete(task.id))
                self._clamp_selection()
        return None

    def _attempt(self, action: Callable[[], object]) -> None:
        try:
            action()
        except _ERRORS as exc:
            self.err = str(exc)
        else:
            self.err = ""

    # -- queries ----------------------------------------------------------

    def detail_pane_visible(self) -> bool:
        """True when the terminal is wide enough for the detail pane."""
        return self.width <= 0 or self.width >= 100

    def visible_tasks(self) -> list[Task]:
        """Tasks of the current view, active ones first."""
        tasks = self.store.list()
        match self.view:
            case ViewKind.TODAY:
                chosen = today_tasks(tasks, self.clock())
            case ViewKind.WEEKLY:
                chosen = flatten_week(work_week(tasks, self.clock()))
            case ViewKind.ANYTIME:
                chosen = anytime_tasks(tasks)
            case ViewKind.SOMEDAY:
                chosen = someday_tasks(tasks)
            case ViewKind.LOGBOOK:
                chosen = logbook_tasks(tasks)
            case ViewKind.FILTER:
                chosen = filtered_tasks(tasks, self.filter)
            case _:
                chosen = inbox_tasks(tasks)
        return active_tasks_first(chosen)

    def selected_task(self) -> Task | None:
        """The task under the list cursor, if any."""
        tasks = self.visible_tasks()
        if 0 <= self.selected < len(tasks):
            return tasks[self.selected]
        return None

    def wip_task(self) -> Task | None:
        """The task currently marked as work in progress, if any."""
        return next((task for task in self.store.list() if task.wip), None)

    def nav_items(self) -> list[NavItem]:
        """Entries of the navigation pane for the current menu."""
        match self.nav_mode:
            case NavMode.TAGS:
                values = known_tags(self.store.list())
            case NavMode.PROJECTS:
                values = known_projects(self.store.list())
            case NavMode.AREAS:
                values = known_areas(self.store.list())
            case _:
                return list(_ROOT_NAV)
        prefix = _NAV_PREFIX[self.nav_mode]
        return [NavItem(prefix + value, mode=self.nav_mode, value=value) for value in values]

    def nav_item_active(self, item: NavItem) -> bool:
        """True when the item describes the view currently shown."""
        if self.nav_mode is not NavMode.ROOT:
            field_name = _FILTER_FIELD.get(item.mode) if item.mode else None
            if field_name is None:
                return False
            current = getattr(self.filter, field_name)
            return self.view is ViewKind.FILTER and current.casefold() == item.value.casefold()
        return item.view is not None and self.view == item.view

    def title(self) -> str:
        """A short name for the current view."""
        if self.view is not ViewKind.FILTER:
            return str(self.view)
        if self.filter.tag:
            return "#" + self.filter.tag
        if self.filter.project:
            return ">" + self.filter.project
        if self.filter.area:
            return "/" + self.filter.area
        return "Search " + self.filter.query

    def search_hints(self, query: str) -> list[str]:
        """Up to eight view names, tags, projects, areas or titles matching query."""
        query = query.strip().lower()
        tasks = self.store.list()
        items = list(_SEARCH_VIEWS.keys() - {"week"})
        items = ["inbox", "today", "weekly", "anytime", "someday", "logbook"]
        items += ["#" + tag for tag in known_tags(tasks)]
        items += [">" + project for project in known_projects(tasks)]
        items += ["/" + area for area in known_areas(tasks)]
        items += [task.title for task in tasks]
        matches = [item for item in items if not query or query in item.lower()]
        return matches[:_MAX_HINTS]

    # -- prompts and commands ----------------------------------------------

    def run_prompt(self) -> None:
        """Carry out the submitted prompt line."""
        if self.prompt is None:
            return
        value = self.prompt.value.strip()
        match self.prompt.kind:
            case PromptKind.ADD:
                self._add(value)
            case PromptKind.SEARCH:
                self.apply_search(value)
            case PromptKind.COMMAND:
                self.run_command(value)

    def apply_search(self, value: str) -> None:
        """Switch to a named view or to a tag, project, area or text filter."""
        value = value.strip()
        self.view = ViewKind.FILTER
        self.filter = Filter()
        field_name = _SEARCH_PREFIXES.get(value[:1])
        if field_name is not None:
            self.filter = Filter(**{field_name: value[1:]})
        elif value.lower() in _SEARCH_VIEWS:
            self.view = _SEARCH_VIEWS[value.lower()]
        else:
            self.filter = Filter(query=value)
        self.selected = 0

    def run_command(self, value: str) -> None:
        """Run a command-palette line such as 'tag urgent' or 'done'."""
        parts = value.split()
        if not parts:
            return
        cmd = parts[0].lower()
        rest = value.removeprefix(parts[0]).strip()
        match cmd:
            case "add":
                self._add(rest)
            case "update":
                task = self._require_selected()
                task_input = parse_quick_task(rest, self.clock())
                self.store.update(task.id, task_input)
            case "tag" | "untag" | "move" | "area" | "when" | "deadline":
                self._update_selected(cmd, rest)
            case "done":
                task = self._require_selected()
                self.store.complete(task.id, format_local_date(self.clock()))
            case "undone":
                self.store.uncomplete(self._require_selected().id)
            case "cancel":
                task = self._require_selected()
                self.store.cancel(task.id, format_local_date(self.clock()))
            case "delete":
                self.store.delete(self._require_selected().id)
            case _:
                raise ValueError(f"unknown command: {cmd}")

    def _add(self, text: str) -> None:
        task_input = parse_quick_task(text, self.clock())
        self._apply_create_defaults(task_input)
        self.store.create(task_input)

    def _require_selected(self) -> Task:
        task = self.selected_task()
        if task is None:
            raise ValueError("no selected task")
        return task

    def _apply_create_defaults(self, task_input: TaskInput) -> None:
        if task_input.start != Start.INBOX or task_input.start_date:
            return
        match self.view:
            case ViewKind.TODAY:
                task_input.start = Start.DATE
                task_input.start_date = format_local_date(self.clock())
            case ViewKind.ANYTIME:
                task_input.start = Start.ANYTIME
            case ViewKind.SOMEDAY:
                task_input.start = Start.SOMEDAY
            case ViewKind.FILTER:
                if self.filter.tag:
                    task_input.tags = normalize_tags([*task_input.tags, self.filter.tag])
                if self.filter.project:
                    task_input.project = self.filter.project
                if self.filter.area:
                    task_input.area = self.filter.area

    def _update_selected(self, cmd: str, rest: str) -> None:
        task = self._require_selected()
        task_input = task.input()
        match cmd:
            case "tag":
                task_input.tags = normalize_tags([*task_input.tags, *split_tags(rest)])
            case "untag":
                remove = {tag.lower() for tag in split_tags(rest)}
                task_input.tags = [tag for tag in task_input.tags if tag.lower() not in remove]
            case "move":
                task_input.project = rest.strip().removeprefix(">")
                if task_input.project and task_input.start == Start.INBOX:
                    task_input.start = Start.ANYTIME
            case "area":
                task_input.area = rest.strip().removeprefix("/")
            case "when":
                apply_when(task_input, rest, self.clock())
            case "deadline":
                apply_deadline(task_input, rest)
        self.store.update(task.id, task_input)

    # -- focus and navigation ---------------------------------------------

    def _list_key_active(self) -> bool:
        return self.focused_pane is Pane.LIST

    def _focus_next_pane(self) -> None:
        match self.focused_pane:
            case Pane.NAV:
                self.focused_pane = Pane.LIST
            case Pane.LIST:
                self.focused_pane = Pane.DETAIL if self.detail_pane_visible() else Pane.NAV
            case _:
                self.focused_pane = Pane.NAV

    def _focus_prev_pane(self) -> None:
        match self.focused_pane:
            case Pane.NAV:
                self.focused_pane = Pane.DETAIL if self.detail_pane_visible() else Pane.LIST
            case Pane.DETAIL:
                self.focused_pane = Pane.LIST
            case _:
                self.focused_pane = Pane.NAV

    def _return_to_root(self) -> None:
        if self.nav_mode is not NavMode.ROOT:
            mode = self.nav_mode
            self.nav_mode = NavMode.ROOT
            self.nav_selected = _ROOT_INDEX.get(mode, 0)

    def _move_left(self) -> None:
        match self.focused_pane:
            case Pane.NAV:
                self._return_to_root()
            case Pane.LIST:
                self.focused_pane = Pane.NAV
            case Pane.DETAIL:
                self.focused_pane = Pane.LIST

    def _move_right(self) -> None:
        match self.focused_pane:
            case Pane.NAV:
                if self._nav_selected_item_opens():
                    self._open_nav_mode()
                else:
                    self.focused_pane = Pane.LIST
            case Pane.LIST:
                if self.detail_pane_visible():
                    self.focused_pane = Pane.DETAIL

    def _move_selection(self, delta: int) -> None:
        if self.focused_pane is Pane.NAV:
            self.nav_selected += delta
            self._clamp_nav_selection()
            self._apply_selected_nav(focus_list=False)
        elif self.focused_pane is Pane.LIST:
            self.selected += delta
            self._clamp_selection()

    def _current_nav_item(self) -> NavItem | None:
        items = self.nav_items()
        if 0 <= self.nav_selected < len(items):
            return items[self.nav_selected]
        return None

    def _apply_selected_nav(self, *, focus_list: bool) -> None:
        item = self._current_nav_item()
        if item is None:
            return
        if item.mode is not None and not item.value:
            if focus_list:
                self._open_nav_mode()
            return
        if item.value:
            self.view = ViewKind.FILTER
            field_name = _FILTER_FIELD.get(item.mode) if item.mode else None
            self.filter = Filter(**{field_name: item.value}) if field_name else Filter()
            self.selected = 0
            if focus_list:
                self.focused_pane = Pane.LIST
            self.err = ""
            self.status = ""
            return
        if item.view is not None:
            self._apply_fixed_view(item.view, self.nav_selected, focus_list=focus_list)

    def _apply_fixed_view(self, view: ViewKind, nav_selected: int, *, focus_list: bool) -> None:
        self.view = view
        self.filter = Filter()
        self.selected = 0
        self.nav_mode = NavMode.ROOT
        self.nav_selected = nav_selected
        if focus_list:
            self.focused_pane = Pane.LIST
        self.err = ""
        self.status = ""

    def _nav_selected_item_opens(self) -> bool:
        item = self._current_nav_item()
        return item is not None and item.mode is not None and not item.value

    def _open_nav_mode(self) -> None:
        item = self._current_nav_item()
        if item is None or item.mode is None:
            return
        self.nav_mode = item.mode
        self.nav_selected = 0
        self._clamp_nav_selection()

    def _clamp_nav_selection(self) -> None:
        count = len(self.nav_items())
        self.nav_selected = 0 if count == 0 else min(max(self.nav_selected, 0), count - 1)

    def _clamp_selection(self) -> None:
        count = len(self.visible_tasks())
        self.selected = 0 if count == 0 else min(max(self.selected, 0), count - 1)