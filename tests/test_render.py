from datetime import datetime

import pytest

from lazytask.model import Model, NavMode
from lazytask.render import (
    compact_weekly_meta,
    compact_wip_meta,
    detail_view,
    format_task_time,
    header_view,
    help_view,
    list_view,
    nav_view,
    overlay_prompt,
    render,
    task_line,
    task_meta,
    task_start,
    task_status,
    weekly_task_line,
    weekly_view,
)
from lazytask.store import Store
from lazytask.task import Start, Task, TaskInput, parse_local_date
from lazytask.text import cut, display_width, strip_ansi
from lazytask.views import ViewKind


def fixed_clock(day="2026-05-04"):
    return lambda: parse_local_date(day)


def make_store():
    return Store(clock=fixed_clock())


def make_model(store):
    return Model(store, clock=fixed_clock())


def assert_view_width(view, width):
    for line in view.split("\n"):
        assert display_width(line) <= width


def test_root_nav_displays_shortcut_labels():
    model = make_model(make_store())
    view = nav_view(model, 12, 40)
    for want in ["[1] Inbox", "[2] Today", "[3] Weekly"]:
        assert want in strip_ansi(view)
    assert len(view.split("\n")) == 12


def test_nav_view_in_empty_submenu():
    model = make_model(make_store())
    model.nav_mode = NavMode.TAGS
    view = strip_ansi(nav_view(model, 4, 20))
    assert view.split("\n")[:2] == ["< TAGS", "No tags"]


def test_weekly_view_keeps_inactive_tasks_below_active():
    store = make_store()
    done = store.create(TaskInput(title="Done first", start=Start.DATE, start_date="2026-05-04"))
    store.complete(done.id, "2026-05-04")
    store.create(TaskInput(title="Active second", start=Start.DATE, start_date="2026-05-04"))
    model = make_model(store)
    model.view = ViewKind.WEEKLY
    model.width = 100
    view = strip_ansi(weekly_view(model, 8))
    assert 0 <= view.index("Active") < view.index("Done first")


def test_help_overlay_renders():
    model = make_model(make_store())
    model.handle_key("?")
    view = render(model)
    assert "HELP" in view
    assert "cycle panes" in view


def test_help_view_box_size():
    box = help_view(20, 100).split("\n")
    assert len(box) == 20
    assert {display_width(line) for line in box} == {72}


def test_prompt_renders_as_popup_over_main_view():
    model = make_model(make_store())
    model.width = 100
    model.height = 20
    model.handle_key("a")
    view = render(model)
    plain = strip_ansi(view)
    assert "LAZYTASK" in plain
    assert "ADD" in plain
    assert "enter apply" in plain
    assert "pane:list" in plain
    assert len(view.split("\n")) == model.height
    popup_rows = [line for line in view.split("\n") if " ADD " in strip_ansi(line)]
    assert len(popup_rows) == 1
    assert strip_ansi(cut(popup_rows[0], 0, 1)).strip() != ""
    assert_view_width(view, model.width)


def test_search_prompt_shows_hints():
    store = make_store()
    store.create(TaskInput(title="Tagged", start=Start.ANYTIME, tags=["urgent"]))
    model = make_model(store)
    model.width = 100
    model.height = 30
    model.handle_key("/")
    for char in "urg":
        model.handle_key(char)
    plain = strip_ansi(render(model))
    assert "SEARCH" in plain
    assert "#urgent" in plain


def test_wip_row_toggles():
    store = make_store()
    task = store.create(TaskInput(title="Focus task", start=Start.INBOX, project="Work"))
    model = make_model(store)
    model.handle_key("w")
    assert store.get(task.id).wip
    view = strip_ansi(render(model))
    assert "WIP Focus task" in view
    assert ">Work" in view
    model.handle_key("w")
    assert "WIP none" in strip_ansi(render(model))


@pytest.mark.parametrize(
    "kind",
    [
        ViewKind.INBOX,
        ViewKind.TODAY,
        ViewKind.WEEKLY,
        ViewKind.ANYTIME,
        ViewKind.SOMEDAY,
        ViewKind.LOGBOOK,
    ],
)
def test_wip_row_appears_in_fixed_views_and_preserves_height(kind):
    model = make_model(make_store())
    model.width = 100
    model.height = 18
    model.view = kind
    view = render(model)
    assert "WIP none" in strip_ansi(view)
    assert len(view.split("\n")) == model.height


def test_weekly_view_does_not_collapse_japanese_task():
    store = make_store()
    store.create(TaskInput(title="買い物をする", start=Start.DATE, start_date="2026-05-04"))
    model = make_model(store)
    model.view = ViewKind.WEEKLY
    model.width = 80
    view = strip_ansi(weekly_view(model, 0))
    assert "買い物" in view
    assert "> [ ] ..." not in view
    assert "  [ ] ..." not in view


def test_view_uses_available_height():
    model = make_model(make_store())
    model.height = 18
    assert len(render(model).split("\n")) == 18


def test_today_view_does_not_exceed_available_height():
    store = make_store()
    store.create(TaskInput(title="Today task", start=Start.DATE, start_date="2026-05-04"))
    model = make_model(store)
    model.view = ViewKind.TODAY
    model.width = 100
    model.height = 18
    view = render(model)
    assert len(view.split("\n")) == 18
    assert "Today task" in strip_ansi(view)
    assert_view_width(view, model.width)


def test_three_pane_view_renders_nav_list_and_detail():
    store = make_store()
    store.create(
        TaskInput(
            title="Inspect layout",
            start=Start.INBOX,
            project="Ops",
            area="Work",
            tags=["urgent"],
            deadline="2026-05-05",
        )
    )
    model = make_model(store)
    model.width = 130
    model.height = 24
    view = strip_ansi(render(model))
    for want in ["Inbox", "Weekly", "Inspect layout", "DETAIL", "project: Ops", "tags: urgent"]:
        assert want in view


def test_narrow_view_omits_detail_pane():
    store = make_store()
    store.create(TaskInput(title="Narrow task", start=Start.INBOX, project="Hidden"))
    model = make_model(store)
    model.width = 72
    model.height = 18
    view = strip_ansi(render(model))
    assert "Narrow task" in view
    assert "DETAIL" not in view
    assert "project: Hidden" not in view


def test_weekly_view_uses_available_height():
    store = make_store()
    store.create(TaskInput(title="Weekly task", start=Start.DATE, start_date="2026-05-04"))
    model = make_model(store)
    model.view = ViewKind.WEEKLY
    model.width = 100
    model.height = 18
    view = render(model)
    assert len(view.split("\n")) == 18
    assert "Weekly task" in strip_ansi(view)
    assert_view_width(view, model.width)


def test_weekly_headers_remain_visible_when_selected_task_scrolls():
    store = make_store()
    for _ in range(6):
        store.create(TaskInput(title="Monday task", start=Start.DATE, start_date="2026-05-04"))
    model = make_model(store)
    model.view = ViewKind.WEEKLY
    model.width = 100
    model.selected = 4
    view = strip_ansi(weekly_view(model, 5))
    assert "Mon 05-04" in view
    assert "════════" in view
    assert len(view.split("\n")) == 5


def test_weekly_view_renders_completed_task():
    store = make_store()
    task = store.create(TaskInput(title="Done this week", start=Start.ANYTIME))
    store.complete(task.id, "2026-05-06")
    model = make_model(store)
    model.view = ViewKind.WEEKLY
    model.width = 100
    view = strip_ansi(weekly_view(model, 8))
    assert "Done this" in view
    assert "[x]" in view


def test_completed_task_line_does_not_style_meta():
    line = task_line(
        Task(
            title="done task",
            start=Start.DATE,
            start_date="2026-04-28",
            deadline="2026-04-29",
            completed_at="2026-05-03",
        ),
        False,
        80,
    )
    assert "\x1b[38;5;214m" not in line
    assert strip_ansi(line) == "  [x] done task  @2026-04-28 !2026-04-29"


def test_task_line_marks_selection_and_cancellation():
    line = strip_ansi(task_line(Task(title="gone", start=Start.INBOX, canceled_at="2026-05-03"), True, 80))
    assert line == "> [-] gone  @inbox"


def test_weekly_task_line_fits_width():
    task = Task(title="A long weekly title here", start=Start.ANYTIME, deadline="2026-05-07")
    line = weekly_task_line(task, False, 19)
    assert display_width(line) <= 19
    assert strip_ansi(line).endswith("!05-07")


def test_list_view_empty_and_overflow():
    store = make_store()
    model = make_model(store)
    assert "No tasks. Press a to capture one." in strip_ansi(list_view(model, 5, 60))
    for index in range(10):
        store.create(TaskInput(title=f"Task {index}", start=Start.INBOX))
    lines = strip_ansi(list_view(model, 5, 60)).split("\n")
    assert len(lines) == 5
    assert lines[-1] == "+6 more"


def test_detail_view_without_selection():
    model = make_model(make_store())
    lines = strip_ansi(detail_view(model, 8, 60)).split("\n")
    assert lines[:2] == ["VIEW", "Inbox"]
    assert "tasks: 0" in lines


def test_header_view_counts_tasks():
    store = make_store()
    store.create(TaskInput(title="One", start=Start.INBOX))
    header = strip_ansi(header_view(make_model(store)))
    assert "VIEW [INBOX]" in header
    assert "TARGETS 01" in header


def test_overlay_prompt_keeps_size():
    base = "\n".join("x" * 30 for _ in range(10))
    result = overlay_prompt(base, "POP\nUP", 30, 10)
    lines = result.split("\n")
    assert len(lines) == 10
    assert all(display_width(line) == 30 for line in lines)
    assert "POP" in result


def test_task_meta():
    task = Task(
        start=Start.DATE,
        start_date="2026-05-04",
        deadline="2026-05-05",
        project="Home",
        area="Life",
        tags=["a", "b"],
    )
    assert task_meta(task) == "@2026-05-04 !2026-05-05 >Home /Life #a #b"
    assert compact_wip_meta(task) == "@2026-05-04 !2026-05-05 >Home #a"


def test_compact_weekly_meta_priority():
    assert compact_weekly_meta(Task(deadline="2026-05-07", tags=["a"])) == "!05-07"
    assert compact_weekly_meta(Task(tags=["a"], project="P")) == "#a"
    assert compact_weekly_meta(Task(project="P")) == ">P"
    assert compact_weekly_meta(Task()) == ""


def test_task_status_and_start():
    assert task_status(Task(deleted=True)) == "deleted"
    assert task_status(Task(completed_at="2026-05-04")) == "completed 2026-05-04"
    assert task_status(Task(canceled_at="2026-05-04")) == "canceled 2026-05-04"
    assert task_status(Task()) == "active"
    assert task_start(Task(start="")) == "inbox"
    assert task_start(Task(start=Start.DATE, start_date="2026-05-04")) == "2026-05-04"
    assert task_start(Task(start=Start.SOMEDAY)) == "someday"


def test_format_task_time():
    assert format_task_time(None) == "-"
    assert format_task_time(datetime(2026, 5, 4, 9, 30)) == "2026-05-04 09:30"