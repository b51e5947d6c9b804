# lazytask

lazytask is a keyboard-driven task manager for the terminal. Every change is
appended to a JSON Lines event log, and the current tasks are rebuilt from that
log when the program starts.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Usage

Open the default log, `lazytask/lazytask.jsonl` inside your user
configuration directory (as reported by `platformdirs.user_config_dir()`):

```
lazytask
```

Open a specific log file:

```
lazytask path/to/tasks.jsonl
```

Shrink a log to one `task_created` event per task that has not been deleted.
The original file is first copied to `<path>.bak`, and the new log replaces
the old one atomically:

```
lazytask compact
lazytask compact path/to/tasks.jsonl
```

The command prints `compacted N events to M events`. It exits with status 1 on
an unreadable or invalid log (leaving the file untouched) and 2 on extra
arguments.

## Screen

The screen has a header with the current view and its task count, a row
showing the work-in-progress (WIP) task, and three panes: navigation, the task
list and, on terminals at least 100 columns wide, a detail pane for the
selected task. Completed and canceled tasks are listed below active ones.

## Views

- **Inbox**: active tasks whose start is `inbox`
- **Today**: active tasks starting or due today, plus tasks completed or
  canceled today
- **Weekly**: Monday to Friday of the current week, one column per day; a task
  appears on the first day matching its start date, deadline, completion or
  cancellation date
- **Anytime** and **Someday**: active tasks with those starts
- **Logbook**: completed and canceled tasks
- **Tags**, **Projects**, **Areas**: open a submenu and pick a value to filter
  by it

## Keys

| Key                 | Action                                         |
|---------------------|------------------------------------------------|
| `0`                 | jump to the task list pane                     |
| `1` / `2` / `3`     | jump to Inbox, Today, Weekly                   |
| `tab` / `shift+tab` | cycle panes                                    |
| `h` / `l`           | move between panes (`l` opens a nav submenu)   |
| `j` / `k`           | move selection                                 |
| `enter`             | select a nav view or filter                    |
| `a`                 | quick add                                      |
| `/`                 | search                                         |
| `:`                 | command palette                                |
| `e`                 | edit the selected task                         |
| `w`                 | toggle the selected task as WIP                |
| `t`                 | schedule the selected task for today           |
| `c`                 | copy the selected task's title                 |
| `space`             | complete or reopen the selected task           |
| `d`                 | delete the selected task                       |
| `?`                 | help                                           |
| `esc`               | close an overlay or return the nav to its root |
| `q`                 | quit                                           |

Task keys act only while the list pane has focus. Only one task can be WIP at
a time, and only an active one.

## Quick-add syntax

Words with these prefixes set fields; everything else becomes the title:

- `#tag` adds a tag
- `>Project` sets the project
- `/Area` sets the area
- `!2026-05-05` sets the deadline
- `@today`, `@tomorrow`, `@anytime`, `@someday`, `@inbox` (or `@clear`), or
  `@2026-05-04` sets the start

```
Buy groceries #errand @today >Home /Life !2026-05-05
```

A task added without a start takes one from the current view: Today schedules
it for today, Anytime and Someday set that start, and a tag, project or area
filter adds that value.

## Search

The `/` prompt accepts `#tag`, `>project` or `/area` to filter, a view name
(`inbox`, `today`, `weekly` or `week`, `anytime`, `someday`, `logbook`), or any
other text to search titles, notes, projects, areas, tags and dates.

## Commands

The `:` palette accepts:

- `add <quick-add text>`
- `update <quick-add text>` replaces the selected task's fields
- `tag a, b` and `untag a, b`
- `move <project>` (an inbox task moves to anytime)
- `area <area>`
- `when <@today | date | ...>`
- `deadline <date | clear>`
- `done`, `undone`, `cancel`, `delete`

All but `add` act on the selected task.

## Limitations

- Copying a title (`c`) asks the terminal to set the clipboard with an OSC 52
  escape sequence; terminals that do not support it leave the clipboard
  unchanged, and no error is shown.
- There is no mouse support, and there is no way to edit notes from the
  console; notes can only be set through the library.

## As a library

```python
from lazytask.event import EventLog
from lazytask.store import Store, compact
from lazytask.task import Start, TaskInput
from lazytask.views import today_tasks

log = EventLog("tasks.jsonl")
store = Store.open(log)
task = store.create(TaskInput(title="Plan week", start=Start.ANYTIME, notes="Draft"))
store.complete(task.id, "2026-05-04")
print([t.title for t in store.list()])

result = compact(log)
print(result.before, result.after)
```

The modules are:

- `lazytask.task`: `Task`, `TaskInput`, `Start` and date and tag helpers
- `lazytask.parser`: `parse_quick_task`, `apply_when`, `apply_deadline`,
  `encode_quick_task`
- `lazytask.views`: view selections such as `inbox_tasks`, `today_tasks`,
  `work_week` and `filtered_tasks`
- `lazytask.event`: `Event`, `EventType` and the `EventLog` file
- `lazytask.store`: `Store` and `compact`
- `lazytask.model`, `lazytask.render`, `lazytask.text`, `lazytask.app`: the
  console's state, drawing, text layout and terminal loop
- `lazytask.cli`: the `lazytask` command