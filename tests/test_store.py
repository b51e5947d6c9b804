import json
from datetime import datetime, timezone

import pytest

from lazytask.event import Event, EventLog, EventLogError, EventType
from lazytask.store import CompactResult, Store, StoreError, compact
from lazytask.task import Start, Task, TaskError, TaskInput, parse_local_date
from lazytask.views import logbook_tasks


def fixed_clock(date):
    return lambda: parse_local_date(date)


def test_event_log_replays_task_lifecycle(tmp_path):
    path = tmp_path / "lazytask.jsonl"
    store = Store.open(EventLog(path))
    store.set_clock(fixed_clock("2026-05-04"))
    task = store.create(
        TaskInput(
            title="Plan week",
            start=Start.DATE,
            start_date="2026-05-04",
            project="Work",
            tags=["planning", "planning"],
        )
    )
    store.complete(task.id, "2026-05-05")

    reloaded = Store.open(EventLog(path))
    got = reloaded.get(task.id)
    assert got is not None
    assert got.completed_at == "2026-05-05"
    assert got.tags == ["planning"]


def test_event_log_reports_malformed_json_line(tmp_path):
    path = tmp_path / "lazytask.jsonl"
    path.write_text("{bad json}\n")
    with pytest.raises(EventLogError):
        Store.open(EventLog(path))


def test_event_log_reports_old_task_payload(tmp_path):
    path = tmp_path / "lazytask.jsonl"
    old = (
        '{"eventID":"evt_old","type":"task_created","taskID":"task_old",'
        '"timestamp":"2026-05-04T00:00:00Z","payload":{"id":"task_old","title":"Old",'
        '"when":"2026-05-04","createdAt":"2026-05-04T00:00:00Z","updatedAt":"2026-05-04T00:00:00Z"}}\n'
    )
    path.write_text(old)
    with pytest.raises(StoreError, match="unsupported old task payload"):
        Store.open(EventLog(path))


def test_compact_preserves_current_projection(tmp_path):
    path = tmp_path / "lazytask.jsonl"
    log = EventLog(path)
    store = Store.open(log)
    store.set_clock(fixed_clock("2026-05-04"))

    active = store.create(TaskInput(title="Draft plan", start=Start.INBOX, project="Work"))
    active = store.update(
        active.id,
        TaskInput(
            title="Plan week",
            start=Start.DATE,
            start_date="2026-05-05",
            project="Work",
            tags=["planning"],
        ),
    )
    store.complete(active.id, "2026-05-05")
    store.uncomplete(active.id)
    store.set_wip(active.id)

    done = store.create(TaskInput(title="Done task", start=Start.ANYTIME))
    store.complete(done.id, "2026-05-04")

    canceled = store.create(TaskInput(title="Canceled task", start=Start.SOMEDAY))
    store.cancel(canceled.id, "2026-05-04")

    deleted = store.create(TaskInput(title="Deleted task", start=Start.INBOX))
    store.delete(deleted.id)

    before_raw = path.read_bytes()
    before_events = log.load()
    before_list = store.list()
    before_tasks = {task.id: store.get(task.id) for task in before_list}

    result = compact(log)
    assert len(before_events) == 11
    assert result == CompactResult(before=len(before_events), after=3)
    assert (tmp_path / "lazytask.jsonl.bak").read_bytes() == before_raw

    after_events = log.load()
    assert len(after_events) == 3
    for event in after_events:
        assert event.type == EventType.TASK_CREATED
        assert event.task_id == Task.from_dict(event.payload_dict()).id

    reloaded = Store.open(log)
    assert reloaded.get(deleted.id) is None
    assert reloaded.list() == before_list
    assert {task.id: reloaded.get(task.id) for task in before_list} == before_tasks

    got_active = reloaded.get(active.id)
    assert got_active is not None
    assert got_active.wip is True
    assert len(logbook_tasks(reloaded.list())) == 2


def test_compact_rejects_malformed_log_without_replacing_file(tmp_path):
    path = tmp_path / "lazytask.jsonl"
    original = b"{bad json}\n"
    path.write_bytes(original)
    with pytest.raises(EventLogError):
        compact(EventLog(path))
    assert path.read_bytes() == original
    assert not (tmp_path / "lazytask.jsonl.bak").exists()


def test_compact_missing_log_creates_empty_file(tmp_path):
    path = tmp_path / "nested" / "lazytask.jsonl"
    result = compact(EventLog(path))
    assert result == CompactResult(before=0, after=0)
    assert path.read_bytes() == b""


def test_delete_uses_tombstone_projection():
    store = Store()
    task = store.create(TaskInput(title="Remove me", start=Start.DATE, start_date="2026-05-04"))
    store.delete(task.id)
    assert store.get(task.id) is None
    assert store.list() == []


def test_wip_replay_maintains_single_active_task():
    store = Store()
    first = store.create(TaskInput(title="First", start=Start.INBOX))
    second = store.create(TaskInput(title="Second", start=Start.ANYTIME))

    store.set_wip(first.id)
    assert store.get(first.id).wip is True

    store.set_wip(second.id)
    assert store.get(first.id).wip is False
    assert store.get(second.id).wip is True

    store.clear_wip(second.id)
    assert store.get(second.id).wip is False


@pytest.mark.parametrize(
    "run",
    [
        lambda store, task_id: store.complete(task_id, "2026-05-04"),
        lambda store, task_id: store.cancel(task_id, "2026-05-04"),
        lambda store, task_id: store.delete(task_id),
    ],
    ids=["complete", "cancel", "delete"],
)
def test_wip_clears_on_terminal_task_events(run):
    store = Store()
    task = store.create(TaskInput(title="Marked", start=Start.INBOX))
    other = store.create(TaskInput(title="Other", start=Start.INBOX))
    store.set_wip(task.id)
    run(store, task.id)
    assert [t.id for t in store.list() if t.wip] == []
    got = store.get(task.id)
    assert got is None or got.wip is False
    assert store.get(other.id).wip is False


def test_set_wip_rejects_inactive_task():
    store = Store()
    task = store.create(TaskInput(title="Done", start=Start.INBOX))
    store.complete(task.id, "2026-05-04")
    with pytest.raises(StoreError, match="task is not active"):
        store.set_wip(task.id)


def test_old_task_payload_without_wip_replays():
    moment = datetime(2026, 5, 4, tzinfo=timezone.utc)
    payload = {
        "id": "task_old",
        "title": "Old task",
        "start": "inbox",
        "createdAt": "2026-05-04T00:00:00Z",
        "updatedAt": "2026-05-04T00:00:00Z",
    }
    store = Store(
        events=[
            Event(
                event_id="evt_old",
                type=EventType.TASK_CREATED,
                task_id="task_old",
                timestamp=moment,
                payload=json.dumps(payload),
            )
        ]
    )
    task = store.get("task_old")
    assert task is not None
    assert task.wip is False
    assert task.created_at == moment


def test_failed_event_is_not_logged(tmp_path):
    path = tmp_path / "lazytask.jsonl"
    store = Store.open(EventLog(path))
    store.create(TaskInput(title="Kept"))
    before = path.read_bytes()
    with pytest.raises(StoreError, match="task not found: missing"):
        store.complete("missing", "2026-05-04")
    assert path.read_bytes() == before


def test_update_rejects_deleted_task():
    store = Store()
    task = store.create(TaskInput(title="Gone"))
    store.delete(task.id)
    with pytest.raises(StoreError, match="task not found"):
        store.update(task.id, TaskInput(title="Back"))


def test_create_rejects_invalid_input():
    store = Store()
    with pytest.raises(TaskError, match="task title is required"):
        store.create(TaskInput(title="   "))
    assert store.list() == []


def test_complete_rejects_bad_date():
    store = Store()
    task = store.create(TaskInput(title="Dated"))
    with pytest.raises(TaskError, match="completedAt must use YYYY-MM-DD"):
        store.complete(task.id, "05-04-2026")
    assert store.get(task.id).completed_at == ""


def test_complete_defaults_to_clock_day():
    store = Store(clock=fixed_clock("2026-05-04"))
    task = store.create(TaskInput(title="Today"))
    store.complete(task.id)
    assert store.get(task.id).completed_at == "2026-05-04"


def test_list_orders_dated_tasks_first():
    store = Store(clock=fixed_clock("2026-05-04"))
    undated = store.create(TaskInput(title="Undated"))
    later = store.create(TaskInput(title="Later", start=Start.DATE, start_date="2026-05-09"))
    sooner = store.create(TaskInput(title="Sooner", start=Start.DATE, start_date="2026-05-05"))
    assert [task.id for task in store.list()] == [sooner.id, later.id, undated.id]


def test_unknown_event_type_is_rejected():
    event = Event(
        event_id="evt_1",
        type="task_exploded",
        task_id="task_1",
        timestamp=datetime(2026, 5, 4, tzinfo=timezone.utc),
    )
    with pytest.raises(StoreError, match="unknown event type: task_exploded"):
        Store(events=[event])