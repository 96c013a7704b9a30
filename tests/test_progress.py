from datetime import date, datetime

import pytest

from conftest import make_task
from exceptions import EmptyDayError, NotFoundError
from models import StudySession
from progress import ProgressLedger, validate_task
from storage import JsonFileStore, MemoryStore


def _assert_completed_matches_tasks(log):
    assert log.completed == all(t.completed for t in log.tasks)
    assert log.total_studied_hours == pytest.approx(sum(t.studied_hours for t in log.tasks))


def test_initialize_day_creates_fresh_log(ledger, store):
    tasks = [make_task("t1", hours=1.5), make_task("t2", "Physics", 2.0)]
    tasks[0].studied_hours = 1.0
    tasks[0].completed = True

    log = ledger.initialize_day("2026-03-02", tasks)

    assert log.date == "2026-03-02"
    assert [t.id for t in log.tasks] == ["t1", "t2"]
    assert all(t.studied_hours == 0 and not t.completed for t in log.tasks)
    assert log.total_planned_hours == pytest.approx(3.5)
    assert log.total_studied_hours == 0
    assert log.completed is False
    assert "2026-03-02" in store.payload
    _assert_completed_matches_tasks(log)


def test_initialize_day_is_idempotent(ledger, store):
    first = ledger.initialize_day("D1", [make_task("t1")])
    second = ledger.initialize_day("D1", [make_task("other", hours=2.0), make_task("t3")])

    assert second == first
    assert [t.id for t in ledger.get_day("D1").tasks] == ["t1"]
    assert store.saves == 1


def test_initialize_day_without_tasks_fails(ledger, store):
    with pytest.raises(EmptyDayError) as excinfo:
        ledger.initialize_day("D1", [])

    assert excinfo.value.date_key == "D1"
    assert ledger.get_day("D1") is None
    assert store.saves == 0


def test_invalid_tasks_are_dropped():
    ledger = ProgressLedger(MemoryStore())
    payload = [
        {"id": "", "subject": "Math", "planned_hours": 1},
        {"id": "t2", "subject": "  ", "planned_hours": 1},
        {"id": "t3", "subject": "Math", "planned_hours": 0},
        {"id": "t4", "subject": "Math", "planned_hours": "abc"},
        None,
        {"id": "ok", "subject": "Math", "planned_hours": 0.2, "topic": 5, "priority": "urgent"},
    ]

    log = ledger.initialize_day("D1", payload)

    assert [t.id for t in log.tasks] == ["ok"]
    task = log.tasks[0]
    assert task.planned_hours == 0.5
    assert task.topic is None
    assert task.priority == "medium"


def test_all_invalid_tasks_raise_empty_day(ledger):
    with pytest.raises(EmptyDayError):
        ledger.initialize_day("D1", [{"id": "x", "subject": "", "planned_hours": 1}])
    assert ledger.get_day("D1") is None


def test_existing_empty_entry_is_replaced():
    store = MemoryStore({"D1": {"date": "D1", "tasks": []}})
    ledger = ProgressLedger(store)

    log = ledger.initialize_day("D1", [make_task("t1")])

    assert [t.id for t in log.tasks] == ["t1"]


def test_validate_task_accepts_models_and_mappings():
    assert validate_task(make_task("a")).id == "a"
    assert validate_task({"id": 7, "subject": "Art", "planned_hours": "1.5"}).planned_hours == 1.5


def test_update_task_progress_clamps_and_derives_completion(ledger):
    ledger.initialize_day("D1", [make_task("t1", hours=1.0), make_task("t2", hours=2.0)])

    log = ledger.update_task_progress("D1", "t1", 0.4)
    assert log.tasks[0].studied_hours == pytest.approx(0.4)
    assert log.tasks[0].completed is False
    _assert_completed_matches_tasks(log)

    log = ledger.update_task_progress("D1", "t1", 99)
    assert log.tasks[0].studied_hours == 1.0
    assert log.tasks[0].completed is True
    assert log.completed is False
    _assert_completed_matches_tasks(log)

    log = ledger.update_task_progress("D1", "t2", 5, completed=True)
    assert log.tasks[1].studied_hours == 2.0
    assert log.completed is True
    assert log.total_studied_hours == pytest.approx(3.0)


def test_update_task_progress_explicit_incomplete(ledger):
    ledger.initialize_day("D1", [make_task("t1", hours=1.0)])

    log = ledger.update_task_progress("D1", "t1", 1.0, completed=False)

    assert log.tasks[0].studied_hours == 1.0
    assert log.tasks[0].completed is False
    assert log.completed is False


@pytest.mark.parametrize("hours", [0, 0.5, 1.0, 3.0, 1e9])
def test_studied_hours_never_exceed_planned(ledger, hours):
    ledger.initialize_day("D1", [make_task("t1", hours=1.0)])
    log = ledger.update_task_progress("D1", "t1", hours)
    assert log.tasks[0].studied_hours <= log.tasks[0].planned_hours


def test_unknown_date_or_task_raises_without_mutation(ledger, store):
    ledger.initialize_day("D1", [make_task("t1")])
    saves = store.saves

    with pytest.raises(NotFoundError):
        ledger.update_task_progress("D2", "t1", 1)
    with pytest.raises(NotFoundError) as excinfo:
        ledger.toggle_task_completion("D1", "nope")

    assert excinfo.value.task_id == "nope"
    assert store.saves == saves
    assert ledger.get_day("D1").tasks[0].studied_hours == 0


def test_toggle_is_its_own_inverse(ledger):
    ledger.initialize_day("D1", [make_task("t1", hours=2.0), make_task("t2", hours=1.0)])
    ledger.update_task_progress("D1", "t1", 0.5)

    log = ledger.toggle_task_completion("D1", "t1")
    assert log.tasks[0].completed is True
    assert log.tasks[0].studied_hours == 2.0
    _assert_completed_matches_tasks(log)

    log = ledger.toggle_task_completion("D1", "t1")
    assert log.tasks[0].completed is False
    # un-completing keeps the hours
    assert log.tasks[0].studied_hours == 2.0
    _assert_completed_matches_tasks(log)


def test_day_completes_when_every_task_toggled(ledger):
    ledger.initialize_day("D1", [make_task("t1"), make_task("t2")])

    assert ledger.toggle_task_completion("D1", "t1").completed is False
    log = ledger.toggle_task_completion("D1", "t2")
    assert log.completed is True
    assert log.total_studied_hours == pytest.approx(2.0)


def test_returned_logs_are_not_changed_by_later_mutations(ledger):
    before = ledger.initialize_day("D1", [make_task("t1")])
    ledger.toggle_task_completion("D1", "t1")

    assert before.tasks[0].completed is False
    assert ledger.get_day("D1").tasks[0].completed is True


def test_failed_save_leaves_ledger_unchanged(ledger, store, monkeypatch):
    ledger.initialize_day("D1", [make_task("t1")])

    def boom(payload):
        raise OSError("disk full")

    monkeypatch.setattr(store, "save", boom)
    with pytest.raises(OSError):
        ledger.toggle_task_completion("D1", "t1")

    assert ledger.get_day("D1").tasks[0].completed is False


def test_weekly_totals_sum_seven_days(ledger):
    ledger.initialize_day("2026-03-02", [make_task("a", hours=2.0)])
    ledger.initialize_day("2026-03-08", [make_task("b", hours=1.0)])
    ledger.initialize_day("2026-03-09", [make_task("c", hours=5.0)])
    ledger.toggle_task_completion("2026-03-02", "a")

    totals = ledger.weekly_totals(date(2026, 3, 2))

    assert totals == {"total_planned": 3.0, "total_studied": 2.0}
    assert ledger.weekly_totals(date(2025, 1, 1)) == {"total_planned": 0.0, "total_studied": 0.0}


def test_ledger_survives_restart(tmp_path):
    path = tmp_path / "progress.json"
    ledger = ProgressLedger(JsonFileStore(path))
    ledger.initialize_day("D1", [make_task("t1", hours=1.0)])
    ledger.update_task_progress("D1", "t1", 0.75)

    reloaded = ProgressLedger(JsonFileStore(path))

    log = reloaded.get_day("D1")
    assert log.tasks[0].studied_hours == 0.75
    assert log.total_studied_hours == 0.75


def test_unreadable_entries_are_skipped_on_load():
    store = MemoryStore({"bad": {"tasks": "nope"}, "D1": {"date": "D1", "tasks": []}})
    ledger = ProgressLedger(store)

    assert ledger.get_day("bad") is None
    assert ledger.get_day("D1") is not None


def test_update_from_session_adds_hours(ledger):
    ledger.initialize_day("2026-03-02", [make_task("t1", hours=1.0)])
    ledger.update_task_progress("2026-03-02", "t1", 0.25)
    session = StudySession(
        id="s1",
        subject="Math",
        start_time=datetime(2026, 3, 2, 9, 0),
        end_time=datetime(2026, 3, 2, 9, 30),
        duration=30,
        task_id="t1",
    )

    log = ledger.update_from_session(session)

    assert log.tasks[0].studied_hours == pytest.approx(0.75)
    assert log.tasks[0].completed is False


def test_update_from_session_ignores_open_or_untracked_sessions(ledger):
    open_session = StudySession(id="s1", subject="Math", start_time=datetime(2026, 3, 2, 9), task_id="t1")
    free_session = StudySession(
        id="s2", subject="Math", start_time=datetime(2026, 3, 2, 9), end_time=datetime(2026, 3, 2, 10), duration=60,
    )

    assert ledger.update_from_session(open_session) is None
    assert ledger.update_from_session(free_session) is None


def test_clear_days(ledger, store):
    ledger.initialize_day("D1", [make_task("t1")])
    ledger.initialize_day("D2", [make_task("t2")])

    assert ledger.clear_days(["D1", "D9"]) == 1
    assert ledger.get_day("D1") is None
    assert "D1" not in store.payload
    assert ledger.clear_days([]) == 0


def test_update_from_session_prefers_the_sessions_day(ledger):
    ledger.initialize_day("2026-03-03", [make_task("t1", hours=1.0)])
    session = StudySession(
        id="s1",
        subject="Math",
        start_time=datetime(2026, 3, 2, 21, 0),
        end_time=datetime(2026, 3, 2, 21, 30),
        duration=30,
        task_id="t1",
        date_key="2026-03-03",
    )

    log = ledger.update_from_session(session)

    assert log.date == "2026-03-03"
    assert log.tasks[0].studied_hours == pytest.approx(0.5)


def test_handed_out_logs_are_copies(ledger, store):
    first = ledger.initialize_day("D1", [make_task("t1")])
    first.tasks[0].completed = True
    again = ledger.initialize_day("D1", [make_task("t2")])
    again.tasks.clear()
    ledger.get_day("D1").tasks[0].studied_hours = 1.0
    ledger.logs["D1"].completed = True

    log = ledger.get_day("D1")
    assert [t.id for t in log.tasks] == ["t1"]
    assert log.tasks[0].completed is False
    assert log.tasks[0].studied_hours == 0
    assert log.completed is False
    assert store.payload["D1"]["tasks"][0]["studied_hours"] == 0
