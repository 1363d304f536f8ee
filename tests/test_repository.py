"""
Tests des repositories (réconciliation avec les backends)
"""

from datetime import datetime, timedelta, timezone

import pytest

from taskpilot.schemas.rows import RolloverRow, SelectionRow
from taskpilot.schemas.task import Task, CompletedTask
from taskpilot.services.backend import JsonFileBackend
from taskpilot.services.repository import (
    TaskRepository,
    TodaySelectionRepository,
    RolloverRepository,
    HighlightRepository,
    rollover_candidates,
)

BASE = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


def make_task(task_id, minutes=0, **fields):
    return Task(id=task_id, text=fields.pop("text", f"Task {task_id}"), created_at=BASE + timedelta(minutes=minutes), **fields)


def make_done(task_id, minutes=0):
    moment = BASE + timedelta(minutes=minutes)
    return CompletedTask(
        id=task_id, text=f"Done {task_id}", created_at=BASE,
        completed_at=moment, completed_date=moment.date().isoformat(),
    )


@pytest.fixture(params=["memory", "sqlite", "json"])
def any_backend(request, backend, tmp_path):
    if request.param == "memory":
        return backend
    if request.param == "sqlite":
        return request.getfixturevalue("sqlite_backend")
    return JsonFileBackend(tmp_path / "store.json")


# ============ TÂCHES ============

def test_replace_all_converges(any_backend):
    repo = TaskRepository(any_backend)
    first = [make_task(1), make_task(2, 1, parent_id=1, parent_text="Task 1", level=1), make_task(3, 2)]
    assert repo.replace_all("tasks", first) is True

    second = [make_task(1, text="Renamed"), make_task(4, 3, jira_ticket="X-9")]
    assert repo.replace_all("tasks", second) is True

    loaded = repo.load_tasks()
    assert [t.id for t in loaded] == [1, 4]
    assert loaded[0].text == "Renamed"
    assert loaded[1].jira_ticket == "X-9"
    assert loaded[0].created_at == BASE


def test_replace_all_with_empty_snapshot_clears(any_backend):
    repo = TaskRepository(any_backend)
    repo.replace_all("tasks", [make_task(1), make_task(2)])
    assert repo.replace_all("tasks", []) is True
    assert repo.load_tasks() == []


def test_completed_roundtrip_newest_first(any_backend):
    repo = TaskRepository(any_backend)
    repo.replace_all("completed_tasks", [make_done(1, 0), make_done(2, 30)])

    loaded = repo.load_completed()
    assert [t.id for t in loaded] == [2, 1]
    assert loaded[0].completed_date == "2025-06-01"
    assert loaded[0].completed_at.tzinfo is not None


def test_collections_are_independent(any_backend):
    repo = TaskRepository(any_backend)
    repo.replace_all("tasks", [make_task(1)])
    repo.replace_all("completed_tasks", [make_done(2)])

    assert [t.id for t in repo.load_tasks()] == [1]
    assert [t.id for t in repo.load_completed()] == [2]


def test_unknown_collection_raises(backend):
    with pytest.raises(ValueError):
        TaskRepository(backend).replace_all("nope", [])


def test_failing_backend_degrades(failing_backend):
    repo = TaskRepository(failing_backend)
    assert repo.replace_all("tasks", [make_task(1)]) is False
    assert repo.load_tasks() == []
    assert TodaySelectionRepository(failing_backend).replace("2025-06-01", [1]) is False
    assert TodaySelectionRepository(failing_backend).history() == []
    assert RolloverRepository(failing_backend).load() == {}
    assert HighlightRepository(failing_backend).get("2025-06-01") is None
    assert HighlightRepository(failing_backend).set("2025-06-01", 1) is False


def test_json_backend_survives_reopen(tmp_path):
    path = tmp_path / "nested" / "store.json"
    TaskRepository(JsonFileBackend(path)).replace_all("tasks", [make_task(7, text="persist me")])

    reopened = TaskRepository(JsonFileBackend(path)).load_tasks()
    assert [(t.id, t.text) for t in reopened] == [(7, "persist me")]
    assert reopened[0].created_at == BASE


# ============ SÉLECTION / HIGHLIGHT / ROLLOVER ============

def test_selection_replace_is_per_day(any_backend):
    repo = TodaySelectionRepository(any_backend)
    repo.replace("2025-05-31", [1, 2])
    repo.replace("2025-06-01", [3, 3, 4])
    repo.replace("2025-06-01", [4])

    assert sorted(repo.load("2025-05-31")) == [1, 2]
    assert repo.load("2025-06-01") == [4]


def test_highlight_set_get_clear(any_backend):
    repo = HighlightRepository(any_backend)
    repo.set("2025-06-01", 5)
    repo.set("2025-06-01", 6)
    repo.set("2025-06-02", 7)

    assert repo.get("2025-06-01") == 6
    assert repo.set("2025-06-01", None) is True
    assert repo.get("2025-06-01") is None
    assert repo.get("2025-06-02") == 7


def test_dismiss_upserts_status(any_backend):
    repo = RolloverRepository(any_backend)
    repo.dismiss(3, "2025-05-30", BASE)
    repo.dismiss(3, "2025-05-31", BASE)

    statuses = repo.load()
    assert list(statuses) == [3]
    assert statuses[3].is_active is False
    assert statuses[3].original_selected_date == "2025-05-31"
    assert statuses[3].rollover_reason == "dismissed"


def test_rollover_candidates():
    history = [
        SelectionRow(task_id=1, selected_date="2025-05-30"),
        SelectionRow(task_id=1, selected_date="2025-05-31"),
        SelectionRow(task_id=2, selected_date="2025-05-31"),  # terminée
        SelectionRow(task_id=3, selected_date="2025-05-31"),  # retirée
        SelectionRow(task_id=4, selected_date="2025-06-01"),  # aujourd'hui
        SelectionRow(task_id=5, selected_date="2025-05-29"),  # retirée puis re-sélectionnée
        SelectionRow(task_id=5, selected_date="2025-05-31"),
    ]
    statuses = {
        3: RolloverRow(task_id=3, original_selected_date="2025-05-31", is_active=False),
        5: RolloverRow(task_id=5, original_selected_date="2025-05-29", is_active=False),
    }

    result = rollover_candidates(history, "2025-06-01", {1, 3, 4, 5}, statuses)

    assert result == {1: "2025-05-31", 5: "2025-05-31"}
