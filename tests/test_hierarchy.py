"""
Tests de l'ordre hiérarchique et des vues dérivées
"""

from datetime import datetime, timedelta, timezone

from taskpilot.schemas.task import Task, CompletedTask
from taskpilot.services.hierarchy import (
    order_tasks,
    project_today,
    filter_and_order,
    filter_completed,
)

BASE = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


def make_task(task_id, text=None, parent=None, minutes=0):
    return Task(
        id=task_id,
        text=text or f"Task {task_id}",
        parent_id=parent.id if parent else None,
        parent_text=parent.text if parent else None,
        level=(parent.level + 1) if parent else 0,
        created_at=BASE + timedelta(minutes=minutes),
    )


def assert_topological(ordered):
    position = {t.id: i for i, t in enumerate(ordered)}
    for task in ordered:
        if task.parent_id in position:
            assert position[task.parent_id] < position[task.id]


# ============ ORDER ============

def test_parents_before_children_siblings_by_created_at():
    root_b = make_task(2, "B", minutes=5)
    root_a = make_task(1, "A", minutes=0)
    child_late = make_task(4, "A2", parent=root_a, minutes=10)
    child_early = make_task(3, "A1", parent=root_a, minutes=1)
    grandchild = make_task(5, "A1x", parent=child_early, minutes=2)

    ordered = order_tasks([child_late, root_b, grandchild, child_early, root_a])

    assert [t.text for t in ordered] == ["A", "A1", "A1x", "A2", "B"]
    assert_topological(ordered)


def test_ties_keep_input_order():
    first = make_task(10, "first")
    second = make_task(11, "second")
    assert [t.id for t in order_tasks([second, first])] == [11, 10]


def test_orphan_is_included_once():
    root = make_task(1)
    orphan = Task(id=2, text="orphan", parent_id=999, parent_text="gone", level=1, created_at=BASE)
    orphan_child = make_task(3, parent=orphan, minutes=1)

    ordered = order_tasks([orphan, orphan_child, root])

    # racines d'abord, puis l'orphelin avec ses enfants
    assert [t.id for t in ordered] == [1, 2, 3]
    assert_topological(ordered)


def test_cycle_does_not_loop():
    a = Task(id=1, text="a", parent_id=2, created_at=BASE)
    b = Task(id=2, text="b", parent_id=1, created_at=BASE)

    ordered = order_tasks([a, b])

    assert sorted(t.id for t in ordered) == [1, 2]


def test_order_does_not_mutate_input():
    tasks = [make_task(2, minutes=2), make_task(1, minutes=1)]
    order_tasks(tasks)
    assert [t.id for t in tasks] == [2, 1]


# ============ TODAY ============

def test_project_today_reroots_unselected_parent():
    root = make_task(1, "root")
    child = make_task(2, "child", parent=root, minutes=1)
    grandchild = make_task(3, "grandchild", parent=child, minutes=2)
    other = make_task(4, "other", minutes=3)

    entries = project_today([root, child, grandchild, other], [2, 3, 4, 999])

    assert [(e.task.id, e.effective_level) for e in entries] == [(2, 0), (3, 2), (4, 0)]


def test_project_today_keeps_stored_level_when_parent_selected():
    root = make_task(1)
    child = make_task(2, parent=root, minutes=1)

    entries = project_today([child, root], {1, 2})

    assert [(e.task.id, e.effective_level) for e in entries] == [(1, 0), (2, 1)]


# ============ FILTERS ============

def test_filter_matches_text_or_parent_text():
    root = make_task(1, "Release 2.0")
    child = make_task(2, "write notes", parent=root, minutes=1)
    other = make_task(3, "groceries", minutes=2)

    result = filter_and_order([other, child, root], "release")

    assert [t.id for t in result] == [1, 2]


def test_filter_empty_query_keeps_everything():
    tasks = [make_task(1), make_task(2, minutes=1)]
    assert len(filter_and_order(tasks, "")) == 2


def test_filter_completed_by_text_and_day():
    done = [
        CompletedTask(**make_task(1, "Fix login").model_dump(), completed_at=BASE, completed_date="2025-06-01"),
        CompletedTask(**make_task(2, "Fix logout").model_dump(), completed_at=BASE, completed_date="2025-06-02"),
        CompletedTask(**make_task(3, "Write doc").model_dump(), completed_at=BASE, completed_date="2025-06-01"),
    ]

    assert [t.id for t in filter_completed(done, "fix")] == [1, 2]
    assert [t.id for t in filter_completed(done, "fix", "6/1/2025")] == [1]
    assert [t.id for t in filter_completed(done, "", "2025-06-01")] == [1, 3]
