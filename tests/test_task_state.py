"""
Tests des transitions pures sur TaskState
"""

from datetime import datetime, timezone

import pytest

from taskpilot.schemas.task import TaskDraft
from taskpilot.services.task_state import (
    TaskState,
    AddTask,
    AddSubTask,
    ImportTasks,
    EditTask,
    DeleteTasks,
    DeleteAllTasks,
    CompleteTask,
    DeleteCompleted,
    ToggleToday,
    SetHighlight,
    apply_action,
)

NOW = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


def run(state, *actions):
    for action in actions:
        state = apply_action(state, action)
    return state


@pytest.fixture
def family():
    """Une racine (1) avec deux enfants (2, 3) et une autre racine (4)"""
    return run(
        TaskState(day="2025-06-01"),
        AddTask(task_id=1, text="Release", created_at=NOW),
        AddSubTask(task_id=2, parent_id=1, text="Notes", created_at=NOW),
        AddSubTask(task_id=3, parent_id=1, text="Tag", created_at=NOW),
        AddTask(task_id=4, text="Groceries", created_at=NOW),
    )


# ============ AJOUT ============

def test_add_task_strips_text():
    state = apply_action(TaskState(day="2025-06-01"), AddTask(task_id=1, text="  Write doc  ", created_at=NOW))
    assert state.tasks[0].text == "Write doc"
    assert state.tasks[0].level == 0


def test_add_blank_task_is_noop():
    state = TaskState(day="2025-06-01")
    assert apply_action(state, AddTask(task_id=1, text="   ", created_at=NOW)) is state


def test_add_subtask_sets_parent_fields(family):
    child = family.find(2)
    assert child.parent_id == 1
    assert child.parent_text == "Release"
    assert child.level == 1


def test_add_subtask_unknown_parent_is_noop(family):
    assert apply_action(family, AddSubTask(task_id=9, parent_id=999, text="x", created_at=NOW)) is family


def test_subtask_joins_today_when_parent_selected(family):
    state = run(
        family,
        ToggleToday(task_id=4),
        AddSubTask(task_id=5, parent_id=4, text="Milk", created_at=NOW),
    )
    assert 5 in state.today


def test_import_maps_parent_index_to_ids():
    drafts = (
        TaskDraft(text="Main", level=0),
        TaskDraft(text="Sub", parent_index=0, parent_text="Main", level=1, jira_ticket="X-1"),
        TaskDraft(text="Other", level=0),
    )
    state = apply_action(TaskState(day="2025-06-01"), ImportTasks(drafts=drafts, base_id=100, created_at=NOW))

    assert [t.id for t in state.tasks] == [100, 101, 102]
    assert state.find(101).parent_id == 100
    assert state.find(101).parent_text == "Main"
    assert state.find(101).jira_ticket == "X-1"
    assert state.find(102).parent_id is None


# ============ EDITION ============

def test_edit_changes_only_given_fields(family):
    family = apply_action(family, EditTask(task_id=4, description="weekly"))
    state = apply_action(family, EditTask(task_id=4, jira_ticket="OPS-1"))

    task = state.find(4)
    assert task.text == "Groceries"
    assert task.description == "weekly"
    assert task.jira_ticket == "OPS-1"


def test_edit_can_clear_a_field(family):
    state = run(family, EditTask(task_id=4, description="x"), EditTask(task_id=4, description=None))
    assert state.find(4).description is None


def test_edit_unknown_task_is_noop(family):
    assert apply_action(family, EditTask(task_id=999, text="nope")) is family


# ============ AUJOURD'HUI ============

def test_toggle_root_adds_direct_children(family):
    state = apply_action(family, ToggleToday(task_id=1))
    assert set(state.today) == {1, 2, 3}


def test_toggle_root_again_removes_group(family):
    state = run(family, ToggleToday(task_id=1), ToggleToday(task_id=1))
    assert state.today == ()


def test_toggle_child_only_affects_child(family):
    state = apply_action(family, ToggleToday(task_id=2))
    assert state.today == (2,)


def test_toggle_unknown_task_is_noop(family):
    assert apply_action(family, ToggleToday(task_id=999)) is family


def test_removing_rolled_over_task_records_dismissal(family):
    state = family.model_copy(update={"rolled_over": (4,)})
    state = apply_action(state, ToggleToday(task_id=4))

    assert state.rolled_over == ()
    assert state.dismissed == (4,)


def test_effective_today_has_no_duplicates(family):
    state = family.model_copy(update={"today": (1, 4), "rolled_over": (4, 2)})
    assert state.effective_today == (1, 4, 2)


# ============ HIGHLIGHT ============

def test_highlight_requires_task_in_today(family):
    assert apply_action(family, SetHighlight(task_id=4)).highlight is None

    state = run(family, ToggleToday(task_id=4), SetHighlight(task_id=4))
    assert state.highlight == 4


def test_highlight_clear(family):
    state = run(family, ToggleToday(task_id=4), SetHighlight(task_id=4), SetHighlight(task_id=None))
    assert state.highlight is None


def test_complete_clears_highlight_and_remembers_it(family):
    state = run(
        family,
        ToggleToday(task_id=4),
        SetHighlight(task_id=4),
        CompleteTask(task_id=4, completed_at=NOW, completed_date="2025-06-01"),
    )
    assert state.highlight is None
    assert state.completed_highlight == 4
    assert 4 not in state.today


def test_delete_clears_highlight(family):
    state = run(family, ToggleToday(task_id=4), SetHighlight(task_id=4), DeleteTasks(task_ids=(4,)))
    assert state.highlight is None
    assert state.completed_highlight is None


def test_leaving_today_clears_highlight(family):
    state = run(family, ToggleToday(task_id=1), SetHighlight(task_id=2), ToggleToday(task_id=1))
    assert state.highlight is None


# ============ COMPLETION / SUPPRESSION ============

def test_complete_moves_task_exactly_once(family):
    state = run(family, ToggleToday(task_id=2), CompleteTask(task_id=2, completed_at=NOW, completed_date="2025-06-01"))

    assert state.find(2) is None
    assert [t.id for t in state.completed] == [2]
    done = state.completed[0]
    assert done.text == "Notes"
    assert done.parent_text == "Release"
    assert done.completed_date == "2025-06-01"
    assert state.today == ()


def test_completed_newest_first(family):
    state = run(
        family,
        CompleteTask(task_id=2, completed_at=NOW, completed_date="2025-06-01"),
        CompleteTask(task_id=3, completed_at=NOW, completed_date="2025-06-01"),
    )
    assert [t.id for t in state.completed] == [3, 2]


def test_complete_unknown_task_is_noop(family):
    assert apply_action(family, CompleteTask(task_id=999, completed_at=NOW, completed_date="2025-06-01")) is family


def test_delete_keeps_children_as_orphans(family):
    state = apply_action(family, DeleteTasks(task_ids=(1,)))
    assert {t.id for t in state.tasks} == {2, 3, 4}
    assert state.find(2).parent_id == 1


def test_delete_all(family):
    state = run(family, ToggleToday(task_id=1), DeleteAllTasks())
    assert state.tasks == ()
    assert state.today == ()


def test_delete_completed(family):
    state = run(
        family,
        CompleteTask(task_id=4, completed_at=NOW, completed_date="2025-06-01"),
        DeleteCompleted(task_ids=(4,)),
    )
    assert state.completed == ()


def test_unknown_action_raises():
    with pytest.raises(TypeError):
        apply_action(TaskState(day="2025-06-01"), object())


def test_state_is_not_mutated(family):
    before = family.tasks
    apply_action(family, DeleteAllTasks())
    assert family.tasks == before
