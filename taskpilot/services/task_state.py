"""
État des tâches et transitions pures: apply_action(state, action) -> state.

Aucune I/O ici. Les ids et horodatages sont portés par les actions, donc
deux appels avec les mêmes entrées donnent le même état.
"""

from datetime import datetime
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from taskpilot.schemas.task import Task, CompletedTask, TaskDraft


class TaskState(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: str
    tasks: Tuple[Task, ...] = ()
    completed: Tuple[CompletedTask, ...] = ()  # plus récent en premier
    today: Tuple[int, ...] = ()  # sélection explicite du jour
    rolled_over: Tuple[int, ...] = ()  # reportés des jours précédents
    dismissed: Tuple[int, ...] = ()  # reports retirés par l'utilisateur
    highlight: Optional[int] = None
    completed_highlight: Optional[int] = None  # highlight du jour déjà terminé

    @property
    def effective_today(self) -> Tuple[int, ...]:
        return tuple(dict.fromkeys(self.today + self.rolled_over))

    def find(self, task_id: int) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


# Actions

class AddTask(BaseModel):
    task_id: int
    text: str
    created_at: datetime
    description: Optional[str] = None
    jira_ticket: Optional[str] = None
    github_pr: Optional[str] = None


class AddSubTask(AddTask):
    parent_id: int


class ImportTasks(BaseModel):
    drafts: Tuple[TaskDraft, ...]
    base_id: int
    created_at: datetime


class EditTask(BaseModel):
    """Only fields explicitly set are changed."""

    task_id: int
    text: Optional[str] = None
    description: Optional[str] = None
    jira_ticket: Optional[str] = None
    github_pr: Optional[str] = None


class DeleteTasks(BaseModel):
    task_ids: Tuple[int, ...]


class DeleteAllTasks(BaseModel):
    pass


class CompleteTask(BaseModel):
    task_id: int
    completed_at: datetime
    completed_date: str


class DeleteCompleted(BaseModel):
    task_ids: Tuple[int, ...]


class ToggleToday(BaseModel):
    task_id: int


class SetHighlight(BaseModel):
    task_id: Optional[int] = None


Action = Union[
    AddTask, AddSubTask, ImportTasks, EditTask, DeleteTasks, DeleteAllTasks,
    CompleteTask, DeleteCompleted, ToggleToday, SetHighlight,
]


def _without(ids: Tuple[int, ...], removed) -> Tuple[int, ...]:
    removed = set(removed)
    return tuple(i for i in ids if i not in removed)


def _clean_text(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


# Transitions

def _add_task(state: TaskState, action: AddTask) -> TaskState:
    text = _clean_text(action.text)
    if text is None or state.find(action.task_id) is not None:
        return state
    task = Task(
        id=action.task_id,
        text=text,
        description=action.description,
        jira_ticket=action.jira_ticket,
        github_pr=action.github_pr,
        created_at=action.created_at,
    )
    return state.model_copy(update={"tasks": state.tasks + (task,)})


def _add_subtask(state: TaskState, action: AddSubTask) -> TaskState:
    text = _clean_text(action.text)
    parent = state.find(action.parent_id)
    if text is None or parent is None or state.find(action.task_id) is not None:
        return state
    task = Task(
        id=action.task_id,
        text=text,
        description=action.description,
        jira_ticket=action.jira_ticket,
        github_pr=action.github_pr,
        parent_id=parent.id,
        parent_text=parent.text,
        level=(parent.level or 0) + 1,
        created_at=action.created_at,
    )
    update = {"tasks": state.tasks + (task,)}
    # parent déjà dans "aujourd'hui" -> la sous-tâche aussi
    if parent.id in state.effective_today:
        update["today"] = state.today + (task.id,)
    return state.model_copy(update=update)


def _import_tasks(state: TaskState, action: ImportTasks) -> TaskState:
    index_to_id = {}
    created = []
    for index, draft in enumerate(action.drafts):
        task_id = action.base_id + index
        index_to_id[index] = task_id
        parent_id = index_to_id.get(draft.parent_index) if draft.parent_index is not None else None
        created.append(Task(
            id=task_id,
            text=draft.text,
            description=draft.description,
            jira_ticket=draft.jira_ticket,
            github_pr=draft.github_pr,
            parent_id=parent_id,
            parent_text=draft.parent_text if parent_id is not None else None,
            level=draft.level,
            created_at=action.created_at,
        ))
    if not created:
        return state
    return state.model_copy(update={"tasks": state.tasks + tuple(created)})


def _edit_task(state: TaskState, action: EditTask) -> TaskState:
    changes = {f: getattr(action, f) for f in action.model_fields_set if f != "task_id"}
    if "text" in changes:
        text = _clean_text(changes["text"])
        if text is None:
            del changes["text"]
        else:
            changes["text"] = text
    if not changes or state.find(action.task_id) is None:
        return state
    tasks = tuple(t.model_copy(update=changes) if t.id == action.task_id else t for t in state.tasks)
    return state.model_copy(update={"tasks": tasks})


def _remove_ids(state: TaskState, ids) -> dict:
    ids = set(ids)
    return {
        "tasks": tuple(t for t in state.tasks if t.id not in ids),
        "today": _without(state.today, ids),
        "rolled_over": _without(state.rolled_over, ids),
        "highlight": None if state.highlight in ids else state.highlight,
    }


def _delete_tasks(state: TaskState, action: DeleteTasks) -> TaskState:
    return state.model_copy(update=_remove_ids(state, action.task_ids))


def _delete_all(state: TaskState, action: DeleteAllTasks) -> TaskState:
    return state.model_copy(update=_remove_ids(state, [t.id for t in state.tasks]))


def _complete_task(state: TaskState, action: CompleteTask) -> TaskState:
    task = state.find(action.task_id)
    if task is None:
        return state
    done = CompletedTask(
        **task.model_dump(),
        completed_at=action.completed_at,
        completed_date=action.completed_date,
    )
    update = _remove_ids(state, [task.id])
    update["completed"] = (done,) + state.completed
    if state.highlight == task.id:
        update["completed_highlight"] = task.id
    update["dismissed"] = _without(state.dismissed, [task.id])
    return state.model_copy(update=update)


def _delete_completed(state: TaskState, action: DeleteCompleted) -> TaskState:
    ids = set(action.task_ids)
    return state.model_copy(update={"completed": tuple(t for t in state.completed if t.id not in ids)})


def _toggle_today(state: TaskState, action: ToggleToday) -> TaskState:
    task = state.find(action.task_id)
    if task is None:
        return state

    group = [task.id]
    # une racine entraîne ses enfants directs
    if task.parent_id is None:
        group += [t.id for t in state.tasks if t.parent_id == task.id]

    if task.id in state.effective_today:
        dismissed = [i for i in group if i in state.rolled_over and i not in state.dismissed]
        highlight = None if state.highlight in group else state.highlight
        return state.model_copy(update={
            "today": _without(state.today, group),
            "rolled_over": _without(state.rolled_over, group),
            "dismissed": state.dismissed + tuple(dismissed),
            "highlight": highlight,
        })

    current = state.effective_today
    added = tuple(i for i in dict.fromkeys(group) if i not in current)
    return state.model_copy(update={"today": state.today + added})


def _set_highlight(state: TaskState, action: SetHighlight) -> TaskState:
    if action.task_id is None:
        return state.model_copy(update={"highlight": None})
    if action.task_id not in state.effective_today or state.find(action.task_id) is None:
        return state
    return state.model_copy(update={"highlight": action.task_id})


HANDLERS = {
    AddTask: _add_task,
    AddSubTask: _add_subtask,
    ImportTasks: _import_tasks,
    EditTask: _edit_task,
    DeleteTasks: _delete_tasks,
    DeleteAllTasks: _delete_all,
    CompleteTask: _complete_task,
    DeleteCompleted: _delete_completed,
    ToggleToday: _toggle_today,
    SetHighlight: _set_highlight,
}


def apply_action(state: TaskState, action: Action) -> TaskState:
    handler = HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown action: {type(action).__name__}")
    return handler(state, action)
