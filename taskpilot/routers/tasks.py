from fastapi import APIRouter, Depends, HTTPException, status, Query, Body
from typing import List, Optional

from taskpilot.core.config import Settings
from taskpilot.core.dependencies import get_store, get_settings
from taskpilot.schemas.task import (
    Task,
    TaskCreate,
    TaskUpdate,
    TaskResponse,
    BulkImportRequest,
    BulkImportResponse,
    CompletedTask,
)
from taskpilot.services.jira_service import build_jira_payload
from taskpilot.services.task_store import TaskStore

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _get_task_or_404(store: TaskStore, task_id: int) -> Task:
    task = store.sync_day().find(task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


def _response(store: TaskStore, task: Task) -> TaskResponse:
    return TaskResponse(**task.model_dump(), in_today=task.id in store.state.effective_today)


@router.get("", response_model=List[TaskResponse])
def list_tasks(store: TaskStore = Depends(get_store)):
    # parents avant enfants
    return [_response(store, t) for t in store.ordered_tasks()]


@router.get("/search", response_model=List[TaskResponse])
def search_tasks(q: str = Query(""), store: TaskStore = Depends(get_store)):
    return [_response(store, t) for t in store.search(q)]


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(task_data: TaskCreate, store: TaskStore = Depends(get_store)):
    task = store.add_task(**task_data.model_dump())
    if not task:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Task text is required")
    return _response(store, task)


@router.post("/bulk", response_model=BulkImportResponse, status_code=status.HTTP_201_CREATED)
def import_tasks(request: BulkImportRequest, store: TaskStore = Depends(get_store)):
    """
    Import en masse depuis du texte indenté.

    - 4 espaces = un niveau de sous-tâche
    - "> ..." = ligne de description
    - [JIRA: ABC-1] [PR: #12] = références
    """
    return BulkImportResponse(created=store.import_bulk(request.text))


@router.post("/{task_id}/subtasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_subtask(task_id: int, task_data: TaskCreate, store: TaskStore = Depends(get_store)):
    _get_task_or_404(store, task_id)
    task = store.add_subtask(task_id, **task_data.model_dump())
    return _response(store, task)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(task_id: int, store: TaskStore = Depends(get_store)):
    return _response(store, _get_task_or_404(store, task_id))


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(task_id: int, task_data: TaskUpdate, store: TaskStore = Depends(get_store)):
    _get_task_or_404(store, task_id)
    task = store.edit_task(task_id, **task_data.model_dump(exclude_unset=True))
    return _response(store, task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: int, store: TaskStore = Depends(get_store)):
    _get_task_or_404(store, task_id)
    store.delete_tasks([task_id])


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_tasks(
    ids: Optional[List[int]] = Body(None, embed=True),
    store: TaskStore = Depends(get_store),
):
    # sans ids: tout supprimer
    if ids is None:
        store.delete_all_tasks()
    else:
        store.delete_tasks(ids)


@router.post("/{task_id}/complete", response_model=CompletedTask)
def complete_task(task_id: int, store: TaskStore = Depends(get_store)):
    _get_task_or_404(store, task_id)
    return store.complete_task(task_id)


@router.get("/{task_id}/jira-payload")
def jira_payload(
    task_id: int,
    store: TaskStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    task = _get_task_or_404(store, task_id)
    return build_jira_payload(
        task,
        project_id=settings.JIRA_PROJECT_ID,
        issue_type_id=settings.JIRA_ISSUE_TYPE_ID,
        labels=settings.JIRA_LABELS,
    )
