from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from taskpilot.core.dependencies import get_store
from taskpilot.schemas.task import TodayTaskResponse, HighlightUpdate, HighlightResponse
from taskpilot.services.task_store import TaskStore

router = APIRouter(tags=["today"])


def _today_tasks(store: TaskStore) -> List[TodayTaskResponse]:
    entries = store.today_view()
    state = store.state
    return [
        TodayTaskResponse(
            **entry.task.model_dump(),
            effective_level=entry.effective_level,
            rolled_over=entry.task.id in state.rolled_over,
            highlighted=entry.task.id == state.highlight,
        )
        for entry in entries
    ]


@router.get("/tasks/today", response_model=List[TodayTaskResponse])
def today(store: TaskStore = Depends(get_store)):
    return _today_tasks(store)


@router.post("/tasks/{task_id}/today", response_model=List[TodayTaskResponse])
def toggle_today(task_id: int, store: TaskStore = Depends(get_store)):
    """Ajoute/retire la tâche (et ses enfants si c'est une racine) d'aujourd'hui"""
    if not store.state.find(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    store.toggle_today(task_id)
    return _today_tasks(store)


@router.get("/highlight", response_model=HighlightResponse)
def get_highlight(store: TaskStore = Depends(get_store)):
    state = store.sync_day()
    return HighlightResponse(date=state.day, task_id=state.highlight)


@router.put("/highlight", response_model=HighlightResponse)
def set_highlight(request: HighlightUpdate, store: TaskStore = Depends(get_store)):
    highlight = store.set_highlight(request.task_id)
    if request.task_id is not None and highlight != request.task_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Highlight must be one of today's tasks",
        )
    return HighlightResponse(date=store.state.day, task_id=highlight)
