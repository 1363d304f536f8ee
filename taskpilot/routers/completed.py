from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional

from taskpilot.core.dependencies import get_store
from taskpilot.schemas.task import CompletedTask
from taskpilot.services.task_store import TaskStore

router = APIRouter(prefix="/completed", tags=["completed"])


@router.get("", response_model=List[CompletedTask])
def list_completed(
    q: str = Query(""),
    date: Optional[str] = Query(None, description="YYYY-MM-DD ou M/D/YYYY"),
    store: TaskStore = Depends(get_store),
):
    try:
        return store.completed_view(q, date)
    except (ValueError, OverflowError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date")


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_completed(task_id: int, store: TaskStore = Depends(get_store)):
    if not any(t.id == task_id for t in store.state.completed):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Completed task not found")
    store.delete_completed([task_id])
