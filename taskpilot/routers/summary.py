"""
Résumés des tâches terminées.

- GET /summary/daily?date=6/1/2025&use_ai=true
- GET /summary/weekly?end_date=2025-06-07
Sans date: aujourd'hui (fuseau configuré).
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel
from typing import Optional

from taskpilot.core.dependencies import get_store, get_summary_service
from taskpilot.services.dates import to_key
from taskpilot.services.summary_service import SummaryService
from taskpilot.services.task_state import TaskState
from taskpilot.services.task_store import TaskStore

router = APIRouter(prefix="/summary", tags=["summary"])


class SummaryResponse(BaseModel):
    type: str
    date: str
    content: str


def _day_or_today(value: Optional[str], state: TaskState) -> str:
    if not value:
        return state.day
    try:
        return to_key(value)
    except (ValueError, OverflowError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date")


@router.get("/daily", response_model=SummaryResponse)
def daily(
    date: Optional[str] = Query(None),
    use_ai: bool = Query(False),
    store: TaskStore = Depends(get_store),
    service: SummaryService = Depends(get_summary_service),
):
    state = store.sync_day()
    day = _day_or_today(date, state)
    # le highlight n'a de sens que pour le jour courant
    highlight = None
    if day == state.day:
        highlight = state.highlight or state.completed_highlight
    content = service.daily(state.completed, day, highlight_id=highlight, use_ai=use_ai)
    return SummaryResponse(type="daily", date=day, content=content)


@router.get("/weekly", response_model=SummaryResponse)
def weekly(
    end_date: Optional[str] = Query(None),
    use_ai: bool = Query(False),
    store: TaskStore = Depends(get_store),
    service: SummaryService = Depends(get_summary_service),
):
    state = store.sync_day()
    day = _day_or_today(end_date, state)
    content = service.weekly(state.completed, day, use_ai=use_ai)
    return SummaryResponse(type="weekly", date=day, content=content)
