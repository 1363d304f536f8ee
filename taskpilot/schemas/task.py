"""Pydantic schemas for tasks: domain objects and request/response bodies."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List


# Domaine

class Task(BaseModel):
    """An open task. Immutable: transitions return copies."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    text: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    parent_text: Optional[str] = None
    level: int = 0
    jira_ticket: Optional[str] = None
    github_pr: Optional[str] = None
    created_at: datetime


class CompletedTask(Task):
    """Snapshot of a task at completion time."""

    completed_at: datetime
    completed_date: str  # "YYYY-MM-DD"


class TaskDraft(BaseModel):
    """Parser output; parent_index points into the draft list."""

    text: str
    parent_index: Optional[int] = None
    parent_text: Optional[str] = None
    level: int = 0
    description: Optional[str] = None
    jira_ticket: Optional[str] = None
    github_pr: Optional[str] = None


class TodayEntry(BaseModel):
    task: Task
    effective_level: int


# Requêtes

class TaskCreate(BaseModel):
    text: str = Field(min_length=1)
    description: Optional[str] = None
    jira_ticket: Optional[str] = None
    github_pr: Optional[str] = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value


class TaskUpdate(BaseModel):
    text: Optional[str] = None
    description: Optional[str] = None
    jira_ticket: Optional[str] = None
    github_pr: Optional[str] = None


class BulkImportRequest(BaseModel):
    text: str


class HighlightUpdate(BaseModel):
    task_id: Optional[int] = None


# Réponses

class TaskResponse(Task):
    in_today: bool = False


class TodayTaskResponse(Task):
    effective_level: int
    rolled_over: bool = False
    highlighted: bool = False


class HighlightResponse(BaseModel):
    date: str
    task_id: Optional[int]


class BulkImportResponse(BaseModel):
    created: List[Task]
