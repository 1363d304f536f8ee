"""
Row schemas, one per persisted table, plus mapping to/from the domain.

Raw backend rows never leave the repository layer: they are validated into
these models, then converted with ``to_domain``.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator

from taskpilot.schemas.task import Task, CompletedTask


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite rend des datetimes naïfs: on les considère UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TaskRow(BaseModel):
    id: int
    text: str
    parent_id: Optional[int] = None
    parent_text: Optional[str] = None
    level: Optional[int] = 0
    description: Optional[str] = None
    jira_ticket: Optional[str] = None
    github_pr: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def _created_utc(cls, value):
        return _aware(value)

    @classmethod
    def from_domain(cls, task: Task) -> "TaskRow":
        return cls(
            id=task.id,
            text=task.text,
            parent_id=task.parent_id,
            parent_text=task.parent_text,
            level=task.level or 0,
            description=task.description,
            jira_ticket=task.jira_ticket,
            github_pr=task.github_pr,
            created_at=task.created_at,
        )

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            text=self.text,
            parent_id=self.parent_id,
            parent_text=self.parent_text,
            level=self.level or 0,
            description=self.description,
            jira_ticket=self.jira_ticket,
            github_pr=self.github_pr,
            created_at=self.created_at or datetime.now(timezone.utc),
        )


class CompletedTaskRow(TaskRow):
    completed_at: Optional[datetime] = None
    completed_date: str

    @field_validator("completed_at")
    @classmethod
    def _completed_utc(cls, value):
        return _aware(value)

    @classmethod
    def from_domain(cls, task: CompletedTask) -> "CompletedTaskRow":
        base = TaskRow.from_domain(task).model_dump()
        return cls(**base, completed_at=task.completed_at, completed_date=task.completed_date)

    def to_domain(self) -> CompletedTask:
        base = super().to_domain().model_dump()
        return CompletedTask(
            **base,
            completed_at=self.completed_at or base["created_at"],
            completed_date=self.completed_date,
        )


class SelectionRow(BaseModel):
    task_id: int
    selected_date: str


class HighlightRow(BaseModel):
    date: str
    task_id: int
    created_at: Optional[datetime] = None


class RolloverRow(BaseModel):
    task_id: int
    original_selected_date: str
    rollover_reason: Optional[str] = None
    is_active: bool = True
    dismissed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("dismissed_at", "updated_at")
    @classmethod
    def _timestamps_utc(cls, value):
        return _aware(value)
