"""
Repositories: mapping domaine <-> lignes et réconciliation avec le backend.

Toutes les méthodes sont best-effort: une erreur backend est loggée puis
avalée. Les écritures retournent False, les lectures une valeur vide.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from taskpilot.schemas.rows import (
    TaskRow,
    CompletedTaskRow,
    SelectionRow,
    HighlightRow,
    RolloverRow,
)
from taskpilot.schemas.task import Task, CompletedTask
from taskpilot.services.backend import PersistenceBackend, StoreError

logger = logging.getLogger(__name__)

# Erreurs attendues côté backend / mapping
PERSISTENCE_ERRORS = (StoreError, ValidationError, KeyError, TypeError, ValueError)

COLLECTIONS = {
    "tasks": TaskRow,
    "completed_tasks": CompletedTaskRow,
}


class TaskRepository:
    """Open and completed task collections, reconciled by id."""

    def __init__(self, backend: PersistenceBackend):
        self.backend = backend

    def _row_type(self, collection: str):
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        return COLLECTIONS[collection]

    def replace_all(self, collection: str, snapshot: Iterable[Task]) -> bool:
        """
        Make the backend hold exactly ``snapshot`` for this collection.

        1. fetch persisted ids
        2. delete persisted ids absent from the snapshot
        3. upsert every task of the snapshot
        """
        row_type = self._row_type(collection)
        snapshot = list(snapshot)
        wanted = {t.id for t in snapshot}
        try:
            persisted = {r["id"] for r in self.backend.select(collection)}
            to_delete = persisted - wanted
            if to_delete:
                self.backend.delete(collection, column="id", values=sorted(to_delete))
                logger.info("Deleted %s rows from %s", len(to_delete), collection)
            if snapshot:
                rows = [row_type.from_domain(t).model_dump() for t in snapshot]
                self.backend.upsert(collection, rows, key_columns=("id",))
            return True
        except PERSISTENCE_ERRORS as e:
            logger.error("Error saving %s: %s", collection, e)
            return False

    def load_all(self, collection: str) -> List[Task]:
        row_type = self._row_type(collection)
        try:
            rows = self.backend.select(collection)
            items = [row_type.model_validate(r).to_domain() for r in rows]
        except PERSISTENCE_ERRORS as e:
            logger.error("Error fetching %s: %s", collection, e)
            return []
        if collection == "completed_tasks":
            return sorted(items, key=lambda t: t.completed_at, reverse=True)
        return sorted(items, key=lambda t: t.created_at)

    def load_tasks(self) -> List[Task]:
        return self.load_all("tasks")

    def load_completed(self) -> List[CompletedTask]:
        return self.load_all("completed_tasks")


class TodaySelectionRepository:
    """Sélections par jour (task_id, selected_date)."""

    table = "selected_for_today"

    def __init__(self, backend: PersistenceBackend):
        self.backend = backend

    def replace(self, day: str, ids: Iterable[int]) -> bool:
        ids = list(dict.fromkeys(ids))
        try:
            self.backend.delete(self.table, filters={"selected_date": day})
            if ids:
                rows = [SelectionRow(task_id=i, selected_date=day).model_dump() for i in ids]
                self.backend.upsert(self.table, rows, key_columns=("task_id", "selected_date"))
            return True
        except PERSISTENCE_ERRORS as e:
            logger.error("Error saving selected for today: %s", e)
            return False

    def history(self) -> List[SelectionRow]:
        try:
            return [SelectionRow.model_validate(r) for r in self.backend.select(self.table)]
        except PERSISTENCE_ERRORS as e:
            logger.error("Error fetching selection history: %s", e)
            return []

    def load(self, day: str) -> List[int]:
        return [r.task_id for r in self.history() if r.selected_date == day]


class RolloverRepository:
    table = "task_rollover_status"

    def __init__(self, backend: PersistenceBackend):
        self.backend = backend

    def dismiss(self, task_id: int, original_day: str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        row = RolloverRow(
            task_id=task_id,
            original_selected_date=original_day,
            rollover_reason="dismissed",
            is_active=False,
            dismissed_at=now,
            updated_at=now,
        )
        try:
            self.backend.upsert(self.table, [row.model_dump()], key_columns=("task_id",))
            return True
        except PERSISTENCE_ERRORS as e:
            logger.error("Error dismissing rollover for %s: %s", task_id, e)
            return False

    def load(self) -> Dict[int, RolloverRow]:
        try:
            rows = [RolloverRow.model_validate(r) for r in self.backend.select(self.table)]
        except PERSISTENCE_ERRORS as e:
            logger.error("Error fetching rollover status: %s", e)
            return {}
        return {r.task_id: r for r in rows}


class HighlightRepository:
    table = "daily_highlights"

    def __init__(self, backend: PersistenceBackend):
        self.backend = backend

    def get(self, day: str) -> Optional[int]:
        try:
            rows = self.backend.select(self.table, filters={"date": day})
            return HighlightRow.model_validate(rows[0]).task_id if rows else None
        except PERSISTENCE_ERRORS as e:
            logger.error("Error fetching highlight: %s", e)
            return None

    def set(self, day: str, task_id: Optional[int]) -> bool:
        try:
            if task_id is None:
                self.backend.delete(self.table, filters={"date": day})
            else:
                row = HighlightRow(date=day, task_id=task_id, created_at=datetime.now(timezone.utc))
                self.backend.upsert(self.table, [row.model_dump()], key_columns=("date",))
            return True
        except PERSISTENCE_ERRORS as e:
            logger.error("Error saving highlight: %s", e)
            return False


def rollover_candidates(
    history: Iterable[SelectionRow],
    today: str,
    open_ids: Iterable[int],
    statuses: Dict[int, RolloverRow],
) -> Dict[int, str]:
    """
    Tasks selected on a previous day, still open, not dismissed.

    A dismissal covers selections up to the day it was dismissed for;
    a later explicit selection brings the task back.
    Returns {task_id: last day it was selected}.
    """
    open_ids = set(open_ids)
    last_selected: Dict[int, str] = {}
    for row in history:
        if row.selected_date >= today or row.task_id not in open_ids:
            continue
        if row.selected_date > last_selected.get(row.task_id, ""):
            last_selected[row.task_id] = row.selected_date

    result = {}
    for task_id, day in last_selected.items():
        status = statuses.get(task_id)
        if status is not None and not status.is_active:
            if day <= status.original_selected_date:
                continue
        result[task_id] = day
    return result
