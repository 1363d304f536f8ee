"""
Task store: owns the in-memory state and mirrors it to the backend.

Every mutation goes through ``dispatch``: the pure transition is applied
synchronously, then one persistence job per changed collection is queued on
the outbox. Nothing is persisted before ``load`` has completed.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from taskpilot.schemas.task import Task, CompletedTask, TodayEntry
from taskpilot.services import hierarchy
from taskpilot.services.backend import PersistenceBackend
from taskpilot.services.dates import day_key
from taskpilot.services.outbox import PersistenceOutbox
from taskpilot.services.parser import parse_bulk_tasks
from taskpilot.services.repository import (
    TaskRepository,
    TodaySelectionRepository,
    RolloverRepository,
    HighlightRepository,
    rollover_candidates,
)
from taskpilot.services.task_state import (
    TaskState,
    Action,
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

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdGenerator:
    """Ids en millisecondes, strictement croissants."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def seed(self, ids: Iterable[int]) -> None:
        with self._lock:
            self._last = max([self._last, *ids])

    def reserve(self, count: int = 1) -> int:
        """Retourne le premier id d'un bloc de ``count`` ids consécutifs."""
        with self._lock:
            base = max(int(self._clock().timestamp() * 1000), self._last + 1)
            self._last = base + max(count, 1) - 1
            return base


class TaskStore:
    def __init__(
        self,
        backend: PersistenceBackend,
        outbox: Optional[PersistenceOutbox] = None,
        tz_name: str = "UTC",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.backend = backend
        self.outbox = outbox or PersistenceOutbox()
        self.tz_name = tz_name
        self.clock = clock
        self.ids = IdGenerator(clock)

        self.tasks_repo = TaskRepository(backend)
        self.selections = TodaySelectionRepository(backend)
        self.rollovers = RolloverRepository(backend)
        self.highlights = HighlightRepository(backend)

        self.state = TaskState(day=self.today())
        self.loaded = False
        self._rollover_origin: dict[int, str] = {}
        self._lock = threading.RLock()

    def today(self) -> str:
        return day_key(self.clock(), self.tz_name)

    # ---- chargement ----

    def load(self) -> TaskState:
        """Loads every collection concurrently; failures load as empty."""
        day = self.today()
        started = time.monotonic()
        with ThreadPoolExecutor(max_workers=6, thread_name_prefix="taskpilot-load") as pool:
            f_tasks = pool.submit(self.tasks_repo.load_tasks)
            f_completed = pool.submit(self.tasks_repo.load_completed)
            f_today = pool.submit(self.selections.load, day)
            f_history = pool.submit(self.selections.history)
            f_statuses = pool.submit(self.rollovers.load)
            f_highlight = pool.submit(self.highlights.get, day)
            tasks = f_tasks.result()
            completed = f_completed.result()
            today = f_today.result()
            history = f_history.result()
            statuses = f_statuses.result()
            highlight = f_highlight.result()

        with self._lock:
            self.ids.seed([t.id for t in tasks] + [t.id for t in completed])
            self.state = self._day_state(day, tasks, completed, today, history, statuses, highlight)
            self.loaded = True

        logger.info(
            "Loaded data: tasks=%s completed=%s today=%s rolled_over=%s (%.0f ms)",
            len(tasks), len(completed), len(self.state.today), len(self.state.rolled_over),
            (time.monotonic() - started) * 1000,
        )
        return self.state

    def _day_state(self, day, tasks, completed, today, history, statuses, highlight) -> TaskState:
        open_ids = {t.id for t in tasks}
        completed_ids = {t.id for t in completed}
        today = tuple(dict.fromkeys(today))
        origin = rollover_candidates(history, day, open_ids, statuses)
        rolled = tuple(i for i in origin if i not in today)
        self._rollover_origin = origin
        return TaskState(
            day=day,
            tasks=tuple(tasks),
            completed=tuple(completed),
            today=today,
            rolled_over=rolled,
            highlight=highlight if highlight in (set(today) | set(rolled)) else None,
            completed_highlight=highlight if highlight in completed_ids else None,
        )

    def sync_day(self) -> TaskState:
        """
        Passe au jour courant si la date a changé depuis le dernier appel.

        Les tâches restent en mémoire; la sélection, les reports et le
        highlight sont relus pour le nouveau jour.
        """
        day = self.today()
        if not self.loaded or day == self.state.day:
            return self.state
        with self._lock:
            previous = self.state
            if day == previous.day:
                return previous
            # les écritures de la veille doivent être visibles avant relecture
            self.outbox.flush()
            self.state = self._day_state(
                day,
                previous.tasks,
                previous.completed,
                self.selections.load(day),
                self.selections.history(),
                self.rollovers.load(),
                self.highlights.get(day),
            )
            logger.info(
                "Day changed %s -> %s: today=%s rolled_over=%s",
                previous.day, day, len(self.state.today), len(self.state.rolled_over),
            )
            return self.state

    # ---- mutations ----

    def dispatch(self, action: Action) -> TaskState:
        with self._lock:
            self.sync_day()
            before = self.state
            after = apply_action(before, action)
            self.state = after
            if self.loaded and after is not before:
                self._persist(before, after)
            return after

    def _persist(self, before: TaskState, after: TaskState) -> None:
        if after.tasks != before.tasks:
            self.outbox.submit("tasks", self.tasks_repo.replace_all, "tasks", after.tasks)
        if after.completed != before.completed:
            self.outbox.submit("completed_tasks", self.tasks_repo.replace_all, "completed_tasks", after.completed)
        if after.today != before.today:
            self.outbox.submit("selected_for_today", self.selections.replace, after.day, after.today)
        for task_id in after.dismissed:
            if task_id not in before.dismissed:
                origin = self._rollover_origin.get(task_id, after.day)
                self.outbox.submit("task_rollover_status", self.rollovers.dismiss, task_id, origin, self.clock())
        if after.highlight != before.highlight:
            # terminé: la ligne du jour reste (résumé "highlight completed")
            cleared_by_completion = after.highlight is None and after.completed_highlight == before.highlight
            if not cleared_by_completion:
                self.outbox.submit("daily_highlights", self.highlights.set, after.day, after.highlight)

    def add_task(self, text: str, **fields) -> Optional[Task]:
        task_id = self.ids.reserve()
        state = self.dispatch(AddTask(task_id=task_id, text=text, created_at=self.clock(), **fields))
        return state.find(task_id)

    def add_subtask(self, parent_id: int, text: str, **fields) -> Optional[Task]:
        task_id = self.ids.reserve()
        state = self.dispatch(AddSubTask(
            task_id=task_id, parent_id=parent_id, text=text, created_at=self.clock(), **fields
        ))
        return state.find(task_id)

    def import_bulk(self, raw_text: str) -> List[Task]:
        drafts = parse_bulk_tasks(raw_text)
        if not drafts:
            return []
        base_id = self.ids.reserve(len(drafts))
        state = self.dispatch(ImportTasks(drafts=tuple(drafts), base_id=base_id, created_at=self.clock()))
        wanted = set(range(base_id, base_id + len(drafts)))
        return [t for t in state.tasks if t.id in wanted]

    def edit_task(self, task_id: int, **changes) -> Optional[Task]:
        return self.dispatch(EditTask(task_id=task_id, **changes)).find(task_id)

    def delete_tasks(self, task_ids: Iterable[int]) -> None:
        self.dispatch(DeleteTasks(task_ids=tuple(task_ids)))

    def delete_all_tasks(self) -> None:
        self.dispatch(DeleteAllTasks())

    def complete_task(self, task_id: int) -> Optional[CompletedTask]:
        now = self.clock()
        state = self.dispatch(CompleteTask(
            task_id=task_id, completed_at=now, completed_date=day_key(now, self.tz_name)
        ))
        return next((t for t in state.completed if t.id == task_id), None)

    def delete_completed(self, task_ids: Iterable[int]) -> None:
        self.dispatch(DeleteCompleted(task_ids=tuple(task_ids)))

    def toggle_today(self, task_id: int) -> TaskState:
        return self.dispatch(ToggleToday(task_id=task_id))

    def set_highlight(self, task_id: Optional[int]) -> Optional[int]:
        return self.dispatch(SetHighlight(task_id=task_id)).highlight

    # ---- vues ----

    def ordered_tasks(self) -> List[Task]:
        self.sync_day()
        return hierarchy.order_tasks(self.state.tasks)

    def today_view(self) -> List[TodayEntry]:
        self.sync_day()
        return hierarchy.project_today(self.state.tasks, self.state.effective_today)

    def search(self, query: str) -> List[Task]:
        self.sync_day()
        return hierarchy.filter_and_order(self.state.tasks, query)

    def completed_view(self, query: str = "", day: Optional[str] = None) -> List[CompletedTask]:
        self.sync_day()
        return hierarchy.filter_completed(self.state.completed, query, day)

    def close(self) -> None:
        self.outbox.flush()
        self.outbox.close()
