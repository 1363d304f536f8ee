"""Task hierarchy ordering and derived views (today, search, completed filter)."""

from typing import Callable, Iterable, List, Optional, Sequence

from taskpilot.schemas.task import Task, CompletedTask, TodayEntry
from taskpilot.services.dates import to_key


def _by_created(tasks: List[Task]) -> List[Task]:
    # sorted() est stable: égalités -> ordre d'entrée
    return sorted(tasks, key=lambda t: t.created_at)


def _order(tasks: Sequence[Task], is_root: Callable[[Task], bool]) -> List[Task]:
    children: dict[int, List[Task]] = {}
    for task in tasks:
        if task.parent_id is not None:
            children.setdefault(task.parent_id, []).append(task)
    for key in children:
        children[key] = _by_created(children[key])

    result: List[Task] = []
    seen: set[int] = set()

    def visit(task: Task):
        # itératif pour ne pas dépendre de la limite de récursion
        pending = [task]
        while pending:
            current = pending.pop()
            if current.id in seen:
                continue
            seen.add(current.id)
            result.append(current)
            pending.extend(reversed(children.get(current.id, [])))

    for root in _by_created([t for t in tasks if is_root(t)]):
        visit(root)

    # Orphelins et cycles
    for task in tasks:
        if task.id not in seen:
            visit(task)

    return result


def order_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Parents before descendants, siblings by created_at, orphans appended."""
    return _order(list(tasks), lambda t: t.parent_id is None)


def project_today(tasks: Iterable[Task], today_ids: Iterable[int]) -> List[TodayEntry]:
    """
    Today's tasks in display order.

    A task whose parent is not selected is shown as a root (effective level 0).
    Ids in today_ids with no matching task are ignored.
    """
    selected = set(today_ids)
    subset = [t for t in tasks if t.id in selected]
    ordered = _order(subset, lambda t: t.parent_id not in selected)
    return [
        TodayEntry(task=t, effective_level=t.level if t.parent_id in selected else 0)
        for t in ordered
    ]


def matches_query(task: Task, query: str) -> bool:
    needle = (query or "").lower()
    if not needle:
        return True
    return needle in task.text.lower() or needle in (task.parent_text or "").lower()


def filter_and_order(tasks: Iterable[Task], query: str) -> List[Task]:
    return order_tasks([t for t in tasks if matches_query(t, query)])


def filter_completed(
    completed: Iterable[CompletedTask],
    query: str = "",
    day: Optional[str] = None,
) -> List[CompletedTask]:
    day_key = to_key(day) if day else None
    needle = (query or "").lower()
    return [
        t for t in completed
        if needle in t.text.lower() and (day_key is None or t.completed_date == day_key)
    ]
