"""Daily / weekly summaries of completed tasks, optionally AI-enhanced."""

import json
import logging
from datetime import timedelta
from typing import Iterable, List, Optional

from taskpilot.schemas.task import CompletedTask
from taskpilot.services.dates import DayLike, day_key, format_day, to_date, to_key

logger = logging.getLogger(__name__)

WEEK_DAYS = 7


def tasks_for_day(completed: Iterable[CompletedTask], day: DayLike) -> List[CompletedTask]:
    key = to_key(day)
    return [t for t in completed if t.completed_date == key]


def tasks_for_week(completed: Iterable[CompletedTask], end_day: DayLike, tz_name: str = "UTC") -> List[CompletedTask]:
    end = to_date(end_day)
    start = (end - timedelta(days=WEEK_DAYS - 1)).isoformat()
    end = end.isoformat()
    return [t for t in completed if start <= day_key(t.completed_at, tz_name) <= end]


def _task_line(task: CompletedTask) -> List[str]:
    line = f"  • {task.text}"
    if task.jira_ticket:
        line += f" [JIRA: {task.jira_ticket}]"
    if task.github_pr:
        line += f" [PR: {task.github_pr}]"
    lines = [line]
    if task.description:
        lines += [f"    {d}" for d in task.description.splitlines()]
    return lines


def daily_summary(
    completed: Iterable[CompletedTask],
    day: DayLike,
    highlight_id: Optional[int] = None,
) -> str:
    display = format_day(day)
    day_tasks = tasks_for_day(completed, day)
    if not day_tasks:
        return f"No tasks completed on {display}."

    groups: dict[str, List[CompletedTask]] = {}
    standalone = []
    for task in day_tasks:
        if task.parent_text:
            groups.setdefault(task.parent_text, []).append(task)
        else:
            standalone.append(task)

    lines = [
        f"Daily Summary for {display}",
        f"Total completed: {len(day_tasks)} tasks",
    ]
    highlighted = next((t for t in day_tasks if highlight_id is not None and t.id == highlight_id), None)
    if highlighted:
        lines.append(f"⭐ Highlight completed: {highlighted.text}")
    lines.append("")

    for parent, tasks in groups.items():
        lines.append(f"📋 {parent}:")
        for task in tasks:
            lines += _task_line(task)
        lines.append("")

    if standalone:
        lines.append("📝 Other Tasks:")
        for task in standalone:
            lines += _task_line(task)
        lines.append("")

    # dédoublonnés, ordre d'apparition
    jira = list(dict.fromkeys(t.jira_ticket for t in day_tasks if t.jira_ticket))
    prs = list(dict.fromkeys(t.github_pr for t in day_tasks if t.github_pr))
    if jira:
        lines.append("🎫 JIRA Tickets:")
        lines += [f"  • {j}" for j in jira]
    if prs:
        lines.append("🔗 GitHub PRs:")
        lines += [f"  • {p}" for p in prs]

    return "\n".join(lines).rstrip() + "\n"


def weekly_summary(completed: Iterable[CompletedTask], end_day: DayLike, tz_name: str = "UTC") -> str:
    end = to_date(end_day)
    start = end - timedelta(days=WEEK_DAYS - 1)
    week_tasks = tasks_for_week(completed, end, tz_name)
    if not week_tasks:
        return f"No tasks completed in the week ending {format_day(end)}."

    by_day: dict[str, List[CompletedTask]] = {}
    for task in week_tasks:
        by_day.setdefault(task.completed_date, []).append(task)

    lines = [
        f"Weekly Summary ({format_day(start)} - {format_day(end)})",
        f"Total completed: {len(week_tasks)} tasks",
        "",
    ]
    for key in sorted(by_day):
        tasks = by_day[key]
        lines.append(f"📅 {format_day(key)} ({len(tasks)} tasks):")
        for task in tasks:
            suffix = f" ({task.parent_text})" if task.parent_text else ""
            lines.append(f"  • {task.text}{suffix}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def build_summary_prompt(tasks: List[CompletedTask], summary_type: str, target: str) -> str:
    task_list = [
        {
            "text": t.text,
            "parentText": t.parent_text,
            "description": t.description,
            "jiraTicket": t.jira_ticket,
            "githubPr": t.github_pr,
            "completedAt": t.completed_at.isoformat(),
            "completedDate": t.completed_date,
        }
        for t in tasks
    ]
    timeframe = "week" if summary_type == "weekly" else "day"
    window = WEEK_DAYS if summary_type == "weekly" else 1
    has_jira = any(t.jira_ticket for t in tasks)
    has_prs = any(t.github_pr for t in tasks)

    sections = [
        "1. **Key Accomplishments** - Major themes and achievements (use task descriptions for context)",
        "2. **Productivity Insights** - Patterns, focus areas, or notable progress",
        "3. **Task Analysis** - Breakdown by projects/categories",
    ]
    if has_jira:
        sections.append("4. **JIRA Tickets** - List all associated JIRA tickets")
    if has_prs:
        sections.append("5. **GitHub PRs** - List all associated pull requests")
    sections.append("6. **Recommendations** - Suggestions for future work or improvements")

    return (
        "You are a productivity assistant analyzing completed tasks. "
        "Generate an insightful summary that goes beyond just listing tasks.\n\n"
        f"COMPLETED TASKS ({timeframe} ending {target}, {window} day window):\n"
        f"{json.dumps(task_list, indent=2, ensure_ascii=False)}\n\n"
        "Please provide:\n"
        + "\n".join(sections)
        + "\n\nFormat as a professional summary suitable for status updates or personal reflection. "
        "Be concise but insightful.\nUse bullet points and clear sections. Aim for 150-200 words.\n\n"
        "Focus on VALUE and IMPACT rather than just listing what was done. "
        "Use the description fields to understand the context and importance of each task.\n"
    )


class SummaryService:
    """
    Deterministic summaries, with an optional LLM pass on top.

    ``client`` only needs a ``generate(prompt) -> str`` method. Any error from
    it (or AI being disabled) falls back to the deterministic text.
    """

    def __init__(self, client=None, enabled: bool = False, tz_name: str = "UTC"):
        self.client = client
        self.enabled = enabled
        self.tz_name = tz_name

    def _enhance(self, tasks: List[CompletedTask], summary_type: str, target: str) -> Optional[str]:
        if not self.enabled or self.client is None:
            logger.info("AI is not enabled, using basic summary")
            return None
        try:
            summary = self.client.generate(build_summary_prompt(tasks, summary_type, target))
        except Exception as e:
            logger.error(f"AI summary failed, falling back to basic summary: {e}")
            return None
        return summary or None

    def daily(self, completed, day, highlight_id=None, use_ai=False) -> str:
        day_tasks = tasks_for_day(completed, day)
        if use_ai and day_tasks:
            enhanced = self._enhance(day_tasks, "daily", format_day(day))
            if enhanced:
                return enhanced
        return daily_summary(day_tasks, day, highlight_id)

    def weekly(self, completed, end_day, use_ai=False) -> str:
        week_tasks = tasks_for_week(completed, end_day, self.tz_name)
        if use_ai and week_tasks:
            enhanced = self._enhance(week_tasks, "weekly", format_day(end_day))
            if enhanced:
                return enhanced
        return weekly_summary(week_tasks, end_day, self.tz_name)
