"""Construction du payload de création de ticket JIRA (API v3) depuis une tâche."""

import uuid
from typing import List, Optional

from taskpilot.schemas.task import Task


def _adf_paragraph(text: str) -> dict:
    # Atlassian Document Format minimal
    return {
        "version": 1,
        "type": "doc",
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
    }


def build_jira_description(task: Task) -> str:
    parts = []
    if task.parent_text:
        parts.append(f"Parent Task: {task.parent_text}")
    parts.append(task.text)
    if task.description:
        parts.append(task.description)
    if task.github_pr:
        parts.append(f"GitHub PR: {task.github_pr}")
    return "\n\n".join(parts)


def build_jira_payload(
    task: Task,
    project_id: str,
    issue_type_id: str,
    labels: Optional[List[str]] = None,
) -> dict:
    summary = f"{task.parent_text} - {task.text}" if task.parent_text else task.text
    return {
        "fields": {
            "project": {"id": project_id},
            "issuetype": {"id": issue_type_id},
            "summary": summary,
            "description": _adf_paragraph(build_jira_description(task)),
            "labels": list(labels or []),
        },
        "update": {},
        "externalToken": uuid.uuid4().hex,
    }
