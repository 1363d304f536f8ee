"""
Import en masse: texte indenté -> liste de TaskDraft.

Format accepté:
    Tâche parente
    > description (plusieurs lignes possibles)
    [JIRA: ABC-1] [PR: #12]
        - sous-tâche (4 espaces = 1 niveau)

Ne lève jamais d'exception: ce qui ne se parse pas est ignoré.
"""

import re
from typing import List, Optional

from taskpilot.schemas.task import TaskDraft

INDENT_WIDTH = 4

TAG_RE = re.compile(r"\[(JIRA|PR):\s*([^\]]*?)\s*\]", re.IGNORECASE)
BULLET_RE = re.compile(r"^[-*•]\s*")
NUMBERED_RE = re.compile(r"^\d+[.)]\s*")
LEADING_WS_RE = re.compile(r"^(\s*)")
MULTISPACE_RE = re.compile(r"[ \t]{2,}")


def extract_tags(line: str) -> tuple[str, Optional[str], Optional[str]]:
    """Retourne (texte sans tags, jira, pr). Le dernier tag de chaque type gagne."""
    jira = None
    pr = None
    for match in TAG_RE.finditer(line):
        kind, value = match.group(1).upper(), match.group(2).strip()
        if not value:
            continue
        if kind == "JIRA":
            jira = value
        else:
            pr = value
    text = MULTISPACE_RE.sub(" ", TAG_RE.sub("", line)).strip()
    return text, jira, pr


def _indent_level(line: str) -> int:
    return len(LEADING_WS_RE.match(line).group(1)) // INDENT_WIDTH


def _strip_marker(text: str) -> str:
    # un seul marqueur: puce OU numéro
    stripped = BULLET_RE.sub("", text, count=1)
    if stripped == text:
        stripped = NUMBERED_RE.sub("", text, count=1)
    return stripped


def _apply_tags(draft: dict, jira: Optional[str], pr: Optional[str]) -> None:
    if jira:
        draft["jira_ticket"] = jira
    if pr:
        draft["github_pr"] = pr


def parse_bulk_tasks(raw_text: str) -> List[TaskDraft]:
    drafts: List[TaskDraft] = []
    current: Optional[dict] = None
    description_lines: List[str] = []
    stack: List[tuple[int, str]] = []  # (index, text) par niveau
    pending_blanks = 0

    def finalize():
        if current is None:
            return
        if description_lines:
            current["description"] = "\n".join(description_lines)
        drafts.append(TaskDraft(**current))

    for line in (raw_text or "").splitlines():
        trimmed = line.strip()
        if not trimmed:
            # une ligne vide ne compte que entre deux lignes "> "
            if description_lines:
                pending_blanks += 1
            continue

        # Description
        if trimmed.startswith(">"):
            if current is not None:
                content = trimmed[1:]
                if content.startswith(" "):
                    content = content[1:]
                description_lines.extend([""] * pending_blanks)
                description_lines.append(content)
            pending_blanks = 0
            continue
        pending_blanks = 0

        remainder, jira, pr = extract_tags(trimmed)
        text = _strip_marker(remainder).strip()

        # Ligne de métadonnées seule (éventuellement avec une puce)
        if not text:
            if current is not None:
                _apply_tags(current, jira, pr)
            continue

        level = _indent_level(line)
        finalize()

        while len(stack) > level:
            stack.pop()
        parent_index, parent_text = stack[-1] if stack else (None, None)

        current = {
            "text": text,
            "parent_index": parent_index,
            "parent_text": parent_text,
            "level": level,
        }
        _apply_tags(current, jira, pr)
        description_lines = []
        stack.append((len(drafts), text))

    finalize()
    return drafts
