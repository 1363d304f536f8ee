from fastapi import Request

from taskpilot.core.config import Settings
from taskpilot.services.ai_service import ClaudeClient
from taskpilot.services.summary_service import SummaryService
from taskpilot.services.task_store import TaskStore


# Objets construits dans create_app() et posés sur app.state

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> TaskStore:
    return request.app.state.store


def get_summary_service(request: Request) -> SummaryService:
    return request.app.state.summary_service


def get_claude_client(request: Request) -> ClaudeClient:
    return request.app.state.claude_client
