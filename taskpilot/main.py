import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskpilot.core.config import Settings
from taskpilot.core.logging_setup import setup_logging
from taskpilot.routers import health, claude, tasks, today, completed, summary
from taskpilot.services.ai_service import ClaudeClient, ProxySummaryClient
from taskpilot.services.backend import build_backend
from taskpilot.services.outbox import PersistenceOutbox
from taskpilot.services.summary_service import SummaryService
from taskpilot.services.task_store import TaskStore

logger = logging.getLogger(__name__)

# localhost, previews Vercel et domaines task-manager
DEV_AND_PREVIEW_ORIGINS = r"https?://.*(localhost|127\.0\.0\.1|vercel\.app|task-manager).*"


def create_app(settings: Settings = None, store: TaskStore = None, summary_service: SummaryService = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.LOG_LEVEL)

    if store is None:
        store = TaskStore(build_backend(settings), PersistenceOutbox(), tz_name=settings.TIMEZONE)
    if not store.loaded:
        store.load()

    if summary_service is None:
        proxy = ProxySummaryClient(settings.BACKEND_URL, timeout=settings.AI_REQUEST_TIMEOUT)
        summary_service = SummaryService(proxy, enabled=settings.AI_ENABLED, tz_name=settings.TIMEZONE)
    logger.info("AI summaries enabled: %s", summary_service.enabled)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # vide l'outbox avant de quitter
        store.close()

    app = FastAPI(
        title="TaskPilot API",
        version="0.4.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.summary_service = summary_service
    app.state.claude_client = ClaudeClient.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_origin_regex=DEV_AND_PREVIEW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(health.router)
    app.include_router(claude.router)
    app.include_router(today.router)
    app.include_router(tasks.router)
    app.include_router(completed.router)
    app.include_router(summary.router)
    return app


def main():
    import uvicorn

    uvicorn.run("taskpilot.main:create_app", factory=True, host="0.0.0.0", port=Settings().PORT)
