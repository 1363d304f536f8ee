import sys
from pathlib import Path

# Ajoute la racine du projet au PYTHONPATH EN PREMIER
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from taskpilot.core.config import Settings
from taskpilot.core.database import make_engine, init_db
from taskpilot.main import create_app
from taskpilot.services.backend import MemoryBackend, SqlBackend, PersistenceBackend, StoreError
from taskpilot.services.outbox import PersistenceOutbox
from taskpilot.services.summary_service import SummaryService
from taskpilot.services.task_store import TaskStore


# ============ FAKES ============

class FakeClock:
    """Horloge contrôlée par le test"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FailingBackend(PersistenceBackend):
    """Backend qui échoue sur chaque appel"""

    name = "failing"

    def __init__(self):
        self.calls = 0

    def select(self, table, filters=None):
        self.calls += 1
        raise StoreError("backend unreachable")

    def delete(self, table, filters=None, column=None, values=None):
        self.calls += 1
        raise StoreError("backend unreachable")

    def upsert(self, table, rows, key_columns):
        self.calls += 1
        raise StoreError("backend unreachable")


class FakeLLMClient:
    def __init__(self, next_text: str = "AI generated summary"):
        self.next_text = next_text
        self.error = None
        self.prompts = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.next_text


# ============ FIXTURES ============

@pytest.fixture
def clock():
    # 1er juin 2025, 9h UTC
    return FakeClock(datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def failing_backend():
    return FailingBackend()


@pytest.fixture
def outbox():
    return PersistenceOutbox(inline=True)


@pytest.fixture
def store(backend, outbox, clock):
    """Store chargé, persistance synchrone"""
    store = TaskStore(backend, outbox, clock=clock)
    store.load()
    return store


@pytest.fixture
def sqlite_backend(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield SqlBackend(engine)
    engine.dispose()


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        USE_DATABASE=False,
        LOCAL_STORE_PATH=str(tmp_path / "store.json"),
        AI_ENABLED=True,
        CLAUDE_API_KEY="test-key",
        ALLOWED_ORIGINS=["https://tasks.example.com"],
        JIRA_PROJECT_ID="10732",
        JIRA_LABELS=["odie"],
    )


@pytest.fixture
def client(settings, store, llm):
    """Client de test FastAPI"""
    app = create_app(settings, store=store, summary_service=SummaryService(llm, enabled=True))
    return TestClient(app)
