from os import getenv


def _env_bool(name: str, default: bool) -> bool:
    raw = getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> list[str]:
    raw = getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings:
    """Settings de l'app. Lues depuis l'env, surchargeables à la construction."""

    def __init__(self, **overrides):
        self.DATABASE_URL = getenv("DATABASE_URL", "postgresql+psycopg://taskpilot:taskpilot@db:5432/taskpilot")
        self.USE_DATABASE = _env_bool("TASKPILOT_USE_DATABASE", False)
        self.LOCAL_STORE_PATH = getenv("TASKPILOT_LOCAL_STORE", ".local/taskpilot.json")
        self.TIMEZONE = getenv("TASKPILOT_TIMEZONE", "UTC")

        # IA (proxy Claude)
        self.AI_ENABLED = _env_bool("AI_ENABLED", False)
        self.CLAUDE_API_KEY = getenv("CLAUDE_API_KEY", "")
        self.CLAUDE_API_URL = getenv("CLAUDE_API_URL", "https://api.anthropic.com/v1/messages")
        self.AI_MODEL = getenv("AI_MODEL", "claude-3-haiku-20240307")
        self.BACKEND_URL = getenv("BACKEND_URL", "http://localhost:3001")
        self.AI_REQUEST_TIMEOUT = float(getenv("AI_REQUEST_TIMEOUT", "30"))  # secondes

        self.ALLOWED_ORIGINS = _env_list("ALLOWED_ORIGINS")

        # JIRA (payload de création)
        self.JIRA_PROJECT_ID = getenv("JIRA_PROJECT_ID", "")
        self.JIRA_ISSUE_TYPE_ID = getenv("JIRA_ISSUE_TYPE_ID", "10002")
        self.JIRA_LABELS = _env_list("JIRA_LABELS")

        self.LOG_LEVEL = getenv("LOG_LEVEL", "INFO")
        self.PORT = int(getenv("PORT", "3001"))

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)
