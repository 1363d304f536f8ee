"""
Service Claude - appels HTTP au modèle

- ClaudeClient: appel direct à l'API Anthropic (utilisé par le proxy /api/claude/summary)
- ProxySummaryClient: appel au proxy backend (utilisé par le générateur de résumés)
"""

import requests
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 500


class AIServiceError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class ClaudeClient:
    def __init__(self, api_key: str, model: str, api_url: str, timeout: float = 30):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "ClaudeClient":
        return cls(
            api_key=settings.CLAUDE_API_KEY,
            model=settings.AI_MODEL,
            api_url=settings.CLAUDE_API_URL,
            timeout=settings.AI_REQUEST_TIMEOUT,
        )

    def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise AIServiceError("Claude API key not configured", status_code=500)

        start_time = datetime.now(timezone.utc)
        try:
            response = requests.post(
                self.api_url,
                headers={
                    "Content-Type": "application/json",
                    "x-api-key": self.api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
                json={
                    "model": self.model,
                    "max_tokens": MAX_TOKENS,
                    "messages": [{"role": "user", "content": prompt}],
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Claude API unreachable: {e}")
            raise AIServiceError(f"Claude API unreachable: {e}", status_code=502) from e

        if not response.ok:
            # le corps est loggé, jamais renvoyé au client
            logger.error(f"Claude API error ({response.status_code}): {response.text}")
            raise AIServiceError("Claude API error", status_code=response.status_code)

        try:
            text = response.json()["content"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected Claude response: {e}")
            raise AIServiceError("Unexpected Claude response", status_code=502) from e

        elapsed_ms = int((datetime.now(timezone.utc) - start_time).total_seconds() * 1000)
        logger.info(f"Claude summary generated in {elapsed_ms} ms")
        return text


class ProxySummaryClient:
    def __init__(self, backend_url: str, timeout: float = 30):
        self.backend_url = backend_url.rstrip("/")
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        logger.info("Calling Claude API via backend proxy...")
        try:
            response = requests.post(
                f"{self.backend_url}/api/claude/summary",
                json={"prompt": prompt},
                timeout=self.timeout,
            )
            response.raise_for_status()
            summary = response.json().get("summary")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Backend proxy error: {e}")
            raise AIServiceError(f"Backend API error: {e}", status_code=502) from e

        if not summary:
            raise AIServiceError("Empty summary from backend", status_code=502)
        return summary
