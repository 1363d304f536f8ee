"""
Proxy vers l'API Claude.

POST /api/claude/summary {"prompt": "..."} -> {"summary": "..."}
Les erreurs de l'API amont renvoient son status, le corps reste dans les logs.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from taskpilot.core.dependencies import get_claude_client
from taskpilot.services.ai_service import AIServiceError, ClaudeClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/claude", tags=["claude"])


class SummaryRequest(BaseModel):
    prompt: str = Field(min_length=1)


class SummaryResponse(BaseModel):
    summary: str


@router.post("/summary", response_model=SummaryResponse)
def claude_summary(request: SummaryRequest, client: ClaudeClient = Depends(get_claude_client)):
    try:
        summary = client.complete(request.prompt)
    except AIServiceError as e:
        return JSONResponse(status_code=e.status_code, content={"error": str(e)})
    except Exception as e:
        logger.error(f"Server error: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return SummaryResponse(summary=summary)
