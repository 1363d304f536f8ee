from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(prefix="/api")


@router.get("/health")
def health():
    # Check si l'API est up
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
