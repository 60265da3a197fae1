"""
Health checks - liveness for load balancers, readiness pings the database.
"""

import time

from fastapi import APIRouter
from sqlalchemy import text

from marketbook.config import get_settings
from marketbook.db.session import DbSession

router = APIRouter()
settings = get_settings()
_started = time.monotonic()


@router.get("")
async def health():
    """Liveness: is the process up?"""
    return {"status": "ok", "app": settings.app_name, "uptime": round(time.monotonic() - _started, 3)}


@router.get("/ready")
async def ready(session: DbSession):
    """Readiness: can the database answer?"""
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}
