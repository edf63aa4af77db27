"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, the
database is reachable, and reports how busy the realtime layer is.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from synergy import __version__
from synergy.db.engine import get_db

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    realtime = request.app.state.realtime.registry.stats()

    return {"status": status, **checks, "realtime": realtime}
