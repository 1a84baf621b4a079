"""
HEALTH CHECK
============
Usado pelo monitoramento externo e pelo deploy.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.infrastructure.database import get_db
from morphews.infrastructure.scheduler import get_scheduler_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """200 se o banco responde, 503 caso contrário."""
    checks = {}
    healthy = True

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.error(f"❌ Health check: banco indisponível: {e}")
        checks["database"] = f"error: {e}"
        healthy = False

    checks["scheduler"] = "running" if get_scheduler_status()["running"] else "stopped"

    body = {"status": "healthy" if healthy else "unhealthy", "checks": checks}
    return JSONResponse(status_code=200 if healthy else 503, content=body)
