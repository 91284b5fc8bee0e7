import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database(db: AsyncSession) -> dict:
    try:
        start = time.monotonic()
        await db.execute(text("SELECT 1"))
        latency_ms = round((time.monotonic() - start) * 1000)
        return {"status": "up", "latency_ms": latency_ms}
    except Exception:
        logger.exception("Database health check failed")
        return {"status": "down"}


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    database = await _check_database(db)
    return {
        "status": "healthy" if database["status"] == "up" else "unhealthy",
        "checks": {"database": database},
    }
