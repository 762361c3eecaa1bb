"""Health check endpoints."""

from typing import Any

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db, get_redis_client
from models.match import Match
from models.pair import Pair

router = APIRouter()


@router.get("/")
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy", "service": "number-match"}


@router.get("/db")
async def health_check_db(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Database check; also reports total pair and match counts."""
    try:
        pairs = (await db.execute(select(func.count(Pair.id)))).scalar_one()
        matches = (await db.execute(select(func.count(Match.id)))).scalar_one()
    except Exception as e:
        return {"status": "unhealthy", "database": "disconnected", "error": str(e)}
    return {"status": "healthy", "database": "connected", "pairs": pairs, "matches": matches}


@router.get("/redis")
async def health_check_redis(redis_client: redis.Redis = Depends(get_redis_client)) -> dict[str, str]:
    """Redis check (backs the login throttle)."""
    try:
        await redis_client.ping()
    except Exception as e:
        return {"status": "unhealthy", "redis": "disconnected", "error": str(e)}
    return {"status": "healthy", "redis": "connected"}
