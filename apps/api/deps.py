"""FastAPI dependencies."""

from collections.abc import AsyncGenerator

import redis.asyncio as redis
from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.identity.provider import DatabaseIdentityProvider, IdentityProvider
from apps.identity.session import SessionContext, UserSession
from apps.matching.service import MatchService
from core.auth import bearer_token
from core.db import get_db as _get_db
from core.redis import get_redis as _get_redis


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in _get_db():
        yield session


async def get_redis_client() -> redis.Redis:
    """Get Redis client dependency."""
    return await _get_redis()


async def get_identity_provider(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis_client),
) -> IdentityProvider:
    """Identity provider bound to the request's database session."""
    return DatabaseIdentityProvider(db, redis_client)


async def get_session_context(
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> SessionContext:
    return SessionContext(db, provider)


async def get_session(
    token: str = Depends(bearer_token),
    context: SessionContext = Depends(get_session_context),
) -> UserSession:
    """Resolve the caller's session, re-deriving admin status on every request."""
    session = await context.resolve(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def require_admin(session: UserSession = Depends(get_session)) -> UserSession:
    """Allow only sessions holding an AdminFlag."""
    if not session.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return session


async def get_match_service(db: AsyncSession = Depends(get_db)) -> MatchService:
    return MatchService(db)
