import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from apps.api.middlewares.metrics import MetricsMiddleware
from apps.api.routers import admin, auth, health, match
from core import close_redis, engine, init_models
from core.config import settings
from core.metrics import store_errors_total

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    if settings.create_schema_on_startup:
        await init_models()
        logger.info("Database schema ensured")
    yield
    # Shutdown
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Number Match API",
    description="Random number/name matching with admin-curated pairs",
    version="0.1.0",
    lifespan=lifespan,
)

# Middlewares
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(match.router, prefix="/match", tags=["match"])
app.include_router(admin.router)  # Already has /admin prefix


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store failures abort the request without a state change; the client may retry."""
    logger.exception(f"Store operation failed: {request.method} {request.url.path}")
    store_errors_total.labels(endpoint=request.url.path).inc()
    return JSONResponse(status_code=503, content={"detail": "store_unavailable"})


@app.exception_handler(RedisError)
async def redis_error_handler(request: Request, exc: RedisError) -> JSONResponse:
    logger.exception(f"Redis operation failed: {request.method} {request.url.path}")
    return JSONResponse(status_code=503, content={"detail": "throttle_unavailable"})


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"status": "ok", "service": "number-match"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
