"""Core modules for the application."""

from core.config import settings
from core.db import Base, engine, get_db, init_models
from core.redis import close_redis, get_redis

__all__ = ["settings", "Base", "get_db", "engine", "init_models", "get_redis", "close_redis"]
