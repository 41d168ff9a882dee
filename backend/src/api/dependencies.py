"""FastAPI dependencies for injection."""
from fastapi import Depends

from core.auth import (
    get_container,
    get_current_session,
    get_current_user,
    get_session_manager,
    require_capability,
)
from core.container import AppContainer
from core.ttl_cache import TTLCache
from services.repository import FallbackRepository


def get_repository(container: AppContainer = Depends(get_container)) -> FallbackRepository:
    """Repository facade over the primary and volatile stores."""
    return container.repository


def get_cache(container: AppContainer = Depends(get_container)) -> TTLCache:
    """Process-wide TTL cache."""
    return container.cache


__all__ = [
    "get_cache",
    "get_container",
    "get_current_session",
    "get_current_user",
    "get_repository",
    "get_session_manager",
    "require_capability",
]
