"""
Composition root.

Holds the process-wide shared state (TTL cache, volatile store) and the clients
built from settings. Created once per application and passed explicitly, so tests
can build isolated instances.
"""
import logging
from dataclasses import dataclass

from core.config import Settings
from core.token_codec import Clock, TokenCodec
from core.ttl_cache import TTLCache
from db.primary_store import SqlRecordStore
from db.session import create_engine
from db.stores import RecordStore
from db.volatile_store import VolatileStore
from services.repository import FallbackRepository

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Application-wide collaborators."""

    settings: Settings
    codec: TokenCodec
    cache: TTLCache
    volatile: VolatileStore
    primary: RecordStore
    repository: FallbackRepository


def build_container(
    settings: Settings,
    primary: RecordStore | None = None,
    clock: Clock | None = None,
) -> AppContainer:
    """Build the container; the primary store defaults to SQL from settings.database_url."""
    if primary is None:
        primary = SqlRecordStore(
            create_engine(settings),
            timeout=settings.primary_store_timeout,
        )
    volatile = VolatileStore(enabled=settings.fallback_enabled)
    return AppContainer(
        settings=settings,
        codec=TokenCodec(settings.session_secret, settings.session_ttl_seconds, clock),
        cache=TTLCache(
            default_ttl=settings.cache_default_ttl_seconds,
            sweep_interval=settings.cache_sweep_interval_seconds,
            sweep_batch_size=settings.cache_sweep_batch_size,
        ),
        volatile=volatile,
        primary=primary,
        repository=FallbackRepository(primary, volatile),
    )


async def close_container(container: AppContainer) -> None:
    """Stop background work and release connections."""
    await container.cache.stop()
    await container.primary.close()
    logger.info("container_closed")
