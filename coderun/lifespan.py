"""Application startup and shutdown.

Starts the execution engine and, when job events are enabled, the Redis
connection backing the event bus.
"""

import asyncio
import logging
from dataclasses import dataclass

import redis.asyncio as redis
from redis.asyncio import BlockingConnectionPool as RedisConnectionPool

from coderun import state
from coderun.bus import EventBus
from coderun.config import get_settings
from coderun.engine.base import ExecutionEngine
from coderun.engine.docker import DockerEngine

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    """Container for resources initialized during lifespan."""

    engine: ExecutionEngine | None = None
    redis_client: redis.Redis | None = None
    event_bus: EventBus | None = None


def init_engine() -> ExecutionEngine:
    """Create the default Docker engine."""
    return DockerEngine(get_settings().docker)


async def check_engine(engine: ExecutionEngine) -> bool:
    """Run the engine availability check off the event loop; warns when it fails."""
    available = await asyncio.to_thread(engine.is_available)
    if not available:
        logger.warning("Execution engine is not available; jobs will fail until it is")
    return available


async def init_redis() -> redis.Redis:
    """Initialize Redis connection with connection pool.

    Returns:
        Configured Redis client.
    """
    settings = get_settings()

    redis_pool = RedisConnectionPool(
        host=settings.redis.host,
        port=settings.redis.port,
        password=settings.redis.password if settings.redis.password else None,
        max_connections=settings.redis.max_connections,
        timeout=settings.redis.pool_timeout_sec,
        socket_timeout=settings.redis.socket_timeout,
        socket_connect_timeout=settings.redis.socket_connect_timeout,
    )

    candidate_client = redis.Redis(connection_pool=redis_pool, decode_responses=True)
    if hasattr(candidate_client, "__await__"):
        return await candidate_client
    return candidate_client


async def setup_resources(engine: ExecutionEngine | None = None) -> LifespanResources:
    """Set up all shared resources.

    Args:
        engine: Engine to use instead of the default Docker engine.
    """
    resources = LifespanResources()
    resources.engine = engine if engine is not None else init_engine()
    await check_engine(resources.engine)

    if get_settings().features.job_events:
        resources.redis_client = await init_redis()
        resources.event_bus = EventBus(resources.redis_client)

    state.engine = resources.engine
    state.redis_client = resources.redis_client
    state.event_bus = resources.event_bus
    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    """Clean up all resources on shutdown."""
    if resources.engine is not None:
        await resources.engine.close()

    if resources.redis_client:
        aclose = getattr(resources.redis_client, "aclose", None)
        if callable(aclose):
            await aclose()
        else:
            close = getattr(resources.redis_client, "close", None)
            if callable(close):
                await close()

    state.engine = None
    state.redis_client = None
    state.event_bus = None
