from typing import Optional

import redis.asyncio as redis

from coderun.bus import EventBus
from coderun.engine.base import ExecutionEngine

# Global runtime state initialized in lifespan
engine: Optional[ExecutionEngine] = None
redis_client: Optional[redis.Redis] = None
event_bus: Optional[EventBus] = None
