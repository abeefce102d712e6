import asyncio
from typing import Dict

from fastapi import APIRouter

from coderun import state

router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, str]:
    engine_status = "unavailable"
    if state.engine is not None and await asyncio.to_thread(state.engine.is_available):
        engine_status = "available"

    redis_status = "disconnected"
    if state.redis_client:
        try:
            await state.redis_client.ping()
            redis_status = "healthy"
        except Exception:
            redis_status = "unhealthy"

    return {"status": "ok", "engine": engine_status, "redis": redis_status}
