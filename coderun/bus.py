"""
Event bus for job lifecycle events, backed by Redis.
"""
import json
from datetime import datetime, UTC
from typing import Final

import redis.asyncio as redis

from coderun.events import JobEvent, JobFinishedEvent, JobSubmittedEvent

CHANNEL_JOB_UPDATES: Final[str] = "job_updates"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def job_submitted(job_id: str, language: str) -> JobSubmittedEvent:
    return {"type": "job_submitted", "job_id": job_id, "language": language, "timestamp": _now()}


def job_finished(job_id: str, state: str) -> JobFinishedEvent:
    return {"type": "job_finished", "job_id": job_id, "state": state, "timestamp": _now()}


class EventBus:
    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def publish(self, event: JobEvent) -> None:
        await self.redis_client.publish(CHANNEL_JOB_UPDATES, json.dumps(event))
