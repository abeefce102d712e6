"""Tests for lifespan management and job events."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import fakeredis.aioredis as fakeredis
import pytest

from coderun import state


class TestSetupResources:
    @pytest.mark.asyncio
    async def test_setup_without_job_events(self):
        from coderun.lifespan import cleanup_resources, setup_resources

        engine = MagicMock()
        engine.close = AsyncMock()
        with patch("coderun.lifespan.get_settings") as mock_settings:
            mock_settings.return_value.features.job_events = False
            resources = await setup_resources(engine=engine)

        assert resources.engine is engine
        assert resources.redis_client is None
        assert state.engine is engine
        assert state.event_bus is None

        await cleanup_resources(resources)
        engine.close.assert_awaited_once()
        assert state.engine is None

    @pytest.mark.asyncio
    async def test_setup_with_job_events(self):
        from coderun.lifespan import cleanup_resources, setup_resources

        engine = MagicMock()
        engine.close = AsyncMock()
        fake = fakeredis.FakeRedis(decode_responses=True)
        with patch("coderun.lifespan.get_settings") as mock_settings, \
                patch("coderun.lifespan.init_redis", AsyncMock(return_value=fake)):
            mock_settings.return_value.features.job_events = True
            resources = await setup_resources(engine=engine)

        assert resources.redis_client is fake
        assert state.event_bus is resources.event_bus

        await cleanup_resources(resources)
        assert state.redis_client is None
        assert state.event_bus is None

    def test_default_engine_is_docker(self):
        from coderun.engine.docker import DockerEngine
        from coderun.lifespan import init_engine

        with patch.object(DockerEngine, "is_available") as is_available:
            assert isinstance(init_engine(), DockerEngine)
        is_available.assert_not_called()

    @pytest.mark.asyncio
    async def test_availability_check_runs_in_worker_thread(self, caplog):
        import threading

        from coderun.lifespan import check_engine

        calls = []
        engine = MagicMock()
        engine.is_available = lambda: calls.append(threading.current_thread()) or False

        with caplog.at_level("WARNING", logger="coderun.lifespan"):
            assert await check_engine(engine) is False

        assert calls and calls[0] is not threading.main_thread()
        assert "not available" in caplog.text


class TestEventBus:
    @pytest.mark.asyncio
    async def test_publish_job_events(self):
        from coderun.bus import CHANNEL_JOB_UPDATES, EventBus, job_finished, job_submitted

        fake = fakeredis.FakeRedis(decode_responses=True)
        pubsub = fake.pubsub()
        await pubsub.subscribe(CHANNEL_JOB_UPDATES)
        await pubsub.get_message(timeout=1)  # subscribe confirmation

        bus = EventBus(fake)
        await bus.publish(job_submitted("job-1", "c"))
        await bus.publish(job_finished("job-1", "completed"))

        received = []
        for _ in range(2):
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1)
            received.append(json.loads(message["data"]))

        assert received[0]["type"] == "job_submitted"
        assert received[0]["language"] == "c"
        assert received[1] == {**received[1], "type": "job_finished", "job_id": "job-1", "state": "completed"}
        await pubsub.aclose()
