import asyncio
import os
import sys
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import pytest
from fastapi.testclient import TestClient

import coderun.lifespan as lifespan_module
import coderun.main as main
from coderun.config import Settings, get_settings
from coderun.engine.base import EngineError, Job, JobInput, JobState, TaskExecution


class FakeEngine:
    """In-process engine that finishes every job with a canned outcome."""

    def __init__(self):
        self.state = JobState.COMPLETED
        self.result = '{"stdout": "hi"}'
        self.error = ""
        self.reject: str | None = None
        self.hang = False
        self.available = True
        self.submitted: list[JobInput] = []
        self.closed = False

    async def submit_job(self, job: JobInput, listener) -> Job:
        if self.reject is not None:
            raise EngineError(self.reject)
        self.submitted.append(job)
        handle = Job(id=f"job-{len(self.submitted)}", name=job.name, state=JobState.RUNNING)
        if not self.hang:
            finished = handle.model_copy(
                update={
                    "state": self.state,
                    "execution": [
                        TaskExecution(task_name=job.tasks[0].name, result=self.result, error=self.error)
                    ],
                }
            )
            asyncio.get_running_loop().call_soon(listener, finished)
        return handle

    def is_available(self) -> bool:
        return self.available

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def client(monkeypatch, engine, settings):
    monkeypatch.setattr(lifespan_module, "init_engine", lambda: engine)
    main.app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(main.app) as c:
        yield c

    main.app.dependency_overrides.clear()
