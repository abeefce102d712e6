"""Contract between the API and whatever runs sandbox tasks."""

from collections.abc import Callable
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, Field

from coderun.execution.tasks import ExecutionTask

JOB_NAME = "code execution"


class EngineError(RuntimeError):
    """The engine refused or failed to accept a job."""


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED})


class TaskExecution(BaseModel):
    task_name: str
    result: str = ""
    error: str = ""


class JobInput(BaseModel):
    name: str = JOB_NAME
    tasks: list[ExecutionTask]


class Job(BaseModel):
    id: str
    name: str
    state: JobState = JobState.PENDING
    execution: list[TaskExecution] = Field(default_factory=list)


JobListener = Callable[[Job], None]


class ExecutionEngine(Protocol):
    async def submit_job(self, job: JobInput, listener: JobListener) -> Job:
        """Accept ``job`` and return its handle.

        ``listener`` is invoked exactly once, when the job reaches a
        terminal state. Raises EngineError if the job is rejected.
        """
        ...

    def is_available(self) -> bool: ...

    async def close(self) -> None: ...
