"""Dependency injection for FastAPI endpoints.

This module provides FastAPI dependencies for accessing shared resources
like the execution engine and the optional event bus.

Usage in controllers:
    from coderun.dependencies import Engine

    @router.post("/execute")
    async def execute(engine: Engine):
        ...
"""

from typing import Annotated

from fastapi import Depends

from coderun import state
from coderun.bus import EventBus
from coderun.config import Settings, get_settings
from coderun.engine.base import ExecutionEngine
from coderun.errors import ServiceUnavailableError


def get_engine() -> ExecutionEngine:
    """Get the execution engine.

    Raises:
        ServiceUnavailableError: If no engine has been started.
    """
    if state.engine is None:
        raise ServiceUnavailableError(message="Execution engine not started")
    return state.engine


def get_optional_event_bus() -> EventBus | None:
    """Get the EventBus if job events are enabled, or None."""
    return state.event_bus


Engine = Annotated[ExecutionEngine, Depends(get_engine)]
OptionalBus = Annotated[EventBus | None, Depends(get_optional_event_bus)]
AppSettings = Annotated[Settings, Depends(get_settings)]
