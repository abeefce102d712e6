import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from coderun.bus import EventBus, job_finished, job_submitted
from coderun.dependencies import AppSettings, Engine, OptionalBus
from coderun.engine.base import EngineError, Job, JobInput
from coderun.errors import BadRequestError, InvalidInputError, ResultTimeoutError
from coderun.execution.completion import (
    CompletionSlot,
    ResultTimeout,
    job_listener,
    wait_for_disconnect,
)
from coderun.execution.interpreter import Interpreter, normalize
from coderun.execution.tasks import TaskBuildError, TaskSynthesizer
from coderun.models.execute import ExecRequest
from coderun.sanitizer import validate_program_input

_logger = logging.getLogger("coderun.execute")

router = APIRouter()


async def _publish(bus: EventBus, event: Any) -> None:
    try:
        await bus.publish(event)
    except Exception as e:
        _logger.warning("Failed to publish %s: %s", event.get("type"), e)


@router.post("/execute")
async def execute(
    payload: ExecRequest,
    request: Request,
    engine: Engine,
    settings: AppSettings,
    bus: OptionalBus,
) -> Any:
    payload = payload.model_copy(update={"program_input": payload.program_input.strip()})
    if not validate_program_input(payload.program_input):
        _logger.debug('invalid_input: "%s"', payload.program_input)
        raise InvalidInputError()

    _logger.debug("%s", payload.code)

    try:
        task = TaskSynthesizer(settings.execution).build(payload)
    except TaskBuildError as e:
        raise BadRequestError(str(e)) from e

    loop = asyncio.get_running_loop()
    slot = CompletionSlot(loop)
    deliver = job_listener(slot)

    def listener(job: Job) -> None:
        deliver(job)
        if bus is not None:
            asyncio.run_coroutine_threadsafe(_publish(bus, job_finished(job.id, job.state.value)), loop)

    try:
        job = await engine.submit_job(JobInput(tasks=[task]), listener)
    except EngineError as e:
        raise BadRequestError(f"error executing code: {e}") from e

    _logger.debug("job %s submitted", job.id)
    if bus is not None:
        await _publish(bus, job_submitted(job.id, task.language.value))

    try:
        output = await slot.wait(
            timeout=settings.execution.result_timeout_sec,
            cancelled=wait_for_disconnect(request.is_disconnected, settings.execution.disconnect_poll_sec),
        )
    except ResultTimeout:
        _logger.info("job %s: gave up waiting for result", job.id)
        raise ResultTimeoutError() from None

    interpretation = Interpreter(settings.execution.debug_trace).interpret(output)
    status_code, body = normalize(interpretation, payload.code)
    return JSONResponse(status_code=status_code, content=body)
