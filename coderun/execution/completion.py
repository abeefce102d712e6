"""Single-use result channel between the engine callback and the request."""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable

from coderun.engine.base import Job, JobState

_logger = logging.getLogger("coderun.completion")


class ResultTimeout(Exception):
    """The result did not arrive before the deadline or cancellation."""


class CompletionSlot:
    """A one-time-writable future bound to the creating event loop.

    ``deliver`` may be called from any thread, exactly once. ``wait`` is
    called by the single reader.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[str] = self._loop.create_future()
        self._lock = threading.Lock()
        self._delivered = False

    @property
    def delivered(self) -> bool:
        return self._delivered

    def deliver(self, value: str) -> None:
        with self._lock:
            if self._delivered:
                raise RuntimeError("completion slot already filled")
            self._delivered = True
        self._loop.call_soon_threadsafe(self._set, value)

    def _set(self, value: str) -> None:
        # The reader may have given up and cancelled the future already.
        if not self._future.done():
            self._future.set_result(value)

    async def wait(
        self,
        timeout: float | None = None,
        cancelled: Awaitable[object] | None = None,
    ) -> str:
        """Return the delivered value.

        Raises ResultTimeout when ``timeout`` elapses or ``cancelled``
        completes first.
        """
        watchers: set[asyncio.Future] = {self._future}
        cancel_task: asyncio.Future | None = None
        if cancelled is not None:
            cancel_task = asyncio.ensure_future(cancelled)
            watchers.add(cancel_task)
        try:
            done, _ = await asyncio.wait(
                watchers, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if cancel_task is not None and not cancel_task.done():
                cancel_task.cancel()

        if self._future in done:
            return self._future.result()
        self._future.cancel()
        raise ResultTimeout("result not delivered before cancellation")


def job_listener(slot: CompletionSlot) -> Callable[[Job], None]:
    """Build the engine callback that feeds ``slot`` from a finished job."""

    def listener(job: Job) -> None:
        execution = job.execution[0]
        if job.state is JobState.COMPLETED:
            slot.deliver(execution.result)
        else:
            _logger.debug("job %s ended in state %s", job.id, job.state.value)
            slot.deliver(execution.error)

    return listener


async def wait_for_disconnect(is_disconnected: Callable[[], Awaitable[bool]], interval: float) -> None:
    """Return once ``is_disconnected`` reports the client has gone away."""
    while not await is_disconnected():
        await asyncio.sleep(interval)
