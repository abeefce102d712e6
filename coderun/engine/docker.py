import asyncio
import logging
import re
import shutil
import subprocess
import tempfile
import uuid
from pathlib import Path

from coderun.config import DockerSettings
from coderun.engine.base import (
    EngineError,
    Job,
    JobInput,
    JobListener,
    JobState,
    TaskExecution,
)
from coderun.execution.script import OUTPUT_ENV_VAR
from coderun.execution.tasks import ExecutionTask

_logger = logging.getLogger("coderun.engine")

WORKDIR = "/tork/workdir"
OUTPUT_DIR = "/tork/output"
OUTPUT_FILE = "stdout"

_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> float:
    """Convert a duration string such as ``"20s"`` or ``"1m"`` to seconds."""
    match = _DURATION_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit]


class DockerEngine:
    """Run single-task jobs in throwaway Docker containers.

    Each task gets a fresh host directory holding its files, mounted as the
    container working directory, plus a second mount for the output file
    named by ``$TORK_OUTPUT``.
    """

    def __init__(self, settings: DockerSettings) -> None:
        self._settings = settings
        self._running: dict[str, asyncio.Task] = {}

    def is_available(self) -> bool:
        if shutil.which(self._settings.binary) is None:
            return False
        try:
            proc = subprocess.run(
                [self._settings.binary, "info"],
                capture_output=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        return proc.returncode == 0

    async def submit_job(self, job: JobInput, listener: JobListener) -> Job:
        if len(job.tasks) != 1:
            raise EngineError(f"expected exactly one task, got {len(job.tasks)}")
        task = job.tasks[0]
        try:
            parse_duration(task.timeout)
        except ValueError as e:
            raise EngineError(str(e)) from e

        handle = Job(id=uuid.uuid4().hex, name=job.name, state=JobState.PENDING)
        runner = asyncio.create_task(self._run_job(handle, task, listener))
        self._running[handle.id] = runner
        runner.add_done_callback(lambda _t: self._running.pop(handle.id, None))
        return handle

    async def close(self) -> None:
        tasks = list(self._running.values())
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_job(self, handle: Job, task: ExecutionTask, listener: JobListener) -> None:
        handle.state = JobState.RUNNING
        try:
            execution = await asyncio.to_thread(self.run_task, task)
        except asyncio.CancelledError:
            finished = handle.model_copy(
                update={
                    "state": JobState.CANCELLED,
                    "execution": [TaskExecution(task_name=task.name, error="job cancelled")],
                }
            )
            listener(finished)
            raise
        except Exception as e:
            _logger.exception("Task %s crashed", handle.id)
            execution = TaskExecution(task_name=task.name, error=str(e))

        state = JobState.FAILED if execution.error else JobState.COMPLETED
        finished = handle.model_copy(update={"state": state, "execution": [execution]})
        _logger.info("Job %s finished: state=%s", handle.id, state.value)
        listener(finished)

    def build_command(self, task: ExecutionTask, container_name: str, workdir: Path, outdir: Path) -> list[str]:
        return [
            self._settings.binary, "run",
            "--rm",
            "--name", container_name,
            "--network", self._settings.network,
            "--cpus", task.limits.cpus,
            "--memory", task.limits.memory,
            "--memory-swap", task.limits.memory,
            "--pids-limit", str(self._settings.pids_limit),
            "--cap-drop", "ALL",
            "--security-opt", "no-new-privileges:true",
            "--ulimit", f"fsize={self._settings.max_file_bytes}",
            "-v", f"{workdir}:{WORKDIR}",
            "-v", f"{outdir}:{OUTPUT_DIR}",
            "-w", WORKDIR,
            "-e", f"{OUTPUT_ENV_VAR}={OUTPUT_DIR}/{OUTPUT_FILE}",
            task.image,
            "sh", "-c", task.run,
        ]

    def run_task(self, task: ExecutionTask) -> TaskExecution:
        """Run ``task`` to completion, blocking the calling thread."""
        timeout = parse_duration(task.timeout)
        container_name = f"coderun-{uuid.uuid4().hex[:12]}"
        with tempfile.TemporaryDirectory(prefix="coderun-") as base:
            workdir = Path(base) / "work"
            outdir = Path(base) / "out"
            workdir.mkdir()
            outdir.mkdir()
            for filename, content in task.files.items():
                # Only bare filenames are materialized; no paths from the request.
                (workdir / Path(filename).name).write_text(content, encoding="utf-8")
            output_path = outdir / OUTPUT_FILE
            output_path.touch()

            cmd = self.build_command(task, container_name, workdir, outdir)
            try:
                proc = subprocess.run(
                    cmd,
                    capture_output=True,
                    timeout=timeout + self._settings.grace_sec,
                )
            except subprocess.TimeoutExpired:
                self._kill(container_name)
                return TaskExecution(task_name=task.name, error=f"task timed out after {task.timeout}")
            except FileNotFoundError:
                return TaskExecution(task_name=task.name, error="Docker CLI not found")

            output = self._read_output(output_path)
            if proc.returncode != 0:
                stderr = proc.stderr.decode("utf-8", errors="replace").strip()
                return TaskExecution(
                    task_name=task.name,
                    error=f"exit code {proc.returncode}: {stderr}" if stderr else f"exit code {proc.returncode}",
                )
            return TaskExecution(task_name=task.name, result=output)

    def _read_output(self, path: Path) -> str:
        limit = self._settings.max_output_bytes
        with path.open("rb") as f:
            data = f.read(limit + 1)
        if len(data) <= limit:
            return data.decode("utf-8", errors="replace")
        omitted = path.stat().st_size - limit
        _logger.warning("Task output truncated: %d bytes omitted", omitted)
        return data[:limit].decode("utf-8", errors="replace") + f"\n... [output truncated, {omitted} bytes omitted]"

    def _kill(self, container_name: str) -> None:
        try:
            subprocess.run(
                [self._settings.binary, "rm", "-f", container_name],
                capture_output=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired):
            _logger.warning("Failed to remove timed out container %s", container_name)
