"""Turn a validated execution request into a sandbox task descriptor."""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from coderun.config import ExecutionSettings
from coderun.execution.script import (
    Compile,
    DumpTrace,
    MoveSource,
    RunHelper,
    Script,
    UnlessOutput,
    WriteProgramInput,
)
from coderun.models.execute import ExecRequest

_logger = logging.getLogger("coderun.tasks")

TASK_NAME = "execute code"


class TaskBuildError(ValueError):
    """The request cannot be turned into a task."""


class Language(str, Enum):
    C = "c"
    CPP = "c++"


class Toolchain(BaseModel):
    model_config = ConfigDict(frozen=True)

    compiler: str
    filename: str


TOOLCHAINS: dict[Language, Toolchain] = {
    Language.C: Toolchain(compiler="gcc", filename="usercode.c"),
    Language.CPP: Toolchain(compiler="g++", filename="usercode.cpp"),
}


class Limits(BaseModel):
    model_config = ConfigDict(frozen=True)

    cpus: str
    memory: str


class ExecutionTask(BaseModel):
    """Everything the engine needs to run one compile-and-run step."""

    model_config = ConfigDict(frozen=True)

    name: str
    image: str
    language: Language
    filename: str
    compiler: str
    run: str
    timeout: str
    limits: Limits
    files: dict[str, str]


def parse_language(raw: str) -> Language:
    value = raw.strip()
    if not value:
        raise TaskBuildError("missing language")
    try:
        return Language(value)
    except ValueError:
        raise TaskBuildError(f"unknown language: {raw}") from None


class TaskSynthesizer:
    """Builds task descriptors under a fixed execution policy.

    The synthesizer never runs anything. With ``debug_trace`` enabled the
    script dumps the valgrind trace instead of running the helper.
    """

    def __init__(self, settings: ExecutionSettings) -> None:
        self._image = settings.image
        self._timeout = settings.timeout
        self._limits = Limits(cpus=settings.cpus, memory=settings.memory)
        self._debug_trace = settings.debug_trace

    def script_for(self, language: Language, program_input: str) -> Script:
        toolchain = TOOLCHAINS[language]
        runtime = DumpTrace() if self._debug_trace else RunHelper(language.value)
        return Script(
            steps=(
                MoveSource(toolchain.filename),
                WriteProgramInput(program_input),
                Compile(toolchain.compiler, toolchain.filename),
                UnlessOutput(runtime),
            )
        )

    def build(self, request: ExecRequest) -> ExecutionTask:
        language = parse_language(request.language)
        toolchain = TOOLCHAINS[language]
        script = self.script_for(language, request.program_input)
        _logger.debug("Built %s task for %s", language.value, toolchain.filename)
        return ExecutionTask(
            name=TASK_NAME,
            image=self._image,
            language=language,
            filename=toolchain.filename,
            compiler=toolchain.compiler,
            run=script.render(),
            timeout=self._timeout,
            limits=self._limits,
            files={toolchain.filename: request.code},
        )
