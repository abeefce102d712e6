"""Shell script model for compile-and-run tasks.

A script is an ordered list of steps. Each step renders exactly one shell
statement, and statements are joined with ``"; "``. Steps are plain frozen
dataclasses so tests can inspect the plan without string matching.
"""

from dataclasses import dataclass
from typing import Final, Protocol

SANDBOX_DIR: Final[str] = "/tmp/user_code"
PROGRAM_INPUT_PATH: Final[str] = f"{SANDBOX_DIR}/programInput.txt"
BINARY_PATH: Final[str] = f"{SANDBOX_DIR}/usercode"
TRACE_PATH: Final[str] = f"{SANDBOX_DIR}/usercode.vgtrace"
RUNTIME_HELPER: Final[str] = "/tmp/parser/wsgi_backend.py"
OUTPUT_ENV_VAR: Final[str] = "TORK_OUTPUT"

COMPILER_FLAGS: Final[tuple[str, ...]] = ("-w", "-ggdb", "-O0", "-fno-omit-frame-pointer")


class Step(Protocol):
    def render(self) -> str: ...


@dataclass(frozen=True)
class MoveSource:
    filename: str

    def render(self) -> str:
        return f"mv {self.filename} {SANDBOX_DIR}/{self.filename}"


@dataclass(frozen=True)
class WriteProgramInput:
    """Write sanitized program input next to the source, newline-terminated."""

    text: str

    def render(self) -> str:
        return f'echo "{self.text}" > {PROGRAM_INPUT_PATH}'


@dataclass(frozen=True)
class Compile:
    """Compile the source; compiler stderr goes to the output capture."""

    compiler: str
    filename: str

    def render(self) -> str:
        flags = " ".join(COMPILER_FLAGS)
        return (
            f"{self.compiler} {flags} -o {BINARY_PATH} {SANDBOX_DIR}/{self.filename}"
            f" 2> ${OUTPUT_ENV_VAR}"
        )


@dataclass(frozen=True)
class RunHelper:
    language: str

    def render(self) -> str:
        return f"python3 {RUNTIME_HELPER} {self.language} > ${OUTPUT_ENV_VAR}"


@dataclass(frozen=True)
class DumpTrace:
    def render(self) -> str:
        return f"cat {TRACE_PATH} > ${OUTPUT_ENV_VAR}"


@dataclass(frozen=True)
class UnlessOutput:
    """Run ``step`` only if the output capture is still empty."""

    step: RunHelper | DumpTrace

    def render(self) -> str:
        return f'[ -s "${{{OUTPUT_ENV_VAR}}}" ] || {self.step.render()}'


@dataclass(frozen=True)
class Script:
    steps: tuple[Step, ...]

    def render(self) -> str:
        return "; ".join(step.render() for step in self.steps)
