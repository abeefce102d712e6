"""Extract a located error from gcc/g++ output.

Rules are tried in priority order against each line; the first rule that
matches any line decides the result and scanning stops.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

SOURCE_FILENAMES = ("usercode.c", "usercode.cpp")

COMPILER_ERROR_PATTERN = re.compile(
    r"usercode\.(?:c|cpp):(?P<line>\d+):(?P<column>\d+):.+?(?P<message>error:.*)$"
)
DIRECTIVE_TOKEN = "#error"
LINKER_TOKEN = "undefined "


class DiagnosticKind(str, Enum):
    COMPILER = "compiler"
    DIRECTIVE = "directive"
    LINKER = "linker"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    line: int = 0
    column: int = 0

    @property
    def event(self) -> str:
        # Only located compiler errors are reported as such; everything else
        # is surfaced to clients as an uncaught exception.
        if self.kind is DiagnosticKind.COMPILER:
            return "compiler"
        return "uncaught_exception"


DEFAULT_DIAGNOSTIC = Diagnostic(DiagnosticKind.UNKNOWN, "unknown compiler error")


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def _compiler_rule(line: str) -> Diagnostic | None:
    match = COMPILER_ERROR_PATTERN.search(line)
    if match is None:
        return None
    return Diagnostic(
        DiagnosticKind.COMPILER,
        match.group("message").strip(),
        _to_int(match.group("line")),
        _to_int(match.group("column")),
    )


def _directive_rule(line: str) -> Diagnostic | None:
    if DIRECTIVE_TOKEN not in line:
        return None
    _, _, message = line.partition(DIRECTIVE_TOKEN)
    return Diagnostic(DiagnosticKind.DIRECTIVE, message.strip())


def _linker_rule(line: str) -> Diagnostic | None:
    if LINKER_TOKEN not in line:
        return None
    parts = line.split(":")
    line_number = 0
    if len(parts) > 1 and any(name in parts[0] for name in SOURCE_FILENAMES):
        line_number = _to_int(parts[1])
    return Diagnostic(DiagnosticKind.LINKER, parts[-1].strip(), line_number)


RULES: tuple[Callable[[str], Diagnostic | None], ...] = (
    _compiler_rule,
    _directive_rule,
    _linker_rule,
)


def parse_diagnostics(output: str) -> Diagnostic:
    for line in output.split("\n"):
        for rule in RULES:
            diagnostic = rule(line)
            if diagnostic is not None:
                return diagnostic
    return DEFAULT_DIAGNOSTIC
