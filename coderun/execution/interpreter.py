"""Classify captured task output and shape the client response."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Union

from coderun.errors import UnknownOutputError
from coderun.execution.diagnostics import Diagnostic, parse_diagnostics
from coderun.models.execute import CompilerErrorResponse, ErrorMsg

_logger = logging.getLogger("coderun.interpreter")

COMPILER_OUTPUT_PATTERN = re.compile(r"usercode\.(?:c|cpp):(\d+):(\d+):.+?(error:.*)")


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-standard JSON constant: {name}")


@dataclass(frozen=True)
class Success:
    payload: dict[str, Any]


@dataclass(frozen=True)
class CompilerFailure:
    diagnostic: Diagnostic


@dataclass(frozen=True)
class Unrecognized:
    text: str


@dataclass(frozen=True)
class Raw:
    text: str


Interpretation = Union[Success, CompilerFailure, Unrecognized, Raw]


class Interpreter:
    def __init__(self, debug_trace: bool = False) -> None:
        self._debug_trace = debug_trace

    def interpret(self, output: str) -> Interpretation:
        if self._debug_trace:
            return Raw(output)

        if COMPILER_OUTPUT_PATTERN.search(output):
            return CompilerFailure(parse_diagnostics(output))

        try:
            payload = json.loads(output, parse_constant=_reject_constant)
        except ValueError as e:
            _logger.debug("unknown_json_parsing_error: %s", e)
            _logger.debug("%s", output)
            return Unrecognized(output)

        if not isinstance(payload, dict):
            _logger.debug("unknown_json_parsing_error: expected an object, got %s", type(payload).__name__)
            _logger.debug("%s", output)
            return Unrecognized(output)
        return Success(payload)


def normalize(interpretation: Interpretation, code: str) -> tuple[int, Any]:
    """Map an interpretation to ``(status_code, body)``."""
    if isinstance(interpretation, Success):
        return 200, interpretation.payload
    if isinstance(interpretation, Raw):
        return 200, interpretation.text
    if isinstance(interpretation, CompilerFailure):
        diagnostic = interpretation.diagnostic
        body = CompilerErrorResponse(
            code=code,
            error=ErrorMsg(
                event=diagnostic.event,
                exception_msg=diagnostic.message,
                line=diagnostic.line,
                column=diagnostic.column,
            ),
        )
        return 400, body.model_dump()
    error = UnknownOutputError()
    return error.status_code, error.to_response().model_dump(exclude_none=True)
