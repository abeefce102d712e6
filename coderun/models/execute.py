"""Pydantic request and response models for the execute API."""

from pydantic import BaseModel, ConfigDict, Field


class ExecRequest(BaseModel):
    """Code execution request sent by the client."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    code: str = ""
    language: str = ""
    program_input: str = Field(default="", alias="input")


class ErrorMsg(BaseModel):
    """A compiler or runtime error located in the user's source."""

    event: str
    exception_msg: str
    line: int
    column: int


class CompilerErrorResponse(BaseModel):
    """Body returned when compilation fails."""

    code: str
    error: ErrorMsg
