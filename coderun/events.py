from typing import Literal, TypedDict, Union


class JobSubmittedEvent(TypedDict):
    type: Literal["job_submitted"]
    job_id: str
    language: str
    timestamp: str


class JobFinishedEvent(TypedDict):
    type: Literal["job_finished"]
    job_id: str
    state: str
    timestamp: str


# Discriminated union of all job lifecycle events
JobEvent = Union[JobSubmittedEvent, JobFinishedEvent]
