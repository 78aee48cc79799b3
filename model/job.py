# model/job.py
from typing import Final, Literal
from pydantic import BaseModel, ConfigDict

JobStatus = Literal[
    "idle",
    "queued",
    "filling",
    "complete",
    "error",
]

TERMINAL_JOB_STATUSES: Final[frozenset[str]] = frozenset({"complete", "error"})
ACTIVE_JOB_STATUSES: Final[frozenset[str]] = frozenset({"queued", "filling"})


class JobState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: JobStatus = "idle"
    jobId: str = ""
    resultUrl: str = ""
    errorMessage: str = ""

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_JOB_STATUSES
