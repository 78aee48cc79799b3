# service/job_service.py
import logging
from typing import Optional, Sequence
from config.settings import settings
from core.scheduler import Scheduler, TimerHandle
from model.api import FillJobResponse, JobPollResponse
from model.file_entry import FileEntry
from model.job import JobState, TERMINAL_JOB_STATUSES
from service.backend_client import BackendClient
from util.enums import ErrorMessage
from util.errors import ApiError, message_or
from util.functions import is_valid_http_url

logger = logging.getLogger(__name__)


class JobService:
    """
    Drives one form-fill job: idle -> queued -> filling -> complete | error.

    - At most one poll timer exists; a poll is only scheduled after the previous
      response arrived, so polls for a job never overlap.
    - Every start (and teardown) bumps `_generation`; responses carrying an
      older generation are discarded.
    - Failures end the loop; nothing is retried until the user starts again.
    """

    def __init__(
        self,
        identity: str,
        backend: BackendClient,
        scheduler: Scheduler,
        poll_interval_ms: int = settings.JOB_POLL_INTERVAL_MS,
    ) -> None:
        self._identity = identity
        self._backend = backend
        self._scheduler = scheduler
        self._interval = poll_interval_ms / 1000
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._target_link = ""
        self._closed = False
        self.state = JobState()

    @property
    def has_pending_poll(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    def can_start(self, target_link: Optional[str], files: Sequence[FileEntry]) -> bool:
        return (
            not self._closed
            and is_valid_http_url(target_link)
            and len(files) > 0
            and all(f.status == "uploaded" for f in files)
            and not self.state.is_active
        )

    def _clear_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def cancel(self) -> None:
        self._closed = True
        self._generation += 1
        self._clear_timer()

    def _apply(self, job_id: str, response: FillJobResponse | JobPollResponse) -> None:
        pipeline_failed = response.status == "error"
        self.state = JobState(
            status=response.status,
            jobId=job_id,
            resultUrl=response.resultUrl or "",
            errorMessage=ErrorMessage.JOB_PIPELINE_ERROR.value.message if pipeline_failed else "",
        )

    async def start(self, target_link: str, files: Sequence[FileEntry]) -> bool:
        if not self.can_start(target_link, files):
            logger.info("job.start.rejected status=%s", self.state.status)
            return False

        self._clear_timer()
        self._generation += 1
        generation = self._generation
        self._target_link = target_link
        self.state = JobState(status="queued")

        try:
            response = await self._backend.create_fill_job(self._identity, target_link)
        except ApiError as e:
            if self._is_current(generation):
                self.state = JobState(
                    status="error",
                    errorMessage=message_or(e, ErrorMessage.JOB_START_FAILED),
                )
                logger.warning("job.start.error err=%s", self.state.errorMessage)
            return True

        if not self._is_current(generation):
            return True
        self._apply(response.jobId, response)
        logger.info("job.started job=%s status=%s", response.jobId, response.status)
        if response.status not in TERMINAL_JOB_STATUSES:
            self._schedule_poll(generation)
        return True

    def _schedule_poll(self, generation: int) -> None:
        self._clear_timer()
        self._timer = self._scheduler.schedule(
            self._interval, lambda: self._poll(generation)
        )

    async def _poll(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._timer = None
        job_id = self.state.jobId

        try:
            response = await self._backend.get_fill_job(
                self._identity, job_id, self._target_link
            )
        except ApiError as e:
            if self._is_current(generation):
                self.state = self.state.model_copy(
                    update={
                        "status": "error",
                        "errorMessage": message_or(e, ErrorMessage.JOB_POLL_FAILED),
                    }
                )
                logger.warning("job.poll.error job=%s err=%s", job_id, self.state.errorMessage)
            return

        if not self._is_current(generation):
            logger.debug("job.poll.discarded job=%s", job_id)
            return
        self._apply(job_id, response)
        if response.status in TERMINAL_JOB_STATUSES:
            logger.info("job.done job=%s status=%s", job_id, response.status)
            return
        self._schedule_poll(generation)
