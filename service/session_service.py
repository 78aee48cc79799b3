# service/session_service.py
import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional
from core.entities import UploadSource
from core.manifest_store import ManifestStore
from core.scheduler import AsyncioScheduler, Scheduler
from model.file_entry import FileEntry
from model.job import JobState
from repository.manifest_cache_repository import ManifestCacheRepository, utcnow
from service.backend_client import BackendClient
from service.hydration_service import HydrationService
from service.job_service import JobService
from service.upload_service import UploadService
from util.enums import HydrationState

logger = logging.getLogger(__name__)


class FormFillSession:
    """
    The single client runtime for one identity: one visible manifest, one job.
    All manifest changes go through `store`, so each one is mirrored to the cache.
    """

    def __init__(
        self,
        identity: str,
        *,
        cache: Optional[ManifestCacheRepository] = None,
        backend: Optional[BackendClient] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not identity:
            raise ValueError("identity is required")
        self.identity = identity
        self.target_link = ""
        self._cache = cache or ManifestCacheRepository()
        self._backend = backend or BackendClient()
        self._scheduler = scheduler or AsyncioScheduler()
        self.store = ManifestStore(identity, self._cache, clock)
        self.hydration = HydrationService(identity, self.store, self._cache, self._backend)
        self.uploads = UploadService(identity, self.store, self._backend, self._scheduler)
        self.jobs = JobService(identity, self._backend, self._scheduler)
        self._closed = False

    async def __aenter__(self) -> "FormFillSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ---------------- Read side ----------------

    @property
    def files(self) -> tuple[FileEntry, ...]:
        return self.store.files

    @property
    def job(self) -> JobState:
        return self.jobs.state

    @property
    def manifest_error(self) -> str:
        return self.hydration.manifest_error

    @property
    def loading(self) -> bool:
        return self.hydration.loading

    @property
    def can_start_fill(self) -> bool:
        return self.jobs.can_start(self.target_link, self.files)

    # ---------------- Commands ----------------

    async def hydrate(self) -> HydrationState:
        return await self.hydration.hydrate()

    async def refresh(self) -> HydrationState:
        return await self.hydration.refresh()

    async def add_files(self, sources: Iterable[UploadSource]) -> list[str]:
        return await self.uploads.add_files(sources, self.target_link)

    async def retry(self, entry_id: str) -> bool:
        return await self.uploads.retry(entry_id, self.target_link)

    async def delete(self, entry_id: str) -> bool:
        return await self.uploads.delete(entry_id)

    async def start_fill(self) -> bool:
        return await self.jobs.start(self.target_link, self.files)

    async def wait_until(
        self, predicate: Callable[[], bool], interval: float = 0.1
    ) -> None:
        while not predicate():
            await asyncio.sleep(interval)

    async def settle_uploads(self) -> None:
        """Wait for in-flight uploads and the local processing delay to finish."""
        await self.uploads.wait_idle()
        await self.wait_until(lambda: self.uploads.pending_processing == 0)

    async def settle_job(self) -> JobState:
        await self.wait_until(lambda: not self.job.is_active)
        return self.job

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.hydration.cancel()
        self.jobs.cancel()
        await self.uploads.aclose()
        await self._scheduler.aclose()
        await self._backend.aclose()
        logger.debug("session.closed identity=%s", self.identity)
