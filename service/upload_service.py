# service/upload_service.py
import asyncio
import logging
import random
from typing import Callable, Iterable, Optional
from config.settings import settings
from core.entities import AppendEntries, PatchEntry, RemoveEntry, UploadSource
from core.manifest_store import ManifestStore
from core.reconciler import numeric_size
from core.scheduler import Scheduler, TimerHandle
from model.file_entry import FileEntry
from service.backend_client import BackendClient
from util.enums import ErrorMessage
from util.errors import ApiError, message_or
from util.functions import is_valid_http_url

logger = logging.getLogger(__name__)


class UploadService:
    """
    Per-file lifecycle: uploading -> uploaded | processing -> uploaded | error.

    Every row is addressed by its local id, so uploads finishing in any order
    only touch their own row. `processing` is settled locally after a jittered
    delay instead of polling the backend again.
    """

    def __init__(
        self,
        identity: str,
        store: ManifestStore,
        backend: BackendClient,
        scheduler: Scheduler,
        concurrency: int = settings.UPLOAD_CONCURRENCY,
        processing_delay_ms: tuple[int, int] = (
            settings.PROCESSING_DELAY_MIN_MS,
            settings.PROCESSING_DELAY_MAX_MS,
        ),
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self._identity = identity
        self._store = store
        self._backend = backend
        self._scheduler = scheduler
        self._sem = asyncio.Semaphore(max(1, concurrency))
        self._delay_min, self._delay_max = (ms / 1000 for ms in processing_delay_ms)
        self._jitter = jitter
        self._sources: dict[str, UploadSource] = {}
        self._processing_timers: dict[str, TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    # ---------------- Lifecycle ----------------

    def _spawn(self, entry_id: str, source: UploadSource, target_link: Optional[str]) -> None:
        task = asyncio.create_task(self.upload_document(entry_id, source, target_link))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("upload.task.error", exc_info=task.exception())

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    @property
    def pending_processing(self) -> int:
        return len(self._processing_timers)

    async def aclose(self) -> None:
        self._closed = True
        for handle in self._processing_timers.values():
            handle.cancel()
        self._processing_timers.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    # ---------------- Operations ----------------

    async def add_files(
        self, sources: Iterable[UploadSource], target_link: Optional[str] = None
    ) -> list[str]:
        pairs = [
            (FileEntry(name=s.name, size=s.size, status="uploading"), s) for s in sources
        ]
        if not pairs or self._closed:
            return []
        await self._store.dispatch(AppendEntries([entry for entry, _ in pairs]))
        for entry, source in pairs:
            self._sources[entry.id] = source
            self._spawn(entry.id, source, target_link)
        logger.info("upload.queued count=%d", len(pairs))
        return [entry.id for entry, _ in pairs]

    async def retry(self, entry_id: str, target_link: Optional[str] = None) -> bool:
        entry = self._store.get(entry_id)
        source = self._sources.get(entry_id)
        if self._closed or entry is None or entry.status != "error" or source is None:
            return False
        self._spawn(entry_id, source, target_link)
        return True

    async def upload_document(
        self, entry_id: str, source: UploadSource, target_link: Optional[str] = None
    ) -> None:
        if self._store.get(entry_id) is None:
            return
        await self._store.dispatch(
            PatchEntry(entry_id, {"status": "uploading", "error": ""})
        )
        link = target_link if is_valid_http_url(target_link) else None

        try:
            async with self._sem:
                response = await self._backend.upload_file(self._identity, source, link)
        except ApiError as e:
            if self._closed:
                return
            message = message_or(e, ErrorMessage.UPLOAD_FAILED)
            await self._mark_failed(entry_id, message)
            logger.warning("upload.error entry=%s err=%s", entry_id, message)
            return

        if self._closed:
            return
        status = response.status or "uploaded"
        try:
            size = numeric_size(response.size)
            await self._store.dispatch(
                PatchEntry(
                    entry_id,
                    {
                        "status": status,
                        "slug": response.slug or "",
                        "remoteUrl": response.remoteUrl or "",
                        "error": "",
                        "size": source.size if size is None else size,
                        "persisted": True,
                    },
                )
            )
        except Exception:
            logger.exception("upload.confirm.error entry=%s", entry_id)
            await self._mark_failed(entry_id, ErrorMessage.UPLOAD_FAILED.value.message)
            return
        self._sources.pop(entry_id, None)
        logger.info("upload.ok entry=%s slug=%s status=%s", entry_id, response.slug, status)

        if status == "processing" and self._store.get(entry_id) is not None:
            self._schedule_processing_done(entry_id)

    async def _mark_failed(self, entry_id: str, message: str) -> None:
        await self._store.dispatch(
            PatchEntry(
                entry_id,
                {"status": "error", "error": message, "slug": "", "remoteUrl": "", "persisted": False},
            )
        )

    def _schedule_processing_done(self, entry_id: str) -> None:
        self._cancel_processing(entry_id)
        delay = self._jitter(self._delay_min, self._delay_max)
        self._processing_timers[entry_id] = self._scheduler.schedule(
            delay, lambda: self._finish_processing(entry_id)
        )

    def _cancel_processing(self, entry_id: str) -> None:
        handle = self._processing_timers.pop(entry_id, None)
        if handle is not None:
            handle.cancel()

    async def _finish_processing(self, entry_id: str) -> None:
        self._processing_timers.pop(entry_id, None)
        entry = self._store.get(entry_id)
        if self._closed or entry is None or entry.status != "processing":
            return
        await self._store.dispatch(PatchEntry(entry_id, {"status": "uploaded"}))
        logger.debug("upload.processing.done entry=%s", entry_id)

    async def delete(self, entry_id: str) -> bool:
        """
        Rows the backend never confirmed go locally; stored rows go only once
        the backend agrees, otherwise they stay with the error attached.
        """
        entry = self._store.get(entry_id)
        if entry is None or entry.deleting or self._closed:
            return False

        if not entry.slug:
            self._cancel_processing(entry_id)
            self._sources.pop(entry_id, None)
            await self._store.dispatch(RemoveEntry(entry_id))
            return True

        await self._store.dispatch(PatchEntry(entry_id, {"deleting": True, "error": ""}))
        try:
            await self._backend.delete_upload(self._identity, entry.slug)
        except ApiError as e:
            message = message_or(e, ErrorMessage.DELETE_FAILED)
            await self._store.dispatch(
                PatchEntry(entry_id, {"deleting": False, "error": message})
            )
            logger.warning("delete.error entry=%s slug=%s err=%s", entry_id, entry.slug, message)
            return False

        self._cancel_processing(entry_id)
        await self._store.dispatch(RemoveEntry(entry_id))
        logger.info("delete.ok entry=%s slug=%s", entry_id, entry.slug)
        return True
