# core/manifest_store.py
import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional
from core.entities import ManifestEvent, ManifestTransition
from core.reconciler import reduce_manifest
from model.file_entry import FileEntry
from repository.manifest_cache_repository import ManifestCacheRepository, utcnow

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    Owns the visible file list for one identity.

    Flow: dispatch(event) -> reduce_manifest -> swap the list in place (no await
    in between, so readers never see a half-applied event) -> perform the
    cache writes the transition returned, in dispatch order.
    """

    def __init__(
        self,
        identity: str,
        cache: ManifestCacheRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._identity = identity
        self._cache = cache
        self._now = clock
        self._files: list[FileEntry] = []
        self._write_lock = asyncio.Lock()

    @property
    def files(self) -> tuple[FileEntry, ...]:
        return tuple(self._files)

    def get(self, entry_id: str) -> Optional[FileEntry]:
        return next((f for f in self._files if f.id == entry_id), None)

    async def dispatch(self, event: ManifestEvent) -> ManifestTransition:
        transition = reduce_manifest(self._files, event, self._now())
        self._files = transition.files
        logger.debug(
            "manifest.dispatch event=%s files=%d writes=%d",
            type(event).__name__,
            len(transition.files),
            len(transition.writes),
        )
        for snapshot in transition.writes:
            async with self._write_lock:
                await self._cache.write(self._identity, snapshot)
        return transition
