# service/hydration_service.py
import logging
from typing import Optional
from core.cancellation import CancellationToken
from core.entities import ApplyManifest
from core.manifest_store import ManifestStore
from core.reconciler import entries_from_remote
from repository.manifest_cache_repository import ManifestCacheRepository
from service.backend_client import BackendClient
from util.enums import ErrorMessage, HydrationState
from util.errors import ApiError, message_or

logger = logging.getLogger(__name__)


class HydrationService:
    """
    Stale-while-revalidate load of the manifest:
      - fresh cache hit: show it, done (no network)
      - stale hit or miss: show whatever the cache has, then fetch the backend
        list, which replaces every persisted row
      - fetch failure: keep what is shown, set `manifest_error`
    A newer hydrate cancels the previous one; superseded results are dropped.
    """

    def __init__(
        self,
        identity: str,
        store: ManifestStore,
        cache: ManifestCacheRepository,
        backend: BackendClient,
    ) -> None:
        self._identity = identity
        self._store = store
        self._cache = cache
        self._backend = backend
        self._token: Optional[CancellationToken] = None
        self.state: HydrationState = HydrationState.LOADING
        self.loading: bool = True
        self.manifest_error: str = ""

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()

    async def refresh(self) -> HydrationState:
        return await self.hydrate(ignore_cache=True)

    async def hydrate(self, *, ignore_cache: bool = False) -> HydrationState:
        self.cancel()
        token = self._token = CancellationToken()

        if not ignore_cache:
            cached = await self._cache.read(self._identity)
            if token.cancelled:
                return self.state
            if cached is not None:
                await self._store.dispatch(
                    ApplyManifest(
                        entries_from_remote(cached.snapshot.files), skip_cache=True
                    )
                )
                self.manifest_error = ""
                if not cached.isStale:
                    self.loading = False
                    self.state = HydrationState.READY
                    logger.info(
                        "hydrate.cache.fresh identity=%s files=%d",
                        self._identity,
                        len(cached.snapshot.files),
                    )
                    return self.state
                logger.info("hydrate.cache.stale identity=%s", self._identity)

        if token.cancelled:
            return self.state
        self.loading = True
        self.state = HydrationState.LOADING

        try:
            response = await self._backend.list_uploads(self._identity)
        except ApiError as e:
            if token.cancelled:
                return self.state
            self.manifest_error = message_or(e, ErrorMessage.MANIFEST_LOAD_FAILED)
            self.state = HydrationState.ERROR
            logger.warning(
                "hydrate.fetch.error identity=%s err=%s", self._identity, self.manifest_error
            )
        else:
            if token.cancelled:
                logger.debug("hydrate.superseded identity=%s", self._identity)
                return self.state
            await self._store.dispatch(ApplyManifest(entries_from_remote(response.files)))
            self.manifest_error = ""
            self.state = HydrationState.READY
            logger.info(
                "hydrate.fetch.ok identity=%s files=%d", self._identity, len(response.files)
            )

        if not token.cancelled:
            self.loading = False
        return self.state
