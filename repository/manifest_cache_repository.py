# repository/manifest_cache_repository.py
import logging
from datetime import datetime, timezone
from typing import Callable, Final, Optional
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError
from config.cache import get_redis
from config.settings import settings
from model.manifest import CacheReadResult, ManifestSnapshot
from repository.namespaces import MANIFESTS

KEY_PREFIX: Final[str] = MANIFESTS
logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ManifestCacheRepository:
    """
    Flow:
    - One JSON snapshot of the persisted manifest rows per identity.
    - Two horizons: reads older than `ttl_seconds` are flagged stale (served, then
      revalidated); the store itself drops the record after `max_age_seconds`.
    - Best effort on both sides: bad data reads as a miss, failed or oversized
      writes are logged and dropped.
    """

    def __init__(
        self,
        ttl_seconds: int = settings.MANIFEST_CACHE_TTL_SECONDS,
        max_age_seconds: int = settings.MANIFEST_CACHE_MAX_AGE_SECONDS,
        max_bytes: int = settings.MANIFEST_CACHE_MAX_BYTES,
        redis: Optional[Redis] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ttl = int(ttl_seconds)
        self._max_age = int(max_age_seconds)
        self._max_bytes = int(max_bytes)
        self._redis = redis
        self._now = clock

    async def _client(self) -> Redis:
        return self._redis if self._redis is not None else await get_redis()

    @staticmethod
    def _key(identity: str) -> str:
        return f"{KEY_PREFIX}:{identity}"

    def is_stale(self, updated_at: str) -> bool:
        try:
            ts = datetime.fromisoformat(updated_at)
        except (TypeError, ValueError):
            return True
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return (self._now() - ts).total_seconds() > self._ttl

    async def read(self, identity: str) -> Optional[CacheReadResult]:
        if not identity:
            return None
        try:
            r = await self._client()
            raw = await r.get(self._key(identity))
        except (RedisError, OSError) as e:
            logger.warning("manifest.cache.read.error err=%s", type(e).__name__)
            return None
        if not raw:
            return None

        try:
            snapshot = ManifestSnapshot.model_validate_json(raw)
        except ValidationError:
            logger.info("manifest.cache.malformed identity=%s", identity)
            return None

        stale = self.is_stale(snapshot.updatedAt)
        logger.debug(
            "manifest.cache.hit identity=%s files=%d stale=%s",
            identity,
            len(snapshot.files),
            stale,
        )
        return CacheReadResult(snapshot=snapshot, isStale=stale)

    async def write(self, identity: str, snapshot: ManifestSnapshot) -> bool:
        if not identity:
            return False
        payload = snapshot.model_dump_json(exclude_none=True)
        size = len(payload.encode("utf-8"))
        if size > self._max_bytes:
            logger.warning(
                "manifest.cache.write.too_large identity=%s bytes=%d max=%d",
                identity,
                size,
                self._max_bytes,
            )
            return False
        try:
            r = await self._client()
            await r.set(self._key(identity), payload, ex=self._max_age)
        except (RedisError, OSError) as e:
            logger.warning("manifest.cache.write.error err=%s", type(e).__name__)
            return False
        return True
