# repository/identity_repository.py
import logging
from typing import Final, Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import IDENTITIES
from util.constants import DEFAULT_PROFILE
from util.functions import new_local_id

KEY_PREFIX: Final[str] = IDENTITIES
logger = logging.getLogger(__name__)


class IdentityRepository:
    """
    Stable per-profile identity, created once and reused as the manifest cache
    key and the `identity` of every backend request. Refreshed on each read.
    """

    def __init__(
        self,
        ttl_seconds: int = settings.IDENTITY_MAX_AGE_SECONDS,
        redis: Optional[Redis] = None,
    ) -> None:
        self._ttl = int(ttl_seconds)
        self._redis = redis

    async def _client(self) -> Redis:
        return self._redis if self._redis is not None else await get_redis()

    @staticmethod
    def _key(profile: str) -> str:
        return f"{KEY_PREFIX}:{profile}"

    async def ensure(self, profile: str = DEFAULT_PROFILE) -> str:
        try:
            r = await self._client()
            existing = await r.get(self._key(profile))
            if existing:
                await r.expire(self._key(profile), self._ttl)
                return existing
            identity = new_local_id()
            # nx: two processes racing on first start keep the first identity
            created = await r.set(self._key(profile), identity, ex=self._ttl, nx=True)
            if not created:
                return await r.get(self._key(profile)) or identity
            logger.info("identity.created profile=%s", profile)
            return identity
        except (RedisError, OSError) as e:
            # The store is best effort; the process still needs an identity.
            logger.warning("identity.store.error profile=%s err=%s", profile, type(e).__name__)
            return new_local_id()
