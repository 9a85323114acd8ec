import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from quickurl.cache.keys import RedirectTarget, dump_target, load_target, redirect_key
from quickurl.cache.strategies import CacheStrategy
from quickurl.clock import Clock, utc_now
from quickurl.exceptions import GoneError, NotFoundError
from quickurl.store.strategies import URLStoreStrategy

logger = logging.getLogger(__name__)


class ResolutionService:
    """
    Resolves tokens to destination URLs and counts clicks.

    Lookup outcomes:
    - no record                 -> NotFoundError
    - record, expires_at <= now -> GoneError (click_count untouched)
    - record, expires_at > now  -> click_count += 1, return original_url

    The expiration check always happens before the increment.
    """

    def __init__(
        self,
        store: URLStoreStrategy,
        clock: Clock = utc_now,
        cache: Optional[CacheStrategy] = None,
        cache_ttl: int = 3600,
    ):
        self.store = store
        self.clock = clock
        self.cache = cache
        self.cache_ttl = cache_ttl

    async def resolve(self, token: str) -> str:
        """
        Return the destination for token and record one click.

        Raises:
            NotFoundError: No record for token
            GoneError: Record exists but has expired
        """
        target = await self._lookup(token)
        if target is None:
            logger.info("Token not found: %s", token)
            raise NotFoundError("URL not found")

        now = self.clock()
        if target.expires_at <= now:
            logger.info("Token expired: %s (expired at %s)", token, target.expires_at.isoformat())
            raise GoneError("URL has expired")

        if await run_in_threadpool(self.store.increment_click_count, token) == 0:
            # Deleted between lookup and increment, or a stale cache entry
            await self._evict(token)
            raise NotFoundError("URL not found")

        await self._remember(token, target, now)
        logger.debug("Resolved %s -> %s", token, target.original_url)
        return target.original_url

    async def _lookup(self, token: str) -> Optional[RedirectTarget]:
        """Cache-aside lookup of the immutable redirect fields."""
        if self.cache:
            cached = await self.cache.get(redirect_key(token))
            if cached:
                target = load_target(cached)
                if target is not None:
                    return target

        record = await run_in_threadpool(self.store.get_by_token, token)
        if record is None:
            return None
        return RedirectTarget(record.original_url, record.expires_at)

    async def _remember(self, token: str, target: RedirectTarget, now) -> None:
        if not self.cache:
            return
        # Never keep an entry past the record's own expiration
        ttl = min(self.cache_ttl, int((target.expires_at - now).total_seconds()))
        if ttl > 0:
            await self.cache.set(redirect_key(token), dump_target(target), ttl=ttl)

    async def _evict(self, token: str) -> None:
        if self.cache:
            await self.cache.delete(redirect_key(token))
