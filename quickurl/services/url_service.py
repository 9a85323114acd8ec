import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from quickurl.cache.keys import redirect_key
from quickurl.cache.strategies import CacheStrategy
from quickurl.exceptions import NotFoundError
from quickurl.schemas.url import URLListResponse, URLResponse
from quickurl.store.strategies import URLStoreStrategy

logger = logging.getLogger(__name__)


class URLService:
    """
    Read and delete operations on URL records.

    Creation lives in ShorteningService and redirects in ResolutionService;
    this service backs the /urls management endpoints.
    """

    def __init__(
        self,
        store: URLStoreStrategy,
        base_url: str,
        cache: Optional[CacheStrategy] = None,
    ):
        """
        Args:
            store: Record store
            base_url: Public address short URLs are built from
            cache: Redirect cache to invalidate on delete (optional)
        """
        self.store = store
        self.base_url = base_url
        self.cache = cache

    async def get_url(self, token: str) -> URLResponse:
        """Get a record by token.

        Expired records are still returned: this is an information view.
        """
        record = await run_in_threadpool(self.store.get_by_token, token)
        if record is None:
            raise NotFoundError("URL not found")
        return URLResponse.from_record(record, self.base_url)

    async def list_urls(self) -> URLListResponse:
        """All records, newest first."""
        records = await run_in_threadpool(self.store.list_all)
        return URLListResponse(
            urls=[URLResponse.from_record(record, self.base_url) for record in records]
        )

    async def delete_url(self, token: str) -> None:
        """
        Delete a short URL (hard delete, expired or not).
        Also invalidates the redirect cache.
        """
        deleted = await run_in_threadpool(self.store.delete_by_token, token)

        if self.cache:
            await self.cache.delete(redirect_key(token))

        if deleted == 0:
            raise NotFoundError("URL not found")

        logger.info("Deleted short URL: %s", token)
