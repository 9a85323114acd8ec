import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from starlette.concurrency import run_in_threadpool

from quickurl.clock import Clock, ensure_utc, utc_now
from quickurl.exceptions import ConflictError, ValidationError
from quickurl.models.record import URLRecord
from quickurl.schemas.url import URLResponse
from quickurl.services.token_generator import TokenGenerator
from quickurl.store.strategies import URLStoreStrategy

logger = logging.getLogger(__name__)

ALLOWED_PREFIXES = ("http://", "https://")


class ShorteningService:
    """
    Creates short URL records.

    Collaborators are injected so the service can run against any store,
    token source and clock.
    """

    def __init__(
        self,
        store: URLStoreStrategy,
        generator: TokenGenerator,
        base_url: str,
        clock: Clock = utc_now,
        max_attempts: int = 5,
        default_ttl: timedelta = timedelta(days=30),
    ):
        """
        Args:
            store: Record store
            generator: Token source
            base_url: Public address short URLs are built from
            clock: Returns the current UTC time
            max_attempts: Tokens tried before giving up on collisions
            default_ttl: Lifetime of records created without expires_at
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.generator = generator
        self.base_url = base_url
        self.clock = clock
        self.max_attempts = max_attempts
        self.default_ttl = default_ttl

    async def shorten(
        self,
        original_url: str,
        title: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> URLResponse:
        """Create a new short URL

        Note: Always creates a new record even if the URL was shortened before,
        each with its own token and click counter.

        Process:
        1. Validate the URL scheme
        2. Generate a token and insert the record
        3. On a token collision, retry with a fresh token (bounded)

        Raises:
            ValidationError: If the URL doesn't start with http:// or https://,
                or expires_at can't be represented in UTC
            ConflictError: If every attempt collided with an existing token
        """
        if not isinstance(original_url, str) or not original_url.startswith(ALLOWED_PREFIXES):
            raise ValidationError("URL must start with http:// or https://")

        if expires_at is not None:
            try:
                expires_at = ensure_utc(expires_at)
            except OverflowError:
                raise ValidationError("expires_at out of range")

        for attempt in range(1, self.max_attempts + 1):
            created_at = self.clock()
            record = URLRecord(
                id=str(uuid.uuid4()),
                token=self.generator.generate(),
                original_url=original_url,
                title=title,
                created_at=created_at,
                expires_at=expires_at or created_at + self.default_ttl,
                click_count=0,
            )
            try:
                await run_in_threadpool(self.store.insert, record)
            except ConflictError:
                logger.warning(
                    "Token collision on %s (attempt %d/%d)", record.token, attempt, self.max_attempts
                )
                continue

            logger.info("Created short URL: %s -> %s", record.token, original_url)
            return URLResponse.from_record(record, self.base_url)

        raise ConflictError(
            f"Could not generate a unique token after {self.max_attempts} attempts"
        )
