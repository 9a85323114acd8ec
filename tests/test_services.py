"""
Tests for the shortening, resolution and URL services (business logic only, no HTTP).
"""
import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from quickurl.cache.keys import RedirectTarget, dump_target, redirect_key
from quickurl.cache.strategies import InMemoryCache
from quickurl.exceptions import ConflictError, GoneError, NotFoundError, ValidationError
from quickurl.services.resolution_service import ResolutionService
from quickurl.services.shortening_service import ShorteningService
from quickurl.services.token_generator import TokenGenerator
from quickurl.services.url_service import URLService
from quickurl.store.strategies import InMemoryURLStore, SQLAlchemyURLStore

BASE_URL = "http://short.test"


class SequenceTokenGenerator:
    """Hands out predetermined tokens, to force collisions."""

    def __init__(self, *tokens):
        self.tokens = list(tokens)
        self.calls = 0

    def generate(self) -> str:
        token = self.tokens[min(self.calls, len(self.tokens) - 1)]
        self.calls += 1
        return token


class RecordingCache(InMemoryCache):
    """In-memory cache that remembers the TTL of every write."""

    def __init__(self):
        super().__init__()
        self.ttls = {}

    async def set(self, key, value, ttl=3600):
        self.ttls[key] = ttl
        return await super().set(key, value, ttl)


@pytest.fixture
def shortener(store, clock):
    return ShorteningService(store, TokenGenerator(), BASE_URL, clock=clock)


@pytest.fixture
def resolver(store, clock, cache):
    return ResolutionService(store, clock=clock, cache=cache)


@pytest.fixture
def url_service(store, cache):
    return URLService(store, BASE_URL, cache=cache)


class TestShorteningService:
    """Test short URL creation"""

    def test_create(self, shortener, store, clock):
        view = asyncio.run(shortener.shorten("https://example.com/a", title="Example"))

        assert len(view.token) == 6
        assert view.original_url == "https://example.com/a"
        assert view.short_url == f"{BASE_URL}/{view.token}"
        assert view.title == "Example"
        assert view.click_count == 0
        assert view.created_at == clock.now
        assert store.get_by_token(view.token) is not None

    def test_default_expiry_is_30_days(self, shortener, clock):
        view = asyncio.run(shortener.shorten("https://example.com/"))

        assert view.expires_at == clock.now + timedelta(days=30)

    def test_explicit_expiry(self, shortener, clock):
        expires_at = clock.now + timedelta(hours=1)

        view = asyncio.run(shortener.shorten("https://example.com/", expires_at=expires_at))

        assert view.expires_at == expires_at

    def test_naive_expiry_is_utc(self, shortener):
        view = asyncio.run(shortener.shorten("https://example.com/", expires_at=datetime(2030, 1, 1, 9, 0)))

        assert view.expires_at == datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)

    def test_expiry_past_max_datetime_is_rejected(self, shortener, store):
        late = datetime(9999, 12, 31, 23, 30, tzinfo=timezone(timedelta(hours=-1)))

        with pytest.raises(ValidationError, match="expires_at out of range"):
            asyncio.run(shortener.shorten("https://example.com/", expires_at=late))

        assert store.list_all() == []

    def test_same_url_gets_distinct_tokens(self, shortener):
        first = asyncio.run(shortener.shorten("https://www.test.com/"))
        second = asyncio.run(shortener.shorten("https://www.test.com/"))

        assert first.token != second.token
        assert first.id != second.id

    @pytest.mark.parametrize("url", ["ftp://x", "example.com", "", "HTTP://x", "mailto:me@example.com"])
    def test_rejects_bad_scheme(self, shortener, store, url):
        with pytest.raises(ValidationError):
            asyncio.run(shortener.shorten(url))

        assert store.list_all() == []

    @pytest.mark.parametrize("url", ["http://x", "https://x"])
    def test_accepts_http_and_https(self, shortener, url):
        view = asyncio.run(shortener.shorten(url))

        assert view.original_url == url

    def test_retries_on_collision(self, store, clock):
        generator = SequenceTokenGenerator("AAAAAA", "AAAAAA", "BBBBBB")
        service = ShorteningService(store, generator, BASE_URL, clock=clock)

        first = asyncio.run(service.shorten("https://example.com/1"))
        second = asyncio.run(service.shorten("https://example.com/2"))

        assert first.token == "AAAAAA"
        assert second.token == "BBBBBB"
        assert generator.calls == 3
        assert store.get_by_token("AAAAAA").original_url == "https://example.com/1"

    def test_gives_up_after_max_attempts(self, store, clock):
        generator = SequenceTokenGenerator("SAME00")
        service = ShorteningService(store, generator, BASE_URL, clock=clock, max_attempts=3)
        asyncio.run(service.shorten("https://example.com/1"))
        generator.calls = 0

        with pytest.raises(ConflictError):
            asyncio.run(service.shorten("https://example.com/2"))

        assert generator.calls == 3
        assert len(store.list_all()) == 1

    def test_rejects_zero_attempts(self, store):
        with pytest.raises(ValueError):
            ShorteningService(store, TokenGenerator(), BASE_URL, max_attempts=0)


class TestResolutionService:
    """Test token resolution and click counting"""

    def test_round_trip(self, shortener, resolver, store):
        view = asyncio.run(shortener.shorten("https://example.com/a"))
        assert store.get_by_token(view.token).click_count == 0

        assert asyncio.run(resolver.resolve(view.token)) == "https://example.com/a"

        assert store.get_by_token(view.token).click_count == 1

    def test_unknown_token(self, resolver):
        with pytest.raises(NotFoundError):
            asyncio.run(resolver.resolve("nope00"))

    def test_expired_one_second_ago(self, shortener, resolver, store, clock):
        view = asyncio.run(
            shortener.shorten("https://example.com/", expires_at=clock.now - timedelta(seconds=1))
        )

        with pytest.raises(GoneError):
            asyncio.run(resolver.resolve(view.token))

        assert store.get_by_token(view.token).click_count == 0

    def test_expires_exactly_now(self, shortener, resolver, store, clock):
        view = asyncio.run(shortener.shorten("https://example.com/", expires_at=clock.now))

        with pytest.raises(GoneError):
            asyncio.run(resolver.resolve(view.token))

        assert store.get_by_token(view.token).click_count == 0

    def test_expires_while_cached(self, shortener, resolver, store, clock):
        """Expiration uses the clock at resolution time, even on a cache hit"""
        view = asyncio.run(
            shortener.shorten("https://example.com/", expires_at=clock.now + timedelta(minutes=5))
        )
        asyncio.run(resolver.resolve(view.token))

        clock.advance(minutes=5)

        with pytest.raises(GoneError):
            asyncio.run(resolver.resolve(view.token))
        assert store.get_by_token(view.token).click_count == 1

    def test_caches_target(self, shortener, resolver, cache):
        view = asyncio.run(shortener.shorten("https://example.com/cached"))

        asyncio.run(resolver.resolve(view.token))

        assert asyncio.run(cache.exists(redirect_key(view.token)))

    def test_cache_hit_still_counts(self, shortener, resolver, store):
        view = asyncio.run(shortener.shorten("https://example.com/"))

        for _ in range(3):
            asyncio.run(resolver.resolve(view.token))

        assert store.get_by_token(view.token).click_count == 3

    def test_stale_cache_entry_is_evicted(self, resolver, cache, clock):
        key = redirect_key("gone00")
        target = RedirectTarget("https://example.com/old", clock.now + timedelta(days=1))
        asyncio.run(cache.set(key, dump_target(target)))

        with pytest.raises(NotFoundError):
            asyncio.run(resolver.resolve("gone00"))

        assert not asyncio.run(cache.exists(key))

    def test_cache_ttl_capped_by_expiry(self, shortener, store, clock):
        cache = RecordingCache()
        resolver = ResolutionService(store, clock=clock, cache=cache, cache_ttl=3600)
        view = asyncio.run(
            shortener.shorten("https://example.com/", expires_at=clock.now + timedelta(seconds=10))
        )

        asyncio.run(resolver.resolve(view.token))

        assert cache.ttls[redirect_key(view.token)] == 10

    def test_works_without_cache(self, shortener, store, clock):
        resolver = ResolutionService(store, clock=clock)
        view = asyncio.run(shortener.shorten("https://example.com/plain"))

        assert asyncio.run(resolver.resolve(view.token)) == "https://example.com/plain"

    def test_concurrent_resolutions(self, memory_store, clock):
        service = ShorteningService(memory_store, TokenGenerator(), BASE_URL, clock=clock)
        resolver = ResolutionService(memory_store, clock=clock, cache=InMemoryCache())
        token = asyncio.run(service.shorten("https://example.com/hot")).token
        n = 100

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: asyncio.run(resolver.resolve(token)), range(n)))

        assert results == ["https://example.com/hot"] * n
        assert memory_store.get_by_token(token).click_count == n

    def test_concurrent_resolutions_sqlalchemy(self, session_factory, clock):
        setup = session_factory()
        try:
            service = ShorteningService(SQLAlchemyURLStore(setup), TokenGenerator(), BASE_URL, clock=clock)
            token = asyncio.run(service.shorten("https://example.com/hot")).token
        finally:
            setup.close()
        n = 30

        def resolve(_):
            session = session_factory()
            try:
                resolver = ResolutionService(SQLAlchemyURLStore(session), clock=clock)
                return asyncio.run(resolver.resolve(token))
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=6) as pool:
            list(pool.map(resolve, range(n)))

        check = session_factory()
        try:
            assert SQLAlchemyURLStore(check).get_by_token(token).click_count == n
        finally:
            check.close()


class TestURLService:
    """Test lookup, listing and deletion"""

    def test_get_url(self, shortener, url_service):
        created = asyncio.run(shortener.shorten("https://example.com/info", title="Info"))

        view = asyncio.run(url_service.get_url(created.token))

        assert view == created

    def test_get_expired_url_still_works(self, shortener, url_service, clock):
        created = asyncio.run(
            shortener.shorten("https://example.com/", expires_at=clock.now - timedelta(days=1))
        )

        assert asyncio.run(url_service.get_url(created.token)).token == created.token

    def test_get_missing(self, url_service):
        with pytest.raises(NotFoundError):
            asyncio.run(url_service.get_url("nope00"))

    def test_list_is_idempotent(self, shortener, url_service, clock):
        tokens = []
        for i in range(3):
            tokens.append(asyncio.run(shortener.shorten(f"https://example.com/{i}")).token)
            clock.advance(seconds=1)

        first = asyncio.run(url_service.list_urls())
        second = asyncio.run(url_service.list_urls())

        assert first == second
        assert [u.token for u in first.urls] == list(reversed(tokens))

    def test_delete_then_resolve(self, shortener, resolver, url_service, store):
        view = asyncio.run(shortener.shorten("https://example.com/bye"))
        asyncio.run(resolver.resolve(view.token))  # warm the cache

        asyncio.run(url_service.delete_url(view.token))

        with pytest.raises(NotFoundError):
            asyncio.run(resolver.resolve(view.token))
        assert store.delete_by_token(view.token) == 0

    def test_delete_missing(self, url_service):
        with pytest.raises(NotFoundError):
            asyncio.run(url_service.delete_url("nope00"))


class ThreadRecordingStore(InMemoryURLStore):
    """Remembers which thread each store call ran on."""

    def __init__(self):
        super().__init__()
        self.threads = set()

    def get_by_token(self, token):
        self.threads.add(threading.get_ident())
        return super().get_by_token(token)

    def increment_click_count(self, token):
        self.threads.add(threading.get_ident())
        return super().increment_click_count(token)


class TestStoreCallsLeaveEventLoop:
    """Blocking store calls run in the worker thread pool, not on the loop thread"""

    def test_resolve(self, clock):
        store = ThreadRecordingStore()
        shortener = ShorteningService(store, TokenGenerator(), BASE_URL, clock=clock)
        view = asyncio.run(shortener.shorten("https://example.com/"))

        async def resolve_on_loop():
            loop_thread = threading.get_ident()
            await ResolutionService(store, clock=clock).resolve(view.token)
            return loop_thread

        loop_thread = asyncio.run(resolve_on_loop())

        assert store.threads
        assert loop_thread not in store.threads

    def test_get_url(self, clock):
        store = ThreadRecordingStore()
        shortener = ShorteningService(store, TokenGenerator(), BASE_URL, clock=clock)
        view = asyncio.run(shortener.shorten("https://example.com/"))

        async def get_on_loop():
            loop_thread = threading.get_ident()
            await URLService(store, BASE_URL).get_url(view.token)
            return loop_thread

        loop_thread = asyncio.run(get_on_loop())

        assert store.threads
        assert loop_thread not in store.threads
