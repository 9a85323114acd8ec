"""
FastAPI dependencies for dependency injection.

Process-wide collaborators (cache, token generator, clock) are created once;
the record store wraps the per-request database session. Tests override
get_db, get_cache and get_clock to swap in their own.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from quickurl.cache.factory import CacheFactory, CacheBackend
from quickurl.cache.strategies import CacheStrategy
from quickurl.clock import Clock, utc_now
from quickurl.config import settings
from quickurl.database.connection import get_db
from quickurl.services.resolution_service import ResolutionService
from quickurl.services.shortening_service import ShorteningService
from quickurl.services.token_generator import TokenGenerator
from quickurl.services.url_service import URLService
from quickurl.store.strategies import SQLAlchemyURLStore, URLStoreStrategy


@lru_cache()
def get_cache() -> CacheStrategy:
    """
    Get cache instance (singleton).

    Factory gets config from settings internally.
    """
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_token_generator() -> TokenGenerator:
    return TokenGenerator(length=settings.token_length)


def get_clock() -> Clock:
    return utc_now


def get_url_store(db: Session = Depends(get_db)) -> URLStoreStrategy:
    return SQLAlchemyURLStore(db)


def get_shortening_service(
    store: URLStoreStrategy = Depends(get_url_store),
    generator: TokenGenerator = Depends(get_token_generator),
    clock: Clock = Depends(get_clock),
) -> ShorteningService:
    return ShorteningService(
        store=store,
        generator=generator,
        base_url=settings.base_url,
        clock=clock,
        max_attempts=settings.max_retries,
        default_ttl=timedelta(days=settings.default_expiry_days),
    )


def get_resolution_service(
    store: URLStoreStrategy = Depends(get_url_store),
    clock: Clock = Depends(get_clock),
    cache: CacheStrategy = Depends(get_cache),
) -> ResolutionService:
    return ResolutionService(store=store, clock=clock, cache=cache, cache_ttl=settings.cache_ttl)


def get_url_service(
    store: URLStoreStrategy = Depends(get_url_store),
    cache: CacheStrategy = Depends(get_cache),
) -> URLService:
    return URLService(store=store, base_url=settings.base_url, cache=cache)
