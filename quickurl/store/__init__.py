"""
URL record store module.

Implements the Strategy Pattern so the services work unchanged against the
relational database or an in-memory dict.
"""

from .strategies import URLStoreStrategy, SQLAlchemyURLStore, InMemoryURLStore

__all__ = [
    "URLStoreStrategy",
    "SQLAlchemyURLStore",
    "InMemoryURLStore",
]
