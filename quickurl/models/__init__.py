"""
Data models for QuickURL.

URL is the SQLAlchemy table; URLRecord is the typed value the stores
return, so services never touch ORM rows directly.
"""

from .record import URLRecord
from .url import URL

__all__ = ["URL", "URLRecord"]
