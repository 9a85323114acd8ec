from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class URLRecord:
    """Plain, immutable view of a stored URL row returned by every store."""

    id: str
    token: str
    original_url: str
    title: Optional[str]
    created_at: datetime
    expires_at: datetime
    click_count: int = 0

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
