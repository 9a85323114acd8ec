"""Cache key schema for redirect targets."""

import json
from datetime import datetime
from typing import NamedTuple, Optional

REDIRECT_KEY_PREFIX = "url:"


class RedirectTarget(NamedTuple):
    """The immutable part of a record needed to answer a redirect."""

    original_url: str
    expires_at: datetime


def redirect_key(token: str) -> str:
    return f"{REDIRECT_KEY_PREFIX}{token}"


def dump_target(target: RedirectTarget) -> str:
    return json.dumps({
        "original_url": target.original_url,
        "expires_at": target.expires_at.isoformat(),
    })


def load_target(raw: str) -> Optional[RedirectTarget]:
    """Decode a cached value; malformed entries are treated as a miss."""
    try:
        data = json.loads(raw)
        return RedirectTarget(
            original_url=data["original_url"],
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )
    except (ValueError, KeyError, TypeError):
        return None
