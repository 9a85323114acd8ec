from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from quickurl.models.record import URLRecord


def build_short_url(token: str, base_url: str) -> str:
    """Join the public base address and a token."""
    return f"{base_url.rstrip('/')}/{token}"


class URLCreate(BaseModel):
    # Plain string: only the scheme prefix is checked, by the shortening service
    url: str = Field(..., description="The original URL to be shortened")
    title: Optional[str] = Field(None, description="Optional label for the link")
    expires_at: Optional[datetime] = Field(
        None, description="Expiration time (UTC if no offset); defaults to 30 days from now"
    )


class URLResponse(BaseModel):
    """Public view of a URL record, including its short_url."""
    id: str
    token: str
    original_url: str
    short_url: str
    title: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    click_count: int

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_record(cls, record: URLRecord, base_url: str) -> "URLResponse":
        return cls(**asdict(record), short_url=build_short_url(record.token, base_url))


class URLListResponse(BaseModel):
    urls: List[URLResponse]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ErrorResponse(BaseModel):
    error: str
