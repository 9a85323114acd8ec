from datetime import timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.types import TypeDecorator

from quickurl.database.connection import Base


class UTCDateTime(TypeDecorator):
    """
    Stores datetimes as naive UTC and hands them back timezone-aware.

    SQLite has no timezone support, so values are normalized on the way in
    and tagged with UTC on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class URL(Base):
    """
    URL table: one row per short token.

    click_count is only ever changed through an atomic UPDATE
    (see SQLAlchemyURLStore.increment_click_count).
    """
    __tablename__ = "urls"

    id = Column(String(36), primary_key=True)
    # unique=True also creates the lookup index
    token = Column(String(32), unique=True, nullable=False, index=True)
    original_url = Column(Text, nullable=False)
    title = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
    click_count = Column(Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (
        Index("idx_urls_created_at", "created_at"),
        Index("idx_urls_expires_at", "expires_at"),
    )
