"""
Common mixins for models
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Uuid
from uuid import uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    # Python-side defaults keep microsecond ordering on every backend
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class BaseMixin(TimestampMixin):
    """UUID primary key plus timestamps for the business models"""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, index=True)
