# app/models/base.py
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.ext.declarative import declared_attr
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator
from datetime import datetime, timezone
import uuid
import nanoid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_sid() -> str:
    return nanoid.generate(size=22)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetime, also on backends that drop tzinfo (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sid = Column(String(22), unique=True, nullable=False, index=True, default=generate_sid)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()

    @staticmethod
    def generate_sid():
        """Short public identifier used in URLs and API payloads"""
        return generate_sid()
