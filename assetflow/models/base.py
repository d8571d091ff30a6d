import uuid
from datetime import datetime, timezone

from sqlalchemy import Enum

from ..core.database import Base

__all__ = ["Base", "enum_type", "new_id", "utcnow"]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_type(enum_cls) -> Enum:
    # Stored as VARCHAR so SQLite and PostgreSQL share one schema.
    return Enum(enum_cls, native_enum=False, length=32, validate_strings=True)
