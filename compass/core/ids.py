from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4


def new_id(prefix: str) -> str:
    """Return a fresh identifier of the form ``<prefix>_<hex>``."""
    return f"{prefix}_{uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
