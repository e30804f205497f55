from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Any) -> datetime | None:
    """Coerce a stored timestamp (datetime or text) to an aware UTC datetime.

    Returns ``None`` for anything that does not name a valid instant, including
    text the database hands back for corrupt or infinite values.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        # SQLite hands back naive values; everything is stored in UTC.
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
