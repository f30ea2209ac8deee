"""
Shared column helpers for mirror models.

Provides:
- generate_uuid: UUID generation for internal primary keys
- JSONType: JSON column that becomes JSONB on PostgreSQL (plain JSON on SQLite in tests)
- to_iso_timestamp / utc_now_iso: ISO-8601 normalisation for Clerk timestamps
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

JSONType = JSON().with_variant(JSONB(), "postgresql")


def generate_uuid() -> str:
    """Generate a UUID4 string for use as a primary key default."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return _format(datetime.now(timezone.utc))


def to_iso_timestamp(value: Any) -> Optional[str]:
    """
    Normalise a Clerk timestamp to an ISO-8601 string.

    Clerk sends epoch milliseconds; already-formatted strings and datetimes
    are accepted as well. Returns None for missing or unparseable values,
    since an absent timestamp means "unknown", never "zero".
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return _format(value.astimezone(timezone.utc))

    if isinstance(value, (int, float)):
        if value <= 0:
            return None
        try:
            return _format(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isdigit():
            return to_iso_timestamp(int(text))
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return to_iso_timestamp(parsed)

    return None


def _format(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
