"""
Timezone helpers.

The pipeline compares interview times against "now" in several places. All
datetimes are handled as aware UTC; SQLite hands back naive values for
``DateTime(timezone=True)`` columns, so anything read from storage goes
through ``as_utc`` before comparison.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
