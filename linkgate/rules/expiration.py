"""Link expiration check."""

from datetime import datetime, timezone
from typing import Optional


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True iff ``expires_at`` is set and strictly before ``now`` (naive values are UTC)."""
    if expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return _as_utc(expires_at) < _as_utc(now)
