"""Clock helpers"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime | None = None) -> int:
    """Milliseconds since the Unix epoch for `moment` (default: now)"""
    moment = moment or utc_now()
    return int(moment.timestamp() * 1000)
