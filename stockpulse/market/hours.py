from datetime import datetime, timedelta, timezone

_OPEN_HOUR = 9.5
_CLOSE_HOUR = 16.0


def is_market_open(now: datetime, utc_offset_hours: int = -5) -> bool:
    """Mon-Fri, 09:30-16:00 inclusive, in a fixed UTC-offset timezone (no DST)."""
    local = now.astimezone(timezone(timedelta(hours=utc_offset_hours)))
    if local.weekday() >= 5:
        return False
    hour = local.hour + local.minute / 60
    return _OPEN_HOUR <= hour <= _CLOSE_HOUR
