from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_today(tz_name: str, *, now: datetime | None = None) -> date:
    """Calendar date in `tz_name`; this is the day past-date checks compare against."""
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(ZoneInfo(tz_name)).date()
