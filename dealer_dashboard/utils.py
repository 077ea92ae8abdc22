from datetime import datetime, date, timezone
from dateutil import tz

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def to_local_date(dt_utc: datetime, local_tz: str) -> date:
    tzinfo = tz.gettz(local_tz)
    return dt_utc.astimezone(tzinfo).date()
