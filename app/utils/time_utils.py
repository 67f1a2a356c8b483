from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz

from app.config import STATUS_COMPLETED, STATUS_SCHEDULED
from app.logging_config import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def get_timezone(name: Optional[str]):
    if not name:
        return pytz.UTC
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning("unknown_timezone", timezone=name, fallback="UTC")
        return pytz.UTC


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an API timestamp into an aware UTC datetime.
    Accepts "2024-05-01T09:00:00.000Z", offsets, or naive strings (read as UTC).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_api_timestamp(dt: datetime) -> str:
    dt = dt.astimezone(pytz.UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def combine_date_time(day: date, at: time, tz=pytz.UTC) -> str:
    """Local date + time from a form -> UTC ISO string for the API."""
    local = tz.localize(datetime.combine(day, at.replace(tzinfo=None)))
    return to_api_timestamp(local)


def appointment_status(when: datetime, now: Optional[datetime] = None) -> str:
    # Completed only when strictly in the past
    now = now or utc_now()
    return STATUS_COMPLETED if when < now else STATUS_SCHEDULED


def local_midnight(now: datetime, tz=pytz.UTC) -> datetime:
    local_now = now.astimezone(tz)
    return tz.localize(datetime.combine(local_now.date(), time.min))


def day_window(now: datetime, start_days: int, end_days: int, tz=pytz.UTC) -> tuple[datetime, datetime]:
    midnight = local_midnight(now, tz)
    start = tz.normalize(midnight + timedelta(days=start_days))
    end = tz.normalize(midnight + timedelta(days=end_days))
    return start, end


def format_local(dt: Optional[datetime], tz=pytz.UTC, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if dt is None:
        return ""
    return dt.astimezone(tz).strftime(fmt)
