from datetime import datetime
from typing import Iterable, Optional

import pytz

from app.config import DATE_FILTERS, STATUS_FILTERS
from app.models.appointments import Appointment
from app.models.clients import Client
from app.utils.time_utils import day_window, utc_now

# date filter -> (start, end) in days from local midnight
_DATE_WINDOWS = {
    "today": (0, 1),
    "tomorrow": (1, 2),
    "week": (0, 7),
    "month": (0, 30),
}


def _matches(term: str, *fields: str) -> bool:
    return any(term in (f or "").lower() for f in fields)


def search_clients(clients: Iterable[Client], term: str) -> list[Client]:
    """Case-insensitive substring match on name, email, phone. Returns a new list."""
    term = (term or "").strip().lower()
    if not term:
        return list(clients)
    return [c for c in clients if _matches(term, c.name, c.email, c.phone)]


def search_appointments(appointments: Iterable[Appointment], term: str) -> list[Appointment]:
    term = (term or "").strip().lower()
    if not term:
        return list(appointments)
    return [
        a for a in appointments
        if _matches(term, a.client.name, a.client.email, a.client.phone)
    ]


def filter_by_status(
    appointments: Iterable[Appointment],
    status: str,
    now: Optional[datetime] = None,
) -> list[Appointment]:
    if status not in STATUS_FILTERS:
        raise ValueError(f"Unknown status filter: {status}")
    if status == "all":
        return list(appointments)
    now = now or utc_now()
    want_completed = status == "completed"
    return [a for a in appointments if a.is_completed(now) == want_completed]


def filter_by_date_range(
    appointments: Iterable[Appointment],
    date_range: str,
    now: Optional[datetime] = None,
    tz=pytz.UTC,
) -> list[Appointment]:
    if date_range not in DATE_FILTERS:
        raise ValueError(f"Unknown date filter: {date_range}")
    if date_range == "all":
        return list(appointments)
    now = now or utc_now()
    start, end = day_window(now, *_DATE_WINDOWS[date_range], tz=tz)
    return [a for a in appointments if start <= a.time < end]


def apply_appointment_filters(
    appointments: Iterable[Appointment],
    term: str = "",
    status: str = "all",
    date_range: str = "all",
    now: Optional[datetime] = None,
    tz=pytz.UTC,
) -> list[Appointment]:
    now = now or utc_now()
    filtered = search_appointments(appointments, term)
    filtered = filter_by_status(filtered, status, now)
    return filter_by_date_range(filtered, date_range, now, tz)


def split_upcoming_past(
    appointments: Iterable[Appointment],
    now: Optional[datetime] = None,
) -> tuple[list[Appointment], list[Appointment]]:
    now = now or utc_now()
    upcoming, past = [], []
    for a in appointments:
        (past if a.is_completed(now) else upcoming).append(a)
    upcoming.sort(key=lambda a: a.time)
    past.sort(key=lambda a: a.time, reverse=True)
    return upcoming, past


def has_active_filters(term: str, status: str, date_range: str) -> bool:
    return bool((term or "").strip()) or status != "all" or date_range != "all"


def describe_filters(count: int, term: str = "", status: str = "all", date_range: str = "all") -> str:
    noun = "appointment" if count == 1 else "appointments"
    parts = [f"Found {count} {noun}"]
    if (term or "").strip():
        parts.append(f'matching "{term.strip()}"')
    if status != "all":
        parts.append(f'with status "{status}"')
    if date_range != "all":
        parts.append(f'in date range "{date_range}"')
    return " ".join(parts)
