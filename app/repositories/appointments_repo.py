# app/repositories/appointments_repo.py
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Optional

import pandas as pd
import pytz

from app.config import APPOINTMENTS_COLUMNS
from app.errors import ConsoleError, SessionExpired
from app.logging_config import get_logger
from app.models.appointments import Appointment
from app.models.clients import Client
from app.repositories.clients_repo import load_client
from app.repositories.envelope import message_of, unwrap
from app.services.api_client import ApiClient
from app.utils.time_utils import utc_now

logger = get_logger(__name__)


def _parse_appointments(data: Any) -> list[Appointment]:
    out = []
    for r in data or []:
        try:
            out.append(Appointment.from_api(r))
        except ValueError as exc:
            # Skip rows without a usable timestamp rather than failing the page
            logger.warning("appointment_skipped", error=str(exc))
    return out


def load_appointments(api: ApiClient) -> list[Appointment]:
    return _parse_appointments(unwrap(api.list_appointments()))


def load_client_appointments(api: ApiClient, client_id: str) -> list[Appointment]:
    return _parse_appointments(unwrap(api.list_client_appointments(client_id)))


def find_appointment(api: ApiClient, appointment_id: str) -> Optional[Appointment]:
    """There is no single-appointment endpoint; search the full list."""
    for a in load_appointments(api):
        if a.id == appointment_id:
            return a
    return None


def create_appointment(api: ApiClient, client_id: str, time_iso: str) -> Any:
    return unwrap(api.create_appointment(client_id, time_iso))


def update_appointment(api: ApiClient, appointment_id: str, client_id: str, time_iso: str) -> Any:
    return unwrap(api.update_appointment(appointment_id, {"client_id": client_id, "time": time_iso}))


def cancel_appointment(api: ApiClient, appointment_id: str) -> str:
    """Returns the server's confirmation message."""
    envelope = api.cancel_appointment(appointment_id)
    unwrap(envelope)
    return message_of(envelope, "Appointment cancelled")


def load_client_details(api: ApiClient, client_id: str) -> tuple[Client, list[Appointment]]:
    """
    Fetch the client and their appointments in parallel and wait for both.
    A failed appointments call leaves the history empty; a failed client
    call (or an expired session on either side) raises.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        client_future = pool.submit(load_client, api, client_id)
        appts_future = pool.submit(load_client_appointments, api, client_id)
        client_exc = client_future.exception()
        appts_exc = appts_future.exception()

    for exc in (client_exc, appts_exc):
        if isinstance(exc, SessionExpired):
            raise exc
    if client_exc is not None:
        raise client_exc

    if appts_exc is not None:
        if not isinstance(appts_exc, ConsoleError):
            raise appts_exc
        logger.warning("client_appointments_failed", client_id=client_id, error=str(appts_exc))
        appointments = []
    else:
        appointments = appts_future.result()
    return client_future.result(), appointments


def appointments_to_df(
    appointments: list[Appointment],
    now: Optional[datetime] = None,
    tz=pytz.UTC,
) -> pd.DataFrame:
    """Display frame with status derived at `now`; `id` is kept for row lookups."""
    cols = ["id"] + APPOINTMENTS_COLUMNS
    if not appointments:
        return pd.DataFrame(columns=cols)
    now = now or utc_now()
    rows = []
    for a in appointments:
        local = a.time.astimezone(tz)
        rows.append(
            {
                "id": a.id,
                "client": a.client.name,
                "email": a.client.email,
                "phone": a.client.phone,
                "date": local.strftime("%Y-%m-%d"),
                "time": local.strftime("%H:%M"),
                "status": a.status(now),
            }
        )
    return pd.DataFrame(rows, columns=cols)
