from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from app.config import STATUS_COMPLETED
from app.utils.time_utils import appointment_status, parse_timestamp


@dataclass
class ClientSnapshot:
    """Denormalized client fields the server embeds in each appointment."""

    name: str
    email: str
    phone: str

    @staticmethod
    def from_api(payload: Optional[dict[str, Any]]) -> "ClientSnapshot":
        payload = payload or {}
        return ClientSnapshot(
            name=str(payload.get("name") or ""),
            email=str(payload.get("email") or ""),
            phone=str(payload.get("phone") or ""),
        )


@dataclass
class Appointment:
    id: str
    client_id: str
    client: ClientSnapshot
    time: datetime               # aware, UTC

    @staticmethod
    def from_api(payload: dict[str, Any]) -> "Appointment":
        when = parse_timestamp(payload.get("time"))
        if when is None:
            raise ValueError(f"Appointment {payload.get('id')!r} has no valid time")
        return Appointment(
            id=str(payload.get("id", "")),
            client_id=str(payload.get("client_id") or payload.get("clientId") or ""),
            client=ClientSnapshot.from_api(payload.get("client")),
            time=when,
        )

    def status(self, now: Optional[datetime] = None) -> str:
        """Derived on every call; never cached."""
        return appointment_status(self.time, now)

    def is_completed(self, now: Optional[datetime] = None) -> bool:
        return self.status(now) == STATUS_COMPLETED

    @property
    def short_id(self) -> str:
        return self.id[:8]
