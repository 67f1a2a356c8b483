from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from app.utils.time_utils import parse_timestamp


# -----------------------------
# Data model
# -----------------------------
@dataclass
class Client:
    id: str
    name: str
    email: str
    phone: str
    created_at: Optional[datetime]

    @staticmethod
    def from_api(payload: dict[str, Any]) -> "Client":
        return Client(
            id=str(payload.get("id", "")),
            name=str(payload.get("name") or ""),
            email=str(payload.get("email") or ""),
            phone=str(payload.get("phone") or ""),
            created_at=parse_timestamp(payload.get("created_at") or payload.get("createdAt")),
        )

    @property
    def label(self) -> str:
        # Shown in client pickers
        return f"{self.name} - {self.email}"
