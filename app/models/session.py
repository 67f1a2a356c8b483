import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class AdminProfile:
    id: str
    first_name: str
    last_name: str
    email: str
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    @staticmethod
    def from_api(payload: dict[str, Any]) -> "AdminProfile":
        payload = payload or {}
        return AdminProfile(
            id=str(payload.get("id", "")),
            first_name=str(payload.get("first_name") or payload.get("firstName") or ""),
            last_name=str(payload.get("last_name") or payload.get("lastName") or ""),
            email=str(payload.get("email", "")),
            raw=dict(payload),
        )

    def to_json(self) -> str:
        data = dict(self.raw)
        data.update(
            {
                "id": self.id,
                "first_name": self.first_name,
                "last_name": self.last_name,
                "email": self.email,
            }
        )
        return json.dumps(data, ensure_ascii=False)

    @staticmethod
    def from_json(s: str) -> "AdminProfile":
        return AdminProfile.from_api(json.loads(s))


@dataclass
class Session:
    admin: AdminProfile
    access_token: str
    refresh_token: str
