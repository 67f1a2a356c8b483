from typing import Any

from app.errors import ApiError


def unwrap(envelope: Any) -> Any:
    """Return envelope["data"] when success is true, else raise ApiError(message)."""
    if not isinstance(envelope, dict):
        raise ApiError("Unexpected response from server")
    if not envelope.get("success"):
        raise ApiError(envelope.get("message") or None)
    return envelope.get("data")


def message_of(envelope: Any, default: str = "") -> str:
    if isinstance(envelope, dict):
        return envelope.get("message") or default
    return default
