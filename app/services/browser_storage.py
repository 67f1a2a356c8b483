"""Session fields persisted in a browser cookie.

Reads and writes hit an in-memory snapshot, so the mapping is safe to use
from worker threads. Writes only mark the snapshot dirty; ``sync`` pushes it
to the browser and must run on the script thread, where components render.
"""
import base64
import binascii
import json
import threading
from typing import Any, Iterator, Mapping, MutableMapping, Optional

from app.config import SESSION_COOKIE_MAX_AGE_SECONDS, SESSION_COOKIE_NAME, STORAGE_KEYS
from app.logging_config import get_logger

logger = get_logger(__name__)


def encode_cookie(values: Mapping[str, str]) -> str:
    """URL-safe base64 of the JSON object, padding stripped."""
    raw = json.dumps(dict(values), separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cookie(value: Optional[str]) -> dict[str, str]:
    """Inverse of ``encode_cookie``. Unknown keys are dropped, garbage reads as empty."""
    if not value:
        return {}
    text = str(value)
    try:
        raw = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError):
        logger.warning("session_cookie_unreadable")
        return {}
    if not isinstance(data, dict):
        logger.warning("session_cookie_unreadable")
        return {}
    return {k: str(v) for k, v in data.items() if k in STORAGE_KEYS and v is not None}


class BrowserSessionStorage(MutableMapping):
    def __init__(self, cookies: Optional[Mapping[str, str]] = None, cookie_name: str = SESSION_COOKIE_NAME):
        self.cookie_name = cookie_name
        self._values = decode_cookie((cookies or {}).get(cookie_name))
        self._dirty = False
        self._lock = threading.Lock()

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value
            self._dirty = True

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._values[key]
            self._dirty = True

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def sync(self, controller) -> bool:
        """
        Write pending changes to the browser through a cookie controller
        (``set(name, value, max_age=...)`` / ``remove(name)``).
        Returns True when something was written.
        """
        with self._lock:
            if not self._dirty:
                return False
            snapshot = dict(self._values)
            self._dirty = False

        if snapshot:
            controller.set(self.cookie_name, encode_cookie(snapshot), max_age=SESSION_COOKIE_MAX_AGE_SECONDS)
        else:
            controller.remove(self.cookie_name)
        logger.info("session_cookie_synced", cleared=not snapshot)
        return True
