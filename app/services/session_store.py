"""Admin session: identity plus access/refresh tokens.

The store is created once per browser session and handed to the API client
and the views. Storage is any string mapping; the console passes a
``BrowserSessionStorage`` backed by a cookie, tests pass a dict.
"""
from typing import MutableMapping, Optional

import requests

from app.config import (
    LOGIN_PATH,
    STORAGE_ACCESS_TOKEN,
    STORAGE_ADMIN,
    STORAGE_KEYS,
    STORAGE_REFRESH_TOKEN,
)
from app.errors import AuthError
from app.logging_config import get_logger
from app.models.session import AdminProfile, Session
from app.services.http_client import build_url, send_json

logger = get_logger(__name__)


class SessionStore:
    def __init__(self, storage: MutableMapping, http: requests.Session, base_url: str):
        self._storage = storage
        self._http = http
        self._base_url = base_url
        self._admin: Optional[AdminProfile] = None

    # ---- queries ----
    @property
    def admin(self) -> Optional[AdminProfile]:
        return self._admin

    @property
    def access_token(self) -> str:
        return self._storage.get(STORAGE_ACCESS_TOKEN) or ""

    @property
    def refresh_token(self) -> str:
        return self._storage.get(STORAGE_REFRESH_TOKEN) or ""

    def is_authenticated(self) -> bool:
        return self._admin is not None and bool(self.access_token)

    def current(self) -> Optional[Session]:
        if not self.is_authenticated():
            return None
        return Session(admin=self._admin, access_token=self.access_token, refresh_token=self.refresh_token)

    # ---- lifecycle ----
    def login(self, email: str, password: str) -> Session:
        """
        Exchange credentials for tokens. Nothing is persisted unless the
        server accepts them.

        Raises:
            AuthError: credentials rejected
            NetworkError: server unreachable
        """
        _, body = send_json(
            self._http,
            "POST",
            build_url(self._base_url, LOGIN_PATH),
            json_body={"email": email, "password": password},
        )
        if not isinstance(body, dict):
            body = {}
        data = body.get("data")
        if not isinstance(data, dict):
            data = {}
        if not body.get("success") or not data.get("accessToken"):
            logger.info("login_rejected", email=email)
            raise AuthError(body.get("message") or None)

        payload = data.get("admin")
        admin = AdminProfile.from_api(payload if isinstance(payload, dict) else {})
        self._storage[STORAGE_ACCESS_TOKEN] = data["accessToken"]
        self._storage[STORAGE_REFRESH_TOKEN] = data.get("refreshToken") or ""
        self._storage[STORAGE_ADMIN] = admin.to_json()
        self._admin = admin
        logger.info("login_succeeded", admin_id=admin.id)
        return Session(admin=admin, access_token=data["accessToken"], refresh_token=data.get("refreshToken") or "")

    def logout(self) -> None:
        self.clear()
        logger.info("logout")

    def clear(self) -> None:
        for key in STORAGE_KEYS:
            self._storage.pop(key, None)
        self._admin = None

    def update_tokens(self, access_token: str, refresh_token: str) -> None:
        self._storage[STORAGE_ACCESS_TOKEN] = access_token
        self._storage[STORAGE_REFRESH_TOKEN] = refresh_token

    def restore_on_startup(self) -> Optional[Session]:
        """
        Resume a persisted session when both profile and access token exist.
        Partial state is ignored, not cleared. Token expiry is not checked.
        """
        saved_admin = self._storage.get(STORAGE_ADMIN)
        token = self.access_token
        if not (saved_admin and token):
            return None
        try:
            self._admin = AdminProfile.from_json(saved_admin)
        except ValueError:
            logger.warning("restore_failed", reason="unreadable admin profile")
            return None
        logger.info("session_restored", admin_id=self._admin.id)
        return self.current()
