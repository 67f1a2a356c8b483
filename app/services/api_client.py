"""Authenticated calls to the clinic API.

Pipeline per call: attempt -> on 401 refresh once -> retry once.
The retry never refreshes again.
"""
import threading
from typing import Any, Optional

import requests

from app.config import (
    APPOINTMENT_PATH,
    APPOINTMENTS_PATH,
    CLIENT_APPOINTMENTS_PATH,
    CLIENT_PATH,
    CLIENTS_PATH,
    REFRESH_PATH,
)
from app.errors import SessionExpired
from app.logging_config import get_logger
from app.services.http_client import build_url, send_json
from app.services.session_store import SessionStore

logger = get_logger(__name__)


class ApiClient:
    def __init__(
        self,
        session_store: SessionStore,
        base_url: str,
        http: requests.Session,
    ):
        self.session_store = session_store
        self.base_url = base_url
        self._http = http
        self._refresh_lock = threading.Lock()

    # -----------------------------
    # Core request pipeline
    # -----------------------------
    def authenticated_request(
        self,
        endpoint: str,
        method: str = "GET",
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
        _retried: bool = False,
    ) -> Any:
        """
        Send a bearer-authenticated request and return the JSON envelope as-is.

        Raises:
            SessionExpired: refresh rejected, or the refreshed token was refused
            NetworkError: request could not complete
            ApiError: response body is not JSON
        """
        token = self.session_store.access_token
        merged = dict(headers or {})
        merged["Authorization"] = f"Bearer {token}"

        status, body = send_json(
            self._http,
            method,
            build_url(self.base_url, endpoint),
            json_body=json,
            headers=merged,
        )
        if status != 401:
            return body

        if _retried:
            logger.warning("retry_unauthorized", endpoint=endpoint)
            self._expire_session()

        self.refresh(stale_token=token)
        return self.authenticated_request(endpoint, method, json=json, headers=headers, _retried=True)

    def refresh(self, stale_token: Optional[str] = None) -> None:
        """
        Exchange the stored refresh token for a new pair.

        Concurrent callers are serialized; a caller whose stale token was
        already replaced by another refresh returns without a network call.
        """
        with self._refresh_lock:
            current = self.session_store.access_token
            if stale_token is not None and current and current != stale_token:
                logger.info("refresh_coalesced")
                return

            refresh_token = self.session_store.refresh_token
            if not refresh_token:
                logger.info("refresh_skipped", reason="no refresh token")
                self._expire_session()

            logger.info("refresh_attempt")
            _, body = send_json(
                self._http,
                "POST",
                build_url(self.base_url, REFRESH_PATH),
                json_body={"refreshToken": refresh_token},
            )
            if not isinstance(body, dict):
                body = {}
            data = body.get("data")
            if not isinstance(data, dict):
                data = {}
            if not body.get("success") or not data.get("accessToken"):
                logger.info("refresh_rejected", message=body.get("message"))
                self._expire_session()

            self.session_store.update_tokens(data["accessToken"], data.get("refreshToken") or refresh_token)
            logger.info("refresh_succeeded")

    def _expire_session(self) -> None:
        logger.info("session_expired")
        self.session_store.clear()
        raise SessionExpired()

    # -----------------------------
    # Clients
    # -----------------------------
    def list_clients(self) -> Any:
        return self.authenticated_request(CLIENTS_PATH)

    def get_client(self, client_id: str) -> Any:
        return self.authenticated_request(CLIENT_PATH.format(client_id=client_id))

    # -----------------------------
    # Appointments
    # -----------------------------
    def list_appointments(self) -> Any:
        return self.authenticated_request(APPOINTMENTS_PATH)

    def list_client_appointments(self, client_id: str) -> Any:
        return self.authenticated_request(CLIENT_APPOINTMENTS_PATH.format(client_id=client_id))

    def create_appointment(self, client_id: str, time_iso: str) -> Any:
        return self.authenticated_request(
            APPOINTMENTS_PATH,
            method="POST",
            json={"client_id": client_id, "time": time_iso},
        )

    def update_appointment(self, appointment_id: str, updates: dict[str, Any]) -> Any:
        return self.authenticated_request(
            APPOINTMENT_PATH.format(appointment_id=appointment_id),
            method="PUT",
            json=updates,
        )

    def cancel_appointment(self, appointment_id: str) -> Any:
        return self.authenticated_request(
            APPOINTMENT_PATH.format(appointment_id=appointment_id),
            method="DELETE",
        )
