"""Shared test fixtures."""
import json
from datetime import datetime
from unittest.mock import Mock

import pytest
import pytz
import requests

from app.services.api_client import ApiClient
from app.services.session_store import SessionStore

BASE_URL = "https://clinic.test/api"


def make_response(status_code: int = 200, body=None):
    """requests.Response stand-in; body=None makes .json() fail."""
    response = Mock()
    response.status_code = status_code
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


class FakeHttp:
    """Replays queued responses (or exceptions) and records each call."""

    def __init__(self):
        self.queue = []
        self.calls = []

    def push(self, status_code: int = 200, body=None):
        self.queue.append(make_response(status_code, body))
        return self

    def push_error(self, exc: Exception):
        self.queue.append(exc)
        return self

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "body": json,
                "headers": dict(headers or {}),
                "timeout": timeout,
            }
        )
        if not self.queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def paths(self):
        return [(c["method"], c["url"][len(BASE_URL):]) for c in self.calls]


class FakeCookies:
    """Cookie controller stand-in: a name -> value jar plus a call log."""

    def __init__(self, jar=None):
        self.jar = dict(jar or {})
        self.calls = []

    def set(self, name, value, max_age=None):
        self.calls.append(("set", name, max_age))
        self.jar[name] = value

    def remove(self, name):
        self.calls.append(("remove", name))
        self.jar.pop(name, None)


@pytest.fixture
def base_url():
    return BASE_URL


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def storage():
    return {}


@pytest.fixture
def store(storage, http):
    return SessionStore(storage, http, BASE_URL)


@pytest.fixture
def api(store, http):
    return ApiClient(store, BASE_URL, http)


@pytest.fixture
def admin_payload():
    return {"id": "adm-1", "first_name": "Amina", "last_name": "Rahman", "email": "amina@ruh.test"}


@pytest.fixture
def logged_in(storage, store, admin_payload):
    """Store with a session already persisted and restored."""
    storage["accessToken"] = "access-1"
    storage["refreshToken"] = "refresh-1"
    storage["admin"] = json.dumps(admin_payload)
    store.restore_on_startup()
    return store


@pytest.fixture
def appointment_payload():
    def _create(appt_id: str, when: str, name: str = "Sara Ali", email: str = "sara@mail.test",
                phone: str = "0501234567", client_id: str = "cl-1"):
        return {
            "id": appt_id,
            "client_id": client_id,
            "time": when,
            "client": {"name": name, "email": email, "phone": phone},
        }
    return _create


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 10, 12, 0, tzinfo=pytz.UTC)


@pytest.fixture
def ok():
    def _envelope(data=None, message=None):
        body = {"success": True, "data": data}
        if message:
            body["message"] = message
        return body
    return _envelope


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("connection refused")


@pytest.fixture
def browser_cookies():
    return FakeCookies()
