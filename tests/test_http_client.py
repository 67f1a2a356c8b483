"""Shared HTTP session: cookie isolation and request encoding."""
from unittest.mock import Mock

import pytest
import requests
from requests.cookies import MockRequest, RequestsCookieJar, create_cookie

from app.errors import ApiError
from app.services.http_client import build_url, create_http_session, send_json


def login_request():
    return MockRequest(requests.Request("POST", "https://api.clinic.test/api/admin/login").prepare())


def server_cookie():
    return create_cookie("sid", "admin-a", domain="api.clinic.test")


def test_shared_session_refuses_server_cookies():
    session = create_http_session()

    session.cookies.set_cookie_if_ok(server_cookie(), login_request())

    assert len(session.cookies) == 0


def test_plain_jar_would_have_kept_the_cookie():
    jar = RequestsCookieJar()

    jar.set_cookie_if_ok(server_cookie(), login_request())

    assert jar.get("sid") == "admin-a"


def test_pooled_adapter_mounted_without_retries():
    session = create_http_session(pool_size=4)

    adapter = session.get_adapter("https://api.clinic.test")

    assert adapter.max_retries.total == 0


def test_send_json_hands_body_to_requests_as_json():
    http = Mock()
    http.request.return_value.status_code = 201
    http.request.return_value.json.return_value = {"success": True}

    status, body = send_json(http, "post", "https://api.clinic.test/api/appointments", json_body={"time": "t"})

    assert (status, body) == (201, {"success": True})
    http.request.assert_called_once_with(
        "POST",
        "https://api.clinic.test/api/appointments",
        json={"time": "t"},
        headers={"Content-Type": "application/json"},
        timeout=15,
    )


def test_send_json_non_json_error_page_raises_api_error():
    http = Mock()
    http.request.return_value.status_code = 503
    http.request.return_value.json.side_effect = ValueError("html")

    with pytest.raises(ApiError, match="HTTP 503"):
        send_json(http, "GET", "https://api.clinic.test/api/clients")


@pytest.mark.parametrize(
    "base, endpoint, expected",
    [
        ("https://api.clinic.test/api/", "/clients", "https://api.clinic.test/api/clients"),
        ("https://api.clinic.test/api", "clients", "https://api.clinic.test/api/clients"),
        ("https://api.clinic.test/api", "https://other.test/x", "https://other.test/x"),
    ],
)
def test_build_url(base, endpoint, expected):
    assert build_url(base, endpoint) == expected
