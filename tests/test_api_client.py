"""API client: bearer auth, refresh-once/retry-once pipeline, resource paths."""
import threading
from unittest.mock import patch

import pytest

from app.errors import ApiError, NetworkError, SessionExpired


class TestAuthenticatedRequest:
    """Single-attempt behavior."""

    def test_attaches_bearer_token_and_json_content_type(self, logged_in, api, http, ok):
        http.push(200, ok([]))

        api.authenticated_request("/clients", headers={"X-Trace": "t-1", "Content-Type": "text/plain"})

        headers = http.calls[0]["headers"]
        assert headers["Authorization"] == "Bearer access-1"
        assert headers["Content-Type"] == "application/json"
        assert headers["X-Trace"] == "t-1"

    def test_returns_envelope_verbatim_for_non_401(self, logged_in, api, http):
        http.push(404, {"success": False, "message": "Client not found"})

        result = api.authenticated_request("/clients/missing")

        assert result == {"success": False, "message": "Client not found"}
        assert len(http.calls) == 1

    def test_request_carries_timeout(self, logged_in, api, http, ok):
        http.push(200, ok([]))

        api.authenticated_request("/clients")

        assert http.calls[0]["timeout"] == 15

    def test_network_failure_raises_network_error(self, logged_in, api, http, connection_error):
        http.push_error(connection_error)

        with pytest.raises(NetworkError):
            api.list_clients()

    def test_non_json_body_raises_api_error(self, logged_in, api, http):
        http.push(502, None)

        with pytest.raises(ApiError, match="HTTP 502"):
            api.list_clients()


class TestRefreshAndRetry:
    """401 handling: exactly one refresh, at most one retry."""

    def test_401_then_refresh_succeeds_retries_transparently(self, logged_in, api, http, storage, ok):
        http.push(401, {"success": False, "message": "Token expired"})
        http.push(200, ok({"accessToken": "access-2", "refreshToken": "refresh-2"}))
        http.push(200, ok([{"id": "cl-1"}]))

        result = api.list_clients()

        assert result == ok([{"id": "cl-1"}])
        assert http.paths() == [
            ("GET", "/clients"),
            ("POST", "/admin/refresh-token"),
            ("GET", "/clients"),
        ]
        assert http.calls[1]["body"] == {"refreshToken": "refresh-1"}
        assert http.calls[2]["headers"]["Authorization"] == "Bearer access-2"
        assert storage["accessToken"] == "access-2"
        assert storage["refreshToken"] == "refresh-2"
        assert logged_in.is_authenticated() is True

    def test_retry_preserves_method_and_body(self, logged_in, api, http, ok):
        http.push(401, None)
        http.push(200, ok({"accessToken": "access-2", "refreshToken": "refresh-2"}))
        http.push(201, ok({"id": "ap-1"}))

        api.create_appointment("cl-1", "2025-03-11T09:00:00.000Z")

        first, _, retry = http.calls
        assert retry["method"] == first["method"] == "POST"
        assert retry["body"] == first["body"] == {"client_id": "cl-1", "time": "2025-03-11T09:00:00.000Z"}

    def test_refresh_rejected_clears_session_and_raises(self, logged_in, api, http, storage):
        http.push(401, None)
        http.push(401, {"success": False, "message": "Invalid refresh token"})

        with pytest.raises(SessionExpired):
            api.list_appointments()

        assert storage == {}
        assert logged_in.is_authenticated() is False
        assert logged_in.admin is None
        assert http.paths() == [("GET", "/appointments"), ("POST", "/admin/refresh-token")]

    def test_401_on_retry_does_not_refresh_again(self, logged_in, api, http, storage, ok):
        http.push(401, None)
        http.push(200, ok({"accessToken": "access-2", "refreshToken": "refresh-2"}))
        http.push(401, None)

        with pytest.raises(SessionExpired):
            api.list_clients()

        refreshes = [p for p in http.paths() if p[1] == "/admin/refresh-token"]
        assert len(refreshes) == 1
        assert len(http.calls) == 3
        assert storage == {}

    def test_missing_refresh_token_expires_without_network_call(self, logged_in, api, http, storage):
        storage.pop("refreshToken")
        http.push(401, None)

        with pytest.raises(SessionExpired):
            api.list_clients()

        assert http.paths() == [("GET", "/clients")]
        assert logged_in.is_authenticated() is False

    def test_refresh_network_failure_keeps_session(self, logged_in, api, http, storage, connection_error):
        http.push(401, None)
        http.push_error(connection_error)

        with pytest.raises(NetworkError):
            api.list_clients()

        assert storage["accessToken"] == "access-1"
        assert logged_in.is_authenticated() is True

    @pytest.mark.parametrize("body", [["access-2"], "access-2", {"success": True, "data": ["access-2"]}])
    def test_malformed_refresh_body_expires_session(self, logged_in, api, http, storage, body):
        http.push(401, None)
        http.push(200, body)

        with pytest.raises(SessionExpired):
            api.list_clients()

        assert storage == {}
        assert logged_in.is_authenticated() is False

    def test_refresh_keeps_old_refresh_token_when_server_omits_it(self, logged_in, api, http, storage, ok):
        http.push(401, None)
        http.push(200, ok({"accessToken": "access-2"}))
        http.push(200, ok([]))

        api.list_clients()

        assert storage["refreshToken"] == "refresh-1"

    def test_refresh_is_invoked_exactly_once_per_401(self, logged_in, api, http, ok):
        http.push(401, None)
        http.push(200, ok({"accessToken": "access-2", "refreshToken": "refresh-2"}))
        http.push(200, ok([]))

        with patch.object(api, "refresh", wraps=api.refresh) as spy:
            api.list_clients()

        spy.assert_called_once_with(stale_token="access-1")


class TestRefreshCoalescing:
    def test_stale_token_already_replaced_skips_network(self, logged_in, api, http, storage):
        storage["accessToken"] = "access-2"

        api.refresh(stale_token="access-1")

        assert http.calls == []
        assert storage["accessToken"] == "access-2"

    def test_concurrent_refreshes_are_serialized(self, logged_in, api, http, storage, ok):
        http.push(200, ok({"accessToken": "access-2", "refreshToken": "refresh-2"}))
        errors = []

        def worker():
            try:
                api.refresh(stale_token="access-1")
            except Exception as exc:  # surfaced through the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert http.paths() == [("POST", "/admin/refresh-token")]
        assert storage["accessToken"] == "access-2"


class TestResourceOperations:
    @pytest.mark.parametrize(
        "call, expected",
        [
            (lambda api: api.list_clients(), ("GET", "/clients")),
            (lambda api: api.get_client("cl-7"), ("GET", "/clients/cl-7")),
            (lambda api: api.list_appointments(), ("GET", "/appointments")),
            (lambda api: api.list_client_appointments("cl-7"), ("GET", "/appointments/client/cl-7")),
            (lambda api: api.create_appointment("cl-7", "2025-01-01T10:00:00.000Z"), ("POST", "/appointments")),
            (lambda api: api.update_appointment("ap-3", {"time": "x"}), ("PUT", "/appointments/ap-3")),
            (lambda api: api.cancel_appointment("ap-3"), ("DELETE", "/appointments/ap-3")),
        ],
    )
    def test_verb_and_path(self, logged_in, api, http, ok, call, expected):
        http.push(200, ok())

        call(api)

        assert http.paths() == [expected]

    def test_update_sends_partial_fields(self, logged_in, api, http, ok):
        http.push(200, ok())

        api.update_appointment("ap-3", {"time": "2025-01-01T10:00:00.000Z"})

        assert http.calls[0]["body"] == {"time": "2025-01-01T10:00:00.000Z"}

    def test_delete_sends_no_body(self, logged_in, api, http, ok):
        http.push(200, ok(message="Appointment cancelled"))

        api.cancel_appointment("ap-3")

        assert http.calls[0]["body"] is None
