from http.cookiejar import DefaultCookiePolicy
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter

from app.config import REQUEST_TIMEOUT_SECONDS
from app.errors import ApiError, NetworkError
from app.logging_config import get_logger

logger = get_logger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


# -----------------------------
# Shared HTTP session (safe to cache)
# -----------------------------
def create_http_session(pool_size: int = 10) -> requests.Session:
    """
    requests.Session with a pooled adapter. No automatic retries: the only
    retry the console performs is the 401 refresh in ApiClient.

    The session is shared by every browser session of the app, so its cookie
    jar accepts nothing; identity travels only in the Authorization header.
    """
    session = requests.Session()
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def build_url(base_url: str, endpoint: str) -> str:
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"


def send_json(
    http: requests.Session,
    method: str,
    url: str,
    *,
    json_body: Any = None,
    headers: Optional[dict[str, str]] = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> tuple[int, Any]:
    """
    Issue one request and return (status_code, parsed JSON body).

    Raises:
        NetworkError: the request could not complete
        ApiError: the server answered with something that is not JSON
    """
    merged = dict(headers or {})
    merged.update(JSON_HEADERS)
    try:
        response = http.request(
            method.upper(),
            url,
            json=json_body,
            headers=merged,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.warning("request_failed", method=method.upper(), url=url, error=str(exc))
        raise NetworkError(f"Could not reach the server: {exc.__class__.__name__}") from exc

    try:
        body = response.json()
    except ValueError as exc:
        if response.status_code == 401:
            # An empty 401 is still a meaningful answer
            return 401, None
        logger.warning("invalid_json", method=method.upper(), url=url, status=response.status_code)
        raise ApiError(f"Unexpected response from server (HTTP {response.status_code})") from exc
    return response.status_code, body
