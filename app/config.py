# app/config.py
import os
from typing import Any, Mapping, Optional

from app.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://ruh-backend-production.up.railway.app/api"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_LOG_LEVEL = "INFO"
REQUEST_TIMEOUT_SECONDS = 15

# Upstream endpoints (relative to the API base URL)
LOGIN_PATH = "/admin/login"
REFRESH_PATH = "/admin/refresh-token"
CLIENTS_PATH = "/clients"
CLIENT_PATH = "/clients/{client_id}"
APPOINTMENTS_PATH = "/appointments"
APPOINTMENT_PATH = "/appointments/{appointment_id}"
CLIENT_APPOINTMENTS_PATH = "/appointments/client/{client_id}"

# Persisted session keys, all cleared together on logout
STORAGE_ACCESS_TOKEN = "accessToken"
STORAGE_REFRESH_TOKEN = "refreshToken"
STORAGE_ADMIN = "admin"
STORAGE_KEYS = [STORAGE_ACCESS_TOKEN, STORAGE_REFRESH_TOKEN, STORAGE_ADMIN]

# The three keys travel together in one browser cookie
SESSION_COOKIE_NAME = "ruh_admin_session"
SESSION_COOKIE_MAX_AGE_SECONDS = 7 * 24 * 60 * 60

STATUS_SCHEDULED = "Scheduled"
STATUS_COMPLETED = "Completed"

STATUS_FILTERS = {
    "all": "All",
    "scheduled": "Scheduled",
    "completed": "Completed",
}
DATE_FILTERS = {
    "all": "All dates",
    "today": "Today",
    "tomorrow": "Tomorrow",
    "week": "Next 7 days",
    "month": "Next 30 days",
}

CLIENTS_COLUMNS = ["name", "email", "phone", "created"]
APPOINTMENTS_COLUMNS = ["client", "email", "phone", "date", "time", "status"]


def resolve_setting(name: str, default: Any, secrets: Optional[Mapping] = None) -> Any:
    """
    Look a setting up in Streamlit secrets first, then the environment.
    Empty values fall through to the default.
    """
    if secrets is not None:
        try:
            value = secrets.get(name)
        except FileNotFoundError:
            logger.warning("secrets_unavailable", setting=name)
            value = None
        if value not in (None, ""):
            return value
    value = os.environ.get(name)
    if value not in (None, ""):
        return value
    return default
