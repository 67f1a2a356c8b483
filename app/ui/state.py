# app/ui/state.py
import streamlit as st
from streamlit_cookies_controller import CookieController

from app.config import DEFAULT_API_BASE_URL, DEFAULT_TIMEZONE, resolve_setting
from app.services.api_client import ApiClient
from app.services.browser_storage import BrowserSessionStorage
from app.services.http_client import create_http_session
from app.services.session_store import SessionStore
from app.utils.time_utils import get_timezone

# Centralize keys to avoid typos across files
KEY_SESSION_STORE = "_session_store"
KEY_AUTH_STORAGE = "_auth_storage"
KEY_API_CLIENT = "_api_client"
KEY_COOKIE_CONTROLLER = "ruh_cookies"
KEY_FLASH = "_flash"
KEY_PAGE = "page"
KEY_SELECTED_CLIENT = "selected_client_id"
KEY_SELECTED_APPOINTMENT = "selected_appointment_id"

KEY_CLIENTS_CACHE = "clients_cache"
KEY_APPOINTMENTS_CACHE = "appointments_cache"

KEY_CLIENT_SEARCH = "client_search"
KEY_APPT_SEARCH = "appointment_search"
KEY_STATUS_FILTER = "status_filter"
KEY_DATE_FILTER = "date_filter"
KEY_DO_RESET_FILTERS = "_do_reset_filters"

PAGE_CLIENTS = "Clients"
PAGE_CLIENT_DETAILS = "Client details"
PAGE_APPOINTMENTS = "Appointments"
PAGE_CREATE = "Create appointment"
PAGE_EDIT = "Edit appointment"
NAV_PAGES = [PAGE_CLIENTS, PAGE_APPOINTMENTS, PAGE_CREATE]


# -----------------------------
# Settings + shared resources
# -----------------------------
def setting(name: str, default):
    secrets = st.secrets if st.secrets.load_if_toml_exists() else None
    return resolve_setting(name, default, secrets)


def api_base_url() -> str:
    return str(setting("API_BASE_URL", DEFAULT_API_BASE_URL))


def clinic_timezone():
    return get_timezone(str(setting("CLINIC_TIMEZONE", DEFAULT_TIMEZONE)))


@st.cache_resource
def get_http_session():
    return create_http_session()


def read_browser_cookies() -> dict:
    """Cookies sent with the page request; fixed for the life of the browser session."""
    return dict(st.context.cookies)


def cookie_controller() -> CookieController:
    """Render exactly once per run, before anything that may persist the session."""
    return CookieController(key=KEY_COOKIE_CONTROLLER)


def get_session_store() -> SessionStore:
    """
    One store per browser session, restored on first use from the session
    cookie so a page reload keeps the admin logged in.
    """
    if KEY_SESSION_STORE not in st.session_state:
        storage = BrowserSessionStorage(read_browser_cookies())
        st.session_state[KEY_AUTH_STORAGE] = storage
        store = SessionStore(storage, get_http_session(), api_base_url())
        store.restore_on_startup()
        st.session_state[KEY_SESSION_STORE] = store
    return st.session_state[KEY_SESSION_STORE]


def persist_session(controller) -> None:
    """Push token changes made since the last run (login, refresh, logout) to the browser."""
    storage = st.session_state.get(KEY_AUTH_STORAGE)
    if storage is not None:
        storage.sync(controller)


def get_api_client() -> ApiClient:
    if KEY_API_CLIENT not in st.session_state:
        st.session_state[KEY_API_CLIENT] = ApiClient(
            get_session_store(),
            api_base_url(),
            get_http_session(),
        )
    return st.session_state[KEY_API_CLIENT]


def handle_session_expired() -> None:
    """Session is already cleared by the API client; send the user to login."""
    drop_caches()
    flash("warning", "Your session has expired. Please log in again.")
    st.session_state[KEY_PAGE] = PAGE_CLIENTS
    st.rerun()


# -----------------------------
# Page state
# -----------------------------
def init_state_if_missing() -> None:
    """Call at the top of the page before rendering widgets."""
    st.session_state.setdefault(KEY_PAGE, PAGE_CLIENTS)
    st.session_state.setdefault(KEY_CLIENT_SEARCH, "")
    st.session_state.setdefault(KEY_APPT_SEARCH, "")
    st.session_state.setdefault(KEY_STATUS_FILTER, "all")
    st.session_state.setdefault(KEY_DATE_FILTER, "all")


def go_to(page: str, **selection) -> None:
    st.session_state[KEY_PAGE] = page
    if "client_id" in selection:
        st.session_state[KEY_SELECTED_CLIENT] = selection["client_id"]
    if "appointment_id" in selection:
        st.session_state[KEY_SELECTED_APPOINTMENT] = selection["appointment_id"]


def flash(level: str, message: str) -> None:
    st.session_state[KEY_FLASH] = (level, message)


def show_flash() -> None:
    item = st.session_state.pop(KEY_FLASH, None)
    if not item:
        return
    level, message = item
    getattr(st, level, st.info)(message)


def drop_caches() -> None:
    st.session_state.pop(KEY_CLIENTS_CACHE, None)
    st.session_state.pop(KEY_APPOINTMENTS_CACHE, None)


def remove_cached_appointment(appointment_id: str) -> None:
    cached = st.session_state.get(KEY_APPOINTMENTS_CACHE)
    if cached is None:
        return
    st.session_state[KEY_APPOINTMENTS_CACHE] = [a for a in cached if a.id != appointment_id]


def clear_client_search() -> None:
    st.session_state[KEY_CLIENT_SEARCH] = ""


def mark_reset_filters() -> None:
    st.session_state[KEY_DO_RESET_FILTERS] = True


def apply_reset_if_marked() -> None:
    """
    Filter widgets own their keys, so a reset has to happen on the next run
    BEFORE the widgets are created.
    """
    if st.session_state.get(KEY_DO_RESET_FILTERS):
        st.session_state[KEY_APPT_SEARCH] = ""
        st.session_state[KEY_STATUS_FILTER] = "all"
        st.session_state[KEY_DATE_FILTER] = "all"
        st.session_state[KEY_DO_RESET_FILTERS] = False
