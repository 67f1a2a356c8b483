from datetime import date, time

import streamlit as st

from app.config import DATE_FILTERS, DEFAULT_LOG_LEVEL, STATUS_FILTERS
from app.errors import ApiError, AuthError, NetworkError, SessionExpired
from app.logging_config import get_logger, setup_logging
from app.repositories.appointments_repo import (
    appointments_to_df,
    cancel_appointment,
    create_appointment,
    find_appointment,
    load_appointments,
    load_client_details,
    update_appointment,
)
from app.repositories.clients_repo import clients_to_df, load_clients
from app.ui.state import (
    KEY_APPOINTMENTS_CACHE,
    KEY_APPT_SEARCH,
    KEY_CLIENT_SEARCH,
    KEY_CLIENTS_CACHE,
    KEY_DATE_FILTER,
    KEY_PAGE,
    KEY_SELECTED_APPOINTMENT,
    KEY_SELECTED_CLIENT,
    KEY_STATUS_FILTER,
    NAV_PAGES,
    PAGE_APPOINTMENTS,
    PAGE_CLIENT_DETAILS,
    PAGE_CLIENTS,
    PAGE_CREATE,
    PAGE_EDIT,
    apply_reset_if_marked,
    clear_client_search,
    clinic_timezone,
    cookie_controller,
    drop_caches,
    flash,
    get_api_client,
    get_session_store,
    go_to,
    handle_session_expired,
    init_state_if_missing,
    mark_reset_filters,
    persist_session,
    remove_cached_appointment,
    setting,
    show_flash,
)
from app.utils.filters import (
    apply_appointment_filters,
    describe_filters,
    has_active_filters,
    search_clients,
    split_upcoming_past,
)
from app.utils.time_utils import combine_date_time, format_local, utc_now

# Errors a view shows inline; SessionExpired is handled once at the bottom
VIEW_ERRORS = (ApiError, NetworkError)

st.set_page_config(page_title="Ruh Wellness Clinic - Admin", layout="wide")
setup_logging(setting("LOG_LEVEL", DEFAULT_LOG_LEVEL))
logger = get_logger("streamlit_app")


# -----------------------------
# Cached lists (reloaded after writes)
# -----------------------------
def cached_clients(api):
    if KEY_CLIENTS_CACHE not in st.session_state:
        st.session_state[KEY_CLIENTS_CACHE] = load_clients(api)
    return st.session_state[KEY_CLIENTS_CACHE]


def cached_appointments(api):
    if KEY_APPOINTMENTS_CACHE not in st.session_state:
        st.session_state[KEY_APPOINTMENTS_CACHE] = load_appointments(api)
    return st.session_state[KEY_APPOINTMENTS_CACHE]


def _client_picker(clients, selected_id: str = "", key: str = "client_picker"):
    ids = [c.id for c in clients]
    labels = {c.id: c.label for c in clients}
    index = ids.index(selected_id) if selected_id in ids else None
    return st.selectbox(
        "Select client",
        ids,
        index=index,
        format_func=lambda cid: labels.get(cid, cid),
        placeholder="Choose a client...",
        key=key,
    )


# -----------------------------
# Login gate
# -----------------------------
def require_login(store):
    if store.is_authenticated():
        return

    st.title("Admin login")
    show_flash()
    with st.form("login"):
        email = st.text_input("Email")
        pw = st.text_input("Password", type="password")
        ok = st.form_submit_button("Sign in")

    if not ok:
        st.stop()

    try:
        store.login(email.strip(), pw)
    except (AuthError, NetworkError, ApiError) as exc:
        st.error(str(exc))
        st.stop()

    drop_caches()
    go_to(PAGE_CLIENTS)
    st.rerun()


# -----------------------------
# Pages
# -----------------------------
def page_clients(api, tz):
    st.header("Clients")
    st.caption("All clients in the system with their name, email, and phone number.")

    try:
        clients = cached_clients(api)
    except VIEW_ERRORS as exc:
        st.error(str(exc) or "Failed to load clients")
        return

    c1, c2 = st.columns([5, 1])
    with c1:
        term = st.text_input(
            "Search clients",
            key=KEY_CLIENT_SEARCH,
            placeholder="Search by name, email, or phone...",
        )
    with c2:
        st.button("Clear", on_click=clear_client_search, disabled=not term, key="clear_client_search")

    filtered = search_clients(clients, term)
    if term.strip():
        noun = "client" if len(filtered) == 1 else "clients"
        st.caption(f'Found {len(filtered)} {noun} matching "{term.strip()}"')

    if not clients:
        st.info("No clients have been added to the system yet.")
        return
    if not filtered:
        st.info("No clients match your search criteria. Try adjusting your search terms.")
        return

    df = clients_to_df(filtered, tz)
    st.dataframe(df.drop(columns=["id"]), use_container_width=True, hide_index=True)

    c1, c2 = st.columns([4, 1])
    with c1:
        chosen = _client_picker(filtered, key="clients_open_picker")
    with c2:
        if st.button("View details", disabled=chosen is None, key="open_client_btn"):
            go_to(PAGE_CLIENT_DETAILS, client_id=chosen)
            st.rerun()


def page_client_details(api, tz):
    client_id = st.session_state.get(KEY_SELECTED_CLIENT)
    if st.button("Back to clients", key="back_to_clients"):
        go_to(PAGE_CLIENTS)
        st.rerun()
    if not client_id:
        st.warning("Client not found")
        return

    try:
        client, appointments = load_client_details(api, client_id)
    except VIEW_ERRORS as exc:
        st.error(str(exc) or "Failed to load client data")
        return

    st.header(client.name)
    st.write(f"{client.email} · {client.phone}")
    st.caption(f"Client since {format_local(client.created_at, tz, '%Y-%m-%d')}")

    if st.button("Book appointment", type="primary", key="book_for_client"):
        go_to(PAGE_CREATE, client_id=client.id)
        st.rerun()

    now = utc_now()
    upcoming, past = split_upcoming_past(appointments, now)

    st.subheader("Upcoming appointments")
    if not upcoming:
        st.info("No upcoming appointments.")
    for a in upcoming:
        c1, c2 = st.columns([5, 1])
        c1.write(f"{format_local(a.time, tz)} · Appointment ID: {a.short_id}...")
        if c2.button("Edit", key=f"edit_{a.id}"):
            go_to(PAGE_EDIT, appointment_id=a.id)
            st.rerun()

    st.subheader("Past appointments")
    if not past:
        st.info("No past appointments.")
    else:
        st.dataframe(
            appointments_to_df(past, now, tz).drop(columns=["id", "client", "email", "phone"]),
            use_container_width=True,
            hide_index=True,
        )


def page_appointments(api, tz):
    apply_reset_if_marked()
    st.header("Appointments")
    st.caption("All appointments with client details.")

    try:
        appointments = cached_appointments(api)
    except VIEW_ERRORS as exc:
        st.error(str(exc) or "Failed to load appointments")
        return

    c1, c2, c3 = st.columns([4, 2, 2])
    with c1:
        term = st.text_input(
            "Search appointments",
            key=KEY_APPT_SEARCH,
            placeholder="Search by client name, email, or phone...",
        )
    with c2:
        status = st.selectbox(
            "Status", list(STATUS_FILTERS), format_func=STATUS_FILTERS.get, key=KEY_STATUS_FILTER
        )
    with c3:
        date_range = st.selectbox(
            "Date range", list(DATE_FILTERS), format_func=DATE_FILTERS.get, key=KEY_DATE_FILTER
        )

    now = utc_now()
    filtered = apply_appointment_filters(appointments, term, status, date_range, now, tz)

    if has_active_filters(term, status, date_range):
        i1, i2 = st.columns([5, 1])
        i1.caption(describe_filters(len(filtered), term, status, date_range))
        i2.button("Clear all filters", on_click=mark_reset_filters, key="clear_filters_btn")

    if not appointments:
        st.info("No appointments have been scheduled yet.")
        return
    if not filtered:
        st.info("No appointments match your filters.")
        return

    st.dataframe(
        appointments_to_df(filtered, now, tz).drop(columns=["id"]),
        use_container_width=True,
        hide_index=True,
    )

    # ---- Row actions ----
    labels = {a.id: f"{a.client.name} · {format_local(a.time, tz)}" for a in filtered}
    c1, c2, c3 = st.columns([4, 1, 1])
    with c1:
        chosen = st.selectbox(
            "Appointment",
            list(labels),
            index=None,
            format_func=labels.get,
            placeholder="Choose an appointment...",
            key="appointment_action_picker",
        )
    with c2:
        if st.button("Edit", disabled=chosen is None, key="edit_appt_btn"):
            go_to(PAGE_EDIT, appointment_id=chosen)
            st.rerun()
    with c3:
        confirm = st.popover("Cancel", disabled=chosen is None)
        confirm.write("Are you sure you want to cancel this appointment?")
        if confirm.button("Yes, cancel it", type="primary", key="confirm_cancel_btn"):
            try:
                message = cancel_appointment(api, chosen)
            except VIEW_ERRORS as exc:
                st.error(str(exc) or "Failed to cancel appointment")
            else:
                remove_cached_appointment(chosen)
                flash("success", message)
                st.rerun()


def page_create(api, tz):
    st.header("Create new appointment")
    st.caption("Select the client and choose a future date and time.")

    try:
        clients = cached_clients(api)
    except VIEW_ERRORS as exc:
        st.error(str(exc) or "Failed to load clients")
        return

    today = utc_now().astimezone(tz).date()
    with st.form("create_appointment"):
        client_id = _client_picker(clients, st.session_state.get(KEY_SELECTED_CLIENT, ""), key="create_client")
        c1, c2 = st.columns(2)
        with c1:
            day = st.date_input("Appointment date", value=None, min_value=today, key="create_date")
        with c2:
            at = st.time_input("Appointment time", value=None, key="create_time")
        submitted = st.form_submit_button("Create appointment", type="primary")

    if not submitted:
        return
    error = _validate_form(client_id, day, at)
    if error:
        st.error(error)
        return
    try:
        create_appointment(api, client_id, combine_date_time(day, at, tz))
    except VIEW_ERRORS as exc:
        st.error(str(exc) or "Failed to create appointment")
        return

    logger.info("appointment_created", client_id=client_id)
    st.session_state.pop(KEY_APPOINTMENTS_CACHE, None)
    flash("success", "Appointment created.")
    go_to(PAGE_APPOINTMENTS)
    st.rerun()


def page_edit(api, tz):
    appointment_id = st.session_state.get(KEY_SELECTED_APPOINTMENT)
    st.header("Edit appointment")
    st.caption("Update the appointment details. You can change the client, date, or time.")

    try:
        clients = cached_clients(api)
        appointment = find_appointment(api, appointment_id) if appointment_id else None
    except VIEW_ERRORS as exc:
        st.error(str(exc) or "Failed to load data")
        return
    if appointment is None:
        st.warning("Appointment not found")
        return

    local = appointment.time.astimezone(tz)
    today = utc_now().astimezone(tz).date()
    with st.form(f"edit_appointment_{appointment.id}"):
        client_id = _client_picker(clients, appointment.client_id, key=f"edit_client_{appointment.id}")
        c1, c2 = st.columns(2)
        with c1:
            day = st.date_input(
                "Appointment date",
                value=local.date(),
                min_value=min(today, local.date()),
                key=f"edit_date_{appointment.id}",
            )
        with c2:
            at = st.time_input(
                "Appointment time",
                value=time(local.hour, local.minute),
                key=f"edit_time_{appointment.id}",
            )
        submitted = st.form_submit_button("Save changes", type="primary")

    if st.button("Back to appointments", key="back_to_appointments"):
        go_to(PAGE_APPOINTMENTS)
        st.rerun()

    if not submitted:
        return
    error = _validate_form(client_id, day, at)
    if error:
        st.error(error)
        return
    try:
        update_appointment(api, appointment.id, client_id, combine_date_time(day, at, tz))
    except VIEW_ERRORS as exc:
        st.error(str(exc) or "Failed to update appointment")
        return

    logger.info("appointment_updated", appointment_id=appointment.id)
    st.session_state.pop(KEY_APPOINTMENTS_CACHE, None)
    flash("success", "Appointment updated.")
    go_to(PAGE_APPOINTMENTS)
    st.rerun()


def _validate_form(client_id, day: date | None, at: time | None) -> str:
    if not client_id:
        return "Please select a client."
    if day is None:
        return "Please choose a date."
    if at is None:
        return "Please choose a time."
    return ""


PAGES = {
    PAGE_CLIENTS: page_clients,
    PAGE_CLIENT_DETAILS: page_client_details,
    PAGE_APPOINTMENTS: page_appointments,
    PAGE_CREATE: page_create,
    PAGE_EDIT: page_edit,
}


# -----------------------------
# App
# -----------------------------
init_state_if_missing()
cookies = cookie_controller()
store = get_session_store()
persist_session(cookies)
require_login(store)
api = get_api_client()
tz = clinic_timezone()

with st.sidebar:
    st.markdown(f"**{store.admin.display_name}**")
    st.caption(store.admin.email)
    current = st.session_state[KEY_PAGE]
    nav = st.radio(
        "Navigation",
        NAV_PAGES,
        index=NAV_PAGES.index(current) if current in NAV_PAGES else None,
        label_visibility="collapsed",
    )
    if nav is not None and nav != current:
        if nav == PAGE_CREATE:
            st.session_state.pop(KEY_SELECTED_CLIENT, None)
        go_to(nav)
        st.rerun()
    if st.button("Logout", key="logout_btn"):
        store.logout()
        drop_caches()
        st.rerun()

show_flash()
try:
    PAGES.get(st.session_state[KEY_PAGE], page_clients)(api, tz)
except SessionExpired:
    handle_session_expired()
persist_session(cookies)
