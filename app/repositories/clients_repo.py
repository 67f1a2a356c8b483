import pandas as pd
import pytz

from app.config import CLIENTS_COLUMNS
from app.models.clients import Client
from app.repositories.envelope import unwrap
from app.services.api_client import ApiClient
from app.utils.time_utils import format_local


def load_clients(api: ApiClient) -> list[Client]:
    data = unwrap(api.list_clients()) or []
    return [Client.from_api(r) for r in data]


def load_client(api: ApiClient, client_id: str) -> Client:
    return Client.from_api(unwrap(api.get_client(client_id)) or {})


def clients_to_df(clients: list[Client], tz=pytz.UTC) -> pd.DataFrame:
    """Display frame for the clients table; `id` is kept for row lookups."""
    if not clients:
        return pd.DataFrame(columns=["id"] + CLIENTS_COLUMNS)
    rows = [
        {
            "id": c.id,
            "name": c.name,
            "email": c.email,
            "phone": c.phone,
            "created": format_local(c.created_at, tz, "%Y-%m-%d"),
        }
        for c in clients
    ]
    return pd.DataFrame(rows, columns=["id"] + CLIENTS_COLUMNS)
