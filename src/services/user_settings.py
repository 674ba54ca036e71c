"""Remote-backed user settings endpoints."""
import asyncio
from typing import Any

from schemas.settings import RemoteSettings
from services.api_client import ApiClient

SETTINGS_PATH = "/user/settings"


async def get_user_settings(client: ApiClient, signal: asyncio.Event | None = None) -> RemoteSettings:
    """Fetch the authoritative copy of the remote-backed settings."""
    data = await client.request(SETTINGS_PATH, signal=signal)
    return RemoteSettings.model_validate(data)


async def update_user_settings(client: ApiClient, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Write the remote-backed settings subset.

    The response body is returned as sent: a successful write is committed
    locally from the payload, whatever shape the server echoes back.
    """
    data = await client.request(SETTINGS_PATH, method="PUT", body=payload)
    return data if isinstance(data, dict) else {}
