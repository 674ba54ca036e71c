"""Shared fixtures: a scripted HTTP backend and isolated client state."""
from collections.abc import AsyncGenerator

import httpx
import pytest

from core.state import AppState
from core.store import MemoryStore
from services.api_client import ApiClient
from services.auth import AuthGateway
from tests.utils.backend import BASE_URL, ScriptedBackend


@pytest.fixture
def backend() -> ScriptedBackend:
    """Scripted backend with no routes."""
    return ScriptedBackend()


@pytest.fixture
async def client(backend: ScriptedBackend) -> AsyncGenerator[ApiClient, None]:
    """ApiClient wired to the scripted backend."""
    api = ApiClient(BASE_URL, transport=httpx.MockTransport(backend.handle))
    yield api
    await api.aclose()


@pytest.fixture
def store() -> MemoryStore:
    """Fresh in-memory store."""
    return MemoryStore()


@pytest.fixture
def state(store: MemoryStore) -> AppState:
    """Isolated client state."""
    return AppState(store)


@pytest.fixture
def auth(client: ApiClient, state: AppState) -> AuthGateway:
    """AuthGateway bound to the scripted client and isolated state."""
    return AuthGateway(client, state)
