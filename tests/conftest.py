"""Pytest fixtures shared across the client test suite."""
from collections.abc import AsyncGenerator, Iterator
from typing import Any

import pytest
import respx

from core.config import Settings
from core.query_cache import QueryCache
from core.session import SessionStore
from core.storage import MemoryStorage
from core.transport import ApiTransport
from tests.helpers import BASE_URL


@pytest.fixture
def sample_user() -> dict[str, Any]:
    return {"id": "u1", "name": "Ada Lovelace", "email": "ada@example.com", "isVerified": True}


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the local .env file."""
    return Settings(
        _env_file=None,
        VITE_BASE_URL=BASE_URL,
        SESSION_STORAGE="memory",
        KEEP_UNUSED_DATA_FOR=60,
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def mock_api() -> Iterator[respx.MockRouter]:
    """Mock backend routes; unmatched requests fail the test."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def transport(storage: MemoryStorage) -> AsyncGenerator[ApiTransport]:
    api = ApiTransport(BASE_URL, storage)
    yield api
    await api.aclose()


@pytest.fixture
def session(storage: MemoryStorage, transport: ApiTransport) -> SessionStore:
    return SessionStore(storage, attacher=transport)


@pytest.fixture
async def cache(transport: ApiTransport) -> AsyncGenerator[QueryCache]:
    query_cache = QueryCache(transport, keep_unused_data_for=60)
    yield query_cache
    await query_cache.close()
