"""Fixtures wiring a QueueDeskApp to the in-memory fake backend."""
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from httpx import ASGITransport

from api.main import QueueDeskApp
from core.config import Settings
from core.storage import MemoryStorage
from tests.api.fake_backend import BackendState, create_fake_backend
from tests.helpers import persisted

ADA = {"id": "u1", "name": "Ada Lovelace", "email": "ada@example.com", "isVerified": True}


@pytest.fixture
def backend_state() -> BackendState:
    state = BackendState()
    state.users[ADA["id"]] = dict(ADA)
    state.waiting.append(
        {
            "id": "a9",
            "customerName": "Bo",
            "dateTime": "2025-01-31T09:00:00Z",
            "endTime": "2025-01-31T09:30:00Z",
            "queuePosition": 1,
            "serviceId": "s1",
        },
    )
    return state


@pytest.fixture
async def make_app(
    settings: Settings, backend_state: BackendState,
) -> AsyncGenerator[Callable[..., QueueDeskApp]]:
    """Factory for apps sharing the fake backend; closed at teardown."""
    created: list[QueueDeskApp] = []
    asgi = ASGITransport(app=create_fake_backend(backend_state))

    def _make(storage: MemoryStorage | None = None, initial_path: str = "/dashboard") -> QueueDeskApp:
        app = QueueDeskApp(
            settings, storage=storage or MemoryStorage(), transport=asgi, initial_path=initial_path,
        )
        created.append(app)
        return app

    yield _make
    for app in created:
        await app.close()


@pytest.fixture
def signed_in_storage(backend_state: BackendState) -> Callable[[], MemoryStorage]:
    """Storage holding a persisted session with a token the backend accepts."""

    def _make(user: dict[str, Any] = ADA) -> MemoryStorage:
        return MemoryStorage(persisted(user, backend_state.issue_token(user["id"])))

    return _make
