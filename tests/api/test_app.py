"""End-to-end client flows against the fake backend."""
from collections.abc import Callable

import pytest

from api.main import QueueDeskApp
from core.bootstrap import BootstrapState
from core.navigation import LOGIN_PATH, RouteDecisionKind, guard_protected
from core.storage import ACCESS_TOKEN_KEY, USER_KEY, MemoryStorage
from schemas.service import CreateServicePayload
from shared.api_errors import ApiError
from tests.api.conftest import ADA
from tests.api.fake_backend import OTP, PASSWORD, BackendState
from tests.helpers import persisted


class TestStartup:
    async def test__start__verified_session_is_authenticated(
        self, make_app: Callable[..., QueueDeskApp], signed_in_storage: Callable[[], MemoryStorage],
    ) -> None:
        app = make_app(signed_in_storage())

        state = await app.start()

        assert state == BootstrapState.AUTHENTICATED
        assert guard_protected(app.session).kind == RouteDecisionKind.ALLOW

    async def test__start__revoked_token_keeps_cached_session(
        self, make_app: Callable[..., QueueDeskApp],
    ) -> None:
        storage = MemoryStorage(persisted(ADA, "tok-revoked"))
        app = make_app(storage)

        state = await app.start()

        assert state == BootstrapState.CACHED
        assert app.session.user.id == "u1"
        assert storage.snapshot()[ACCESS_TOKEN_KEY] == "tok-revoked"
        assert app.navigator.current_path == "/dashboard"

    async def test__start__no_session(self, make_app: Callable[..., QueueDeskApp]) -> None:
        app = make_app()

        assert await app.start() == BootstrapState.UNAUTHENTICATED
        assert guard_protected(app.session).target == LOGIN_PATH


class TestUnauthorized:
    async def test__401__clears_session_and_redirects(
        self,
        make_app: Callable[..., QueueDeskApp],
        signed_in_storage: Callable[[], MemoryStorage],
        backend_state: BackendState,
    ) -> None:
        storage = signed_in_storage()
        app = make_app(storage)
        await app.start()
        await app.queue.get_waiting()
        backend_state.revoke_all()

        with pytest.raises(ApiError) as exc_info:
            await app.catalog.get_list()

        assert exc_info.value.category == "auth"
        assert app.session.user is None
        assert app.session.token is None
        assert USER_KEY not in storage.snapshot()
        assert ACCESS_TOKEN_KEY not in storage.snapshot()
        assert app.cache.keys() == []
        assert app.navigator.current_path == LOGIN_PATH

    async def test__401__on_auth_route_does_not_redirect(
        self, make_app: Callable[..., QueueDeskApp],
    ) -> None:
        app = make_app(initial_path="/login")
        await app.start()

        with pytest.raises(ApiError, match="Invalid email or password"):
            await app.auth.login("ada@example.com", "Wrong1pass")

        assert app.navigator.current_path == "/login"
        assert app.navigator.history == ["/login"]

    async def test__requests_after_clear_carry_no_credentials(
        self,
        make_app: Callable[..., QueueDeskApp],
        signed_in_storage: Callable[[], MemoryStorage],
        backend_state: BackendState,
    ) -> None:
        app = make_app(signed_in_storage())
        await app.start()
        backend_state.revoke_all()
        with pytest.raises(ApiError):
            await app.dashboard.get_summary()

        request = app.transport.client.build_request("GET", "/services")
        await app.transport._attach_credentials(request)

        assert "Authorization" not in request.headers


class TestAuthFlows:
    async def test__register_then_verify_otp_establishes_session(
        self, make_app: Callable[..., QueueDeskApp],
    ) -> None:
        storage = MemoryStorage()
        app = make_app(storage, initial_path="/register")
        await app.start()

        await app.auth.register("Grace Hopper", "grace@example.com", PASSWORD)
        assert app.session.otp_email == "grace@example.com"
        user = await app.auth.verify_otp(OTP)

        assert user.email == "grace@example.com"
        assert app.session.is_authenticated
        assert app.session.otp_email is None
        assert storage.snapshot()[ACCESS_TOKEN_KEY].startswith("tok-")

    async def test__login_then_use_then_logout(
        self, make_app: Callable[..., QueueDeskApp], backend_state: BackendState,
    ) -> None:
        storage = MemoryStorage()
        app = make_app(storage, initial_path="/login")
        await app.start()

        await app.auth.login("ada@example.com", PASSWORD)
        created = await app.catalog.create(
            CreateServicePayload(name="Haircut", duration_minutes=30, staff_type="stylist"),
        )
        services = await app.catalog.get_list()
        assert [s.id for s in services] == [created.id]

        assert await app.auth.logout() is True
        assert storage.snapshot() == {}
        assert app.cache.keys() == []
        assert not backend_state.tokens

    async def test__second_client_shares_persisted_session(
        self, make_app: Callable[..., QueueDeskApp],
    ) -> None:
        storage = MemoryStorage()
        first = make_app(storage, initial_path="/login")
        await first.start()
        await first.auth.login("ada@example.com", PASSWORD)

        second = make_app(storage)

        assert await second.start() == BootstrapState.AUTHENTICATED
        assert second.session.user.email == "ada@example.com"

    async def test__queue_assign_refreshes_summary(
        self, make_app: Callable[..., QueueDeskApp], signed_in_storage: Callable[[], MemoryStorage],
    ) -> None:
        app = make_app(signed_in_storage())
        await app.start()
        summary = app.dashboard.watch_summary()
        await summary.wait()
        assert summary.data.waiting_queue_count == 1

        await app.queue.assign("st1")
        await app.cache.settle()

        assert summary.data.waiting_queue_count == 0
