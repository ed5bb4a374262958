"""Application composition root: builds and wires every client component."""
import logging
from types import TracebackType

import httpx

from core.bootstrap import BootstrapState, SessionBootstrapController
from core.config import Settings, get_settings
from core.navigation import HOME_PATH, LOGIN_PATH, Navigator
from core.query_cache import QueryCache
from core.redis import RedisClient
from core.session import SessionStore
from core.storage import FileStorage, MemoryStorage, RedisStorage, SessionStorage
from core.transport import ApiTransport
from services.appointment_service import AppointmentService
from services.auth_service import AuthService
from services.catalog_service import CatalogService
from services.dashboard_service import DashboardService
from services.queue_service import QueueService
from services.staff_service import StaffService
from shared.api_errors import ApiError

logger = logging.getLogger(__name__)


class QueueDeskApp:
    """
    One running client: session, transport, query cache and services.

    Use as an async context manager; entering runs the session bootstrap.

        async with QueueDeskApp() as app:
            waiting = await app.queue.get_waiting()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        storage: SessionStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        initial_path: str = HOME_PATH,
    ) -> None:
        self.settings = settings or get_settings()
        self.redis_client: RedisClient | None = None
        self.storage = storage or self._build_storage()
        self.transport = ApiTransport(
            self.settings.api_url,
            self.storage,
            timeout=self.settings.api_timeout,
            request_source=self.settings.request_source,
            transport=transport,
        )
        self.session = SessionStore(self.storage, attacher=self.transport)
        self.cache = QueryCache(
            self.transport, keep_unused_data_for=self.settings.keep_unused_data_for,
        )
        self.navigator = Navigator(initial_path)
        self.bootstrap = SessionBootstrapController(self.session, self.transport)

        self.auth = AuthService(self.cache, self.session)
        self.catalog = CatalogService(self.cache)
        self.staff = StaffService(self.cache)
        self.appointments = AppointmentService(self.cache)
        self.queue = QueueService(self.cache)
        self.dashboard = DashboardService(self.cache)

        self.transport.on_unauthorized(self._handle_unauthorized)

    def _build_storage(self) -> SessionStorage:
        if self.settings.session_storage == "memory":
            return MemoryStorage()
        if self.settings.session_storage == "redis":
            self.redis_client = RedisClient(
                url=self.settings.redis_url,
                enabled=self.settings.redis_enabled,
                pool_size=self.settings.redis_pool_size,
            )
            return RedisStorage(self.redis_client, prefix=self.settings.redis_key_prefix)
        return FileStorage(self.settings.session_file)

    async def _handle_unauthorized(self, _error: ApiError) -> None:
        """Forced logout on any 401; no redirect while already on an auth route."""
        on_auth_route = self.navigator.current_path in self.settings.auth_routes
        logger.info(
            "unauthorized_response path=%s redirect=%s",
            self.navigator.current_path, not on_auth_route,
        )
        await self.session.clear()
        self.cache.reset()
        if not on_auth_route:
            self.navigator.navigate(LOGIN_PATH, replace=True)

    async def start(self) -> BootstrapState:
        if self.redis_client is not None:
            await self.redis_client.connect()
        return await self.bootstrap.run()

    async def close(self) -> None:
        self.bootstrap.cancel()
        await self.cache.close()
        await self.transport.aclose()
        if self.redis_client is not None:
            await self.redis_client.close()

    async def __aenter__(self) -> "QueueDeskApp":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
