"""
Client session state.

`SessionStore` is the single source of truth for who is signed in. It is
constructed explicitly and passed to whatever needs it (bootstrap controller,
auth service, route guards); there is no module-level instance.

Every change is written through to durable storage before the method
returns, and the transport is armed or disarmed with the token.
"""
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from core.storage import ACCESS_TOKEN_KEY, USER_KEY, SessionStorage
from schemas.user import User, parse_user

logger = logging.getLogger(__name__)


class CredentialAttacher(Protocol):
    """The part of the transport the session arms with its token."""

    def arm(self, token: str) -> None:
        ...

    def disarm(self) -> None:
        ...


@dataclass
class PersistedSession:
    """The `{user, token}` pair read back from durable storage."""

    user: User | None
    token: str | None

    @property
    def is_valid(self) -> bool:
        """Both halves present and the user carries a non-empty id and email."""
        return self.user is not None and self.user.has_identity and bool(self.token)


SessionListener = Callable[["SessionStore"], None]


class SessionStore:
    """In-memory session mirrored to durable storage."""

    def __init__(
        self,
        storage: SessionStorage,
        attacher: CredentialAttacher | None = None,
    ) -> None:
        self._storage = storage
        self._attacher = attacher
        self._listeners: list[SessionListener] = []
        self.user: User | None = None
        self.token: str | None = None
        self.is_loading: bool = False
        self.is_initialized: bool = False
        self.otp_email: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.user.has_identity

    # --- Observers ---

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call `listener` after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # --- Persistence ---

    async def load_persisted(self) -> PersistedSession:
        """Read the persisted pair; unreadable user JSON counts as absent."""
        raw_user = await self._storage.get(USER_KEY)
        token = await self._storage.get(ACCESS_TOKEN_KEY)
        user = None
        if raw_user:
            try:
                user = parse_user(json.loads(raw_user))
            except ValueError:
                logger.warning("session_persisted_user_unreadable")
        return PersistedSession(user=user, token=token or None)

    async def _persist(self) -> None:
        if self.user is not None:
            await self._storage.set(USER_KEY, self.user.model_dump_json(by_alias=True))
        if self.token:
            await self._storage.set(ACCESS_TOKEN_KEY, self.token)

    async def _erase(self) -> None:
        await self._storage.remove(USER_KEY)
        await self._storage.remove(ACCESS_TOKEN_KEY)

    def _arm(self) -> None:
        if self._attacher is None:
            return
        if self.token:
            self._attacher.arm(self.token)
        else:
            self._attacher.disarm()

    # --- Transitions ---

    async def set_credentials(self, user: User, token: str | None = None) -> None:
        """
        Adopt a verified session.

        When no token is given the current one is kept (profile responses do
        not carry a token).
        """
        self.user = user
        self.token = token or self.token
        self.is_initialized = True
        await self._persist()
        self._arm()
        logger.info("session_established user_id=%s", user.id)
        self._changed()

    async def adopt_candidate(self, candidate: PersistedSession) -> None:
        """Optimistically adopt a persisted pair pending server verification."""
        self.user = candidate.user
        self.token = candidate.token
        self._arm()
        logger.debug("session_candidate_adopted user_id=%s", self.user.id if self.user else None)
        self._changed()

    async def restore(self) -> bool:
        """Adopt the persisted pair if valid; always ends initialized."""
        candidate = await self.load_persisted()
        if candidate.is_valid:
            self.user = candidate.user
            self.token = candidate.token
            self._arm()
        self.is_initialized = True
        self._changed()
        return candidate.is_valid

    async def clear(self) -> None:
        """Destroy the session: memory, durable storage and transport credentials."""
        had_user = self.user is not None
        self.user = None
        self.token = None
        self.otp_email = None
        self.is_initialized = True
        await self._erase()
        if self._attacher is not None:
            self._attacher.disarm()
        if had_user:
            logger.info("session_cleared")
        self._changed()

    def set_otp_email(self, email: str) -> None:
        self.otp_email = email
        self._changed()

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading
        self._changed()

    def set_initialized(self, initialized: bool) -> None:
        self.is_initialized = initialized
        self._changed()
