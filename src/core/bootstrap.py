"""
Session bootstrap: decide once per application load whether a session exists.

State machine:

    START
      |-- persisted {user, token} valid --> HAS_LOCAL_CANDIDATE (adopt optimistically)
      |-- otherwise ----------------------> NO_LOCAL_CANDIDATE
    either --> VERIFYING  (one cancellable GET /profile/me)
      |-- well-formed user --------------> AUTHENTICATED  (server copy overwrites local)
      |-- malformed payload or failure:
      |     with candidate --------------> CACHED         (keep candidate)
      |     without candidate -----------> UNAUTHENTICATED
      |-- cancelled / superseded --------> no change; the newer attempt owns the outcome

Every terminal state sets `is_initialized`. Once initialized, `run()` is a
no-op that issues no request. Starting a verification cancels any previous
one, and an outcome is applied only if it belongs to the latest attempt.
An accepted server user is persisted as a unit: a cancel arriving during that
write does not discard it.
"""
import asyncio
import logging
from enum import StrEnum

from core.session import SessionStore
from core.transport import ApiTransport
from schemas.user import parse_user
from shared.api_errors import ApiError

logger = logging.getLogger(__name__)

PROFILE_PATH = "/profile/me"


class BootstrapState(StrEnum):
    START = "start"
    HAS_LOCAL_CANDIDATE = "has_local_candidate"
    NO_LOCAL_CANDIDATE = "no_local_candidate"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    CACHED = "cached"


TERMINAL_STATES = frozenset(
    {BootstrapState.AUTHENTICATED, BootstrapState.UNAUTHENTICATED, BootstrapState.CACHED},
)


class SessionBootstrapController:
    """Reconciles the persisted session with the server before protected views mount."""

    def __init__(self, session: SessionStore, transport: ApiTransport) -> None:
        self._session = session
        self._transport = transport
        self._state = BootstrapState.START
        self._task: asyncio.Task | None = None
        self._generation = 0
        self._had_candidate = False
        self.history: list[BootstrapState] = [BootstrapState.START]

    @property
    def state(self) -> BootstrapState:
        return self._state

    @property
    def is_verifying(self) -> bool:
        return self._task is not None and not self._task.done()

    def _transition(self, state: BootstrapState) -> None:
        logger.debug("bootstrap_transition from=%s to=%s", self._state, state)
        self._state = state
        self.history.append(state)

    async def run(self) -> BootstrapState:
        """
        Run the bootstrap sequence and return the resulting state.

        Returns immediately, without any request, when the session is already
        initialized. If this attempt is superseded by a newer `run()` or
        cancelled via `cancel()`, returns the state as it stands.
        """
        if self._session.is_initialized:
            logger.debug("bootstrap_skipped reason=already_initialized")
            return self._state

        # Superseding: cancel and disown any verification still in flight.
        self.cancel()
        self._generation += 1
        generation = self._generation

        candidate = await self._session.load_persisted()
        if generation != self._generation:
            return self._state
        if candidate.is_valid:
            self._transition(BootstrapState.HAS_LOCAL_CANDIDATE)
            self._had_candidate = True
            await self._session.adopt_candidate(candidate)
        else:
            self._transition(BootstrapState.NO_LOCAL_CANDIDATE)
            self._had_candidate = False

        self._transition(BootstrapState.VERIFYING)
        task = asyncio.get_running_loop().create_task(self._verify(generation))
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            # The caller went away (unmount): stop the verification with it.
            task.cancel()
            raise
        if task.cancelled():
            return self._state
        return task.result()

    def cancel(self) -> None:
        """Cancel the in-flight verification; its outcome is discarded."""
        if self._task is not None and not self._task.done():
            logger.debug("bootstrap_verification_cancelled generation=%s", self._generation)
            self._task.cancel()
            self._generation += 1
        self._task = None

    async def _verify(self, generation: int) -> BootstrapState:
        try:
            response = await self._transport.request(
                "GET", PROFILE_PATH, intercept_unauthorized=False,
            )
        except ApiError as e:
            if generation != self._generation:
                return self._state
            logger.info(
                "bootstrap_verification_failed category=%s keep_candidate=%s",
                e.category, self._had_candidate,
            )
            return self._finish_without_server_user()

        if generation != self._generation:
            logger.debug("bootstrap_stale_response_ignored generation=%s", generation)
            return self._state

        user = parse_user(response.data) if response.success else None
        if user is None:
            logger.info("bootstrap_malformed_profile keep_candidate=%s", self._had_candidate)
            return self._finish_without_server_user()

        # Past this point the outcome is committed: a cancel must not leave the
        # session half-persisted.
        try:
            await asyncio.shield(self._session.set_credentials(user))
        finally:
            self._transition(BootstrapState.AUTHENTICATED)
        return self._state

    def _finish_without_server_user(self) -> BootstrapState:
        if self._had_candidate:
            self._transition(BootstrapState.CACHED)
        else:
            self._transition(BootstrapState.UNAUTHENTICATED)
        self._session.set_initialized(True)
        return self._state
