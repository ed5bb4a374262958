"""Current-route tracking and the protected/guest route guards."""
import logging
from dataclasses import dataclass
from enum import StrEnum

from core.session import SessionStore

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"
HOME_PATH = "/"


class Navigator:
    """Holds the current route; `navigate()` is how redirects happen."""

    def __init__(self, initial_path: str = HOME_PATH) -> None:
        self.current_path = initial_path
        self.history: list[str] = [initial_path]

    def navigate(self, path: str, replace: bool = False) -> None:
        if replace and self.history:
            self.history[-1] = path
        else:
            self.history.append(path)
        logger.debug("navigate from=%s to=%s replace=%s", self.current_path, path, replace)
        self.current_path = path


class RouteDecisionKind(StrEnum):
    LOADING = "loading"
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class RouteDecision:
    kind: RouteDecisionKind
    target: str | None = None


_LOADING = RouteDecision(RouteDecisionKind.LOADING)
_ALLOW = RouteDecision(RouteDecisionKind.ALLOW)


def guard_protected(session: SessionStore) -> RouteDecision:
    """
    Decide access to an authenticated-only route.

    No decision is made until the bootstrap has produced a definitive answer.
    """
    if not session.is_initialized:
        return _LOADING
    if session.user is None:
        return RouteDecision(RouteDecisionKind.REDIRECT, LOGIN_PATH)
    return _ALLOW


def guard_guest(session: SessionStore) -> RouteDecision:
    """Decide access to a guest-only route (login, register)."""
    if not session.is_initialized:
        return _LOADING
    if session.user is not None:
        return RouteDecision(RouteDecisionKind.REDIRECT, DASHBOARD_PATH)
    return _ALLOW


def apply_decision(navigator: Navigator, decision: RouteDecision) -> None:
    """Follow a redirect decision, replacing the current history entry."""
    if decision.kind == RouteDecisionKind.REDIRECT and decision.target:
        navigator.navigate(decision.target, replace=True)
