"""Top-level error boundary for view rendering."""
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from core.navigation import HOME_PATH, Navigator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorBoundary(Generic[T]):
    """
    Wraps a render coroutine and substitutes a fallback on any exception.

    The boundary does not diagnose or repair application state: it records the
    error and offers two ways out, `reset()` to try again and `go_home()`.
    While an error is held, `render()` keeps returning the fallback without
    calling the wrapped coroutine.
    """

    def __init__(self, fallback: Callable[[Exception], T]) -> None:
        self._fallback = fallback
        self.error: Exception | None = None

    @property
    def has_error(self) -> bool:
        return self.error is not None

    async def render(self, view: Callable[[], Awaitable[T]]) -> T:
        if self.error is not None:
            return self._fallback(self.error)
        try:
            return await view()
        except Exception as e:
            logger.exception("error_boundary_caught view=%s", getattr(view, "__name__", view))
            self.error = e
            return self._fallback(e)

    def reset(self) -> None:
        self.error = None

    def go_home(self, navigator: Navigator) -> None:
        self.error = None
        navigator.navigate(HOME_PATH)
