"""
API error parsing and exception types.

Errors fall into a small taxonomy. Cancellation is not an error and is never
wrapped: `asyncio.CancelledError` propagates untouched. Network and 401
handling happen centrally in the transport; validation errors carry the
server's message verbatim so callers can show it next to the originating form.
"""

from dataclasses import dataclass
from typing import Any, Literal

import httpx

ErrorCategory = Literal[
    "auth",        # 401 - Invalid or expired session
    "forbidden",   # 403 - Access denied
    "not_found",   # 404 - Resource not found
    "validation",  # 400/422 - Validation error
    "conflict",    # 409 - e.g. staff at capacity, duplicate name
    "internal",    # 5xx or unexpected errors
    "network",     # No response received
]


@dataclass
class ParsedApiError:
    """Parsed API error with semantic category and message."""

    category: ErrorCategory
    message: str
    status_code: int | None = None
    errors: Any = None


class ApiError(Exception):
    """Raised for any non-2xx backend response."""

    def __init__(self, parsed: ParsedApiError, body: Any = None) -> None:
        self.parsed = parsed
        self.body = body
        super().__init__(parsed.message)

    @property
    def category(self) -> ErrorCategory:
        return self.parsed.category

    @property
    def status_code(self) -> int | None:
        return self.parsed.status_code

    @property
    def message(self) -> str:
        return self.parsed.message

    @property
    def errors(self) -> Any:
        return self.parsed.errors


class NetworkError(ApiError):
    """Raised when no response was received (connection refused, timeout, DNS)."""

    def __init__(self, original: Exception) -> None:
        self.original = original
        super().__init__(
            ParsedApiError("network", f"Network error: {original.__class__.__name__}"),
        )


@dataclass
class _Body:
    message: str | None = None
    errors: Any = None
    raw: Any = None


def _safe_get_body(response: httpx.Response) -> _Body:
    """Safely extract message and errors from an error envelope."""
    try:
        body = response.json()
    except ValueError:
        return _Body()
    if not isinstance(body, dict):
        return _Body(raw=body)
    message = body.get("message")
    if not isinstance(message, str) or not message:
        # FastAPI-style backends put the message in `detail`
        detail = body.get("detail")
        message = detail if isinstance(detail, str) and detail else None
    return _Body(message=message, errors=body.get("errors"), raw=body)


def parse_http_error(response: httpx.Response) -> ParsedApiError:  # noqa: PLR0911
    """
    Parse an error response into a semantic category.

    The server-provided `message` is kept verbatim when present; otherwise a
    generic message for the status code is used.
    """
    status = response.status_code
    body = _safe_get_body(response)

    if status == 401:
        return ParsedApiError("auth", body.message or "Invalid or expired session", status)

    if status == 403:
        return ParsedApiError("forbidden", body.message or "Access denied", status)

    if status == 404:
        return ParsedApiError("not_found", body.message or "Not found", status)

    if status == 409:
        return ParsedApiError(
            "conflict", body.message or "Conflict with current state", status, body.errors,
        )

    if status in (400, 422):
        return ParsedApiError(
            "validation", body.message or "Validation error", status, body.errors,
        )

    return ParsedApiError("internal", body.message or f"API error {status}", status)


def error_message(error: BaseException, default: str = "An error occurred. Please try again.") -> str:
    """User-facing message for any exception raised by a client call."""
    if isinstance(error, ApiError):
        return error.message or default
    return str(error) or default
