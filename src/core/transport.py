"""
HTTP transport for the backend API.

Wraps a single `httpx.AsyncClient`:
- a request hook attaches `Authorization: Bearer <token>` whenever a token is
  present in durable storage, independent of the in-memory session;
- responses are unwrapped from the `{success, statusCode, message, data}`
  envelope;
- non-2xx responses raise `ApiError`, and a 401 is first reported to the
  registered unauthorized handlers (forced logout) before propagating.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import ValidationError

from core.storage import ACCESS_TOKEN_KEY, SessionStorage
from schemas.envelope import ApiResponse
from shared.api_errors import ApiError, NetworkError, ParsedApiError, parse_http_error

logger = logging.getLogger(__name__)

UnauthorizedHandler = Callable[[ApiError], Awaitable[None]]


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return None
    cleaned = {k: v for k, v in params.items() if v is not None}
    return cleaned or None


class ApiTransport:
    """Authenticated JSON transport with central 401 handling."""

    def __init__(
        self,
        base_url: str,
        storage: SessionStorage,
        *,
        timeout: float = 30.0,
        request_source: str = "web",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._storage = storage
        self._armed_token: str | None = None
        self._unauthorized_handlers: list[UnauthorizedHandler] = []
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"X-Request-Source": request_source},
            event_hooks={"request": [self._attach_credentials]},
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def armed_token(self) -> str | None:
        return self._armed_token

    def arm(self, token: str) -> None:
        """Keep `token` as fallback credential when durable storage is unavailable."""
        self._armed_token = token

    def disarm(self) -> None:
        self._armed_token = None

    def on_unauthorized(self, handler: UnauthorizedHandler) -> None:
        """Register a coroutine called for every 401 response."""
        self._unauthorized_handlers.append(handler)

    async def _attach_credentials(self, request: httpx.Request) -> None:
        token = await self._storage.get(ACCESS_TOKEN_KEY) or self._armed_token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        elif "Authorization" in request.headers:
            del request.headers["Authorization"]

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        intercept_unauthorized: bool = True,
    ) -> ApiResponse:
        """
        Send a request and return the unwrapped envelope.

        Raises:
            NetworkError: No response was received.
            ApiError: The backend answered with a non-2xx status.
        """
        try:
            response = await self._client.request(
                method, url, params=_clean_params(params), json=json,
            )
        except asyncio.CancelledError:
            logger.debug("api_request_cancelled method=%s url=%s", method, url)
            raise
        except httpx.TransportError as e:
            logger.warning("api_network_error method=%s url=%s error=%s", method, url, e)
            raise NetworkError(e) from e

        if response.is_success:
            return self._parse_envelope(response)

        error = ApiError(parse_http_error(response), body=_safe_json(response))
        logger.info(
            "api_error method=%s url=%s status=%s category=%s",
            method, url, response.status_code, error.category,
        )
        if response.status_code == 401 and intercept_unauthorized:
            for handler in list(self._unauthorized_handlers):
                await handler(error)
        raise error

    def _parse_envelope(self, response: httpx.Response) -> ApiResponse:
        if response.status_code == 204 or not response.content:
            return ApiResponse(success=True, status_code=response.status_code)
        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(
                ParsedApiError("internal", "Malformed response from server", response.status_code),
            ) from e
        if isinstance(body, dict) and "success" in body:
            try:
                envelope = ApiResponse.model_validate(body)
            except ValidationError as e:
                logger.warning(
                    "api_malformed_envelope status=%s errors=%s",
                    response.status_code, e.error_count(),
                )
                raise ApiError(
                    ParsedApiError("internal", "Malformed response from server", response.status_code),
                ) from e
            if envelope.status_code is None:
                envelope.status_code = response.status_code
            return envelope
        # Bare payload without the envelope
        return ApiResponse(success=True, status_code=response.status_code, data=body)

    async def aclose(self) -> None:
        await self._client.aclose()


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
