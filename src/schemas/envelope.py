"""Response envelope shared by every backend endpoint."""
from typing import Any, Generic, TypeVar

from schemas.base import CamelModel

T = TypeVar("T")


class ApiResponse(CamelModel, Generic[T]):
    """
    Envelope: `{success, statusCode, message, data?, errors?, timestamp?}`.

    `data` is left untyped at the transport level; endpoint transforms
    validate it into the concrete schema.
    """

    success: bool = False
    status_code: int | None = None
    message: str = ""
    data: T | None = None
    errors: Any = None
    timestamp: str | None = None
