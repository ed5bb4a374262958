"""Pydantic schemas for users and authentication endpoints."""
from typing import Any

from pydantic import Field, ValidationError

from schemas.base import CamelModel


class User(CamelModel):
    """Authoritative identity, owned by the server and cached client-side."""

    id: str
    name: str | None = None
    email: str
    is_verified: bool = False

    @property
    def has_identity(self) -> bool:
        """True when the minimum identity fields (id and email) are non-empty."""
        return bool(self.id) and bool(self.email)


class LoginRequest(CamelModel):
    email: str
    password: str


class RegisterRequest(CamelModel):
    name: str
    email: str
    password: str


class OtpVerifyRequest(CamelModel):
    email: str
    otp: str


class ResendOtpRequest(CamelModel):
    email: str


class UpdateProfileRequest(CamelModel):
    name: str = Field(..., min_length=1)


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


# Keys the backend has used for the bearer token in auth responses
_TOKEN_KEYS = ("access_token", "token", "accessToken")


def extract_user_data(data: Any) -> dict[str, Any] | None:
    """
    Return the user object from an auth/profile payload.

    The backend returns either `{user: {...}, token}` or the user fields
    directly in `data`.
    """
    if not isinstance(data, dict):
        return None
    nested = data.get("user")
    if isinstance(nested, dict):
        return nested
    return data


def parse_user(data: Any) -> User | None:
    """
    Parse a well-formed user out of a payload.

    Returns None (never raises) when the payload is absent or missing a
    non-empty id or email.
    """
    user_data = extract_user_data(data)
    if not user_data or not user_data.get("id") or not user_data.get("email"):
        return None
    try:
        user = User.model_validate(
            {
                "id": str(user_data["id"]),
                "name": user_data.get("name"),
                "email": user_data["email"],
                "isVerified": bool(user_data.get("isVerified", False)),
            },
        )
    except ValidationError:
        return None
    return user if user.has_identity else None


def extract_token(data: Any) -> str | None:
    """Find the bearer token in an auth payload, checking the nested user too."""
    if not isinstance(data, dict):
        return None
    candidates: list[dict[str, Any]] = [data]
    user_data = data.get("user")
    if isinstance(user_data, dict):
        candidates.append(user_data)
    for source in candidates:
        for key in _TOKEN_KEYS:
            value = source.get(key)
            if isinstance(value, str) and value:
                return value
    return None
