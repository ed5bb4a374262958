"""
Authentication and profile operations.

Successful login and OTP verification establish the session in the
`SessionStore`; logout and profile deletion end it and drop every cached
query, since cached data belongs to the signed-out user.
"""
import logging

from core.query_cache import MutationEndpoint, QueryCache, QueryEndpoint, RequestSpec
from core.session import SessionStore
from core.tags import Tag, TagType
from schemas.envelope import ApiResponse
from schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    OtpVerifyRequest,
    RegisterRequest,
    ResendOtpRequest,
    UpdateProfileRequest,
    User,
    extract_token,
    parse_user,
)
from schemas.validators import (
    sanitize_input,
    validate_email,
    validate_name,
    validate_otp,
    validate_password,
)
from services.exceptions import InputValidationError
from shared.api_errors import ApiError, ParsedApiError

logger = logging.getLogger(__name__)


def _envelope(response: ApiResponse) -> ApiResponse:
    return response


def _post(name: str, url: str) -> MutationEndpoint[ApiResponse]:
    return MutationEndpoint(
        name=name,
        build_request=lambda payload: RequestSpec("POST", url, json=payload.to_wire()),
        transform=_envelope,
    )


def _require_user(response: ApiResponse) -> User:
    user = parse_user(response.data)
    if user is None:
        raise ApiError(
            ParsedApiError("internal", "Server returned an invalid user", response.status_code),
            body=response.data,
        )
    return user


class AuthService:
    """Login, registration with OTP verification, logout and profile management."""

    def __init__(self, cache: QueryCache, session: SessionStore) -> None:
        self._cache = cache
        self._session = session

        self.login_endpoint = _post("login", "/auth/login")
        self.register_endpoint = _post("register", "/auth/register")
        self.verify_otp_endpoint = _post("verifyOtp", "/auth/verify-otp")
        self.resend_otp_endpoint = _post("resendOtp", "/auth/resend-otp")
        self.change_password_endpoint = _post("changePassword", "/auth/change-password")
        self.logout_endpoint: MutationEndpoint[ApiResponse] = MutationEndpoint(
            name="logout",
            build_request=lambda _arg: RequestSpec("POST", "/auth/logout"),
            transform=_envelope,
        )
        self.current_user_endpoint: QueryEndpoint[User] = QueryEndpoint(
            name="getCurrentUser",
            build_request=lambda _arg: RequestSpec("GET", "/profile/me"),
            provides=[Tag(TagType.USER)],
            transform=_require_user,
        )
        self.update_profile_endpoint: MutationEndpoint[User] = MutationEndpoint(
            name="updateProfile",
            build_request=lambda payload: RequestSpec(
                "PATCH", "/profile/update-me", json=payload.to_wire(),
            ),
            invalidates=[Tag(TagType.USER)],
            transform=_require_user,
        )
        self.delete_profile_endpoint: MutationEndpoint[ApiResponse] = MutationEndpoint(
            name="deleteProfile",
            build_request=lambda _arg: RequestSpec("DELETE", "/profile/delete-me"),
            transform=_envelope,
        )

    async def _establish(self, response: ApiResponse) -> User:
        user = _require_user(response)
        await self._session.set_credentials(user, extract_token(response.data))
        return user

    async def login(self, email: str, password: str) -> User:
        """Sign in and establish the session."""
        if not validate_email(email):
            raise InputValidationError("email", "Please enter a valid email address")
        if not password:
            raise InputValidationError("password", "Password is required")
        self._session.set_loading(True)
        try:
            response = await self._cache.mutate(
                self.login_endpoint, LoginRequest(email=email.strip(), password=password),
            )
            return await self._establish(response)
        finally:
            self._session.set_loading(False)

    async def register(self, name: str, email: str, password: str) -> ApiResponse:
        """
        Create an account. The session is not established yet: the backend
        sends an OTP to `email`, which is remembered for `verify_otp()`.
        """
        name = sanitize_input(name)
        if not validate_name(name):
            raise InputValidationError("name", "Name must be at least 3 characters")
        if not validate_email(email):
            raise InputValidationError("email", "Please enter a valid email address")
        check = validate_password(password)
        if not check.is_valid:
            raise InputValidationError("password", check.message or "Invalid password")

        response = await self._cache.mutate(
            self.register_endpoint,
            RegisterRequest(name=name, email=email.strip(), password=password),
        )
        otp_email = email.strip()
        if isinstance(response.data, dict) and response.data.get("email"):
            otp_email = response.data["email"]
        self._session.set_otp_email(otp_email)
        return response

    async def verify_otp(self, otp: str, email: str | None = None) -> User:
        """Confirm the emailed OTP and establish the session."""
        email = email or self._session.otp_email
        if not email:
            raise InputValidationError("email", "No email to verify; please register again")
        if not validate_otp(otp):
            raise InputValidationError("otp", "Please enter the 6-digit code")
        response = await self._cache.mutate(
            self.verify_otp_endpoint, OtpVerifyRequest(email=email, otp=otp),
        )
        user = await self._establish(response)
        self._session.otp_email = None
        return user

    async def resend_otp(self, email: str | None = None) -> ApiResponse:
        email = email or self._session.otp_email
        if not email or not validate_email(email):
            raise InputValidationError("email", "Please enter a valid email address")
        return await self._cache.mutate(self.resend_otp_endpoint, ResendOtpRequest(email=email))

    async def get_current_user(self) -> User:
        return await self._cache.query(self.current_user_endpoint)

    async def update_profile(self, name: str) -> User:
        """Rename the signed-in user and refresh the stored copy."""
        name = sanitize_input(name)
        if not name:
            raise InputValidationError("name", "Name is required")
        user = await self._cache.mutate(
            self.update_profile_endpoint, UpdateProfileRequest(name=name),
        )
        await self._session.set_credentials(user)
        return user

    async def change_password(self, current_password: str, new_password: str) -> ApiResponse:
        check = validate_password(new_password)
        if not check.is_valid:
            raise InputValidationError("new_password", check.message or "Invalid password")
        return await self._cache.mutate(
            self.change_password_endpoint,
            ChangePasswordRequest(current_password=current_password, new_password=new_password),
        )

    async def delete_profile(self) -> None:
        """Delete the account; the session ends only if the server confirms."""
        await self._cache.mutate(self.delete_profile_endpoint)
        await self._end_session()
        logger.info("profile_deleted")

    async def logout(self) -> bool:
        """
        End the session.

        Local state is cleared even when the request fails. Returns whether
        the server acknowledged the logout.
        """
        acknowledged = True
        try:
            await self._cache.mutate(self.logout_endpoint)
        except ApiError as e:
            acknowledged = False
            logger.warning("logout_request_failed category=%s message=%s", e.category, e.message)
        await self._end_session()
        return acknowledged

    async def _end_session(self) -> None:
        await self._session.clear()
        self._cache.reset()
