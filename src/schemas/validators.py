"""
Input checks applied before a form is submitted.

These mirror the checks the web frontend runs for immediate feedback; the
backend remains the authority and its validation messages are surfaced
verbatim (see shared/api_errors.py).
"""
import re
from dataclasses import dataclass

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_PATTERN = re.compile(r"^\d{6}$")

MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 3


@dataclass
class PasswordCheck:
    is_valid: bool
    message: str | None = None


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_password(password: str) -> PasswordCheck:
    """
    Check password strength.

    Requirements: at least 6 characters with a lowercase letter, an uppercase
    letter and a digit. The first failing rule's message is returned.
    """
    if not password:
        return PasswordCheck(False, "Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        return PasswordCheck(False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"[a-z]", password):
        return PasswordCheck(False, "Password must contain lowercase letters")
    if not re.search(r"[A-Z]", password):
        return PasswordCheck(False, "Password must contain uppercase letters")
    if not re.search(r"\d", password):
        return PasswordCheck(False, "Password must contain numbers")
    return PasswordCheck(True)


def validate_name(name: str) -> bool:
    return len(name.strip()) >= MIN_NAME_LENGTH


def validate_otp(otp: str) -> bool:
    return bool(OTP_PATTERN.match(otp))


def sanitize_input(value: str) -> str:
    """Trim and strip angle brackets."""
    return value.strip().replace("<", "").replace(">", "")
