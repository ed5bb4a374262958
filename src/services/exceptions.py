"""Shared exceptions for service layer operations."""


class InputValidationError(Exception):
    """
    Raised before any request is sent when a form field fails a local check.

    Carries the field name so callers can show the message next to it.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")
