"""Exceptions shared by the Household Hub managers."""

from .gateway import GatewayError


class ValidationError(ValueError):
    """Raised when input fails a local check before any gateway call."""


class RecordNotFoundError(Exception):
    """Raised when a record is not found."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} with ID '{record_id}' not found")


class NoHouseholdError(Exception):
    """Raised when the acting user does not belong to any household."""

    def __init__(self, user_id: str | None):
        self.user_id = user_id
        if user_id:
            message = f"User '{user_id}' is not a member of any household"
        else:
            message = "No user configured; run 'household init' or sign in first"
        super().__init__(message)


def require_text(value: str | None, field: str) -> str:
    """Trim value and reject it when empty."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} cannot be empty")
    return text


__all__ = [
    "GatewayError",
    "NoHouseholdError",
    "RecordNotFoundError",
    "ValidationError",
    "require_text",
]
