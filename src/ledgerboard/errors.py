"""Error taxonomy shared by every mutating operation."""

from __future__ import annotations

MSG_NOT_SIGNED_IN = "You're not signed in."
MSG_INVALID_INPUT = "Invalid input."
MSG_TRY_AGAIN = "Something went wrong, try again."


class LedgerboardError(Exception):
    """Base class for errors surfaced to callers."""

    user_message = MSG_TRY_AGAIN


class ValidationError(LedgerboardError, ValueError):
    """Input rejected before any write was attempted."""

    user_message = MSG_INVALID_INPUT

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class LinkedTaskError(ValidationError):
    """A synchronizer-owned task was edited or deleted directly."""


class NotAuthenticatedError(LedgerboardError):
    """No principal is signed in."""

    user_message = MSG_NOT_SIGNED_IN

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class NotFoundError(LedgerboardError, LookupError):
    """The referenced document (or the template behind a virtual id) is gone."""


class PermissionDeniedError(LedgerboardError):
    """The store refused access, typically because the session just ended."""


class StoreError(LedgerboardError):
    """A read or batch commit failed in the store; nothing was applied."""


def user_message(exc: BaseException) -> str:
    """Return the human-readable message for any exception."""

    if isinstance(exc, LedgerboardError):
        return exc.user_message
    return MSG_TRY_AGAIN


__all__ = [
    "LedgerboardError",
    "LinkedTaskError",
    "NotAuthenticatedError",
    "NotFoundError",
    "PermissionDeniedError",
    "StoreError",
    "ValidationError",
    "user_message",
]
