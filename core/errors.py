"""
core/errors.py -- The single error type raised by every auth component.

Instead of one exception subclass per failure, every failure is an AuthError
carrying an ErrorKind. Callers discriminate on `err.kind`:

    try:
        coordinator.login(email, password)
    except AuthError as err:
        if err.kind is ErrorKind.INVALID_CREDENTIALS:
            ...

Two kinds are deliberately coarse:
  INVALID_CREDENTIALS covers both "wrong password" and "account deactivated",
      so the error type does not reveal account state.
  INVALID_TOKEN covers bad signature, wrong issuer, wrong type, expired and
      revoked. A caller cannot tell a forged token from a logged-out one.

STORAGE_ERROR always wraps the underlying driver exception as __cause__.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    USER_ALREADY_EXISTS = "user_already_exists"
    USER_NOT_FOUND = "user_not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    STORAGE_ERROR = "storage_error"


class AuthError(Exception):
    """Domain failure tagged with an ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"AuthError({self.kind.name}, {self.message!r})"

    def to_dict(self) -> dict:
        """Return the {"code", "message"} shape used in API error bodies."""
        return {"code": self.kind.value, "message": self.message}
