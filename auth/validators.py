"""
auth/validators.py -- Syntactic checks on email addresses and passwords.

Both functions are pure: they either return None or raise
AuthError(VALIDATION_ERROR). No deliverability or MX lookup is attempted;
an address that passes here may still bounce.

Password policy: 8-128 characters and at least one of each class
(uppercase, lowercase, digit, special). All four classes are mandatory --
there is no strength score and no partial credit.
"""

from __future__ import annotations

import re

from core.errors import AuthError, ErrorKind

MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

# local@domain.tld -- the domain needs at least one dot and a 2+ letter TLD.
_EMAIL_RE = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

SPECIAL_CHARACTERS = "!@#$%^&*()_+=-[]{};':\"\\|,.<>/?"


def validate_email(email: str | None) -> None:
    if email is None or not email.strip():
        raise AuthError(ErrorKind.VALIDATION_ERROR, "Email must not be empty")
    if len(email) > MAX_EMAIL_LENGTH:
        raise AuthError(ErrorKind.VALIDATION_ERROR, f"Email must not exceed {MAX_EMAIL_LENGTH} characters")
    # fullmatch, not match: "$" alone would accept a trailing newline.
    if not _EMAIL_RE.fullmatch(email):
        raise AuthError(ErrorKind.VALIDATION_ERROR, "Invalid email format")


def validate_password(password: str | None) -> None:
    if not password:
        raise AuthError(ErrorKind.VALIDATION_ERROR, "Password must not be empty")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(
            ErrorKind.VALIDATION_ERROR, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        raise AuthError(ErrorKind.VALIDATION_ERROR, f"Password must not exceed {MAX_PASSWORD_LENGTH} characters")

    has_upper = any("A" <= c <= "Z" for c in password)
    has_lower = any("a" <= c <= "z" for c in password)
    has_digit = any("0" <= c <= "9" for c in password)
    has_special = any(c in SPECIAL_CHARACTERS for c in password)
    if not (has_upper and has_lower and has_digit and has_special):
        raise AuthError(
            ErrorKind.VALIDATION_ERROR,
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one digit, and one special character",
        )
