"""Unit tests for auth/validators.py -- email and password policy.

Covers:
- Email: empty, whitespace, over-length, missing dot/TLD, valid forms
- Password: length bounds and each mandatory character class
"""

import pytest

from auth.validators import MAX_EMAIL_LENGTH, validate_email, validate_password
from core.errors import AuthError, ErrorKind

# ---------------------------------------------------------------------------
# TestValidateEmail
# ---------------------------------------------------------------------------


class TestValidateEmail:
    @pytest.mark.parametrize("email", ["a@b.com", "first.last+tag@mail.example.org", "x_y-z@sub.domain.io"])
    def test_accepts_well_formed_addresses(self, email: str) -> None:
        validate_email(email)

    @pytest.mark.parametrize(
        "email",
        [
            "",
            "   ",
            "invalid-email",
            "user@localhost",  # no dot in domain
            "user@example.c",  # one-letter TLD
            "user@example.c0m",  # TLD must be letters
            "@example.com",
            "user@@example.com",
            "user@example.com\n",
        ],
    )
    def test_rejects_malformed_addresses(self, email: str) -> None:
        with pytest.raises(AuthError) as exc_info:
            validate_email(email)
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    def test_rejects_none(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            validate_email(None)
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    def test_length_limit_is_inclusive(self) -> None:
        """254 characters is allowed, 255 is not."""
        domain = "@example.com"
        at_limit = "a" * (MAX_EMAIL_LENGTH - len(domain)) + domain
        validate_email(at_limit)
        with pytest.raises(AuthError) as exc_info:
            validate_email("a" + at_limit)
        assert "254" in exc_info.value.message


# ---------------------------------------------------------------------------
# TestValidatePassword
# ---------------------------------------------------------------------------


class TestValidatePassword:
    def test_accepts_password_with_all_classes(self) -> None:
        validate_password("Secure1!")

    def test_rejects_weak_password(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            validate_password("weak")
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    @pytest.mark.parametrize(
        "password, reason",
        [
            ("", "empty"),
            ("Sec1!ab", "seven characters"),
            ("secure1!", "no uppercase"),
            ("SECURE1!", "no lowercase"),
            ("Secure!!", "no digit"),
            ("Secure12", "no special character"),
            ("Aa1!" + "a" * 125, "129 characters"),
        ],
    )
    def test_rejects_policy_violations(self, password: str, reason: str) -> None:
        with pytest.raises(AuthError) as exc_info:
            validate_password(password)
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR, reason

    def test_accepts_maximum_length(self) -> None:
        validate_password("Aa1!" + "a" * 124)

    @pytest.mark.parametrize("special", list("!@#$%^&*()_+=-[]{};':\"\\|,.<>/?"))
    def test_each_special_character_counts(self, special: str) -> None:
        validate_password(f"Abcdef1{special}")
