"""Unit tests for auth/tokens.py -- TokenIssuer.

Covers:
- Claim contents and TTL arithmetic for access and refresh tokens
- Input validation on user id and email
- verify() rejects forged, tampered, wrong-issuer, expired and incomplete tokens
- decode_unverified() tolerates expired / foreign-key tokens but not garbage
"""

from __future__ import annotations

import secrets
import time

import pytest
from jose import jwt

from auth.models import ACCESS, REFRESH, TOKEN_ISSUER
from auth.tokens import TokenIssuer
from core.config import TokenSettings
from core.errors import AuthError, ErrorKind

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _raw_token(settings: TokenSettings, **overrides) -> str:
    """Sign an arbitrary claim set with the issuer's key, for negative tests."""
    now = int(time.time())
    claims = {
        "jti": "fixed-jti",
        "iss": TOKEN_ISSUER,
        "iat": now,
        "exp": now + 600,
        "userId": 7,
        "email": "x@y.com",
        "type": ACCESS,
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def _assert_invalid(fn, *args) -> AuthError:
    with pytest.raises(AuthError) as exc_info:
        fn(*args)
    assert exc_info.value.kind is ErrorKind.INVALID_TOKEN
    return exc_info.value


# ---------------------------------------------------------------------------
# TestIssue
# ---------------------------------------------------------------------------


class TestIssue:
    def test_access_token_claims(self, issuer: TokenIssuer, token_settings: TokenSettings) -> None:
        payload = issuer.verify(issuer.issue_access(7, "x@y.com"))
        assert payload.user_id == 7
        assert payload.email == "x@y.com"
        assert payload.type == ACCESS
        assert payload.issuer == "authlib"
        assert payload.expires_at - payload.issued_at == token_settings.access_ttl_minutes * 60

    def test_refresh_token_claims(self, issuer: TokenIssuer) -> None:
        payload = issuer.verify(issuer.issue_refresh(7, "x@y.com"))
        assert payload.type == REFRESH
        assert payload.expires_at - payload.issued_at == 7 * 24 * 60 * 60

    def test_configured_ttl_is_honoured(self) -> None:
        issuer = TokenIssuer(TokenSettings(secret_key=secrets.token_hex(32), access_ttl_minutes=5, refresh_ttl_days=1))
        access = issuer.verify(issuer.issue_access(1, "a@b.com"))
        refresh = issuer.verify(issuer.issue_refresh(1, "a@b.com"))
        assert access.expires_at - access.issued_at == 300
        assert refresh.expires_at - refresh.issued_at == 86400

    def test_every_token_gets_a_fresh_jti(self, issuer: TokenIssuer) -> None:
        jtis = {issuer.verify(issuer.issue_access(1, "a@b.com")).jti for _ in range(20)}
        assert len(jtis) == 20

    def test_wire_claims_use_expected_names(self, issuer: TokenIssuer) -> None:
        claims = jwt.get_unverified_claims(issuer.issue_access(3, "c@d.com"))
        assert set(claims) == {"jti", "iss", "iat", "exp", "userId", "email", "type"}
        assert jwt.get_unverified_header(issuer.issue_access(3, "c@d.com"))["alg"] == "HS256"

    @pytest.mark.parametrize("user_id", [0, -1, True])
    def test_rejects_non_positive_user_id(self, issuer: TokenIssuer, user_id) -> None:
        for issue in (issuer.issue_access, issuer.issue_refresh):
            with pytest.raises(AuthError) as exc_info:
                issue(user_id, "x@y.com")
            assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    def test_rejects_empty_email(self, issuer: TokenIssuer) -> None:
        with pytest.raises(AuthError) as exc_info:
            issuer.issue_refresh(1, "")
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR


class TestExtraClaims:
    def test_extra_claims_round_trip(self, issuer: TokenIssuer) -> None:
        extra = {"role": "admin", "tenant": 4, "mfa": True}
        access = issuer.verify(issuer.issue_access(7, "x@y.com", extra))
        refresh = issuer.verify(issuer.issue_refresh(7, "x@y.com", {"device": "cli"}))
        assert access.extra == extra
        assert access.user_id == 7
        assert refresh.extra == {"device": "cli"}

    def test_no_extra_claims_by_default(self, issuer: TokenIssuer) -> None:
        assert issuer.verify(issuer.issue_access(7, "x@y.com")).extra == {}

    @pytest.mark.parametrize("name", ["jti", "iss", "iat", "exp", "userId", "email", "type"])
    def test_reserved_names_are_rejected(self, issuer: TokenIssuer, name: str) -> None:
        with pytest.raises(AuthError) as exc_info:
            issuer.issue_access(7, "x@y.com", {name: "override"})
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    @pytest.mark.parametrize("value", [1.5, None, ["a"], {"k": "v"}])
    def test_unsupported_values_are_rejected(self, issuer: TokenIssuer, value) -> None:
        with pytest.raises(AuthError) as exc_info:
            issuer.issue_refresh(7, "x@y.com", {"scope": value})
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    def test_decode_unverified_keeps_extra_claims(self, issuer: TokenIssuer) -> None:
        token = issuer.issue_refresh(7, "x@y.com", {"device": "cli"})
        assert issuer.decode_unverified(token).extra == {"device": "cli"}


# ---------------------------------------------------------------------------
# TestVerify
# ---------------------------------------------------------------------------


class TestVerify:
    def test_token_from_other_secret_is_rejected(self, issuer: TokenIssuer) -> None:
        other = TokenIssuer(TokenSettings(secret_key=secrets.token_hex(32)))
        _assert_invalid(issuer.verify, other.issue_access(7, "x@y.com"))

    def test_tampered_claims_are_rejected(self, issuer: TokenIssuer) -> None:
        header, _claims, signature = issuer.issue_access(7, "x@y.com").split(".")
        forged_claims = _raw_token(issuer.settings, userId=1).split(".")[1]
        _assert_invalid(issuer.verify, f"{header}.{forged_claims}.{signature}")

    def test_wrong_issuer_is_rejected(self, issuer: TokenIssuer) -> None:
        _assert_invalid(issuer.verify, _raw_token(issuer.settings, iss="someone-else"))

    def test_expired_token_is_rejected(self, issuer: TokenIssuer) -> None:
        past = int(time.time()) - 3600
        _assert_invalid(issuer.verify, _raw_token(issuer.settings, iat=past - 60, exp=past))

    def test_missing_claim_is_rejected(self, issuer: TokenIssuer) -> None:
        _assert_invalid(issuer.verify, _raw_token(issuer.settings, userId=None))

    def test_unknown_type_is_rejected(self, issuer: TokenIssuer) -> None:
        _assert_invalid(issuer.verify, _raw_token(issuer.settings, type="id"))

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c"])
    def test_garbage_is_rejected(self, issuer: TokenIssuer, garbage: str) -> None:
        _assert_invalid(issuer.verify, garbage)

    def test_errors_do_not_reveal_cause(self, issuer: TokenIssuer) -> None:
        """Expired and forged tokens produce the same kind and message."""
        past = int(time.time()) - 3600
        expired = _assert_invalid(issuer.verify, _raw_token(issuer.settings, iat=past - 60, exp=past))
        other = TokenIssuer(TokenSettings(secret_key=secrets.token_hex(32)))
        forged = _assert_invalid(issuer.verify, other.issue_access(7, "x@y.com"))
        assert expired.message == forged.message


# ---------------------------------------------------------------------------
# TestDecodeUnverified
# ---------------------------------------------------------------------------


class TestDecodeUnverified:
    def test_reads_expired_token(self, issuer: TokenIssuer) -> None:
        past = int(time.time()) - 3600
        payload = issuer.decode_unverified(_raw_token(issuer.settings, iat=past - 60, exp=past, jti="old"))
        assert payload.jti == "old"
        assert payload.expires_at == past
        assert payload.user_id == 7

    def test_reads_token_signed_with_rotated_key(self, issuer: TokenIssuer) -> None:
        old_issuer = TokenIssuer(TokenSettings(secret_key=secrets.token_hex(32)))
        token = old_issuer.issue_refresh(9, "old@key.com")
        payload = issuer.decode_unverified(token)
        assert payload.user_id == 9
        assert payload.type == REFRESH

    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
    def test_rejects_structurally_invalid_tokens(self, issuer: TokenIssuer, garbage: str) -> None:
        _assert_invalid(issuer.decode_unverified, garbage)
