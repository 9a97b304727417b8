"""
auth/tokens.py -- Signed bearer tokens: issue, verify, and decode for revocation.

Security design decisions:
  JWT via python-jose, HMAC only (HS256 by default). Every token carries
      {jti, iss="authlib", iat, exp, userId, email, type}. `type` is "access"
      or "refresh"; consumers check it, the signature alone does not say what
      a token may be used for.

  Callers may attach extra string, int or bool claims. They ride along in
      TokenPayload.extra and can never replace one of the standard claims.

  jti is uuid4 -- the revocation key. Logging out stores the jti, not the
      token itself.

  verify() raises AuthError(INVALID_TOKEN) for every failure: bad signature,
      wrong issuer, expired, missing or malformed claims. Callers never learn
      which one it was.

  decode_unverified() skips the signature and expiry checks. It exists only
      so logout can recover jti/exp/userId from a token that has already
      expired or was signed with a since-rotated key. Nothing it returns may
      be used to authorize anything.

  Configuration is injected as a TokenSettings object. This module never
      reads environment or global settings, so two issuers with different
      secrets can coexist (tests rely on this).
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from jose import JWTError, jwt

from auth.models import ACCESS, REFRESH, RESERVED_CLAIMS, TOKEN_ISSUER, TOKEN_TYPES, TokenPayload
from core.config import TokenSettings
from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sessionauth.tokens")


class TokenIssuer:
    """Mints and checks access/refresh tokens for one signing configuration."""

    def __init__(self, settings: TokenSettings) -> None:
        self.settings = settings

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access(self, user_id: int, email: str, extra_claims: dict | None = None) -> str:
        """Return a signed access token valid for access_ttl_minutes."""
        return self._issue(user_id, email, ACCESS, self.settings.access_ttl_seconds, extra_claims)

    def issue_refresh(self, user_id: int, email: str, extra_claims: dict | None = None) -> str:
        """Return a signed refresh token valid for refresh_ttl_days."""
        return self._issue(user_id, email, REFRESH, self.settings.refresh_ttl_seconds, extra_claims)

    def issue_pair(self, user_id: int, email: str) -> tuple[str, str]:
        """Return (access_token, refresh_token) for the same identity."""
        return self.issue_access(user_id, email), self.issue_refresh(user_id, email)

    def _issue(
        self, user_id: int, email: str, token_type: str, ttl_seconds: int, extra_claims: dict | None = None
    ) -> str:
        # bool is an int subclass; True must not pass as user id 1.
        if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0:
            raise AuthError(ErrorKind.VALIDATION_ERROR, "userId must be a positive number")
        if not email:
            raise AuthError(ErrorKind.VALIDATION_ERROR, "email must not be empty")
        extra = _check_extra_claims(extra_claims)

        issued_at = int(datetime.now(timezone.utc).timestamp())
        claims = {
            **extra,
            "jti": str(uuid.uuid4()),
            "iss": TOKEN_ISSUER,
            "iat": issued_at,
            "exp": issued_at + ttl_seconds,
            "userId": user_id,
            "email": email,
            "type": token_type,
        }
        return jwt.encode(claims, self.settings.secret_key, algorithm=self.settings.algorithm)

    # ------------------------------------------------------------------
    # Verify / decode
    # ------------------------------------------------------------------

    def verify(self, token: str) -> TokenPayload:
        """Check signature, issuer and expiry, then return the decoded payload."""
        if not token:
            raise AuthError(ErrorKind.INVALID_TOKEN, "Token verification failed")
        try:
            claims = jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.algorithm],
                issuer=TOKEN_ISSUER,
            )
        except JWTError as exc:
            logger.debug("Token rejected: %s", exc)
            raise AuthError(ErrorKind.INVALID_TOKEN, "Token verification failed") from exc
        return _parse_claims(claims)

    def decode_unverified(self, token: str) -> TokenPayload:
        """Parse claims WITHOUT checking the signature or expiry.

        Only for revocation bookkeeping. Raises INVALID_TOKEN if the token is
        not structurally a JWT or lacks the claims revocation needs.
        """
        if not token:
            raise AuthError(ErrorKind.INVALID_TOKEN, "Failed to decode token")
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise AuthError(ErrorKind.INVALID_TOKEN, "Failed to decode token") from exc
        return _parse_claims(claims)


def _check_extra_claims(extra_claims: dict | None) -> dict:
    """Return a copy of extra_claims after checking names and value types."""
    if not extra_claims:
        return {}
    clashes = RESERVED_CLAIMS.intersection(extra_claims)
    if clashes:
        raise AuthError(ErrorKind.VALIDATION_ERROR, "Reserved claim names: " + ", ".join(sorted(clashes)))
    for name, value in extra_claims.items():
        if not isinstance(name, str) or not isinstance(value, (str, int, bool)):
            raise AuthError(ErrorKind.VALIDATION_ERROR, f"Unsupported claim {name!r}: use str, int or bool values")
    return dict(extra_claims)


def _parse_claims(claims: dict) -> TokenPayload:
    """Map raw JWT claims onto a TokenPayload, rejecting incomplete tokens."""
    try:
        payload = TokenPayload(
            jti=str(claims["jti"]),
            issuer=str(claims["iss"]),
            issued_at=int(claims["iat"]),
            expires_at=int(claims["exp"]),
            user_id=int(claims["userId"]),
            email=str(claims["email"]),
            type=str(claims["type"]),
            extra={k: v for k, v in claims.items() if k not in RESERVED_CLAIMS},
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthError(ErrorKind.INVALID_TOKEN, "Token is missing required claims") from exc
    if payload.type not in TOKEN_TYPES:
        raise AuthError(ErrorKind.INVALID_TOKEN, "Unknown token type")
    return payload
