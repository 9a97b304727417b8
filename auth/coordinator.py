"""
auth/coordinator.py -- register / login / refresh / logout orchestration.

Session states, per issued pair:

    Anonymous --register/login--> Authenticated(access, refresh)
    Authenticated --refresh--> Refreshed (new access, same refresh)
    Authenticated --logout--> Revoked (both jtis in the revocation store)
    Authenticated --time--> Expired

Decisions carried by this module:
  Inactive accounts fail login with INVALID_CREDENTIALS, the same kind as a
      wrong password, so the error does not reveal account state. The
      password hash is still checked on that path so both failures cost the
      same time.

  logout() decodes both tokens before revoking either. A malformed token
      fails the call without touching the revocation store.

  verify_token() checks signature/issuer/expiry only. Access tokens are
      short-lived and are not looked up in the revocation store, so a
      logged-out access token keeps verifying until it expires. Refresh
      tokens are always checked against the store.

  refresh_access_token() returns a new access token only; the refresh token
      is reused, not rotated.

  register() does not roll back the created user if issuing tokens fails
      afterwards. The caller sees the error and can simply log in.

Layer rule: this is the only module that composes validators, hasher,
issuer, directory and revocation store.
"""

from __future__ import annotations

import logging

from auth.directory import UserDirectory
from auth.models import AuthResult, TokenPayload, User
from auth.passwords import PasswordHasher
from auth.store import RevocationStore, UserStore
from auth.tokens import TokenIssuer
from auth.validators import validate_email
from core.config import HashSettings, Settings, TokenSettings
from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sessionauth.auth")


class AuthCoordinator:
    """Entry point for callers (HTTP layer, CLI, tests).

    Usage:
        coordinator = AuthCoordinator.from_settings(get_settings())
        result = coordinator.register("a@b.com", "Secure1!", "A", "B")
        payload = coordinator.verify_token(result.access_token)
        coordinator.logout(result.access_token, result.refresh_token)
        coordinator.close()
    """

    def __init__(
        self,
        directory: UserDirectory,
        issuer: TokenIssuer,
        revocations: RevocationStore,
    ) -> None:
        self.directory = directory
        self.issuer = issuer
        self.revocations = revocations

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthCoordinator":
        """Wire every collaborator from one Settings object."""
        hasher = PasswordHasher(HashSettings.from_settings(settings))
        directory = UserDirectory(UserStore(settings.database_url), hasher)
        issuer = TokenIssuer(TokenSettings.from_settings(settings))
        return cls(directory, issuer, RevocationStore(settings.database_url))

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, first_name: str = "", last_name: str = "") -> AuthResult:
        user = self.directory.create(email, password, first_name, last_name)
        access, refresh = self._issue_pair(user)
        logger.info("Registered user id=%d", user.id)
        return AuthResult(user=user, access_token=access, refresh_token=refresh)

    def login(self, email: str, password: str) -> AuthResult:
        validate_email(email)
        user = self.directory.get_by_email(email)

        if not user.is_active:
            # Result discarded; only the cost of the check matters here.
            self.directory.hasher.verify(password, user.hashed_password)
            logger.warning("Login refused for deactivated user id=%d", user.id)
            raise AuthError(ErrorKind.INVALID_CREDENTIALS, "Invalid email or password")

        if not self.directory.hasher.verify(password, user.hashed_password):
            logger.warning("Login failed for user id=%d: wrong password", user.id)
            raise AuthError(ErrorKind.INVALID_CREDENTIALS, "Invalid email or password")

        self._rehash_if_needed(user, password)
        user = self.directory.touch_last_login(user.id)
        access, refresh = self._issue_pair(user)
        logger.info("User id=%d logged in", user.id)
        return AuthResult(user=user, access_token=access, refresh_token=refresh)

    def verify_token(self, token: str) -> TokenPayload:
        """Cryptographic check only -- the revocation store is not consulted."""
        return self.issuer.verify(token)

    def refresh_access_token(self, refresh_token: str) -> str:
        """Mint a new access token from a valid, unrevoked refresh token."""
        payload = self.issuer.verify(refresh_token)
        if not payload.is_refresh:
            raise AuthError(ErrorKind.INVALID_TOKEN, "Invalid token type")
        if self.revocations.is_revoked(payload.jti):
            logger.warning("Refresh attempted with revoked token for user id=%d", payload.user_id)
            raise AuthError(ErrorKind.INVALID_TOKEN, "Token has been revoked")
        return self.issuer.issue_access(payload.user_id, payload.email)

    def logout(self, access_token: str, refresh_token: str) -> bool:
        """Revoke both tokens. Safe to call repeatedly and with expired tokens."""
        payloads = [self.issuer.decode_unverified(token) for token in (access_token, refresh_token)]
        for payload in payloads:
            self.revocations.revoke(payload.jti, payload.user_id, payload.expires_at)
        logger.info("Logged out session tokens")
        return True

    verify = verify_token
    refresh = refresh_access_token

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def activate_user(self, user_id: int) -> User:
        return self.directory.activate(user_id)

    def deactivate_user(self, user_id: int) -> User:
        return self.directory.deactivate(user_id)

    def verify_user(self, user_id: int) -> User:
        return self.directory.verify(user_id)

    def get_user_by_id(self, user_id: int) -> User:
        return self.directory.get_by_id(user_id)

    def get_user_by_email(self, email: str) -> User:
        return self.directory.get_by_email(email)

    def purge_revocations(self) -> int:
        return self.revocations.purge_expired()

    def close(self) -> None:
        self.directory.hasher.close()
        self.directory.store.close()
        self.revocations.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _issue_pair(self, user: User) -> tuple[str, str]:
        return self.issuer.issue_pair(user.id, user.email)

    def _rehash_if_needed(self, user: User, password: str) -> None:
        """Upgrade a hash made with old cost parameters. Never fails the login."""
        hasher = self.directory.hasher
        if not hasher.needs_rehash(user.hashed_password):
            return
        try:
            self.directory.update_password_hash(user.id, hasher.hash(password))
            logger.info("Rehashed password for user id=%d with current parameters", user.id)
        except AuthError as exc:
            logger.warning("Could not store rehashed password for user id=%d: %s", user.id, exc.message)
