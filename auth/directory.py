"""
auth/directory.py -- User account operations on top of UserStore.

UserDirectory owns the account invariants:
  - one user per email, enforced by the store's unique index;
  - passwords are validated and hashed before they reach storage;
  - lookups that miss raise AuthError(USER_NOT_FOUND) instead of returning None;
  - state changes (active, verified, last login) are get-modify-put on a
    single row and never re-validate unrelated fields.

Users are never deleted here. Deactivation is the only way to retire one.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from auth.models import User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.validators import validate_email, validate_password
from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sessionauth.directory")


class UserDirectory:
    def __init__(self, store: UserStore, hasher: PasswordHasher) -> None:
        self.store = store
        self.hasher = hasher

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, email: str, password: str, first_name: str = "", last_name: str = "") -> User:
        """Validate, hash and insert a new user.

        Order of checks: email format, then an optimistic lookup so an obvious
        duplicate fails fast, then password policy, then the insert. The
        lookup is advisory; two racing callers can both pass it, and the
        store's unique index decides the winner.
        """
        validate_email(email)
        if self.store.get_by_email(email) is not None:
            raise AuthError(ErrorKind.USER_ALREADY_EXISTS, f"User with email {email} already exists")
        validate_password(password)

        user = User(
            email=email,
            hashed_password=self.hasher.hash(password),
            first_name=first_name or "",
            last_name=last_name or "",
            is_active=True,
            is_verified=False,
        )
        return self.store.create_user(user)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise AuthError(ErrorKind.USER_NOT_FOUND, f"User with ID {user_id} not found")
        return user

    def get_by_email(self, email: str) -> User:
        user = self.store.get_by_email(email)
        if user is None:
            raise AuthError(ErrorKind.USER_NOT_FOUND, f"User with email {email} not found")
        return user

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def set_active(self, user_id: int, active: bool) -> User:
        user = self._update(user_id, is_active=bool(active))
        logger.info("User id=%d %s", user_id, "activated" if active else "deactivated")
        return user

    def set_verified(self, user_id: int, verified: bool) -> User:
        user = self._update(user_id, is_verified=bool(verified))
        logger.info("User id=%d verified=%s", user_id, bool(verified))
        return user

    def touch_last_login(self, user_id: int) -> User:
        return self._update(user_id, last_login=datetime.now(timezone.utc).isoformat(timespec="microseconds"))

    def update_profile(self, user_id: int, first_name: str | None = None, last_name: str | None = None) -> User:
        """Change name fields. None leaves a field untouched."""
        fields = {}
        if first_name is not None:
            fields["first_name"] = first_name
        if last_name is not None:
            fields["last_name"] = last_name
        if not fields:
            return self.get_by_id(user_id)
        return self._update(user_id, **fields)

    def update_password_hash(self, user_id: int, hashed_password: str) -> User:
        """Replace the stored hash. The caller has already verified the password."""
        return self._update(user_id, hashed_password=hashed_password)

    def activate(self, user_id: int) -> User:
        return self.set_active(user_id, True)

    def deactivate(self, user_id: int) -> User:
        return self.set_active(user_id, False)

    def verify(self, user_id: int) -> User:
        return self.set_verified(user_id, True)

    def _update(self, user_id: int, **fields) -> User:
        if not self.store.update_user(user_id, **fields):
            raise AuthError(ErrorKind.USER_NOT_FOUND, f"User with ID {user_id} not found")
        return self.get_by_id(user_id)
