"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). Stores and the
coordinator do the work; these classes only own the shape of the data.

Layer rule: no imports from anything but the standard library.
"""

from __future__ import annotations

from dataclasses import dataclass, field

TOKEN_ISSUER = "authlib"
ACCESS = "access"
REFRESH = "refresh"
TOKEN_TYPES = (ACCESS, REFRESH)
# Claims every token carries. Caller-supplied extra claims may not reuse these names.
RESERVED_CLAIMS = frozenset({"jti", "iss", "iat", "exp", "userId", "email", "type"})


@dataclass
class User:
    """An identity record.

    hashed_password is the self-describing argon2 string, never the plaintext.
    Timestamps are ISO 8601 UTC strings; last_login stays None until the
    first successful login.
    """

    email: str
    hashed_password: str
    first_name: str = ""
    last_name: str = ""
    id: int | None = None
    is_active: bool = True
    is_verified: bool = False
    created_at: str | None = None
    updated_at: str | None = None
    last_login: str | None = None

    def to_public_dict(self) -> dict:
        """Return the caller-facing snapshot. The password hash is never included."""
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "isActive": self.is_active,
            "isVerified": self.is_verified,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "lastLogin": self.last_login,
        }


@dataclass(frozen=True)
class TokenPayload:
    """Decoded claims of a signed token. Never persisted."""

    jti: str
    issuer: str
    issued_at: int  # epoch seconds
    expires_at: int  # epoch seconds
    user_id: int
    email: str
    type: str  # ACCESS or REFRESH
    extra: dict = field(default_factory=dict, compare=False)  # caller-supplied claims

    @property
    def is_access(self) -> bool:
        return self.type == ACCESS

    @property
    def is_refresh(self) -> bool:
        return self.type == REFRESH


@dataclass
class RevocationEntry:
    """A revoked token identifier, kept at least until expires_at.

    Only the jti claim is stored. Persisting the raw bearer string would turn
    a read of this table into a set of live credentials.
    """

    jti: str
    user_id: int
    expires_at: int  # epoch seconds, copied from the token's exp claim
    id: int | None = None
    revoked_at: str | None = None


@dataclass
class AuthResult:
    """What register() and login() hand back to the caller."""

    user: User
    access_token: str
    refresh_token: str

    def to_dict(self) -> dict:
        return {
            "success": True,
            "user": self.user.to_public_dict(),
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
        }
