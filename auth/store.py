"""
auth/store.py -- SQLAlchemy Core persistence layer for users and revocations.

Pattern: Repository + Data Mapper.
UserStore and RevocationStore are the repositories; _row_to_user /
_row_to_revocation are the mappers. Nothing above this module touches SQL.

Contracts enforced by the schema itself, not by application code:
  users.email is UNIQUE. Two concurrent inserts for the same address cannot
      both commit; the loser gets IntegrityError, which UserStore translates
      into AuthError(USER_ALREADY_EXISTS). Any read-before-write done by the
      caller is only a fast path.

  revoked_tokens.jti is UNIQUE (and therefore indexed). Revoking a jti that
      is already present is a no-op, so logout is idempotent.

Every other SQLAlchemyError leaves this module as AuthError(STORAGE_ERROR)
with the driver exception chained. Raw driver exceptions never escape.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Only the jti of a revoked token is stored, never the bearer string.

Concurrency:
  SQLite runs in WAL mode with a busy timeout: concurrent writers queue on
  the database lock instead of failing, and a committed revocation is
  visible to every connection (and every process on the same file) at once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import RevocationEntry, User
from core.config import get_settings
from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sessionauth.store")

_SQLITE_BUSY_TIMEOUT = 30  # seconds

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(254), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("first_name", String(100), nullable=False, server_default=""),
    Column("last_name", String(100), nullable=False, server_default=""),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("is_verified", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("last_login", String(32)),
)

_revoked_tokens = Table(
    "revoked_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("jti", String(64), nullable=False, unique=True),
    Column("user_id", Integer, nullable=False),
    Column("expires_at", Integer, nullable=False, index=True),  # epoch seconds
    Column("revoked_at", String(32), nullable=False),
)

# Fields UserStore.update_user() accepts. Anything else is a programming error.
_MUTABLE_USER_FIELDS = frozenset(
    {"hashed_password", "first_name", "last_name", "is_active", "is_verified", "last_login"}
)


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    is_sqlite = db_url.startswith("sqlite")
    if is_sqlite:
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = _SQLITE_BUSY_TIMEOUT
    engine = create_engine(db_url, connect_args=connect_args)
    if is_sqlite:
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def _default_db_url() -> str:
    return get_settings().database_url


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _violates_email_index(exc: IntegrityError) -> bool:
    """True if the driver blamed the users.email unique constraint.

    SQLite reports "UNIQUE constraint failed: users.email"; PostgreSQL names
    the index (users_email_key). Both mention the column.
    """
    message = str(exc.orig).lower()
    return ("unique" in message or "duplicate" in message) and "email" in message


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Translate any SQLAlchemyError raised inside the block into STORAGE_ERROR."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage failure while trying to %s: %s", action, exc)
        raise AuthError(ErrorKind.STORAGE_ERROR, f"Failed to {action}") from exc


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///auth.db")
        user = store.create_user(User(email="a@b.com", hashed_password=h))
        store.get_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = _make_engine(db_url or _default_db_url())
        with _storage_errors("initialize the users schema"):
            _metadata.create_all(self.engine, tables=[_users])

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps filled in.

        Raises AuthError(USER_ALREADY_EXISTS) when the email unique index
        rejects the row -- this is the authoritative uniqueness check.
        """
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email,
                        hashed_password=user.hashed_password,
                        first_name=user.first_name,
                        last_name=user.last_name,
                        is_active=user.is_active,
                        is_verified=user.is_verified,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            if _violates_email_index(exc):
                raise AuthError(
                    ErrorKind.USER_ALREADY_EXISTS, f"User with email {user.email} already exists"
                ) from exc
            logger.error("Constraint failure while trying to create user: %s", exc)
            raise AuthError(ErrorKind.STORAGE_ERROR, "Failed to create user") from exc
        except SQLAlchemyError as exc:
            logger.error("Storage failure while trying to create user: %s", exc)
            raise AuthError(ErrorKind.STORAGE_ERROR, "Failed to create user") from exc

        logger.info("Created user id=%d", user_id)
        return User(
            id=user_id,
            email=user.email,
            hashed_password=user.hashed_password,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            is_verified=user.is_verified,
            created_at=now,
            updated_at=now,
            last_login=None,
        )

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with _storage_errors("get user"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with _storage_errors("get user"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user and stamp updated_at.

        Accepted fields: see _MUTABLE_USER_FIELDS. Unknown keys raise
        ValueError rather than being silently ignored.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        with _storage_errors("update user"), self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def count_users(self) -> int:
        with _storage_errors("count users"), self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Revocations
# ---------------------------------------------------------------------------


class RevocationStore:
    """Durable set of revoked token ids, shared by every serving process.

    Entries must outlive the token they revoke; after expires_at they may be
    purged, since an expired token no longer verifies anyway.
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = _make_engine(db_url or _default_db_url())
        with _storage_errors("initialize the revocation schema"):
            _metadata.create_all(self.engine, tables=[_revoked_tokens])

    def revoke(self, jti: str, user_id: int, expires_at: int) -> bool:
        """Record jti as revoked. Returns False if it was already revoked.

        Idempotent: a duplicate jti hits the UNIQUE constraint, which is
        treated as success.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _revoked_tokens.insert().values(
                        jti=jti,
                        user_id=user_id,
                        expires_at=expires_at,
                        revoked_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError:
            logger.debug("Token jti=%s already revoked", jti)
            return False
        except SQLAlchemyError as exc:
            logger.error("Storage failure while trying to revoke token: %s", exc)
            raise AuthError(ErrorKind.STORAGE_ERROR, "Failed to revoke token") from exc
        return True

    def is_revoked(self, jti: str) -> bool:
        with _storage_errors("check token revocation"), self.engine.connect() as conn:
            row = conn.execute(select(_revoked_tokens.c.id).where(_revoked_tokens.c.jti == jti)).fetchone()
        return row is not None

    def get(self, jti: str) -> RevocationEntry | None:
        """Return the revocation record for jti, or None."""
        with _storage_errors("read token revocation"), self.engine.connect() as conn:
            row = conn.execute(_revoked_tokens.select().where(_revoked_tokens.c.jti == jti)).fetchone()
        return _row_to_revocation(row) if row is not None else None

    def purge_expired(self, now: int | None = None) -> int:
        """Delete entries whose token has expired. Returns number of rows removed."""
        cutoff = now if now is not None else int(datetime.now(timezone.utc).timestamp())
        with _storage_errors("purge expired revocations"), self.engine.connect() as conn:
            result = conn.execute(_revoked_tokens.delete().where(_revoked_tokens.c.expires_at < cutoff))
            conn.commit()
        if result.rowcount:
            logger.info("Purged %d expired revocation entries", result.rowcount)
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        first_name=row.first_name,
        last_name=row.last_name,
        is_active=bool(row.is_active),
        is_verified=bool(row.is_verified),
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login=row.last_login,
    )


def _row_to_revocation(row) -> RevocationEntry:
    return RevocationEntry(
        id=row.id,
        jti=row.jti,
        user_id=row.user_id,
        expires_at=row.expires_at,
        revoked_at=row.revoked_at,
    )
