"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads happen here. No other module calls os.getenv()
or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret_key -> JWT_SECRET_KEY). Type coercion is built in.

  Explicit parameter objects: TokenSettings and HashSettings are plain frozen
      dataclasses. TokenIssuer and PasswordHasher receive one at construction
      and never look at Settings themselves, so tests can run several issuers
      with distinct secrets side by side.

Security notes:
  JWT_SECRET_KEY shorter than 32 chars is rejected outright. HMAC signing
  relies on key entropy -- a short key weakens every issued token.

  In production mode (DEBUG not set or false), a missing JWT_SECRET_KEY is a
  hard startup failure. A random key in production would silently invalidate
  every outstanding token on restart.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sessionauth.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'sessionauth.db'}"

# Only HMAC algorithms are accepted: the signing key is a shared secret.
SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")


class Settings(BaseSettings):
    """Settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Token signing
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 15
    jwt_refresh_token_expire_days: int = 7

    # ------------------------------------------------------------------
    # Password hashing (argon2id)
    # ------------------------------------------------------------------

    argon2_time_cost: int = 2
    argon2_memory_cost: int = 65536  # KiB
    argon2_parallelism: int = 1
    # Worker threads dedicated to hashing. Sized independently of how many
    # callers are in flight so a registration burst cannot starve logins.
    hash_workers: int = 4

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_signing(self) -> "Settings":
        """Enforce JWT_SECRET_KEY policy and sane token lifetimes.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            JWT_SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters, non-HMAC
            algorithms, and non-positive TTLs.
        """
        if not self.jwt_secret_key:
            if self.debug:
                self.jwt_secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated JWT_SECRET_KEY. " "Issued tokens will not verify after a restart."
                )
            else:
                raise ValueError(
                    "JWT_SECRET_KEY is required in production mode. "
                    "Set JWT_SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.jwt_secret_key) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters.")
        if self.jwt_algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be one of {', '.join(SUPPORTED_ALGORITHMS)}.")
        if self.jwt_access_token_expire_minutes <= 0:
            raise ValueError("JWT_ACCESS_TOKEN_EXPIRE_MINUTES must be positive.")
        if self.jwt_refresh_token_expire_days <= 0:
            raise ValueError("JWT_REFRESH_TOKEN_EXPIRE_DAYS must be positive.")
        if self.hash_workers < 1:
            raise ValueError("HASH_WORKERS must be at least 1.")
        return self


@dataclass(frozen=True)
class TokenSettings:
    """Signing configuration handed to TokenIssuer at construction."""

    secret_key: str
    algorithm: str = "HS256"
    access_ttl_minutes: int = 15
    refresh_ttl_days: int = 7

    @property
    def access_ttl_seconds(self) -> int:
        return self.access_ttl_minutes * 60

    @property
    def refresh_ttl_seconds(self) -> int:
        return self.refresh_ttl_days * 24 * 60 * 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenSettings":
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            access_ttl_minutes=settings.jwt_access_token_expire_minutes,
            refresh_ttl_days=settings.jwt_refresh_token_expire_days,
        )


@dataclass(frozen=True)
class HashSettings:
    """Argon2 cost parameters and pool size, fixed once per PasswordHasher."""

    time_cost: int = 2
    memory_cost: int = 65536
    parallelism: int = 1
    workers: int = 4

    @classmethod
    def from_settings(cls, settings: Settings) -> "HashSettings":
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
            workers=settings.hash_workers,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
