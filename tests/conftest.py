"""
tests/conftest.py -- Shared fixtures for the sessionauth test suite.

This module provides:
  - db_url: a file-backed SQLite database under tmp_path, one per test
  - hasher: a PasswordHasher with minimal argon2 cost so tests stay fast
  - token_settings / issuer: a TokenIssuer with a fresh random secret per test
  - user_store / revocation_store / directory / coordinator: the wired stack

Design: file-backed SQLite (not :memory:) is required because the
concurrency tests open many connections from worker threads. Plain :memory:
databases are per-connection, and shared-cache memory databases fail writers
immediately with "database table is locked" instead of waiting. A WAL file
with a busy timeout makes concurrent writers queue, as a real server would.

The DEBUG env var must be set before any get_settings() call so Settings can
auto-generate JWT_SECRET_KEY in dev mode instead of raising ValueError.
"""

from __future__ import annotations

import os
import secrets
from collections.abc import Generator

# CRITICAL: Set DEBUG before any settings are built (main.main() calls
# get_settings()) so a missing JWT_SECRET_KEY is generated, not fatal.
os.environ.setdefault("DEBUG", "true")

import pytest

from auth.coordinator import AuthCoordinator
from auth.directory import UserDirectory
from auth.passwords import PasswordHasher
from auth.store import RevocationStore, UserStore
from auth.tokens import TokenIssuer
from core.config import HashSettings, TokenSettings

# Lowest argon2 cost argon2-cffi accepts for parallelism=1 is memory_cost=8;
# 1024 KiB keeps hashes fast while still exercising the real algorithm.
FAST_HASH = HashSettings(time_cost=1, memory_cost=1024, parallelism=1, workers=4)


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'auth.db'}"


@pytest.fixture
def hasher() -> Generator[PasswordHasher, None, None]:
    h = PasswordHasher(FAST_HASH)
    yield h
    h.close()


@pytest.fixture
def token_settings() -> TokenSettings:
    return TokenSettings(secret_key=secrets.token_hex(32), access_ttl_minutes=15, refresh_ttl_days=7)


@pytest.fixture
def issuer(token_settings: TokenSettings) -> TokenIssuer:
    return TokenIssuer(token_settings)


@pytest.fixture
def user_store(db_url: str) -> Generator[UserStore, None, None]:
    store = UserStore(db_url)
    yield store
    store.close()


@pytest.fixture
def revocation_store(db_url: str) -> Generator[RevocationStore, None, None]:
    store = RevocationStore(db_url)
    yield store
    store.close()


@pytest.fixture
def directory(user_store: UserStore, hasher: PasswordHasher) -> UserDirectory:
    return UserDirectory(user_store, hasher)


@pytest.fixture
def coordinator(
    directory: UserDirectory, issuer: TokenIssuer, revocation_store: RevocationStore
) -> AuthCoordinator:
    """AuthCoordinator over the per-test stores.

    Teardown is left to the individual fixtures so each resource is closed
    exactly once.
    """
    return AuthCoordinator(directory, issuer, revocation_store)
