"""
auth/passwords.py -- argon2id password hashing on a bounded worker pool.

Security design decisions:
  argon2id via argon2-cffi. The output is self-describing
      ($argon2id$v=19$m=...,t=...,p=...$salt$digest), so verify() always uses
      the parameters the hash was made with, and needs_rehash() can compare
      those parameters against the ones currently configured. A fresh random
      salt is drawn per call: hashing the same password twice never yields the
      same string.

  Cost parameters are fixed when the PasswordHasher is built. They are not a
      per-call knob.

  Hashing is CPU and memory heavy on purpose. Every hash/verify is submitted
      to a ThreadPoolExecutor sized by HashSettings.workers; argon2-cffi
      releases the GIL while it works. However many callers are in flight,
      at most `workers` hashes run at once, and the calling thread simply
      waits for its result.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import argon2
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from core.config import HashSettings
from core.errors import AuthError, ErrorKind

logger = logging.getLogger("sessionauth.passwords")


class PasswordHasher:
    """Salted one-way hashing with verify and rehash detection.

    Usage:
        hasher = PasswordHasher(HashSettings(time_cost=2, memory_cost=65536))
        stored = hasher.hash("Secure1!")
        hasher.verify("Secure1!", stored)   # True
        hasher.needs_rehash(stored)         # False
        hasher.close()
    """

    def __init__(self, settings: HashSettings | None = None) -> None:
        self.settings = settings or HashSettings()
        self._hasher = argon2.PasswordHasher(
            time_cost=self.settings.time_cost,
            memory_cost=self.settings.memory_cost,
            parallelism=self.settings.parallelism,
            type=argon2.Type.ID,
        )
        self._pool = ThreadPoolExecutor(max_workers=self.settings.workers, thread_name_prefix="argon2")

    def hash(self, plaintext: str) -> str:
        """Return a new argon2id hash string for plaintext."""
        return self._pool.submit(self._hasher.hash, plaintext).result()

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return True if plaintext matches hashed.

        A wrong password is a False, never an exception. Only a hash string
        that argon2 cannot parse raises (VALIDATION_ERROR).
        """
        return self._pool.submit(self._verify, plaintext, hashed).result()

    def _verify(self, plaintext: str, hashed: str) -> bool:
        try:
            return self._hasher.verify(hashed, plaintext)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, UnicodeEncodeError) as exc:
            # argon2 hashes are ASCII; anything else cannot be parsed.
            raise AuthError(ErrorKind.VALIDATION_ERROR, "Malformed password hash") from exc
        except VerificationError:
            # Well-formed hash that still failed to verify (e.g. corrupted digest).
            return False

    def needs_rehash(self, hashed: str) -> bool:
        """Return True if hashed was made with parameters other than the current ones."""
        try:
            return self._hasher.check_needs_rehash(hashed)
        except (InvalidHashError, UnicodeEncodeError) as exc:
            raise AuthError(ErrorKind.VALIDATION_ERROR, "Malformed password hash") from exc

    def close(self) -> None:
        self._pool.shutdown(wait=True)
