"""Security helpers (hashing and verification)."""

from __future__ import annotations

from functools import lru_cache

from argon2 import PasswordHasher, exceptions as argon_exc

from .config import get_settings

# Verified against when the account does not exist, so unknown emails cost a hash too.
_DUMMY_PASSWORD = "not-a-real-password"


@lru_cache
def get_hasher() -> PasswordHasher:
    settings = get_settings()
    return PasswordHasher(
        time_cost=max(1, settings.password_hash_time_cost),
        memory_cost=max(1024, settings.password_hash_memory_cost),
    )


@lru_cache
def _dummy_hash() -> str:
    return get_hasher().hash(_DUMMY_PASSWORD)


def hash_password(password: str) -> str:
    """Create a salted Argon2 hash; the plaintext is not kept anywhere."""
    if not password:
        raise ValueError("password must not be empty")
    return get_hasher().hash(password)


def verify_password(password: str, stored_hash: str | None) -> bool:
    stored = stored_hash or ""
    if not stored:
        # keep timing close to a real comparison
        stored = _dummy_hash()
        password = password + "\0"
    try:
        return get_hasher().verify(stored, password or "")
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def needs_rehash(stored_hash: str) -> bool:
    """True when the hash was produced with other cost parameters than the current ones."""
    try:
        return get_hasher().check_needs_rehash(stored_hash)
    except argon_exc.InvalidHashError:
        return True
