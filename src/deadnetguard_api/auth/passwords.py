"""Admin password hashing.

bcrypt is deliberately slow, so both operations run in a worker thread to
keep the event loop free while a login is being checked.
"""

from __future__ import annotations

import asyncio
from functools import lru_cache

import bcrypt

from deadnetguard_api.domain.errors import AppError, validation_error

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise validation_error(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return encoded


def _hash_sync(password: str, rounds: int) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _verify_sync(password: str, password_hash: str) -> bool:
    try:
        encoded = _encode(password)
    except AppError:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))


@lru_cache(maxsize=8)
def _dummy_hash(rounds: int) -> str:
    return _hash_sync("dng-dummy-password", rounds)


async def hash_password(password: str, *, rounds: int) -> str:
    return await asyncio.to_thread(_hash_sync, password, rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(_verify_sync, password, password_hash)


async def burn_password_check(password: str, *, rounds: int) -> None:
    """Spend the same time as a real check so unknown usernames are not detectable."""
    await asyncio.to_thread(_verify_sync, password, _dummy_hash(rounds))
