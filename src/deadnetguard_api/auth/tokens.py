from __future__ import annotations

import hashlib
import secrets

from deadnetguard_api.settings import Settings

_BEARER_PREFIX = "bearer "


def generate_opaque_token() -> str:
    return secrets.token_urlsafe(32)


def hash_opaque_token(token: str, settings: Settings) -> str:
    payload = (token + settings.token_hash_secret).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def parse_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if value[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = value[len(_BEARER_PREFIX) :].strip()
    return token or None
