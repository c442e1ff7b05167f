from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from deadnetguard_api.auth.tokens import parse_bearer_token
from deadnetguard_api.db.models import Admin
from deadnetguard_api.db.session import DbSessionDep
from deadnetguard_api.domain.admin_sessions import verify_session
from deadnetguard_api.settings import Settings, get_settings
from deadnetguard_api.time import UtcNow, get_utcnow


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str | None:
    return parse_bearer_token(authorization)


BearerToken = Annotated[str | None, Depends(get_bearer_token)]


async def require_admin(
    db: DbSessionDep,
    token: BearerToken,
    settings: Annotated[Settings, Depends(get_settings)],
    now: Annotated[UtcNow, Depends(get_utcnow)],
) -> Admin:
    return await verify_session(db=db, token=token, settings=settings, now=now)


CurrentAdmin = Annotated[Admin, Depends(require_admin)]
