"""Admin login sessions.

A session is a row keyed by the hash of an opaque bearer token. It lives for a
fixed TTL from login and is removed on logout, on password change (every
session of that admin), when verification finds it expired, and by the sweep
that runs on each login.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.auth.passwords import burn_password_check, hash_password, verify_password
from deadnetguard_api.auth.tokens import generate_opaque_token, hash_opaque_token
from deadnetguard_api.db.models import Admin, AdminSession
from deadnetguard_api.domain.errors import auth_required, invalid_credentials
from deadnetguard_api.observability.ops import observe_operation
from deadnetguard_api.settings import Settings
from deadnetguard_api.time import UtcNow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: dt.datetime


async def sweep_expired_sessions(db: AsyncSession, *, now: dt.datetime) -> int:
    result = await db.execute(delete(AdminSession).where(AdminSession.expires_at <= now))
    return result.rowcount or 0


async def login(
    *,
    db: AsyncSession,
    username: str,
    password: str,
    settings: Settings,
    now: UtcNow,
) -> IssuedSession:
    async with observe_operation("admin_login"):
        admin = await db.scalar(select(Admin).where(Admin.username == username))
        if admin is None:
            await burn_password_check(password, rounds=settings.password_hash_rounds)
            raise invalid_credentials()
        if not await verify_password(password, admin.password_hash):
            raise invalid_credentials()

        timestamp = now()
        swept = await sweep_expired_sessions(db, now=timestamp)
        token = generate_opaque_token()
        expires_at = timestamp + dt.timedelta(seconds=settings.session_ttl_seconds)
        db.add(
            AdminSession(
                admin_id=admin.id,
                token_hash=hash_opaque_token(token, settings),
                created_at=timestamp,
                expires_at=expires_at,
            )
        )
        await db.commit()
        logger.info("admin_login", extra={"admin_id": str(admin.id), "sessions_swept": swept})
        return IssuedSession(token=token, expires_at=expires_at)


async def verify_session(
    *,
    db: AsyncSession,
    token: str | None,
    settings: Settings,
    now: UtcNow,
) -> Admin:
    if not token:
        raise auth_required("No token provided")

    session = await db.scalar(
        select(AdminSession).where(AdminSession.token_hash == hash_opaque_token(token, settings))
    )
    if session is None:
        raise auth_required("Invalid or expired token")
    if session.is_expired(now()):
        await db.delete(session)
        await db.commit()
        raise auth_required("Invalid or expired token")

    admin = await db.get(Admin, session.admin_id)
    if admin is None:
        raise auth_required("Invalid or expired token")
    return admin


async def logout(*, db: AsyncSession, token: str | None, settings: Settings) -> None:
    if not token:
        return
    await db.execute(
        delete(AdminSession).where(AdminSession.token_hash == hash_opaque_token(token, settings))
    )
    await db.commit()


async def change_password(
    *,
    db: AsyncSession,
    admin: Admin,
    current_password: str,
    new_password: str,
    settings: Settings,
) -> None:
    async with observe_operation("admin_change_password"):
        if not await verify_password(current_password, admin.password_hash):
            raise invalid_credentials()

        admin.password_hash = await hash_password(new_password, rounds=settings.password_hash_rounds)
        await db.execute(delete(AdminSession).where(AdminSession.admin_id == admin.id))
        await db.commit()
        logger.info("admin_password_changed", extra={"admin_id": str(admin.id)})
