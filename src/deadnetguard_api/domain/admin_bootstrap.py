"""First-admin bootstrap.

"No admin exists yet" is a statement about missing rows, which a unique
constraint cannot protect. The check and the insert therefore share one
SERIALIZABLE transaction (SQLite serializes writers with BEGIN IMMEDIATE), and
a loser of that race is told the admin already exists after re-checking.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.auth.passwords import hash_password
from deadnetguard_api.db.models import Admin
from deadnetguard_api.domain.errors import AppError
from deadnetguard_api.observability.ops import observe_operation
from deadnetguard_api.settings import Settings
from deadnetguard_api.time import UtcNow

logger = logging.getLogger(__name__)


def admin_already_exists() -> AppError:
    return AppError(code="admin_already_exists", message="Admin already exists", status_code=409)


async def _admin_exists(db: AsyncSession) -> bool:
    count = await db.scalar(select(func.count()).select_from(Admin))
    return bool(count)


async def bootstrap_admin(
    *,
    db: AsyncSession,
    username: str,
    password: str,
    settings: Settings,
    now: UtcNow,
) -> Admin:
    """Create the first admin. Must be called on a session with no work in progress."""
    async with observe_operation("admin_bootstrap"):
        # Hash before opening the transaction so the serializable window stays short.
        password_hash = await hash_password(password, rounds=settings.password_hash_rounds)

        if db.bind.dialect.name != "sqlite":
            await db.connection(execution_options={"isolation_level": "SERIALIZABLE"})

        try:
            if await _admin_exists(db):
                raise admin_already_exists()
            admin = Admin(username=username, password_hash=password_hash, created_at=now())
            db.add(admin)
            await db.commit()
        except DBAPIError:
            # Unique username clash or serialization failure from a concurrent bootstrap.
            await db.rollback()
            if await _admin_exists(db):
                raise admin_already_exists() from None
            raise

        logger.info("admin_bootstrapped", extra={"admin_id": str(admin.id)})
        return admin
