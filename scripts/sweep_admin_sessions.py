from __future__ import annotations

import asyncio

from deadnetguard_api.db.session import create_sessionmaker
from deadnetguard_api.domain.admin_sessions import sweep_expired_sessions
from deadnetguard_api.settings import get_settings
from deadnetguard_api.time import utcnow


async def main() -> None:
    settings = get_settings()
    sessionmaker = create_sessionmaker(settings.database_url)
    async with sessionmaker() as db:
        removed = await sweep_expired_sessions(db, now=utcnow())
        await db.commit()
    await sessionmaker.kw["bind"].dispose()

    print(f"Removed {removed} expired admin sessions.")


if __name__ == "__main__":
    asyncio.run(main())
