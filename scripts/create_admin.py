"""Create the first admin account from the command line.

Same rules as POST /v1/admin/setup: it only succeeds while no admin exists,
so it is safe to run against a live deployment.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import os
import sys

from deadnetguard_api.db.session import create_sessionmaker
from deadnetguard_api.domain.admin_bootstrap import bootstrap_admin
from deadnetguard_api.domain.errors import AppError
from deadnetguard_api.settings import get_settings
from deadnetguard_api.time import utcnow


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the first DeadNetGuard admin.")
    parser.add_argument("--username", default=os.environ.get("DNG_ADMIN_USERNAME", "admin"))
    parser.add_argument(
        "--password",
        default=os.environ.get("DNG_ADMIN_PASSWORD"),
        help="Prompted for when omitted.",
    )
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    password = args.password or getpass.getpass("Admin password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters.", file=sys.stderr)
        return 2

    settings = get_settings()
    sessionmaker = create_sessionmaker(settings.database_url)
    try:
        async with sessionmaker() as db:
            admin = await bootstrap_admin(
                db=db, username=args.username, password=password, settings=settings, now=utcnow
            )
    except AppError as exc:
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        await sessionmaker.kw["bind"].dispose()

    print(f"Created admin {admin.username} ({admin.id}).")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
