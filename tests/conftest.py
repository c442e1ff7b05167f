from __future__ import annotations

import datetime as dt
import os
from collections.abc import Callable
from pathlib import Path

import psycopg
import pytest
import pytest_asyncio
from alembic import command
from alembic.config import Config
from httpx import ASGITransport, AsyncClient
from psycopg import sql
from sqlalchemy import delete
from sqlalchemy.engine import make_url

from deadnetguard_api.db.models import Base
from deadnetguard_api.db.session import create_sessionmaker
from deadnetguard_api.main import create_app
from deadnetguard_api.settings import get_settings
from deadnetguard_api.time import get_utcnow

# Cheap hashes keep the admin tests fast; the cost factor is not under test.
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("TOKEN_HASH_SECRET", "test-secret")


def _normalize_psycopg_dsn(url: str) -> str:
    if url.startswith("postgresql+asyncpg://"):
        return url.replace("postgresql+asyncpg://", "postgresql://", 1)
    if url.startswith("postgresql+psycopg://"):
        return url.replace("postgresql+psycopg://", "postgresql://", 1)
    return url


def _ensure_test_database_exists(test_url: str) -> None:
    url = make_url(test_url)
    if url.get_backend_name() != "postgresql":
        return
    if not url.database:
        raise RuntimeError("DATABASE_URL_TEST must include a database name.")
    admin_dsn = _normalize_psycopg_dsn(
        url.set(database="postgres").render_as_string(hide_password=False)
    )
    with psycopg.connect(admin_dsn, autocommit=True) as conn:
        exists = conn.execute(
            "select 1 from pg_database where datname = %s",
            (url.database,),
        ).fetchone()
        if not exists:
            conn.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(url.database)))


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    explicit = os.environ.get("DATABASE_URL_TEST") or os.environ.get("TEST_DATABASE_URL")
    if explicit:
        return explicit
    db_path = tmp_path_factory.mktemp("store") / "deadnetguard_test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.fixture(scope="session")
def alembic_config() -> Config:
    config_dir = Path(__file__).resolve().parents[1]
    cfg = Config(str(config_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(config_dir / "src/deadnetguard_api/db/migrations"))
    cfg.set_main_option("prepend_sys_path", str(config_dir / "src"))
    cfg.attributes["configure_logger"] = False
    return cfg


@pytest.fixture(scope="session", autouse=True)
def migrate_db(alembic_config: Config, test_database_url: str) -> None:
    os.environ["DATABASE_URL"] = test_database_url
    get_settings.cache_clear()
    _ensure_test_database_exists(test_database_url)
    command.upgrade(alembic_config, "head")


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_sessionmaker(fresh_settings):
    create_sessionmaker.cache_clear()
    sessionmaker = create_sessionmaker(get_settings().database_url)
    yield sessionmaker
    await sessionmaker.kw["bind"].dispose()
    create_sessionmaker.cache_clear()


@pytest_asyncio.fixture(autouse=True)
async def reset_db(db_sessionmaker):
    async with db_sessionmaker() as session:
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(delete(table))
        await session.commit()
    yield


@pytest_asyncio.fixture
async def client(db_sessionmaker):
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class FrozenClock:
    def __init__(self, start: dt.datetime) -> None:
        self.current = start

    def __call__(self) -> dt.datetime:
        return self.current

    def advance(self, **kwargs: float) -> dt.datetime:
        self.current = self.current + dt.timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.UTC))


@pytest_asyncio.fixture
async def clocked_client(db_sessionmaker, clock: FrozenClock):
    app = create_app()
    clock_fn: Callable[[], dt.datetime] = clock
    app.dependency_overrides[get_utcnow] = lambda: clock_fn
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
