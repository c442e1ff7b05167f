from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from deadnetguard_api.settings import Settings


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    # The sqlite3 driver defers BEGIN and ignores SAVEPOINT scoping unless it is
    # told to stay out of transaction handling. BEGIN IMMEDIATE takes the write
    # lock up front so concurrent writers queue on the busy timeout instead of
    # failing with "database is locked" on lock upgrade.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(connection: Any) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(settings: Settings, database_url: str | None = None, **kwargs: Any) -> AsyncEngine:
    url = make_url(database_url or settings.database_url)
    connect_args: dict[str, Any] = {}
    engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        connect_args["timeout"] = settings.db_command_timeout_seconds
    elif url.get_driver_name() == "asyncpg":
        connect_args["timeout"] = settings.db_connect_timeout_seconds
        connect_args["command_timeout"] = settings.db_command_timeout_seconds

    if "poolclass" not in kwargs:
        engine_kwargs["pool_timeout"] = settings.db_pool_timeout_seconds
    engine_kwargs.update(kwargs)

    engine = create_async_engine(url, connect_args=connect_args, **engine_kwargs)
    if url.get_backend_name() == "sqlite":
        _install_sqlite_hooks(engine)
    return engine
