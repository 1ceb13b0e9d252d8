from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from byggbot.infrastructure.config import SETTINGS


logger = logging.getLogger(__name__)

PROSJEKTROT = Path(__file__).resolve().parents[3]
ASYNC_DRIVERE = {
    "postgresql": "postgresql+psycopg_async",
    "postgres": "postgresql+psycopg_async",
    "sqlite": "sqlite+aiosqlite",
}


def database_url() -> str:
    """
    Finn database-URL for den asynkrone motoren.

    `DATABASE_URL` vinner. Uten den brukes en lokal SQLite-fil
    (`LOCAL_SQLITE_PATH`, relativ til prosjektroten).
    """
    raw = os.getenv("DATABASE_URL", "").strip()
    if not raw:
        fil = (PROSJEKTROT / os.getenv("LOCAL_SQLITE_PATH", "data/byggbot.db")).resolve()
        fil.parent.mkdir(parents=True, exist_ok=True)
        logger.warning("DATABASE_URL mangler, bruker lokal SQLite-database %s", fil)
        return f"sqlite+aiosqlite:///{fil}"

    url = make_url(raw)
    url = url.set(drivername=ASYNC_DRIVERE.get(url.get_backend_name(), url.drivername))
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        url = url.set(database=str((PROSJEKTROT / url.database).resolve()))
    return url.render_as_string(hide_password=False)


DATABASE_URL = database_url()


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def configure_sqlite(target: AsyncEngine) -> None:
    """
    Slå på fremmednøkler og ekte transaksjoner for SQLite.

    Driveren starter ellers ikke BEGIN før første skriving, og SAVEPOINT
    (`session.begin_nested()`) blir da ikke isolert.
    """
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # pragma: no cover - driver hook
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(target.sync_engine, "begin")
    def _on_begin(conn) -> None:  # pragma: no cover - driver hook
        conn.exec_driver_sql("BEGIN")


engine: AsyncEngine = create_async_engine(DATABASE_URL, echo=SETTINGS.DB_ECHO)
configure_sqlite(engine)
SessionMaker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionMaker() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Åpne en sesjon som committes ved suksess og rulles tilbake ved feil."""
    async with SessionMaker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_models() -> None:
    """Create database tables if they do not already exist."""
    # Registrer modellene på Base.metadata før create_all.
    from byggbot.domain.garanti import models  # noqa: F401

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


__all__ = [
    "Base",
    "DATABASE_URL",
    "database_url",
    "SessionMaker",
    "configure_sqlite",
    "engine",
    "get_session",
    "init_models",
    "session_scope",
]
