from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from byggbot.domain.garanti import models  # noqa: F401
from byggbot.domain.garanti.models import Bruker
from byggbot.infrastructure.db import Base, configure_sqlite
from byggbot.services.tilbud import seed_produkt_konfigurasjoner


def lag_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    configure_sqlite(engine)
    return engine


@pytest_asyncio.fixture
async def session():
    engine = lag_engine()
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as db:
        yield db
    await engine.dispose()


@pytest_asyncio.fixture
async def produkter(session):
    await seed_produkt_konfigurasjoner(session)
    return session


@pytest_asyncio.fixture
async def raadgiver(session):
    bruker = Bruker(navn="Kari Rådgiver", email="kari@example.no", rolle="RAADGIVER")
    session.add(bruker)
    await session.commit()
    return bruker


@pytest.fixture
def garanti_foresporsel():
    return {
        "organisasjonsnummer": "987654321",
        "selskapsnavn": "Byggmester AS",
        "gateadresse": "Storgata 1",
        "postnummer": "0155",
        "poststed": "Oslo",
        "prosjektNavn": "Solsiden Boligblokk",
        "prosjektKommune": "Oslo",
        "produkt": "Utføringsgaranti",
    }
