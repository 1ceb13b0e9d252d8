from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from byggbot.domain.garanti.constants import SELSKAP_FELT_ETIKETTER, HendelseType
from byggbot.domain.garanti.errors import ForretningsregelFeil, IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.models import GarantiProsjekt, Selskap
from byggbot.domain.garanti.schemas import (
    SelskapCreate,
    SelskapFilter,
    SelskapUpdate,
    parse_model,
)
from byggbot.services.hendelser import endringstekst, logg_hendelse


logger = logging.getLogger(__name__)

MAKS_SOKETREFF = 50
DUPLIKAT_ORGNR = "Et selskap med dette organisasjonsnummeret finnes allerede."


def dagstart(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def dagslutt_eksklusiv(value: date) -> datetime:
    """Første øyeblikk etter dagen, slik at et «før»-filter tar med hele dagen."""
    return datetime.combine(value + timedelta(days=1), time.min, tzinfo=timezone.utc)


async def get_selskap_by_orgnr(session: AsyncSession, *, organisasjonsnummer: str) -> Selskap | None:
    stmt: Select[tuple[Selskap]] = select(Selskap).where(Selskap.organisasjonsnummer == organisasjonsnummer)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_selskap_by_id(session: AsyncSession, *, selskap_id: str) -> Selskap | None:
    if not selskap_id:
        raise ValideringsFeil("Selskaps-ID er påkrevd.")
    stmt: Select[tuple[Selskap]] = (
        select(Selskap)
        .where(Selskap.id == selskap_id)
        .options(
            selectinload(Selskap.prosjekter),
            selectinload(Selskap.dokumenter),
            selectinload(Selskap.hendelser),
            selectinload(Selskap.kommentarer),
        )
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def require_selskap(session: AsyncSession, selskap_id: str) -> Selskap:
    selskap = await session.get(Selskap, selskap_id)
    if selskap is None:
        raise IkkeFunnetFeil(f"Selskap med ID {selskap_id} finnes ikke.")
    return selskap


async def create_selskap(
    session: AsyncSession,
    *,
    data: Mapping[str, Any] | SelskapCreate,
    utfort_av_id: int | None = None,
    commit: bool = True,
) -> Selskap:
    payload = parse_model(SelskapCreate, data)
    if not payload.selskapsnavn:
        raise ValideringsFeil("Organisasjonsnummer og selskapsnavn er påkrevd for å opprette et selskap.")

    eksisterende = await get_selskap_by_orgnr(session, organisasjonsnummer=payload.organisasjonsnummer)
    if eksisterende is not None:
        raise ForretningsregelFeil(DUPLIKAT_ORGNR)

    selskap = Selskap(**payload.model_dump())
    session.add(selskap)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise ForretningsregelFeil(DUPLIKAT_ORGNR) from exc

    logg_hendelse(
        session,
        hendelse_type=HendelseType.SELSKAP_OPPRETTET,
        beskrivelse=f"Selskap {selskap.selskapsnavn} (org.nr: {selskap.organisasjonsnummer}) ble opprettet.",
        utfort_av_id=utfort_av_id,
        selskap_id=selskap.id,
    )
    if commit:
        await session.commit()
    logger.info("Selskap %s opprettet (%s)", selskap.id, selskap.organisasjonsnummer)
    return selskap


async def find_selskap(session: AsyncSession, *, search_term: str) -> Sequence[Selskap]:
    if not isinstance(search_term, str):
        raise ValideringsFeil("Søketerm må være en streng.")
    term = search_term.strip()
    if not term:
        return []
    pattern = f"%{term}%"
    stmt: Select[tuple[Selskap]] = (
        select(Selskap)
        .where(
            or_(
                Selskap.organisasjonsnummer.ilike(pattern),
                Selskap.selskapsnavn.ilike(pattern),
                Selskap.kundenummer_wims.ilike(pattern),
            )
        )
        .order_by(Selskap.selskapsnavn.asc())
        .limit(MAKS_SOKETREFF)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def update_selskap(
    session: AsyncSession,
    *,
    selskap_id: str,
    data: Mapping[str, Any],
    utfort_av_id: int | None = None,
) -> Selskap:
    if not selskap_id:
        raise ValideringsFeil("Selskaps-ID er påkrevd.")
    raw = dict(data or {})
    selskap = await require_selskap(session, selskap_id)

    nytt_orgnr = raw.get("organisasjonsnummer")
    if nytt_orgnr is not None and str(nytt_orgnr).strip() != selskap.organisasjonsnummer:
        raise ValideringsFeil("Organisasjonsnummer kan ikke endres etter at selskapet er opprettet.")

    payload = parse_model(SelskapUpdate, raw)
    endringer: list[str] = []
    for felt, ny in payload.endrede_felt().items():
        if felt == "selskapsnavn" and not ny:
            raise ValideringsFeil("Selskapsnavn kan ikke være tomt.")
        gammel = getattr(selskap, felt)
        if gammel == ny:
            continue
        setattr(selskap, felt, ny)
        endringer.append(endringstekst(SELSKAP_FELT_ETIKETTER[felt], gammel, ny))

    if not endringer:
        logger.info("Ingen faktiske dataendringer for selskap %s", selskap_id)
        return selskap

    logg_hendelse(
        session,
        hendelse_type=HendelseType.SELSKAP_OPPDATERT,
        beskrivelse="Selskapsopplysninger oppdatert. Endringer: " + "; ".join(endringer) + ".",
        utfort_av_id=utfort_av_id,
        selskap_id=selskap.id,
    )
    await session.flush()
    await session.commit()
    logger.info("Selskap %s oppdatert. Endringer: %s", selskap_id, "; ".join(endringer))
    return selskap


async def get_selskaper(
    session: AsyncSession,
    *,
    filtre: Mapping[str, Any] | SelskapFilter | None = None,
) -> list[tuple[Selskap, int]]:
    """Selskaper med antall prosjekter, filtrert og sortert."""
    valg = parse_model(SelskapFilter, filtre)
    antall = func.count(GarantiProsjekt.id)
    stmt = (
        select(Selskap, antall)
        .outerjoin(GarantiProsjekt, GarantiProsjekt.selskap_id == Selskap.id)
        .group_by(Selskap.id)
    )
    if valg.opprettet_etter:
        stmt = stmt.where(Selskap.opprettet_dato >= dagstart(valg.opprettet_etter))
    if valg.opprettet_for:
        stmt = stmt.where(Selskap.opprettet_dato < dagslutt_eksklusiv(valg.opprettet_for))
    if valg.endret_etter:
        stmt = stmt.where(Selskap.updated_at >= dagstart(valg.endret_etter))
    if valg.endret_for:
        stmt = stmt.where(Selskap.updated_at < dagslutt_eksklusiv(valg.endret_for))

    sorteringer = {
        "opprettetDato": Selskap.opprettet_dato,
        "updatedAt": Selskap.updated_at,
        "updated_at": Selskap.updated_at,
        "selskapsnavn": Selskap.selskapsnavn,
    }
    if valg.sort_by:
        kolonne = sorteringer[valg.sort_by]
        stmt = stmt.order_by(kolonne.asc() if valg.sort_order == "asc" else kolonne.desc())
    else:
        stmt = stmt.order_by(Selskap.updated_at.desc(), Selskap.selskapsnavn.asc())
    if valg.take:
        stmt = stmt.limit(valg.take)

    result = await session.execute(stmt)
    return [(selskap, int(count)) for selskap, count in result.all()]


__all__ = [
    "DUPLIKAT_ORGNR",
    "create_selskap",
    "dagslutt_eksklusiv",
    "dagstart",
    "find_selskap",
    "get_selskap_by_id",
    "get_selskap_by_orgnr",
    "get_selskaper",
    "require_selskap",
    "update_selskap",
]
