from __future__ import annotations

import logging
from decimal import ROUND_DOWN, Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from byggbot.domain.garanti.constants import MAKS_ANTALL_ENHETER, PROSJEKT_TYPER, HendelseType
from byggbot.domain.garanti.errors import ForretningsregelFeil, IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.models import Enhet
from byggbot.domain.garanti.schemas import AutoGenererEnheterInn, EnhetInn, parse_model
from byggbot.services.hendelser import endringstekst, logg_hendelse
from byggbot.services.tilbud import require_tilbud


logger = logging.getLogger(__name__)

HUNDRE = Decimal("100")
ORE = Decimal("0.01")

ENHET_FELT_ETIKETTER: dict[str, str] = {
    "betegnelse": "Betegnelse",
    "enhetsnummer": "Enhetsnummer",
    "enhetstype": "Enhetstype",
    "andel_av_helhet": "Andel av helhet",
    "kommentar": "Kommentar",
}


def fordel_andeler(antall: int) -> list[Decimal]:
    """Del 100 % likt på `antall` enheter med to desimaler; siste enhet tar resten."""
    if antall < 1:
        return []
    per_enhet = (HUNDRE / antall).quantize(ORE, rounding=ROUND_DOWN)
    andeler = [per_enhet] * (antall - 1)
    andeler.append(HUNDRE - per_enhet * (antall - 1))
    return andeler


async def require_enhet(session: AsyncSession, enhet_id: str) -> Enhet:
    if not enhet_id:
        raise ValideringsFeil("Enhet-ID er påkrevd.")
    enhet = await session.get(Enhet, enhet_id)
    if enhet is None:
        raise IkkeFunnetFeil(f"Enhet med ID {enhet_id} finnes ikke.")
    return enhet


async def get_enheter(session: AsyncSession, *, tilbud_id: str) -> Sequence[Enhet]:
    if not tilbud_id:
        raise ValideringsFeil("Tilbud-ID er påkrevd for å hente enheter.")
    stmt: Select[tuple[Enhet]] = (
        select(Enhet)
        .where(Enhet.tilbud_id == tilbud_id)
        .order_by(Enhet.enhetsnummer.asc(), Enhet.betegnelse.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def create_enhet(
    session: AsyncSession,
    *,
    tilbud_id: str,
    data: Mapping[str, Any],
    utfort_av_id: int | None = None,
) -> Enhet:
    payload = parse_model(EnhetInn, data)
    tilbud = await require_tilbud(session, tilbud_id)
    if not payload.betegnelse:
        raise ValideringsFeil("Betegnelse er påkrevd for enhet.")

    verdier = payload.model_dump()
    if verdier["enhetsnummer"] is None:
        siste = await session.execute(
            select(func.max(Enhet.enhetsnummer)).where(Enhet.tilbud_id == tilbud.id)
        )
        verdier["enhetsnummer"] = (siste.scalar_one() or 0) + 1

    enhet = Enhet(tilbud_id=tilbud.id, **verdier)
    session.add(enhet)
    await session.flush()
    logg_hendelse(
        session,
        hendelse_type=HendelseType.ENHET_OPPRETTET,
        beskrivelse=f"Enhet {enhet.betegnelse} opprettet.",
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.commit()
    return enhet


async def update_enhet(
    session: AsyncSession,
    *,
    enhet_id: str,
    data: Mapping[str, Any],
    utfort_av_id: int | None = None,
) -> Enhet:
    payload = parse_model(EnhetInn, data)
    enhet = await require_enhet(session, enhet_id)
    tilbud = await require_tilbud(session, enhet.tilbud_id)

    endringer: list[str] = []
    for felt, ny in payload.endrede_felt().items():
        if felt == "betegnelse" and not ny:
            raise ValideringsFeil("Betegnelse kan ikke være tom.")
        gammel = getattr(enhet, felt)
        if gammel == ny:
            continue
        setattr(enhet, felt, ny)
        endringer.append(endringstekst(ENHET_FELT_ETIKETTER[felt], gammel, ny))

    if not endringer:
        return enhet

    logg_hendelse(
        session,
        hendelse_type=HendelseType.ENHET_OPPDATERT,
        beskrivelse=f"Enhet {enhet.betegnelse} oppdatert. Endringer: " + "; ".join(endringer) + ".",
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.flush()
    await session.commit()
    return enhet


async def delete_enhet(session: AsyncSession, *, enhet_id: str, utfort_av_id: int | None = None) -> bool:
    """Slett en enhet sammen med benefisientene som er knyttet til den."""
    enhet = await require_enhet(session, enhet_id)
    tilbud = await require_tilbud(session, enhet.tilbud_id)
    betegnelse = enhet.betegnelse
    await session.delete(enhet)
    logg_hendelse(
        session,
        hendelse_type=HendelseType.ENHET_SLETTET,
        beskrivelse=f"Enhet {betegnelse} ble slettet.",
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.commit()
    logger.info("Enhet %s slettet", enhet_id)
    return True


async def auto_generer_enheter(
    session: AsyncSession,
    *,
    data: Mapping[str, Any],
    utfort_av_id: int | None = None,
) -> Sequence[Enhet]:
    """
    Generer enheter for et tilbud fra malen for prosjekttypen.

    Andelene fordeles likt og summerer til nøyaktig 100. Tilbudets
    prosjekttype og antall enheter oppdateres til det som ble generert.
    """
    payload = parse_model(AutoGenererEnheterInn, data)
    mal = PROSJEKT_TYPER.get(payload.prosjekttype)
    if mal is None:
        raise ValideringsFeil(f"Ukjent prosjekttype: {payload.prosjekttype}")
    if not mal.get("har_enheter"):
        raise ValideringsFeil(f"Prosjekttypen {mal['label']} har ikke enheter.")

    antall = int(mal.get("fast_antall") or payload.antall_enheter)
    if antall < 1 or antall > MAKS_ANTALL_ENHETER:
        raise ValideringsFeil(f"Antall enheter må være mellom 1 og {MAKS_ANTALL_ENHETER}.")

    tilbud = await require_tilbud(session, payload.tilbud_id)
    eksisterende = await session.execute(select(func.count(Enhet.id)).where(Enhet.tilbud_id == tilbud.id))
    if eksisterende.scalar_one():
        raise ForretningsregelFeil("Tilbudet har allerede enheter. Slett eksisterende enheter først.")

    enheter: list[Enhet] = []
    for nummer, andel in enumerate(fordel_andeler(antall), start=1):
        betegnelse = f"{mal['betegnelse']} {nummer}" if mal.get("nummerert") else str(mal["betegnelse"])
        enhet = Enhet(
            tilbud_id=tilbud.id,
            betegnelse=betegnelse,
            enhetsnummer=nummer,
            enhetstype=str(mal["enhetstype"]),
            andel_av_helhet=andel,
        )
        session.add(enhet)
        enheter.append(enhet)

    tilbud.prosjekttype = payload.prosjekttype
    tilbud.antall_enheter = antall
    logg_hendelse(
        session,
        hendelse_type=HendelseType.ENHETER_GENERERT,
        beskrivelse=f"{antall} enheter generert automatisk for prosjekttype {mal['label']}.",
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.flush()
    await session.commit()
    logger.info("Genererte %d enheter for tilbud %s", antall, tilbud.id)
    return enheter


async def slett_alle_enheter(
    session: AsyncSession,
    *,
    tilbud_id: str,
    utfort_av_id: int | None = None,
) -> dict[str, int]:
    tilbud = await require_tilbud(session, tilbud_id)
    stmt = (
        select(Enhet)
        .where(Enhet.tilbud_id == tilbud.id)
        .options(selectinload(Enhet.benefisienter))
    )
    enheter = (await session.execute(stmt)).scalars().all()
    for enhet in enheter:
        await session.delete(enhet)

    if enheter:
        logg_hendelse(
            session,
            hendelse_type=HendelseType.ENHET_SLETTET,
            beskrivelse=f"Alle enheter ({len(enheter)}) og tilknyttede benefisienter ble slettet.",
            utfort_av_id=utfort_av_id,
            prosjekt_id=tilbud.prosjekt_id,
        )
    await session.commit()
    logger.info("Slettet %d enheter for tilbud %s", len(enheter), tilbud.id)
    return {"antallSlettet": len(enheter)}


__all__ = [
    "auto_generer_enheter",
    "create_enhet",
    "delete_enhet",
    "fordel_andeler",
    "get_enheter",
    "require_enhet",
    "slett_alle_enheter",
    "update_enhet",
]
