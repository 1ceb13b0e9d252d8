from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from byggbot.domain.garanti.constants import (
    STANDARD_PRODUKTKONFIGURASJONER,
    TILBUD_FELT_ETIKETTER,
    HendelseType,
    ProsjektStatus,
    TilbudStatus,
)
from byggbot.domain.garanti.errors import ForretningsregelFeil, IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.models import ProduktKonfigurasjon, Tilbud, TilbudsBeregning
from byggbot.domain.garanti.schemas import (
    BeregningInn,
    PremieParametre,
    TilbudCreate,
    TilbudUpdate,
    parse_model,
)
from byggbot.services.hendelser import endringstekst, logg_hendelse
from byggbot.services.prosjekt import require_prosjekt, synkroniser_prosjekt_status


logger = logging.getLogger(__name__)

ORE = Decimal("0.01")


def _kr(value: Decimal) -> str:
    return format(value.quantize(ORE, rounding=ROUND_HALF_UP), "f")


async def require_tilbud(session: AsyncSession, tilbud_id: str) -> Tilbud:
    if not tilbud_id:
        raise ValideringsFeil("Tilbud-ID er påkrevd.")
    tilbud = await session.get(Tilbud, tilbud_id)
    if tilbud is None:
        raise IkkeFunnetFeil(f"Tilbud med ID {tilbud_id} finnes ikke.")
    return tilbud


async def _valider_produkttype(session: AsyncSession, produkttype: str | None) -> None:
    if produkttype is None:
        return
    if await get_produkt_konfigurasjon_by_navn(session, produktnavn=produkttype) is None:
        raise ValideringsFeil(f"Ugyldig produkttype: {produkttype}")


async def create_tilbud(
    session: AsyncSession,
    *,
    prosjekt_id: str,
    data: Mapping[str, Any] | TilbudCreate | None = None,
    opprettet_av_id: int | None = None,
) -> Tilbud:
    if not prosjekt_id:
        raise ValideringsFeil("Prosjekt-ID er påkrevd for å opprette tilbud.")
    payload = parse_model(TilbudCreate, data)
    prosjekt = await require_prosjekt(session, prosjekt_id)
    await _valider_produkttype(session, payload.produkttype)

    tilbud = Tilbud(
        prosjekt_id=prosjekt.id,
        status=payload.status or TilbudStatus.UTKAST,
        produkttype=payload.produkttype,
        prosjekttype=payload.prosjekttype,
        antall_enheter=payload.antall_enheter,
        versjonsnummer=1,
        opprettet_av_id=opprettet_av_id,
        endret_av_id=opprettet_av_id,
    )
    session.add(tilbud)
    await session.flush()

    logg_hendelse(
        session,
        hendelse_type=HendelseType.TILBUD_OPPRETTET,
        beskrivelse=f"Tilbud opprettet for prosjekt: {prosjekt.navn or 'Uten navn'}",
        utfort_av_id=opprettet_av_id,
        prosjekt_id=prosjekt.id,
    )
    await synkroniser_prosjekt_status(session, prosjekt_id=prosjekt.id, utfort_av_id=opprettet_av_id)
    await session.commit()
    logger.info("Tilbud %s opprettet for prosjekt %s av bruker %s", tilbud.id, prosjekt.id, opprettet_av_id)
    return tilbud


async def get_tilbud_by_id(session: AsyncSession, *, tilbud_id: str) -> Tilbud | None:
    if not tilbud_id:
        raise ValideringsFeil("Tilbud-ID er påkrevd.")
    stmt: Select[tuple[Tilbud]] = (
        select(Tilbud)
        .where(Tilbud.id == tilbud_id)
        .options(
            selectinload(Tilbud.beregning),
            selectinload(Tilbud.benefisienter),
            selectinload(Tilbud.enheter),
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_tilbud_by_prosjekt_id(session: AsyncSession, *, prosjekt_id: str) -> Sequence[Tilbud]:
    if not prosjekt_id:
        raise ValideringsFeil("Prosjekt-ID er påkrevd for å hente tilbud.")
    stmt: Select[tuple[Tilbud]] = (
        select(Tilbud)
        .where(Tilbud.prosjekt_id == prosjekt_id)
        .options(
            selectinload(Tilbud.beregning),
            selectinload(Tilbud.benefisienter),
            selectinload(Tilbud.enheter),
        )
        .order_by(Tilbud.opprettet_dato.asc())
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def update_tilbud(
    session: AsyncSession,
    *,
    tilbud_id: str,
    data: Mapping[str, Any],
    endret_av_id: int | None = None,
) -> Tilbud:
    payload = parse_model(TilbudUpdate, data)
    tilbud = await require_tilbud(session, tilbud_id)

    endringer: list[str] = []
    for felt, ny in payload.endrede_felt().items():
        if felt == "status" and ny is None:
            continue
        if felt == "produkttype" and ny != tilbud.produkttype:
            await _valider_produkttype(session, ny)
        gammel = getattr(tilbud, felt)
        if gammel == ny:
            continue
        setattr(tilbud, felt, ny)
        endringer.append(endringstekst(TILBUD_FELT_ETIKETTER[felt], gammel, ny))

    if not endringer:
        logger.info("Ingen faktiske dataendringer for tilbud %s", tilbud_id)
        return tilbud

    tilbud.versjonsnummer += 1
    tilbud.endret_av_id = endret_av_id
    logg_hendelse(
        session,
        hendelse_type=HendelseType.TILBUD_OPPDATERT,
        beskrivelse=f"Tilbud oppdatert (versjon {tilbud.versjonsnummer}). Endringer: " + "; ".join(endringer) + ".",
        utfort_av_id=endret_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await synkroniser_prosjekt_status(session, prosjekt_id=tilbud.prosjekt_id, utfort_av_id=endret_av_id)
    await session.commit()
    logger.info("Tilbud %s oppdatert av bruker %s", tilbud_id, endret_av_id)
    return tilbud


async def delete_tilbud(session: AsyncSession, *, tilbud_id: str, utfort_av_id: int | None = None) -> bool:
    if not tilbud_id:
        raise ValideringsFeil("Tilbud-ID er påkrevd for å slette tilbud.")
    tilbud = await get_tilbud_by_id(session, tilbud_id=tilbud_id)
    if tilbud is None:
        raise IkkeFunnetFeil(f"Tilbud med ID {tilbud_id} finnes ikke.")
    prosjekt = await require_prosjekt(session, tilbud.prosjekt_id)
    if prosjekt.status == ProsjektStatus.PRODUSERT:
        raise ForretningsregelFeil('Tilbud kan ikke slettes når prosjektet har status "Produsert".')

    # Kaskaden tar med beregning, enheter og benefisienter.
    await session.delete(tilbud)
    logg_hendelse(
        session,
        hendelse_type=HendelseType.TILBUD_SLETTET,
        beskrivelse=f"Tilbud (versjon {tilbud.versjonsnummer}) ble slettet.",
        utfort_av_id=utfort_av_id,
        prosjekt_id=prosjekt.id,
    )
    await synkroniser_prosjekt_status(session, prosjekt_id=prosjekt.id, utfort_av_id=utfort_av_id)
    await session.commit()
    logger.info("Tilbud %s slettet", tilbud_id)
    return True


async def save_beregning(
    session: AsyncSession,
    *,
    tilbud_id: str,
    data: Mapping[str, Any],
    endret_av_id: int | None = None,
) -> TilbudsBeregning:
    """Opprett eller oppdater beregningen for et tilbud og øk tilbudets versjon."""
    payload = parse_model(BeregningInn, data)
    tilbud = await require_tilbud(session, tilbud_id)
    if payload.start_dato and payload.slutt_dato and payload.slutt_dato < payload.start_dato:
        raise ValideringsFeil("Sluttdato kan ikke være før startdato.")

    result = await session.execute(select(TilbudsBeregning).where(TilbudsBeregning.tilbud_id == tilbud.id))
    beregning = result.scalar_one_or_none()
    ny = beregning is None
    if beregning is None:
        beregning = TilbudsBeregning(tilbud_id=tilbud.id)
        session.add(beregning)

    verdier = payload.model_dump()
    verdier["manuelt_overstyrt"] = bool(verdier.get("manuelt_overstyrt"))
    for felt, verdi in verdier.items():
        setattr(beregning, felt, verdi)

    tilbud.versjonsnummer += 1
    tilbud.endret_av_id = endret_av_id
    total = _kr(payload.total_premie) if payload.total_premie is not None else "ikke satt"
    logg_hendelse(
        session,
        hendelse_type=HendelseType.BEREGNING_LAGRET,
        beskrivelse=(
            f"Beregning {'opprettet' if ny else 'oppdatert'} for tilbud (versjon {tilbud.versjonsnummer}). "
            f"Total premie: {total}"
            + (" (manuelt overstyrt)" if beregning.manuelt_overstyrt else "")
        ),
        utfort_av_id=endret_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.flush()
    await session.commit()
    logger.info("Beregning lagret for tilbud %s", tilbud_id)
    return beregning


async def beregn_premie(
    session: AsyncSession,
    *,
    produkttype: str | None,
    parametre: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Standardpremie for et produkt.

    utførelsespremie = kontraktssum × standard utførelsesprosent
    garantipremie = kontraktssum × standard garantiprosent
    total = utførelsespremie + garantipremie + etableringsgebyr
    """
    if not produkttype:
        raise ValideringsFeil("Produkttype er påkrevd for automatisk beregning.")
    valg = parse_model(PremieParametre, parametre)
    konfig = await get_produkt_konfigurasjon_by_navn(session, produktnavn=produkttype)
    if konfig is None:
        raise IkkeFunnetFeil(f"Produktkonfigurasjon ikke funnet for produkttype: {produkttype}")
    if valg.kontraktssum is None or valg.kontraktssum <= 0:
        raise ValideringsFeil("Gyldig kontraktssum er påkrevd for beregning.")

    kontraktssum = valg.kontraktssum
    etableringsgebyr = valg.etableringsgebyr or Decimal("0")
    utforelses_premie = kontraktssum * konfig.standard_utforelse_prosent
    garanti_premie = kontraktssum * konfig.standard_garanti_prosent
    total_premie = utforelses_premie + garanti_premie + etableringsgebyr

    return {
        "kontraktssum": format(kontraktssum, "f"),
        "utforelsestid": valg.utforelsestid or konfig.standard_garantitid,
        "garantitid": valg.garantitid or konfig.standard_garantitid,
        "rentesatsUtforelse": format(konfig.standard_utforelse_prosent, "f"),
        "rentesatsGaranti": format(konfig.standard_garanti_prosent, "f"),
        "etableringsgebyr": format(etableringsgebyr, "f"),
        "utforelsesPremie": _kr(utforelses_premie),
        "garantiPremie": _kr(garanti_premie),
        "totalPremie": _kr(total_premie),
        "manueltOverstyrt": False,
    }


async def get_produkt_konfigurasjoner(session: AsyncSession) -> Sequence[ProduktKonfigurasjon]:
    stmt: Select[tuple[ProduktKonfigurasjon]] = (
        select(ProduktKonfigurasjon)
        .where(ProduktKonfigurasjon.aktiv.is_(True))
        .order_by(ProduktKonfigurasjon.produktnavn.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_produkt_konfigurasjon_by_navn(
    session: AsyncSession, *, produktnavn: str
) -> ProduktKonfigurasjon | None:
    if not produktnavn:
        raise ValideringsFeil("Produktnavn er påkrevd.")
    stmt = select(ProduktKonfigurasjon).where(ProduktKonfigurasjon.produktnavn == produktnavn)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def seed_produkt_konfigurasjoner(session: AsyncSession) -> int:
    """Legg inn standardproduktene som mangler. Returnerer antall nye rader."""
    result = await session.execute(select(ProduktKonfigurasjon.produktnavn))
    eksisterende = set(result.scalars().all())
    nye = 0
    for rad in STANDARD_PRODUKTKONFIGURASJONER:
        if rad["produktnavn"] in eksisterende:
            continue
        session.add(ProduktKonfigurasjon(aktiv=True, **rad))
        nye += 1
    if nye:
        await session.commit()
        logger.info("La inn %d produktkonfigurasjoner", nye)
    return nye


__all__ = [
    "beregn_premie",
    "create_tilbud",
    "delete_tilbud",
    "get_produkt_konfigurasjon_by_navn",
    "get_produkt_konfigurasjoner",
    "get_tilbud_by_id",
    "get_tilbud_by_prosjekt_id",
    "require_tilbud",
    "save_beregning",
    "seed_produkt_konfigurasjoner",
    "update_tilbud",
]
