"""Benefisienter per tilbud og enhet.

Summen av aktive andeler innenfor samme omfang (tilbud + enhet, eller tilbud
uten enhet for udelte prosjekter) kan aldri overstige 100 %. Benefisienter
deaktiveres heller enn å slettes, slik at historiske fordelinger kan spores.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.domain.garanti.constants import BenefisientType, HendelseType
from byggbot.domain.garanti.errors import ForretningsregelFeil, IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.models import Benefisient, Enhet
from byggbot.domain.garanti.schemas import BenefisientInn, parse_model
from byggbot.services.hendelser import logg_hendelse
from byggbot.services.tilbud import require_tilbud


logger = logging.getLogger(__name__)

HUNDRE = Decimal("100")


def _prosent(value: Decimal) -> str:
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _naa() -> datetime:
    return datetime.now(timezone.utc)


async def _sum_andre_aktive(
    session: AsyncSession,
    *,
    tilbud_id: str,
    enhet_id: str | None,
    unntatt_id: str | None = None,
) -> Decimal:
    stmt = select(func.coalesce(func.sum(Benefisient.andel), 0)).where(
        Benefisient.tilbud_id == tilbud_id,
        Benefisient.aktiv.is_(True),
    )
    if enhet_id is None:
        stmt = stmt.where(Benefisient.enhet_id.is_(None))
    else:
        stmt = stmt.where(Benefisient.enhet_id == enhet_id)
    if unntatt_id is not None:
        stmt = stmt.where(Benefisient.id != unntatt_id)
    total = (await session.execute(stmt)).scalar_one()
    return Decimal(str(total))


async def sjekk_andel(
    session: AsyncSession,
    *,
    tilbud_id: str,
    enhet_id: str | None,
    andel: Decimal,
    unntatt_id: str | None = None,
) -> Decimal:
    """Avvis andelen hvis omfanget da går over 100 %. Returnerer gjenstående andel før endringen."""
    andre = await _sum_andre_aktive(session, tilbud_id=tilbud_id, enhet_id=enhet_id, unntatt_id=unntatt_id)
    gjenstaende = HUNDRE - andre
    if andre + andel > HUNDRE:
        raise ForretningsregelFeil(
            f"Total andel kan ikke overskride 100%. Gjenstående: {_prosent(gjenstaende)}%"
        )
    return gjenstaende


def _valider_felter(verdier: dict[str, Any]) -> dict[str, Any]:
    raw_type = verdier.get("type")
    try:
        btype = BenefisientType(raw_type)
    except ValueError:
        raise ValideringsFeil(f"Ugyldig benefisienttype: {raw_type}") from None
    verdier["type"] = btype

    if not verdier.get("navn"):
        raise ValideringsFeil("Navn er påkrevd for benefisient.")

    if btype is BenefisientType.JURIDISK:
        orgnr = verdier.get("organisasjonsnummer")
        if not orgnr or len(orgnr) != 9 or not orgnr.isdigit():
            raise ValideringsFeil("Organisasjonsnummer (9 siffer) er påkrevd for juridisk benefisient.")
        verdier["personident"] = None
    else:
        ident = verdier.get("personident")
        if not ident or len(ident) != 11 or not ident.isdigit():
            raise ValideringsFeil("Personident (11 siffer) er påkrevd for fysisk benefisient.")
        verdier["organisasjonsnummer"] = None

    andel = verdier.get("andel")
    if andel is None or andel <= 0 or andel > HUNDRE:
        raise ValideringsFeil("Andel må være mellom 0 og 100 prosent.")
    return verdier


async def _valider_enhet(session: AsyncSession, *, tilbud_id: str, enhet_id: str | None) -> None:
    if enhet_id is None:
        return
    enhet = await session.get(Enhet, enhet_id)
    if enhet is None:
        raise IkkeFunnetFeil(f"Enhet med ID {enhet_id} finnes ikke.")
    if enhet.tilbud_id != tilbud_id:
        raise ValideringsFeil("Enheten tilhører ikke samme tilbud som benefisienten.")


async def require_benefisient(session: AsyncSession, benefisient_id: str) -> Benefisient:
    if not benefisient_id:
        raise ValideringsFeil("Benefisient-ID er påkrevd.")
    benefisient = await session.get(Benefisient, benefisient_id)
    if benefisient is None:
        raise IkkeFunnetFeil(f"Benefisient med ID {benefisient_id} finnes ikke.")
    return benefisient


async def get_benefisienter(
    session: AsyncSession,
    *,
    tilbud_id: str,
    enhet_id: str | None = None,
    kun_aktive: bool = False,
) -> Sequence[Benefisient]:
    if not tilbud_id:
        raise ValideringsFeil("Tilbud-ID er påkrevd for å hente benefisienter.")
    stmt: Select[tuple[Benefisient]] = select(Benefisient).where(Benefisient.tilbud_id == tilbud_id)
    if enhet_id is not None:
        stmt = stmt.where(Benefisient.enhet_id == enhet_id)
    if kun_aktive:
        stmt = stmt.where(Benefisient.aktiv.is_(True))
    stmt = stmt.order_by(Benefisient.opprettet_dato.asc(), Benefisient.navn.asc())
    result = await session.execute(stmt)
    return result.scalars().all()


async def create_benefisient(
    session: AsyncSession,
    *,
    tilbud_id: str,
    data: Mapping[str, Any] | BenefisientInn,
    utfort_av_id: int | None = None,
    commit: bool = True,
) -> Benefisient:
    if not tilbud_id:
        raise ValideringsFeil("Tilbud-ID er påkrevd for å opprette benefisient.")
    payload = parse_model(BenefisientInn, data)
    tilbud = await require_tilbud(session, tilbud_id)
    verdier = _valider_felter(payload.model_dump())
    await _valider_enhet(session, tilbud_id=tilbud.id, enhet_id=verdier.get("enhet_id"))

    aktiv = verdier.get("aktiv")
    verdier["aktiv"] = True if aktiv is None else aktiv
    if verdier["aktiv"]:
        await sjekk_andel(
            session, tilbud_id=tilbud.id, enhet_id=verdier.get("enhet_id"), andel=verdier["andel"]
        )
        verdier["aktiv_til"] = None
    if verdier.get("aktiv_fra") is None:
        verdier["aktiv_fra"] = _naa()

    benefisient = Benefisient(tilbud_id=tilbud.id, **verdier)
    session.add(benefisient)
    await session.flush()
    logg_hendelse(
        session,
        hendelse_type=HendelseType.BENEFISIENT_OPPRETTET,
        beskrivelse=f"Benefisient {benefisient.navn} ({benefisient.type.value}) lagt til med andel {_prosent(benefisient.andel)}%.",
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    if commit:
        await session.commit()
    logger.info("Benefisient %s opprettet for tilbud %s", benefisient.id, tilbud.id)
    return benefisient


async def update_benefisient(
    session: AsyncSession,
    *,
    benefisient_id: str,
    data: Mapping[str, Any],
    utfort_av_id: int | None = None,
) -> Benefisient:
    payload = parse_model(BenefisientInn, data)
    benefisient = await require_benefisient(session, benefisient_id)
    tilbud = await require_tilbud(session, benefisient.tilbud_id)

    endret = payload.endrede_felt()
    var_aktiv = benefisient.aktiv
    gjeldende = {
        column.key: getattr(benefisient, column.key)
        for column in Benefisient.__table__.columns
        if column.key in BenefisientInn.model_fields
    }
    verdier = _valider_felter({**gjeldende, **endret})
    await _valider_enhet(session, tilbud_id=tilbud.id, enhet_id=verdier.get("enhet_id"))

    aktiv = verdier.get("aktiv")
    verdier["aktiv"] = var_aktiv if aktiv is None else aktiv
    if verdier["aktiv"]:
        await sjekk_andel(
            session,
            tilbud_id=tilbud.id,
            enhet_id=verdier.get("enhet_id"),
            andel=verdier["andel"],
            unntatt_id=benefisient.id,
        )
        if not var_aktiv:
            verdier["aktiv_til"] = None
    elif var_aktiv and "aktiv_til" not in endret:
        verdier["aktiv_til"] = _naa()

    for felt, verdi in verdier.items():
        setattr(benefisient, felt, verdi)

    if verdier["aktiv"] and not var_aktiv:
        beskrivelse = f"Benefisient {benefisient.navn} reaktivert."
    elif var_aktiv and not verdier["aktiv"]:
        beskrivelse = f"Benefisient {benefisient.navn} deaktivert."
    else:
        beskrivelse = f"Benefisient {benefisient.navn} oppdatert."
    logg_hendelse(
        session,
        hendelse_type=HendelseType.BENEFISIENT_OPPDATERT,
        beskrivelse=beskrivelse,
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.flush()
    await session.commit()
    logger.info("Benefisient %s oppdatert", benefisient_id)
    return benefisient


async def delete_benefisient(
    session: AsyncSession,
    *,
    benefisient_id: str,
    utfort_av_id: int | None = None,
) -> bool:
    benefisient = await require_benefisient(session, benefisient_id)
    tilbud = await require_tilbud(session, benefisient.tilbud_id)
    navn = benefisient.navn
    await session.delete(benefisient)
    logg_hendelse(
        session,
        hendelse_type=HendelseType.BENEFISIENT_SLETTET,
        beskrivelse=f"Benefisient {navn} ble slettet.",
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.commit()
    logger.info("Benefisient %s slettet", benefisient_id)
    return True


async def registrer_eierskifte(
    session: AsyncSession,
    *,
    benefisient_id: str,
    ny_benefisient: Mapping[str, Any],
    utfort_av_id: int | None = None,
) -> tuple[Benefisient, Benefisient]:
    """
    Overfør en benefisients andel til en ny eier.

    Den gamle raden deaktiveres og den nye opprettes i samme transaksjon, med
    samme tilbud og enhet. Uten oppgitt andel overtar den nye eieren hele
    den gamle andelen.
    """
    gammel = await require_benefisient(session, benefisient_id)
    if not gammel.aktiv:
        raise ForretningsregelFeil("Eierskifte kan bare registreres for en aktiv benefisient.")
    tilbud = await require_tilbud(session, gammel.tilbud_id)

    data = dict(ny_benefisient or {})
    data.setdefault("andel", gammel.andel)
    data["enhetId"] = gammel.enhet_id
    data.pop("enhet_id", None)
    payload = parse_model(BenefisientInn, data)
    _valider_felter(payload.model_dump())

    naa = _naa()
    gammel.aktiv = False
    gammel.aktiv_til = naa
    gammel.kommentar = f"Eierskifte - overført til {payload.navn}"
    await session.flush()

    try:
        ny = await create_benefisient(
            session,
            tilbud_id=tilbud.id,
            data=payload.model_copy(
                update={
                    "aktiv": True,
                    "aktiv_fra": naa,
                    "kommentar": payload.kommentar or f"Eierskifte - overtatt fra {gammel.navn}",
                }
            ),
            utfort_av_id=utfort_av_id,
            commit=False,
        )
    except ForretningsregelFeil:
        await session.rollback()
        raise
    logg_hendelse(
        session,
        hendelse_type=HendelseType.EIERSKIFTE_REGISTRERT,
        beskrivelse=f"Eierskifte registrert: {gammel.navn} → {ny.navn} ({_prosent(ny.andel)}%).",
        utfort_av_id=utfort_av_id,
        prosjekt_id=tilbud.prosjekt_id,
    )
    await session.commit()
    logger.info("Eierskifte registrert for benefisient %s -> %s", gammel.id, ny.id)
    return gammel, ny


__all__ = [
    "create_benefisient",
    "delete_benefisient",
    "get_benefisienter",
    "registrer_eierskifte",
    "require_benefisient",
    "sjekk_andel",
    "update_benefisient",
]
