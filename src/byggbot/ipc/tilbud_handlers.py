# byggbot/ipc/tilbud_handlers.py
"""Kanaler for tilbud, beregning, enheter, benefisienter og rammeforbruk (``tilbud:*``)."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.domain.garanti.errors import IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.schemas import (
    BenefisientRead,
    BeregningRead,
    EnhetRead,
    ProduktKonfigurasjonRead,
    TilbudDetail,
    TilbudRead,
)
from byggbot.ipc.registry import aktor, registry
from byggbot.services import benefisient as benefisient_service
from byggbot.services import enhet as enhet_service
from byggbot.services import ramme as ramme_service
from byggbot.services import tilbud as tilbud_service


def _id(params: Mapping[str, Any], nokkel: str, melding: str) -> str:
    verdi = params.get(nokkel)
    if verdi in (None, ""):
        raise ValideringsFeil(melding)
    return str(verdi)


def _data(params: Mapping[str, Any], nokkel: str, melding: str) -> Dict[str, Any]:
    verdi = params.get(nokkel)
    if not isinstance(verdi, Mapping):
        raise ValideringsFeil(melding)
    return dict(verdi)


# -------------------------------
# Tilbud og beregning
# -------------------------------


@registry.channel("tilbud:createTilbud")
async def create_tilbud(session: AsyncSession, params: Dict[str, Any]) -> TilbudRead:
    tilbud = await tilbud_service.create_tilbud(
        session,
        prosjekt_id=_id(params, "prosjektId", "Prosjekt-ID er påkrevd for å opprette tilbud."),
        data=params.get("tilbudData") or {},
        opprettet_av_id=aktor(params, "opprettetAvBrukerId"),
    )
    return TilbudRead.model_validate(tilbud)


@registry.channel("tilbud:getTilbudById")
async def get_tilbud_by_id(session: AsyncSession, params: Dict[str, Any]) -> TilbudDetail | None:
    tilbud = await tilbud_service.get_tilbud_by_id(
        session, tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd.")
    )
    return TilbudDetail.model_validate(tilbud) if tilbud is not None else None


@registry.channel("tilbud:getTilbudByProsjektId")
async def get_tilbud_by_prosjekt_id(session: AsyncSession, params: Dict[str, Any]) -> list[TilbudDetail]:
    tilbud = await tilbud_service.get_tilbud_by_prosjekt_id(
        session, prosjekt_id=_id(params, "prosjektId", "Prosjekt-ID er påkrevd for å hente tilbud.")
    )
    return [TilbudDetail.model_validate(t) for t in tilbud]


@registry.channel("tilbud:updateTilbud")
async def update_tilbud(session: AsyncSession, params: Dict[str, Any]) -> TilbudRead:
    tilbud = await tilbud_service.update_tilbud(
        session,
        tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd for oppdatering."),
        data=_data(params, "dataToUpdate", "Data for oppdatering er påkrevd."),
        endret_av_id=aktor(params, "endretAvBrukerId"),
    )
    return TilbudRead.model_validate(tilbud)


@registry.channel("tilbud:deleteTilbud")
async def delete_tilbud(session: AsyncSession, params: Dict[str, Any]) -> bool:
    return await tilbud_service.delete_tilbud(
        session,
        tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd for å slette tilbud."),
        utfort_av_id=aktor(params),
    )


@registry.channel("tilbud:saveBeregning")
async def save_beregning(session: AsyncSession, params: Dict[str, Any]) -> BeregningRead:
    beregning = await tilbud_service.save_beregning(
        session,
        tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd for å lagre beregning."),
        data=_data(params, "beregningData", "Beregningsdata er påkrevd."),
        endret_av_id=aktor(params, "endretAvBrukerId"),
    )
    return BeregningRead.model_validate(beregning)


@registry.channel("tilbud:beregnPremie")
async def beregn_premie(session: AsyncSession, params: Dict[str, Any]) -> Dict[str, Any]:
    return await tilbud_service.beregn_premie(
        session,
        produkttype=params.get("produkttype"),
        parametre=params.get("beregningParams") or {},
    )


@registry.channel("tilbud:getProduktKonfigurasjoner")
async def get_produkt_konfigurasjoner(session: AsyncSession, params: Dict[str, Any]) -> list[ProduktKonfigurasjonRead]:
    konfigurasjoner = await tilbud_service.get_produkt_konfigurasjoner(session)
    return [ProduktKonfigurasjonRead.model_validate(k) for k in konfigurasjoner]


@registry.channel("tilbud:getProduktKonfigurasjonByNavn")
async def get_produkt_konfigurasjon_by_navn(session: AsyncSession, params: Dict[str, Any]) -> ProduktKonfigurasjonRead:
    produktnavn = _id(params, "produktnavn", "Produktnavn er påkrevd.")
    konfig = await tilbud_service.get_produkt_konfigurasjon_by_navn(session, produktnavn=produktnavn)
    if konfig is None:
        raise IkkeFunnetFeil(f"Produktkonfigurasjon ikke funnet for: {produktnavn}")
    return ProduktKonfigurasjonRead.model_validate(konfig)


# -------------------------------
# Benefisienter
# -------------------------------


@registry.channel("tilbud:getBenefisienter")
async def get_benefisienter(session: AsyncSession, params: Dict[str, Any]) -> list[BenefisientRead]:
    benefisienter = await benefisient_service.get_benefisienter(
        session,
        tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd for å hente benefisienter."),
        enhet_id=params.get("enhetId") or None,
        kun_aktive=bool(params.get("kunAktive")),
    )
    return [BenefisientRead.model_validate(b) for b in benefisienter]


@registry.channel("tilbud:createBenefisient")
async def create_benefisient(session: AsyncSession, params: Dict[str, Any]) -> BenefisientRead:
    benefisient = await benefisient_service.create_benefisient(
        session,
        tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd for å opprette benefisient."),
        data=_data(params, "benefisientData", "Benefisientdata er påkrevd."),
        utfort_av_id=aktor(params),
    )
    return BenefisientRead.model_validate(benefisient)


@registry.channel("tilbud:updateBenefisient")
async def update_benefisient(session: AsyncSession, params: Dict[str, Any]) -> BenefisientRead:
    benefisient = await benefisient_service.update_benefisient(
        session,
        benefisient_id=_id(params, "benefisientId", "Benefisient-ID er påkrevd for oppdatering."),
        data=_data(params, "dataToUpdate", "Data for oppdatering er påkrevd."),
        utfort_av_id=aktor(params),
    )
    return BenefisientRead.model_validate(benefisient)


@registry.channel("tilbud:deleteBenefisient")
async def delete_benefisient(session: AsyncSession, params: Dict[str, Any]) -> bool:
    return await benefisient_service.delete_benefisient(
        session,
        benefisient_id=_id(params, "benefisientId", "Benefisient-ID er påkrevd for sletting."),
        utfort_av_id=aktor(params),
    )


@registry.channel("tilbud:registrerEierskifte")
async def registrer_eierskifte(session: AsyncSession, params: Dict[str, Any]) -> Dict[str, BenefisientRead]:
    gammel, ny = await benefisient_service.registrer_eierskifte(
        session,
        benefisient_id=_id(params, "benefisientId", "Benefisient-ID er påkrevd for eierskifte."),
        ny_benefisient=_data(params, "nyBenefisient", "Data for ny benefisient er påkrevd."),
        utfort_av_id=aktor(params),
    )
    return {
        "tidligere": BenefisientRead.model_validate(gammel),
        "ny": BenefisientRead.model_validate(ny),
    }


# -------------------------------
# Enheter
# -------------------------------


@registry.channel("tilbud:getEnheter")
async def get_enheter(session: AsyncSession, params: Dict[str, Any]) -> list[EnhetRead]:
    enheter = await enhet_service.get_enheter(
        session, tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd for å hente enheter.")
    )
    return [EnhetRead.model_validate(e) for e in enheter]


@registry.channel("tilbud:createEnhet")
async def create_enhet(session: AsyncSession, params: Dict[str, Any]) -> EnhetRead:
    enhet = await enhet_service.create_enhet(
        session,
        tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd for å opprette enhet."),
        data=_data(params, "enhetData", "Enhetsdata er påkrevd."),
        utfort_av_id=aktor(params),
    )
    return EnhetRead.model_validate(enhet)


@registry.channel("tilbud:updateEnhet")
async def update_enhet(session: AsyncSession, params: Dict[str, Any]) -> EnhetRead:
    enhet = await enhet_service.update_enhet(
        session,
        enhet_id=_id(params, "enhetId", "Enhet-ID er påkrevd for oppdatering."),
        data=_data(params, "dataToUpdate", "Data for oppdatering er påkrevd."),
        utfort_av_id=aktor(params),
    )
    return EnhetRead.model_validate(enhet)


@registry.channel("tilbud:deleteEnhet")
async def delete_enhet(session: AsyncSession, params: Dict[str, Any]) -> bool:
    return await enhet_service.delete_enhet(
        session,
        enhet_id=_id(params, "enhetId", "Enhet-ID er påkrevd for sletting."),
        utfort_av_id=aktor(params),
    )


@registry.channel("tilbud:autoGenererEnheter")
async def auto_generer_enheter(session: AsyncSession, params: Dict[str, Any]) -> list[EnhetRead]:
    enheter = await enhet_service.auto_generer_enheter(session, data=params, utfort_av_id=aktor(params))
    return [EnhetRead.model_validate(e) for e in enheter]


@registry.channel("tilbud:slettAlleEnheter")
async def slett_alle_enheter(session: AsyncSession, params: Dict[str, Any]) -> Dict[str, int]:
    return await enhet_service.slett_alle_enheter(
        session,
        tilbud_id=_id(params, "tilbudId", "Tilbud-ID er påkrevd."),
        utfort_av_id=aktor(params),
    )


# -------------------------------
# Ramme
# -------------------------------


@registry.channel("tilbud:getRammeForbruk")
async def get_ramme_forbruk(session: AsyncSession, params: Dict[str, Any]) -> Dict[str, Any]:
    return await ramme_service.get_ramme_forbruk(
        session,
        selskap_id=_id(params, "selskapId", "Selskaps-ID er påkrevd for å hente rammeforbruk."),
        navarende_prosjekt_id=params.get("navarendeProsjektId") or None,
    )


@registry.channel("tilbud:validerRammeForbruk")
async def valider_ramme_forbruk(session: AsyncSession, params: Dict[str, Any]) -> Dict[str, Any]:
    return await ramme_service.valider_ramme_forbruk(
        session,
        selskap_id=params.get("selskapId") or "",
        tilbud_belop=params.get("tilbudBelop"),
        navarende_prosjekt_id=params.get("navarendeProsjektId") or None,
    )
