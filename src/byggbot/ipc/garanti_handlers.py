# byggbot/ipc/garanti_handlers.py
"""Kanaler for selskap, prosjekt, dokumenter og kommentarer (``garanti:*``)."""
from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.domain.garanti.errors import ValideringsFeil
from byggbot.domain.garanti.schemas import (
    BrukerRead,
    DokumentRead,
    GuaranteeRequestResult,
    HendelseRead,
    KommentarRead,
    ProsjektCollection,
    ProsjektDetail,
    ProsjektRead,
    SelskapDetail,
    SelskapListItem,
    SelskapRead,
)
from byggbot.ipc.registry import aktor, registry
from byggbot.services import dokumenter as dokument_service
from byggbot.services import hendelser as hendelse_service
from byggbot.services import prosjekt as prosjekt_service
from byggbot.services import selskap as selskap_service


def _krev(params: Mapping[str, Any], nokkel: str, melding: str) -> Any:
    verdi = params.get(nokkel)
    if verdi in (None, ""):
        raise ValideringsFeil(melding)
    return verdi


def _krev_endringer(params: Mapping[str, Any], id_nokkel: str, melding: str) -> tuple[str, Dict[str, Any]]:
    entitet_id = params.get(id_nokkel)
    endringer = params.get("dataToUpdate")
    if not entitet_id or not isinstance(endringer, Mapping) or not endringer:
        raise ValideringsFeil(melding)
    return str(entitet_id), dict(endringer)


def dekod_fildata(fil_data: Any) -> bytes:
    """
    Filinnhold fra klienten: base64-tekst (gjerne som data-URL), en liste med
    byte-verdier eller et serialisert Buffer-objekt ``{"type": "Buffer", "data": [...]}``.
    """
    if not isinstance(fil_data, Mapping):
        raise ValideringsFeil("filData (med originaltFilnavn og innhold) er påkrevd.")
    raw = fil_data.get("base64")
    if raw is None:
        raw = fil_data.get("buffer")
    if isinstance(raw, Mapping) and raw.get("type") == "Buffer":
        raw = raw.get("data")

    if isinstance(raw, str):
        tekst = raw.strip()
        if "," in tekst and tekst.lower().startswith("data:"):
            tekst = tekst.split(",", 1)[1]
        try:
            innhold = base64.b64decode(tekst, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValideringsFeil("Mottok filinnhold i ukjent format.") from exc
    elif isinstance(raw, list):
        try:
            innhold = bytes(raw)
        except (TypeError, ValueError) as exc:
            raise ValideringsFeil("Mottok filinnhold i ukjent format.") from exc
    else:
        raise ValideringsFeil("Mottok filinnhold i ukjent format.")

    if not innhold:
        raise ValideringsFeil("Filinnholdet er tomt eller ugyldig etter konvertering.")
    return innhold


# -------------------------------
# Saker og dokumenter
# -------------------------------


@registry.channel("garanti:createSak")
async def create_sak(session: AsyncSession, params: Dict[str, Any]) -> GuaranteeRequestResult:
    request_data = params.get("requestData")
    if not isinstance(request_data, Mapping) or not request_data:
        raise ValideringsFeil("RequestData er påkrevd.")
    selskap, prosjekt, nytt = await prosjekt_service.handle_new_guarantee_request(
        session,
        request_data=request_data,
        opprettet_av_id=aktor(params, "opprettetAvBrukerId"),
    )
    return GuaranteeRequestResult(
        selskap=SelskapRead.model_validate(selskap),
        prosjekt=ProsjektRead.model_validate(prosjekt),
        nytt_selskap=nytt,
    )


@registry.channel("garanti:uploadDokument")
async def upload_dokument(session: AsyncSession, params: Dict[str, Any]) -> DokumentRead:
    entity_context = params.get("entityContext")
    if not isinstance(entity_context, Mapping) or not entity_context.get("id") or not entity_context.get("type"):
        raise ValideringsFeil("entityContext (med type og id) er påkrevd for dokumentopplasting.")
    fil_data = params.get("filData") or {}
    filnavn = fil_data.get("originaltFilnavn") if isinstance(fil_data, Mapping) else None
    if not filnavn:
        raise ValideringsFeil("filData (med originaltFilnavn og innhold) er påkrevd.")
    dokument_type = _krev(params, "dokumentType", "dokumentType er påkrevd.")

    dokument = await dokument_service.upload_dokument(
        session,
        entity_context=entity_context,
        innhold=dekod_fildata(fil_data),
        filnavn=str(filnavn),
        dokument_type=str(dokument_type),
        opplastet_av_id=aktor(params, "opplastetAvBrukerId"),
        content_type=fil_data.get("mimeType"),
    )
    return DokumentRead.model_validate(dokument)


@registry.channel("garanti:getDokumentSasUrl")
async def get_dokument_sas_url(session: AsyncSession, params: Dict[str, Any]) -> str:
    if not params.get("containerName") or not params.get("blobName"):
        raise ValideringsFeil("Container- og blob-navn er påkrevd for å hente dokument-URL.")
    return await dokument_service.get_dokument_sas_url(
        container_navn=str(params["containerName"]),
        blob_navn=str(params["blobName"]),
    )


@registry.channel("garanti:addInternKommentar")
async def add_intern_kommentar(session: AsyncSession, params: Dict[str, Any]) -> KommentarRead:
    kommentar = await prosjekt_service.add_intern_kommentar(
        session,
        entity_context=params.get("entityContext") or {},
        kommentar_tekst=params.get("kommentarTekst") or "",
        bruker_id=aktor(params),
    )
    return KommentarRead.model_validate(kommentar)


@registry.channel("garanti:getHendelser")
async def get_hendelser(session: AsyncSession, params: Dict[str, Any]) -> list[HendelseRead]:
    sak_id = params.get("sakId")
    hendelser = await hendelse_service.list_hendelser(
        session,
        sak_id=int(sak_id) if sak_id not in (None, "") else None,
        selskap_id=params.get("selskapId"),
        prosjekt_id=params.get("prosjektId"),
    )
    return [HendelseRead.model_validate(h) for h in hendelser]


# -------------------------------
# Selskap
# -------------------------------


@registry.channel("garanti:createSelskap")
async def create_selskap(session: AsyncSession, params: Dict[str, Any]) -> SelskapRead:
    selskap_data = params.get("selskapData")
    if not isinstance(selskap_data, Mapping) or not selskap_data:
        raise ValideringsFeil("Selskapsdata er påkrevd.")
    selskap = await selskap_service.create_selskap(
        session, data=selskap_data, utfort_av_id=aktor(params, "opprettetAvBrukerId")
    )
    return SelskapRead.model_validate(selskap)


@registry.channel("garanti:updateSelskap")
async def update_selskap(session: AsyncSession, params: Dict[str, Any]) -> SelskapRead:
    selskap_id, endringer = _krev_endringer(
        params, "selskapId", "Selskaps-ID og data for oppdatering er påkrevd."
    )
    selskap = await selskap_service.update_selskap(
        session, selskap_id=selskap_id, data=endringer, utfort_av_id=aktor(params, "endretAvBrukerId")
    )
    return SelskapRead.model_validate(selskap)


@registry.channel("garanti:getSelskapById")
async def get_selskap_by_id(session: AsyncSession, params: Dict[str, Any]) -> SelskapDetail | None:
    selskap_id = _krev(params, "selskapId", "Selskaps-ID er påkrevd.")
    selskap = await selskap_service.get_selskap_by_id(session, selskap_id=str(selskap_id))
    return SelskapDetail.model_validate(selskap) if selskap is not None else None


@registry.channel("garanti:findSelskap")
async def find_selskap(session: AsyncSession, params: Dict[str, Any]) -> list[SelskapRead]:
    treff = await selskap_service.find_selskap(session, search_term=params.get("searchTerm") or "")
    return [SelskapRead.model_validate(s) for s in treff]


@registry.channel("garanti:getSelskaper")
async def get_selskaper(session: AsyncSession, params: Dict[str, Any]) -> list[SelskapListItem]:
    rader = await selskap_service.get_selskaper(session, filtre=params)
    resultat = []
    for selskap, antall in rader:
        item = SelskapListItem.model_validate(selskap)
        item.antall_prosjekter = antall
        resultat.append(item)
    return resultat


# -------------------------------
# Prosjekt
# -------------------------------


@registry.channel("garanti:createProsjekt")
async def create_prosjekt(session: AsyncSession, params: Dict[str, Any]) -> ProsjektRead:
    prosjekt_data = params.get("prosjektData")
    if not isinstance(prosjekt_data, Mapping) or not params.get("selskapId"):
        raise ValideringsFeil("Prosjektdata og selskaps-ID er påkrevd.")
    prosjekt = await prosjekt_service.create_prosjekt(
        session,
        selskap_id=str(params["selskapId"]),
        data=prosjekt_data,
        utfort_av_id=aktor(params, "opprettetAvBrukerId"),
    )
    return ProsjektRead.model_validate(prosjekt)


@registry.channel("garanti:updateProsjekt")
async def update_prosjekt(session: AsyncSession, params: Dict[str, Any]) -> ProsjektRead:
    prosjekt_id, endringer = _krev_endringer(
        params, "prosjektId", "Prosjekt-ID og data for oppdatering er påkrevd."
    )
    prosjekt = await prosjekt_service.update_prosjekt(
        session, prosjekt_id=prosjekt_id, data=endringer, utfort_av_id=aktor(params, "endretAvBrukerId")
    )
    return ProsjektRead.model_validate(prosjekt)


@registry.channel("garanti:getProsjektById")
async def get_prosjekt_by_id(session: AsyncSession, params: Dict[str, Any]) -> ProsjektDetail | None:
    prosjekt_id = _krev(params, "prosjektId", "Prosjekt-ID er påkrevd.")
    prosjekt = await prosjekt_service.get_prosjekt_by_id(session, prosjekt_id=str(prosjekt_id))
    return ProsjektDetail.model_validate(prosjekt) if prosjekt is not None else None


@registry.channel("garanti:getProsjekter")
async def get_prosjekter(session: AsyncSession, params: Dict[str, Any]) -> list[Dict[str, Any]]:
    prosjekter = await prosjekt_service.get_prosjekter(session, filtre=params)
    return ProsjektCollection.from_iterable(prosjekter).model_dump(by_alias=True, mode="json")["items"]


@registry.channel("garanti:getAnsvarligePersoner")
async def get_ansvarlige_personer(session: AsyncSession, params: Dict[str, Any]) -> Dict[str, list[BrukerRead]]:
    grupper = await prosjekt_service.get_ansvarlige_personer(session)
    return {rolle: [BrukerRead.model_validate(b) for b in brukere] for rolle, brukere in grupper.items()}


__all__ = ["dekod_fildata"]
