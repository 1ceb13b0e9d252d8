# byggbot/ipc/rapport_handlers.py
"""Kanaler for rapportene (``rapport:*``). Ingen av dem bruker databasen."""
from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.domain.garanti.errors import ValideringsFeil
from byggbot.ipc.registry import registry
from byggbot.processing.rapporter import normaliser_selskapsnavn
from byggbot.services import rapporter as rapport_service


def _rapport(params: Dict[str, Any]) -> str:
    rapport = str(params.get("rapport") or "").strip().lower()
    if not rapport:
        raise ValideringsFeil("Rapport er påkrevd (nysalg, skade eller garanti).")
    return rapport


@registry.channel("rapport:fetchReport")
async def fetch_report(session: AsyncSession, params: Dict[str, Any]) -> Any:
    """Rå rapportdata, slik rapport-API-et leverer dem."""
    return await rapport_service.hent_rapport(
        rapport_navn=params.get("reportName"),
        start_dato=params.get("startDate"),
        slutt_dato=params.get("endDate"),
    )


@registry.channel("rapport:hent")
async def hent(session: AsyncSession, params: Dict[str, Any]) -> Any:
    return await rapport_service.hent_aggregert(
        _rapport(params),
        start_dato=params.get("startDate"),
        slutt_dato=params.get("endDate"),
        filtre=params.get("filtre"),
    )


@registry.channel("rapport:csv")
async def csv(session: AsyncSession, params: Dict[str, Any]) -> str:
    return await rapport_service.eksporter_csv(
        _rapport(params),
        start_dato=params.get("startDate"),
        slutt_dato=params.get("endDate"),
        filtre=params.get("filtre"),
    )


@registry.channel("rapport:normaliserSelskapsnavn")
async def normaliser(session: AsyncSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    rader = params.get("rader")
    if not isinstance(rader, list):
        raise ValideringsFeil("Rader må være en liste.")
    return normaliser_selskapsnavn(rader, params.get("felt") or "Forsikringsselskap")
