"""Henting og aggregering av nysalgs-, skade- og garantirapporter."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Mapping, Optional

from byggbot.domain.garanti.errors import InfrastrukturFeil, ValideringsFeil
from byggbot.infrastructure.config import SETTINGS, ConfigError
from byggbot.integrations.rapport_api import (
    GARANTI_RAPPORT,
    NYSALG_RAPPORT,
    SKADE_RAPPORT,
    RapportApiError,
    fetch_report,
)
from byggbot.processing import csv_eksport
from byggbot.processing.rapporter import (
    SkadeFilter,
    aggreger_nysalg,
    analyser_garanti,
    del_periode,
    filtrer_skade,
    maaneder_mellom,
    slaa_sammen_skade,
)


logger = logging.getLogger(__name__)

RAPPORTER: dict[str, str] = {
    "nysalg": NYSALG_RAPPORT,
    "skade": SKADE_RAPPORT,
    "garanti": GARANTI_RAPPORT,
}

Henter = Callable[[str, date, date], Any]


def _parse_dato(verdi: Any, felt: str) -> date:
    if isinstance(verdi, date):
        return verdi
    try:
        return date.fromisoformat(str(verdi).strip())
    except ValueError:
        raise ValideringsFeil(f"Ugyldig dato for {felt}: {verdi}. Bruk formatet ÅÅÅÅ-MM-DD.") from None


def _parse_periode(start_dato: Any, slutt_dato: Any) -> tuple[date, date]:
    start = _parse_dato(start_dato, "startDate")
    slutt = _parse_dato(slutt_dato, "endDate")
    if start > slutt:
        raise ValideringsFeil("Startdato kan ikke være etter sluttdato.")
    return start, slutt


async def _hent_en(henter: Henter, rapport_navn: str, start: date, slutt: date) -> Any:
    try:
        return await asyncio.to_thread(henter, rapport_navn, start, slutt)
    except RapportApiError as exc:
        logger.exception("Rapport %s feilet for %s - %s", rapport_navn, start, slutt)
        raise InfrastrukturFeil(str(exc)) from exc
    except ConfigError as exc:
        logger.exception("Rapport-API er ikke konfigurert")
        raise InfrastrukturFeil("Rapport-API er ikke konfigurert.") from exc


async def hent_rapport(
    *,
    rapport_navn: Optional[str],
    start_dato: Any,
    slutt_dato: Any,
    henter: Optional[Henter] = None,
) -> Any:
    """
    Hent rå rapportdata for perioden.

    Skaderapporter over mer enn 6 måneder hentes i biter og slås sammen.
    Biter som feiler hoppes over; kallet feiler bare hvis alle feiler.
    """
    if not rapport_navn or not start_dato or not slutt_dato:
        raise ValideringsFeil("Manglende parametre: reportName, startDate og endDate er påkrevd")
    start, slutt = _parse_periode(start_dato, slutt_dato)
    henter = henter or fetch_report
    bit_maaneder = SETTINGS.RAPPORT_CHUNK_MAANEDER

    if rapport_navn != SKADE_RAPPORT or maaneder_mellom(start, slutt) <= bit_maaneder:
        return await _hent_en(henter, rapport_navn, start, slutt)

    biter = del_periode(start, slutt, bit_maaneder)
    logger.info("Henter %s i %d biter (%s - %s)", rapport_navn, len(biter), start, slutt)
    resultater = []
    for bit_start, bit_slutt in biter:
        try:
            resultater.append(await _hent_en(henter, rapport_navn, bit_start, bit_slutt))
        except InfrastrukturFeil:
            logger.warning("Hopper over periode %s - %s for %s", bit_start, bit_slutt, rapport_navn)
    if not resultater:
        raise InfrastrukturFeil("Kunne ikke hente data for noen av periodene")
    return slaa_sammen_skade(resultater)


def _rapportnavn(rapport: str) -> str:
    navn = RAPPORTER.get(rapport)
    if navn is None:
        raise ValideringsFeil(f"Ukjent rapport: {rapport}")
    return navn


async def hent_nysalg(*, start_dato: Any, slutt_dato: Any, henter: Optional[Henter] = None) -> Optional[dict]:
    rader = await hent_rapport(
        rapport_navn=NYSALG_RAPPORT, start_dato=start_dato, slutt_dato=slutt_dato, henter=henter
    )
    return aggreger_nysalg(rader if isinstance(rader, list) else [])


async def hent_skade(
    *,
    start_dato: Any,
    slutt_dato: Any,
    filtre: Optional[Mapping[str, Any]] = None,
    henter: Optional[Henter] = None,
) -> Optional[dict]:
    data = await hent_rapport(
        rapport_navn=SKADE_RAPPORT, start_dato=start_dato, slutt_dato=slutt_dato, henter=henter
    )
    if not filtre:
        return data
    return filtrer_skade(data, SkadeFilter.fra_mapping(filtre))


async def hent_garanti(*, start_dato: Any, slutt_dato: Any, henter: Optional[Henter] = None) -> Optional[dict]:
    data = await hent_rapport(
        rapport_navn=GARANTI_RAPPORT, start_dato=start_dato, slutt_dato=slutt_dato, henter=henter
    )
    return analyser_garanti(data)


async def hent_aggregert(
    rapport: str,
    *,
    start_dato: Any,
    slutt_dato: Any,
    filtre: Optional[Mapping[str, Any]] = None,
    henter: Optional[Henter] = None,
) -> Optional[dict]:
    _rapportnavn(rapport)
    if rapport == "nysalg":
        return await hent_nysalg(start_dato=start_dato, slutt_dato=slutt_dato, henter=henter)
    if rapport == "skade":
        return await hent_skade(start_dato=start_dato, slutt_dato=slutt_dato, filtre=filtre, henter=henter)
    return await hent_garanti(start_dato=start_dato, slutt_dato=slutt_dato, henter=henter)


async def eksporter_csv(
    rapport: str,
    *,
    start_dato: Any,
    slutt_dato: Any,
    filtre: Optional[Mapping[str, Any]] = None,
    henter: Optional[Henter] = None,
) -> str:
    data = await hent_aggregert(
        rapport, start_dato=start_dato, slutt_dato=slutt_dato, filtre=filtre, henter=henter
    )
    if rapport == "nysalg":
        return csv_eksport.nysalg_csv(data)
    if rapport == "skade":
        return csv_eksport.skade_csv(data)
    return csv_eksport.garanti_csv(data)


__all__ = [
    "RAPPORTER",
    "eksporter_csv",
    "hent_aggregert",
    "hent_garanti",
    "hent_nysalg",
    "hent_rapport",
    "hent_skade",
]
