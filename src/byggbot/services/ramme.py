"""Rammeovervåking: hvor mye av et selskaps garantiramme som er brukt.

Produserte prosjekter og prosjekter under utvidelse belaster rammen, og bare
via tilbud som har en beregning med kontraktssum. Avslåtte og utløpte tilbud teller aldri.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from byggbot.domain.garanti.constants import (
    IKKE_RAMMEBELASTENDE_STATUSER,
    RAMME_ADVARSEL_ANDEL,
    RAMME_GUL_GRENSE,
    RAMME_ROD_GRENSE,
    ProsjektStatus,
    TilbudStatus,
)
from byggbot.domain.garanti.errors import IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.models import GarantiProsjekt, Selskap, Tilbud


logger = logging.getLogger(__name__)

NULL = Decimal("0")


def fargekode(forbruks_prosent: Decimal) -> str:
    if forbruks_prosent >= RAMME_ROD_GRENSE:
        return "rød"
    if forbruks_prosent >= RAMME_GUL_GRENSE:
        return "gul"
    return "grønn"


def _belastende_sum(tilbud: list[Tilbud], *, bare_produserte: bool = False) -> Decimal:
    total = NULL
    for item in tilbud:
        if item.status in IKKE_RAMMEBELASTENDE_STATUSER:
            continue
        if bare_produserte and item.status != TilbudStatus.PRODUSERT:
            continue
        if item.beregning is not None and item.beregning.kontraktssum:
            total += item.beregning.kontraktssum
    return total


async def get_ramme_forbruk(
    session: AsyncSession,
    *,
    selskap_id: str,
    navarende_prosjekt_id: str | None = None,
) -> dict[str, Any]:
    if not selskap_id:
        raise ValideringsFeil("Selskaps-ID er påkrevd for å hente rammeforbruk.")
    selskap = await session.get(Selskap, selskap_id)
    if selskap is None:
        raise IkkeFunnetFeil(f"Selskap med ID {selskap_id} finnes ikke.")
    total_ramme = selskap.ramme or NULL

    stmt = (
        select(GarantiProsjekt)
        .where(GarantiProsjekt.selskap_id == selskap_id)
        .options(selectinload(GarantiProsjekt.tilbud).selectinload(Tilbud.beregning))
        .order_by(GarantiProsjekt.updated_at.asc())
        .execution_options(populate_existing=True)
    )
    prosjekter = (await session.execute(stmt)).scalars().all()

    navarende_belop = NULL
    forbrukt_andre = NULL
    andre_prosjekter: list[dict[str, Any]] = []
    for prosjekt in prosjekter:
        belop = _belastende_sum(prosjekt.tilbud)
        if navarende_prosjekt_id and prosjekt.id == navarende_prosjekt_id:
            navarende_belop = belop
            continue
        if prosjekt.status == ProsjektStatus.UTVIDES:
            # utvidelsesutkast belaster ikke rammen før de er produsert
            belop = _belastende_sum(prosjekt.tilbud, bare_produserte=True)
        elif prosjekt.status != ProsjektStatus.PRODUSERT:
            continue
        if not belop:
            continue
        forbrukt_andre += belop
        produkttyper = sorted({t.produkttype for t in prosjekt.tilbud if t.produkttype})
        andre_prosjekter.append(
            {
                "prosjektId": prosjekt.id,
                "prosjektNavn": prosjekt.navn,
                "kontraktssum": belop,
                "produkttype": ", ".join(produkttyper) or None,
                "produsertDato": prosjekt.updated_at,
            }
        )

    total_forbruk = forbrukt_andre + navarende_belop
    tilgjengelig = total_ramme - forbrukt_andre
    if total_ramme > 0:
        prosent = (total_forbruk / total_ramme * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    else:
        prosent = NULL

    logger.info(
        "Rammeforbruk for selskap %s: nåværende %s, andre %s, tilgjengelig %s/%s",
        selskap_id,
        navarende_belop,
        forbrukt_andre,
        tilgjengelig,
        total_ramme,
    )
    return {
        "selskapId": selskap.id,
        "selskapsnavn": selskap.selskapsnavn,
        "totalRamme": total_ramme,
        "navarendeProsjektBelop": navarende_belop,
        "forbruktPaAndreProsjekter": forbrukt_andre,
        "tilgjengeligRamme": tilgjengelig,
        "totalForbruk": total_forbruk,
        "forbruksProsent": prosent,
        "fargekode": fargekode(prosent),
        "antallAndreProsjekter": len(andre_prosjekter),
        "andreProsjekter": andre_prosjekter,
        "sistOppdatert": datetime.now(timezone.utc),
    }


async def valider_ramme_forbruk(
    session: AsyncSession,
    *,
    selskap_id: str,
    tilbud_belop: Any,
    navarende_prosjekt_id: str | None = None,
) -> dict[str, Any]:
    """Simuler et nytt tilbudsbeløp mot gjenstående ramme."""
    if not selskap_id or tilbud_belop in (None, ""):
        raise ValideringsFeil("Selskaps-ID og tilbudsbeløp er påkrevd for rammevalidering.")
    try:
        belop = Decimal(str(tilbud_belop))
    except InvalidOperation:
        raise ValideringsFeil(f"Ugyldig tilbudsbeløp: {tilbud_belop}") from None

    info = await get_ramme_forbruk(
        session, selskap_id=selskap_id, navarende_prosjekt_id=navarende_prosjekt_id
    )
    tilgjengelig: Decimal = info["tilgjengeligRamme"]
    ny_tilgjengelig = tilgjengelig - belop
    overskridelse = ny_tilgjengelig < 0

    logger.info(
        "Rammevalidering for selskap %s, beløp %s: %s",
        selskap_id,
        belop,
        "UGYLDIG" if overskridelse else "GYLDIG",
    )
    return {
        "gyldig": not overskridelse,
        "tilbudBelop": belop,
        "gjeldendeTilgjengeligRamme": tilgjengelig,
        "nyTilgjengeligRamme": ny_tilgjengelig,
        "overskridelse": overskridelse,
        "overskredetBelop": -ny_tilgjengelig if overskridelse else NULL,
        "advarsel": ny_tilgjengelig < info["totalRamme"] * RAMME_ADVARSEL_ANDEL,
        "rammeInfo": info,
    }


__all__ = ["fargekode", "get_ramme_forbruk", "valider_ramme_forbruk"]
