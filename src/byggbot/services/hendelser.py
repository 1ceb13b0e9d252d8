from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from byggbot.domain.garanti.constants import HendelseType
from byggbot.domain.garanti.errors import IkkeFunnetFeil, ValideringsFeil
from byggbot.domain.garanti.models import GarantiProsjekt, GarantiSak, GarantiSakHendelse, Selskap
from byggbot.domain.garanti.schemas import EntityContext


logger = logging.getLogger(__name__)

IKKE_SATT = "ikke satt"


def formater_verdi(value: Any) -> str:
    """Verdi slik den vises i endringsloggen."""
    if value is None or value == "":
        return IKKE_SATT
    if isinstance(value, Decimal):
        return format(value, "f")
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def endringstekst(etikett: str, gammel: Any, ny: Any) -> str:
    return f"{etikett} endret fra '{formater_verdi(gammel)}' til '{formater_verdi(ny)}'"


def logg_hendelse(
    session: AsyncSession,
    *,
    hendelse_type: HendelseType | str,
    beskrivelse: str,
    utfort_av_id: int | None = None,
    sak_id: int | None = None,
    selskap_id: str | None = None,
    prosjekt_id: str | None = None,
) -> GarantiSakHendelse:
    """Legg en hendelse i revisjonsloggen. Kalleren eier transaksjonen."""
    foreldre = [value for value in (sak_id, selskap_id, prosjekt_id) if value is not None]
    if len(foreldre) != 1:
        raise ValideringsFeil("En hendelse må knyttes til nøyaktig én sak, ett selskap eller ett prosjekt.")

    type_verdi = hendelse_type.value if isinstance(hendelse_type, HendelseType) else str(hendelse_type)
    hendelse = GarantiSakHendelse(
        hendelse_type=type_verdi,
        beskrivelse=beskrivelse,
        utfort_av_id=utfort_av_id,
        sak_id=sak_id,
        selskap_id=selskap_id,
        prosjekt_id=prosjekt_id,
    )
    session.add(hendelse)
    logger.debug("Hendelse %s: %s", type_verdi, beskrivelse)
    return hendelse


async def require_forelder(session: AsyncSession, context: EntityContext) -> None:
    """Sjekk at sak, selskap eller prosjekt i konteksten finnes."""
    modeller = {"sak": GarantiSak, "selskap": Selskap, "prosjekt": GarantiProsjekt}
    ident: Any = int(context.id) if context.type == "sak" else str(context.id)
    if await session.get(modeller[context.type], ident) is None:
        raise IkkeFunnetFeil(f"Den tilknyttede {context.type} med ID {context.id} finnes ikke.")


async def list_hendelser(
    session: AsyncSession,
    *,
    sak_id: int | None = None,
    selskap_id: str | None = None,
    prosjekt_id: str | None = None,
) -> Sequence[GarantiSakHendelse]:
    stmt: Select[tuple[GarantiSakHendelse]] = select(GarantiSakHendelse)
    if sak_id is not None:
        stmt = stmt.where(GarantiSakHendelse.sak_id == sak_id)
    if selskap_id is not None:
        stmt = stmt.where(GarantiSakHendelse.selskap_id == selskap_id)
    if prosjekt_id is not None:
        stmt = stmt.where(GarantiSakHendelse.prosjekt_id == prosjekt_id)
    stmt = stmt.order_by(GarantiSakHendelse.dato.desc(), GarantiSakHendelse.id.desc())
    result = await session.execute(stmt)
    return result.scalars().all()


__all__ = [
    "IKKE_SATT",
    "endringstekst",
    "formater_verdi",
    "list_hendelser",
    "logg_hendelse",
    "require_forelder",
]
