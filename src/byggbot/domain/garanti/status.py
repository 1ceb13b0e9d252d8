"""Utleder prosjektstatus fra statusene til prosjektets tilbud.

Prosjektstatus lagres, men er ikke en selvstendig sannhet: den regnes ut på nytt
hver gang et tilbud endres.

- Ingen tilbud gir ``Ny``.
- Et produsert tilbud sammen med et aktivt tilbud gir ``Utvides``.
- Ellers vinner tilbudet med høyest prioritet, og statusen mappes via
  ``TILBUD_TIL_PROSJEKT_STATUS``.
"""

from __future__ import annotations

from typing import Iterable

from byggbot.domain.garanti.constants import (
    AKTIVE_TILBUD_STATUSER,
    TILBUD_STATUS_PRIORITET,
    TILBUD_TIL_PROSJEKT_STATUS,
    ProsjektStatus,
    TilbudStatus,
)


def _som_tilbud_status(value: TilbudStatus | str) -> TilbudStatus:
    if isinstance(value, TilbudStatus):
        return value
    return TilbudStatus(value)


def hoyeste_tilbud_status(statuser: Iterable[TilbudStatus | str]) -> TilbudStatus | None:
    hoyeste: TilbudStatus | None = None
    for raw in statuser:
        status = _som_tilbud_status(raw)
        if hoyeste is None or TILBUD_STATUS_PRIORITET[status] > TILBUD_STATUS_PRIORITET[hoyeste]:
            hoyeste = status
    return hoyeste


def utled_prosjekt_status(statuser: Iterable[TilbudStatus | str]) -> ProsjektStatus:
    """Prosjektstatus for et prosjekt med gitte tilbudsstatuser."""
    alle = [_som_tilbud_status(status) for status in statuser]
    if not alle:
        return ProsjektStatus.NY

    har_produsert = TilbudStatus.PRODUSERT in alle
    har_aktivt = any(status in AKTIVE_TILBUD_STATUSER for status in alle)
    if har_produsert and har_aktivt:
        return ProsjektStatus.UTVIDES

    hoyeste = hoyeste_tilbud_status(alle)
    assert hoyeste is not None
    return TILBUD_TIL_PROSJEKT_STATUS[hoyeste]


__all__ = ["hoyeste_tilbud_status", "utled_prosjekt_status"]
