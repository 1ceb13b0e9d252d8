# processing/kalkulatorer/arbeidsmaskin.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from .felles import rund, til_decimal
from .tariffer import (
    ARBEIDSMASKIN_DEKNINGER,
    ARBEIDSMASKIN_HOY_VERDI,
    ARBEIDSMASKIN_KUN_KASKO,
    ARBEIDSMASKIN_TARIFF,
    ARBEIDSMASKIN_TILLEGG,
)

logger = logging.getLogger(__name__)

# Komponenter som inngår i hver dekning
_KOMPONENTER = {
    "LIABILITY": ("liability",),
    "FIRE_THEFT": ("liability", "fire_theft"),
    "KASKO": ("liability", "fire_theft", "kasko"),
}


@dataclass
class ArbeidsmaskinPremie:
    liability: int = 0
    fire_theft: int = 0
    kasko: int = 0
    tillegg: int = 0  # sum valgte tilleggsdekninger
    total: int = 0
    hoy_verdi: bool = False
    advarsler: List[str] = field(default_factory=list)

    @property
    def dekning_sum(self) -> int:
        return self.liability + self.fire_theft + self.kasko


def beregn_arbeidsmaskin(
    maskintype: Optional[str],
    verdi: Any,
    dekning: Optional[str],
    tillegg: Optional[Iterable[str]] = None,
) -> ArbeidsmaskinPremie:
    """
    Årspremie for arbeidsmaskin.

    Ansvar er et fast beløp per maskintype; brann/tyveri og kasko er satser av
    oppgitt verdi. Hver komponent avrundes for seg og totalen er summen av de
    avrundede delene. Ukjent type eller dekning gir nullresultat.
    """
    tariff = ARBEIDSMASKIN_TARIFF.get(maskintype or "")
    belop = til_decimal(verdi)
    if tariff is None or dekning not in ARBEIDSMASKIN_DEKNINGER or belop is None or belop < 0:
        return ArbeidsmaskinPremie()

    ansvar, sats_brann, sats_kasko = tariff
    deler = {
        "liability": rund(ansvar),
        "fire_theft": rund(belop * sats_brann),
        "kasko": rund(belop * sats_kasko),
    }
    inkludert = _KOMPONENTER[dekning]
    resultat = ArbeidsmaskinPremie(
        **{navn: (deler[navn] if navn in inkludert else 0) for navn in deler},
        hoy_verdi=belop > ARBEIDSMASKIN_HOY_VERDI,
    )

    tilleggssum = Decimal("0")
    for tillegg_id in dict.fromkeys(tillegg or []):
        info = ARBEIDSMASKIN_TILLEGG.get(tillegg_id)
        if info is None:
            logger.debug("Ukjent tillegg %s ignorert", tillegg_id)
            continue
        label, pris = info
        if tillegg_id in ARBEIDSMASKIN_KUN_KASKO and dekning != "KASKO":
            resultat.advarsler.append(f"{label} krever kaskodekning og er ikke tatt med.")
            continue
        tilleggssum += pris

    if resultat.hoy_verdi:
        resultat.advarsler.append("Verdi over 1 000 000 kr krever godkjenning fra underwriter.")

    resultat.tillegg = rund(tilleggssum)
    resultat.total = resultat.dekning_sum + resultat.tillegg
    return resultat


__all__ = ["ArbeidsmaskinPremie", "beregn_arbeidsmaskin"]
