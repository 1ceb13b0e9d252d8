# processing/kalkulatorer/personbil.py
"""
Personbilkalkulator.

Grunnpremien slås opp på kjøretøytype, dekning og bonusnivå og ganges med
faktoren for årlig kjørelengde. Den fordeles så på ansvar, delkasko og
kasko etter typegruppens faste ansvarsdel og delkaskoandel. BilEkstra
prises til slutt som 500 kr pluss 10 % av totalen uten BilEkstra. Hver del
og hvert tillegg avrundes for seg, og totalen er summen av de avrundede tallene.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from .felles import rund, til_int
from .lastebil import Tilleggslinje
from .tariffer import (
    BILEKSTRA_SATS,
    FAKTORER_PERSONBIL_KJOERELENGDE,
    PERSONBIL_DEKNINGER,
    PERSONBIL_FORDELING,
    PERSONBIL_KUN_KASKO,
    PERSONBIL_TARIFF,
    PERSONBIL_TILLEGG,
)

logger = logging.getLogger(__name__)

NULL = Decimal("0")


@dataclass
class PersonbilPremie:
    ansvar: int = 0
    delkasko: int = 0
    kasko: int = 0
    tillegg: List[Tilleggslinje] = field(default_factory=list)
    total: int = 0
    advarsler: List[str] = field(default_factory=list)


def bonusnivaa(verdi: Any) -> Optional[str]:
    """'70', 70 og '70%' er samme nivå."""
    if verdi is None:
        return None
    tekst = str(verdi).strip().replace(" ", "")
    if not tekst:
        return None
    return tekst if tekst.endswith("%") else f"{tekst}%"


def _valgte_tillegg(
    tillegg: Iterable[str], kjoeretoeytype: str, dekning: str
) -> tuple[list[str], list[str]]:
    valgt = list(dict.fromkeys(tillegg))
    advarsler: list[str] = []
    if "bilEkstra" in valgt:
        # BilEkstra inkluderer leiebil 30 dager
        valgt = [t for t in valgt if t != "rentalCar15"]
        if "rentalCar30" not in valgt:
            valgt.append("rentalCar30")
    elif "rentalCar15" in valgt and "rentalCar30" in valgt:
        valgt.remove("rentalCar15")

    godkjent = []
    for tillegg_id in valgt:
        info = PERSONBIL_TILLEGG.get(tillegg_id)
        if info is None:
            logger.debug("Ukjent tillegg %s ignorert", tillegg_id)
            continue
        label = info[0]
        if tillegg_id in PERSONBIL_KUN_KASKO and dekning != "FULL_KASKO":
            advarsler.append(f"{label} krever kaskodekning og er ikke tatt med.")
            continue
        if tillegg_id == "craneLiability" and kjoeretoeytype != "TRUCK":
            advarsler.append(f"{label} gjelder bare lastebiler og er ikke tatt med.")
            continue
        godkjent.append(tillegg_id)
    return godkjent, advarsler


def beregn_personbil(
    kjoeretoeytype: Optional[str],
    dekning: Optional[str],
    bonus: Any,
    kjoerelengde: Any,
    tillegg: Optional[Iterable[str]] = None,
) -> PersonbilPremie:
    """Årspremie for bil. Manglende eller ukjent type, dekning, bonus eller kjørelengde gir nullresultat."""
    type_ = kjoeretoeytype or ""
    dekning = dekning or ""
    nivaa = bonusnivaa(bonus)
    km = til_int(kjoerelengde)
    tariff = PERSONBIL_TARIFF.get(type_, {}).get(dekning, {})
    if dekning not in PERSONBIL_DEKNINGER or nivaa not in tariff or km is None:
        return PersonbilPremie()

    grunnpremie = tariff[nivaa]
    faktor = FAKTORER_PERSONBIL_KJOERELENGDE.get(km)
    if faktor is None:
        logger.debug("Kjørelengde %s uten faktor, bruker grunnpremien", km)
    else:
        grunnpremie *= faktor

    fast_ansvar, delkasko_andel = PERSONBIL_FORDELING[type_]
    ansvar, delkasko, kasko = grunnpremie, NULL, NULL
    if dekning == "PARTIAL_KASKO":
        ansvar = fast_ansvar
        delkasko = max(NULL, grunnpremie - fast_ansvar)
    elif dekning == "FULL_KASKO":
        ansvar = fast_ansvar
        delkasko = grunnpremie * delkasko_andel
        kasko = max(NULL, grunnpremie - fast_ansvar - delkasko)

    valgt, advarsler = _valgte_tillegg(tillegg or [], type_, dekning)
    resultat = PersonbilPremie(
        ansvar=rund(ansvar),
        delkasko=rund(delkasko),
        kasko=rund(kasko),
        advarsler=advarsler,
    )

    for tillegg_id in valgt:
        if tillegg_id == "bilEkstra":
            continue
        label, pris = PERSONBIL_TILLEGG[tillegg_id]
        resultat.tillegg.append(Tilleggslinje(id=tillegg_id, label=label, pris=rund(pris)))

    total = resultat.ansvar + resultat.delkasko + resultat.kasko + sum(t.pris for t in resultat.tillegg)
    if "bilEkstra" in valgt:
        # 10 % av totalen uten BilEkstra
        label, fast = PERSONBIL_TILLEGG["bilEkstra"]
        pris = rund(fast + total * BILEKSTRA_SATS)
        resultat.tillegg.append(Tilleggslinje(id="bilEkstra", label=label, pris=pris))
        total += pris
    resultat.total = total
    return resultat


__all__ = ["PersonbilPremie", "beregn_personbil", "bonusnivaa"]
