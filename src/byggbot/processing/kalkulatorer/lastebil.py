# processing/kalkulatorer/lastebil.py
"""
Lastebilkalkulator.

Premien bygges opp per dekningsdel (A = ansvar, D = delkasko, K = kasko):
grunnpris ganget med faktorer for kjøretøytype, egenandel, kjørelengde,
kjøreområde og totalvekt, deretter med aldersfaktoren. Hver del og hvert
tillegg avrundes for seg før summering.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .felles import eksakt, rund, til_decimal, til_int
from .tariffer import (
    FAKTORER_ALDER,
    FAKTORER_EGENANDEL_ANSVAR,
    FAKTORER_EGENANDEL_KASKO,
    FAKTORER_KJOERELENGDE,
    FAKTORER_KJOEREOMRAADE,
    FAKTORER_KJOERETOEYTYPE,
    FAKTORER_TOTALVEKT,
    LASTEBIL_DEKNINGER,
    LASTEBIL_GRUNNPRIS,
    LASTEBIL_TILLEGG,
    LASTEBIL_UW_TILLEGG,
    LASTEBIL_UW_VERDI,
    MAKS_ALDER,
)

logger = logging.getLogger(__name__)

EN = Decimal("1")
NULL = Decimal("0")
_NOYTRAL = {"A": EN, "D": EN, "K": EN}


# -------------------------------
# Datamodell
# -------------------------------
@dataclass
class LastebilInput:
    kjoeretoeytype: Optional[str] = None
    registreringsaar: Any = None
    totalvekt: Optional[str] = None
    kjoerelengde: Optional[str] = None
    kjoereomraade: Optional[str] = None
    dekning: Optional[str] = None
    egenandel_ansvar: Optional[str] = None
    egenandel_kasko: Optional[str] = None
    lastebilverdi: Any = None
    tillegg: Dict[str, bool] = field(default_factory=dict)
    avbrudd_dagsbelop: Any = None


@dataclass
class Tilleggslinje:
    id: str
    label: str
    pris: int


@dataclass
class LastebilPremie:
    ansvar: int = 0
    delkasko: int = 0
    kasko: int = 0
    tillegg: List[Tilleggslinje] = field(default_factory=list)
    total: int = 0
    # uavrundede verdier per del
    ansvar_eksakt: Decimal = NULL
    delkasko_eksakt: Decimal = NULL
    kasko_eksakt: Decimal = NULL
    krever_uw_godkjenning: bool = False
    advarsler: List[str] = field(default_factory=list)


# -------------------------------
# Hjelpere
# -------------------------------
def aldersfaktor(alder: int) -> Dict[str, Decimal]:
    """Alder -1 har egen rad; lavere bruker raden for 0, over 50 bruker raden for 50."""
    if alder in FAKTORER_ALDER:
        return FAKTORER_ALDER[alder]
    if alder < 0:
        return FAKTORER_ALDER[0]
    return FAKTORER_ALDER[MAKS_ALDER]


def _mangler_felt(inn: LastebilInput) -> bool:
    paakrevd = [
        inn.kjoeretoeytype,
        inn.totalvekt,
        inn.kjoerelengde,
        inn.kjoereomraade,
        inn.dekning,
        inn.egenandel_ansvar,
        inn.registreringsaar,
    ]
    if inn.dekning == "KASKO":
        paakrevd.append(inn.egenandel_kasko)
    return any(v in (None, "") for v in paakrevd)


def fra_mapping(data: Mapping[str, Any]) -> LastebilInput:
    """Bygg input fra camelCase-nøkler slik skjemaet sender dem."""
    tillegg_raw = data.get("tillegg") or {}
    tillegg = {k: bool(v) for k, v in tillegg_raw.items() if k in LASTEBIL_TILLEGG}
    return LastebilInput(
        kjoeretoeytype=data.get("kjoeretoeytype"),
        registreringsaar=data.get("registreringsaar"),
        totalvekt=data.get("totalvekt"),
        kjoerelengde=data.get("kjoerelengde"),
        kjoereomraade=data.get("kjoereomraade"),
        dekning=data.get("dekning"),
        egenandel_ansvar=data.get("egenandelAnsvar"),
        egenandel_kasko=data.get("egenandelKasko"),
        lastebilverdi=data.get("lastebilverdi"),
        tillegg=tillegg,
        avbrudd_dagsbelop=data.get("avbruddBeloep", tillegg_raw.get("avbruddBeloep")),
    )


# -------------------------------
# Beregning
# -------------------------------
def beregn_lastebil(inn: LastebilInput, *, i_aar: Optional[int] = None) -> LastebilPremie:
    i_aar = i_aar or date.today().year
    if _mangler_felt(inn) or inn.dekning not in LASTEBIL_DEKNINGER:
        return LastebilPremie()
    reg_aar = til_int(inn.registreringsaar)
    if reg_aar is None or reg_aar < 1900 or reg_aar > i_aar + 1:
        logger.debug("Ugyldig registreringsår: %s", inn.registreringsaar)
        return LastebilPremie()

    dekning = inn.dekning
    grunn_a = LASTEBIL_GRUNNPRIS["ANSVAR"]
    grunn_d = LASTEBIL_GRUNNPRIS["DELKASKO"] if dekning in ("DELKASKO", "KASKO") else NULL
    grunn_k = LASTEBIL_GRUNNPRIS["KASKO"] if dekning == "KASKO" else NULL

    type_f = FAKTORER_KJOERETOEYTYPE.get(inn.kjoeretoeytype or "", _NOYTRAL)
    lengde_f = FAKTORER_KJOERELENGDE.get(str(inn.kjoerelengde), _NOYTRAL)
    omraade_f = FAKTORER_KJOEREOMRAADE.get(inn.kjoereomraade or "", _NOYTRAL)
    vekt_f = FAKTORER_TOTALVEKT.get(inn.totalvekt or "", _NOYTRAL)
    egen_a = FAKTORER_EGENANDEL_ANSVAR.get(str(inn.egenandel_ansvar), EN)
    egen_k = FAKTORER_EGENANDEL_KASKO.get(str(inn.egenandel_kasko), EN)
    alder_f = aldersfaktor(i_aar - reg_aar)

    ansvar = grunn_a * type_f["A"] * egen_a * lengde_f["A"] * omraade_f["A"] * vekt_f["A"] * alder_f["A"]
    delkasko = grunn_d * type_f["D"] * lengde_f["D"] * omraade_f["D"] * vekt_f["D"] * alder_f["D"]
    kasko = grunn_k * type_f["K"] * egen_k * lengde_f["K"] * omraade_f["K"] * vekt_f["K"] * alder_f["K"]

    resultat = LastebilPremie(
        ansvar=rund(ansvar),
        delkasko=rund(delkasko),
        kasko=rund(kasko),
        ansvar_eksakt=eksakt(ansvar),
        delkasko_eksakt=eksakt(delkasko),
        kasko_eksakt=eksakt(kasko),
    )
    grunnlag = resultat.ansvar + resultat.delkasko + resultat.kasko

    for tillegg_id, valgt in inn.tillegg.items():
        if not valgt or tillegg_id not in LASTEBIL_TILLEGG:
            continue
        type_, sats, label = LASTEBIL_TILLEGG[tillegg_id]
        pris = NULL
        if type_ == "fixed":
            pris = sats
        elif type_ == "factor":
            pris = grunnlag * sats
        elif tillegg_id == "avbrudd":
            dagsbelop = til_decimal(inn.avbrudd_dagsbelop)
            if dagsbelop is not None and dagsbelop > 0:
                pris = dagsbelop * sats
            else:
                resultat.advarsler.append("Avbrudd er valgt uten gyldig dagsbeløp.")
        if pris > 0 or type_ == "special":
            resultat.tillegg.append(Tilleggslinje(id=tillegg_id, label=label, pris=rund(pris)))
        if tillegg_id in LASTEBIL_UW_TILLEGG:
            resultat.krever_uw_godkjenning = True
            resultat.advarsler.append(f"{label} krever godkjenning fra underwriter.")

    if inn.kjoereomraade == "EUROPA_MINUS":
        resultat.krever_uw_godkjenning = True
        resultat.advarsler.append("Kjøreområde Europa krever godkjenning fra underwriter.")
    verdi = til_decimal(inn.lastebilverdi)
    if verdi is not None and verdi > LASTEBIL_UW_VERDI:
        resultat.krever_uw_godkjenning = True
        resultat.advarsler.append("Lastebilverdi over 1 500 000 kr krever godkjenning fra underwriter.")

    resultat.total = grunnlag + sum(linje.pris for linje in resultat.tillegg)
    return resultat


__all__ = [
    "LastebilInput",
    "LastebilPremie",
    "Tilleggslinje",
    "aldersfaktor",
    "beregn_lastebil",
    "fra_mapping",
]
