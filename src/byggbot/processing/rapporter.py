# processing/rapporter.py
"""
Aggregering av rapportdata fra rapport-API-et (nysalg, skade og garanti).

Alt her er rene funksjoner over lister og dicts; ingen I/O. Nøklene i
resultatene følger feltnavnene rapportene alltid har brukt (norske, med
æøå), siden CSV-eksport og frontend leser dem direkte.
"""
from __future__ import annotations

import calendar
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from byggbot.processing.tekst import normaliser_forsikringsselskap

ALLE = "alle"
TOPP_PRODUKTER = 5
BEDRIFT = "Bedriftskunde"
PRIVAT = "Privatkunde"

KONTRAKTSSUM_INTERVALLER: List[Tuple[str, float, Optional[float]]] = [
    ("Under 5M", 0, 5_000_000),
    ("5M-10M", 5_000_000, 10_000_000),
    ("10M-15M", 10_000_000, 15_000_000),
    ("15M-20M", 15_000_000, 20_000_000),
    ("Over 20M", 20_000_000, None),
]

# (nøkkelord i beskrivelsen, prosjekttype). Første treff vinner.
PROSJEKTTYPE_REGLER: List[Tuple[Tuple[str, ...], str]] = [
    (("oppføring av bolig", "bolig under oppføring"), "Boligoppføring"),
    (("rehabilitering",), "Rehabilitering"),
    (("kjøp av bolig",), "Boligkjøp"),
    (("prosjektering",), "Prosjektering"),
]


# -------------------------------
# Hjelpere
# -------------------------------
def _tall(x: Any) -> float:
    if x is None or x == "":
        return 0.0
    if isinstance(x, (int, float)):
        return float(x)
    try:
        return float(str(x).replace(" ", "").replace(",", "."))
    except ValueError:
        return 0.0


def _dato(x: Any) -> Optional[date]:
    """ISO-dato eller -tidspunkt fra API-et; ugyldig verdi gir None."""
    if not x:
        return None
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    tekst = str(x).strip()
    try:
        return datetime.fromisoformat(tekst.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(tekst[:10])
    except ValueError:
        return None


def legg_til_maaneder(d: date, maaneder: int) -> date:
    """Som kalenderaritmetikk: 31. januar + 1 måned blir siste dag i februar."""
    total = d.month - 1 + maaneder
    aar = d.year + total // 12
    maaned = total % 12 + 1
    dag = min(d.day, calendar.monthrange(aar, maaned)[1])
    return date(aar, maaned, dag)


def median(verdier: Sequence[float]) -> float:
    """Midtverdien; ved partall antall snittet av de to midterste."""
    if not verdier:
        return 0.0
    sortert = sorted(verdier)
    midt = len(sortert) // 2
    if len(sortert) % 2:
        return sortert[midt]
    return (sortert[midt - 1] + sortert[midt]) / 2


def del_periode(start: date, slutt: date, maaneder: int = 6) -> List[Tuple[date, date]]:
    """Del [start, slutt] i sammenhengende biter på `maaneder` måneder."""
    biter: List[Tuple[date, date]] = []
    gjeldende = start
    while gjeldende <= slutt:
        bit_start = gjeldende
        gjeldende = legg_til_maaneder(gjeldende, maaneder)
        bit_slutt = slutt if gjeldende > slutt else gjeldende - timedelta(days=1)
        biter.append((bit_start, bit_slutt))
    return biter


def maaneder_mellom(start: date, slutt: date) -> int:
    return (slutt.year - start.year) * 12 + (slutt.month - start.month)


# -------------------------------
# Nysalg
# -------------------------------
def aggreger_nysalg(rader: Optional[Iterable[Mapping[str, Any]]]) -> Optional[Dict[str, Any]]:
    """
    Bygg nysalgsrapporten fra rå polise-rader.

    Én rad per polise/produkt. Kunder grupperes på CustomerNumber; antall
    poliser teller unike PolicyNumber. Tom input gir None.
    """
    rader = list(rader or [])
    if not rader:
        return None

    kunder: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
    poliser: Dict[Any, set] = {}
    produkter: Dict[Any, "OrderedDict[str, None]"] = {}
    for rad in rader:
        kundenr = rad.get("CustomerNumber")
        if kundenr not in kunder:
            kunder[kundenr] = {
                "KundeNr": kundenr,
                "KundeNavn": rad.get("CustomerName") or "",
                "OrgPersonNr": rad.get("OrgPersonNr") or rad.get("CustomerOrgNr") or "",
                "KundeType": BEDRIFT if rad.get("IsBusiness") else PRIVAT,
                "FørstePoliseDato": rad.get("ProductionDate"),
                "SalgsMedarbeider": rad.get("ProducedBy") or "",
                "AntallPoliser": 0,
                "TotalPremie": 0.0,
            }
            poliser[kundenr] = set()
            produkter[kundenr] = OrderedDict()
        kunde = kunder[kundenr]
        kunde["TotalPremie"] += _tall(rad.get("PeriodPremium"))
        if rad.get("ProductName"):
            produkter[kundenr][rad["ProductName"]] = None
        polise = rad.get("PolicyNumber")
        if polise not in poliser[kundenr]:
            poliser[kundenr].add(polise)
            kunde["AntallPoliser"] += 1

    kunde_detaljer = []
    for kundenr, kunde in kunder.items():
        kunde_detaljer.append({**kunde, "Produkter": ", ".join(produkter[kundenr])})

    bedrift = [k for k in kunde_detaljer if k["KundeType"] == BEDRIFT]
    privat = [k for k in kunde_detaljer if k["KundeType"] == PRIVAT]

    maaneder: Dict[Tuple[int, int], Dict[str, Any]] = {}
    for rad in rader:
        d = _dato(rad.get("ProductionDate"))
        if d is None:
            continue
        stat = maaneder.setdefault(
            (d.year, d.month), {"År": d.year, "Måned": d.month, "kunder": set(), "TotalPremieVolum": 0.0}
        )
        stat["kunder"].add(rad.get("CustomerNumber"))
        stat["TotalPremieVolum"] += _tall(rad.get("PeriodPremium"))
    maaneds_statistikk = [
        {"År": s["År"], "Måned": s["Måned"], "AntallNyeKunder": len(s["kunder"]), "TotalPremieVolum": s["TotalPremieVolum"]}
        for _, s in sorted(maaneder.items())
    ]

    def _per(nokkel: str) -> List[Dict[str, Any]]:
        grupper: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
        for kunde in kunde_detaljer:
            stat = grupper.setdefault(
                kunde[nokkel],
                {nokkel: kunde[nokkel], "AntallNyeKunder": 0, "TotaltAntallPoliser": 0, "TotalPremieVolum": 0.0},
            )
            stat["AntallNyeKunder"] += 1
            stat["TotaltAntallPoliser"] += kunde["AntallPoliser"]
            stat["TotalPremieVolum"] += kunde["TotalPremie"]
        return list(grupper.values())

    produkt_stat: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for rad in rader:
        navn = rad.get("ProductName")
        stat = produkt_stat.setdefault(navn, {"ProduktNavn": navn, "kunder": set(), "TotalPremie": 0.0})
        stat["kunder"].add(rad.get("CustomerNumber"))
        stat["TotalPremie"] += _tall(rad.get("PeriodPremium"))
    topp = sorted(produkt_stat.values(), key=lambda s: s["TotalPremie"], reverse=True)[:TOPP_PRODUKTER]

    return {
        "TotaltAntallNyeKunder": len(kunder),
        "TotalPremieNysalg": sum(_tall(r.get("PeriodPremium")) for r in rader),
        "AntallNyeBedriftskunder": len(bedrift),
        "PremieNyeBedriftskunder": sum(k["TotalPremie"] for k in bedrift),
        "AntallNyePrivatkunder": len(privat),
        "PremieNyePrivatkunder": sum(k["TotalPremie"] for k in privat),
        "KundetypeStatistikk": _per("KundeType"),
        "MånedsStatistikk": maaneds_statistikk,
        "SalgsStatistikk": _per("SalgsMedarbeider"),
        "ToppProdukter": [
            {"ProduktNavn": s["ProduktNavn"], "AntallKunder": len(s["kunder"]), "TotalPremie": s["TotalPremie"]}
            for s in topp
        ],
        "KundeDetaljer": kunde_detaljer,
    }


# -------------------------------
# Skade
# -------------------------------
@dataclass
class SkadeFilter:
    saksbehandler: str = ALLE
    status: str = ALLE  # "åpen", "avsluttet" eller eksakt Skadestatus
    skadetype: str = ALLE
    kundetype: str = ALLE  # "bedrift" eller "privat"

    @classmethod
    def fra_mapping(cls, data: Optional[Mapping[str, Any]]) -> "SkadeFilter":
        data = data or {}
        return cls(**{felt: str(data.get(felt) or ALLE) for felt in ("saksbehandler", "status", "skadetype", "kundetype")})


def _skade_matcher(skade: Mapping[str, Any], filtre: SkadeFilter) -> bool:
    if filtre.saksbehandler != ALLE and skade.get("Skadesaksbehandler") != filtre.saksbehandler:
        return False
    if filtre.status != ALLE:
        avsluttet = bool(skade.get("Skadeavsluttetdato"))
        if filtre.status == "åpen":
            if avsluttet:
                return False
        elif filtre.status == "avsluttet":
            if not avsluttet:
                return False
        elif skade.get("Skadestatus") != filtre.status:
            return False
    if filtre.skadetype != ALLE and skade.get("Skadetype") != filtre.skadetype:
        return False
    if filtre.kundetype == "bedrift" and not skade.get("ErBedriftskunde"):
        return False
    if filtre.kundetype == "privat" and skade.get("ErBedriftskunde"):
        return False
    return True


def filtrer_skade(data: Optional[Mapping[str, Any]], filtre: Optional[SkadeFilter] = None) -> Optional[Dict[str, Any]]:
    """Filtrer SkadeDetaljer og regn ut måneds-, kundetype- og skadetypestatistikk på nytt."""
    if not data:
        return None
    if data.get("SkadeDetaljer") is None:
        return dict(data)
    filtre = filtre or SkadeFilter()
    skader = [s for s in data["SkadeDetaljer"] if _skade_matcher(s, filtre)]

    maaneder: Dict[Tuple[int, int], Dict[str, Any]] = {}
    for skade in skader:
        d = _dato(skade.get("Skademeldtdato"))
        if d is None:
            continue
        stat = maaneder.setdefault(
            (d.year, d.month),
            {"År": d.year, "Måned": d.month, "AntallSkader": 0, "TotalUtbetalt": 0.0, "TotalReservert": 0.0},
        )
        stat["AntallSkader"] += 1
        stat["TotalUtbetalt"] += _tall(skade.get("Utbetalt"))
        stat["TotalReservert"] += _tall(skade.get("Skadereserve"))

    antall_bedrift = sum(1 for s in skader if s.get("ErBedriftskunde"))
    skadetyper: "OrderedDict[str, int]" = OrderedDict()
    for skade in skader:
        type_ = skade.get("Skadetype") or "Ukjent"
        skadetyper[type_] = skadetyper.get(type_, 0) + 1

    resultat = dict(data)
    resultat["SkadeDetaljer"] = skader
    resultat["MånedsStatistikk"] = [s for _, s in sorted(maaneder.items())]
    resultat["KundetypeStatistikk"] = [
        {"Kundetype": BEDRIFT, "AntallSkader": antall_bedrift},
        {"Kundetype": PRIVAT, "AntallSkader": len(skader) - antall_bedrift},
    ]
    resultat["SkadetypeStatistikk"] = [{"ClaimType": t, "AntallSkader": n} for t, n in skadetyper.items()]
    resultat["AntallApne"] = sum(1 for s in skader if not s.get("Skadeavsluttetdato"))
    resultat["AntallAvsluttede"] = len(skader) - resultat["AntallApne"]
    return resultat


def unike_verdier(data: Optional[Mapping[str, Any]], felt: str) -> List[str]:
    """Sorterte unike verdier for et felt i SkadeDetaljer, til filtervalg."""
    if not data or not data.get("SkadeDetaljer"):
        return []
    return sorted({str(s[felt]) for s in data["SkadeDetaljer"] if s.get(felt)})


_SKADE_SUMMER = (
    "TotaltAntallSkader",
    "TotalUtbetalt",
    "TotalReservert",
    "TotalRegress",
    "AntallBedriftskunder",
    "AntallPrivatkunder",
)


def _slaa_sammen_liste(
    resultater: Sequence[Mapping[str, Any]],
    liste: str,
    nokkel: Any,
    summer: Sequence[str],
) -> List[Dict[str, Any]]:
    samlet: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
    for resultat in resultater:
        for rad in resultat.get(liste) or []:
            k = nokkel(rad)
            if k not in samlet:
                samlet[k] = dict(rad)
                for felt in summer:
                    samlet[k][felt] = _tall(rad.get(felt))
                continue
            for felt in summer:
                samlet[k][felt] += _tall(rad.get(felt))
    return list(samlet.values())


def slaa_sammen_skade(resultater: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Slå sammen skaderapporter hentet i tidsbiter til én rapport."""
    resultater = [r for r in resultater if r]
    if not resultater:
        return {}
    if len(resultater) == 1:
        return dict(resultater[0])

    samlet: Dict[str, Any] = {felt: sum(_tall(r.get(felt)) for r in resultater) for felt in _SKADE_SUMMER}
    for felt in ("TotaltAntallSkader", "AntallBedriftskunder", "AntallPrivatkunder"):
        samlet[felt] = int(samlet[felt])
    samlet["SkadeDetaljer"] = [s for r in resultater for s in (r.get("SkadeDetaljer") or [])]

    maaneder = _slaa_sammen_liste(
        resultater,
        "MånedsStatistikk",
        lambda rad: (int(_tall(rad.get("År"))), int(_tall(rad.get("Måned")))),
        ("AntallSkader", "TotalUtbetalt", "TotalReservert"),
    )
    for rad in maaneder:
        rad["AntallSkader"] = int(rad["AntallSkader"])
    samlet["MånedsStatistikk"] = sorted(maaneder, key=lambda rad: (int(_tall(rad.get("År"))), int(_tall(rad.get("Måned")))))

    kundetyper = _slaa_sammen_liste(
        resultater,
        "KundetypeStatistikk",
        lambda rad: rad.get("Kundetype"),
        ("AntallSkader", "TotalUtbetalt", "TotalReservert", "TotalRegress"),
    )
    skadetyper = _slaa_sammen_liste(
        resultater,
        "SkadetypeStatistikk",
        lambda rad: rad.get("ClaimType"),
        ("AntallSkader", "TotalUtbetalt", "TotalReservert"),
    )
    for rad in kundetyper + skadetyper:
        rad["AntallSkader"] = int(rad["AntallSkader"])
    samlet["KundetypeStatistikk"] = kundetyper
    samlet["SkadetypeStatistikk"] = skadetyper
    return samlet


# -------------------------------
# Garanti
# -------------------------------
def klassifiser_prosjekttype(beskrivelse: str) -> str:
    tekst = beskrivelse.lower()
    for nokkelord, prosjekttype in PROSJEKTTYPE_REGLER:
        if any(ord_ in tekst for ord_ in nokkelord):
            return prosjekttype
    return "Annet"


def kontraktssum_statistikk(kunder: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    summer = [_tall(k.get("Kontraktssum")) for k in kunder if _tall(k.get("Kontraktssum"))]
    if not summer:
        return {"Antall": 0, "Total": 0.0, "Gjennomsnitt": 0.0, "Median": 0.0, "Maks": 0.0, "Min": 0.0}
    return {
        "Antall": len(summer),
        "Total": sum(summer),
        "Gjennomsnitt": sum(summer) / len(summer),
        "Median": median(summer),
        "Maks": max(summer),
        "Min": min(summer),
    }


def kontraktssum_fordeling(kunder: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    fordeling = []
    for navn, fra, til in KONTRAKTSSUM_INTERVALLER:
        antall = 0
        for kunde in kunder:
            verdi = _tall(kunde.get("Kontraktssum"))
            if verdi and verdi >= fra and (til is None or verdi < til):
                antall += 1
        fordeling.append({"Intervall": navn, "Antall": antall})
    return fordeling


def analyser_garanti(data: Optional[Mapping[str, Any]], *, i_dag: Optional[date] = None) -> Optional[Dict[str, Any]]:
    """
    Utled nøkkeltall for garantirapporten fra KundeDetaljer.

    Legger til kontraktssumstatistikk, fordeling i intervaller, prosjekttyper
    utledet fra beskrivelsen og overleveringer per kvartal og neste 6 måneder.
    """
    if not data or data.get("KundeDetaljer") is None:
        return dict(data) if data else None
    i_dag = i_dag or date.today()
    kunder = list(data["KundeDetaljer"])

    prosjekttyper: "OrderedDict[str, int]" = OrderedDict()
    for kunde in kunder:
        if not kunde.get("Beskrivelse"):
            continue
        type_ = klassifiser_prosjekttype(str(kunde["Beskrivelse"]))
        prosjekttyper[type_] = prosjekttyper.get(type_, 0) + 1

    kvartaler: Dict[Tuple[int, int], int] = {}
    om_seks = legg_til_maaneder(i_dag, 6)
    neste_seks = 0
    for kunde in kunder:
        d = _dato(kunde.get("Overleveringsdato"))
        if d is None:
            continue
        k = (d.year, (d.month - 1) // 3 + 1)
        kvartaler[k] = kvartaler.get(k, 0) + 1
        if i_dag <= d <= om_seks:
            neste_seks += 1

    resultat = dict(data)
    resultat["KontraktssumStatistikk"] = kontraktssum_statistikk(kunder)
    resultat["KontraktssumFordeling"] = kontraktssum_fordeling(kunder)
    resultat["Prosjekttyper"] = [{"Prosjekttype": t, "Antall": n} for t, n in prosjekttyper.items()]
    resultat["OverleveringerPerKvartal"] = [
        {"Kvartal": f"{aar} Q{kv}", "Antall": n} for (aar, kv), n in sorted(kvartaler.items())
    ]
    resultat["OverleveringerNeste6Mnd"] = neste_seks
    return resultat


def normaliser_selskapsnavn(rader: Iterable[Mapping[str, Any]], felt: str = "Forsikringsselskap") -> List[Dict[str, Any]]:
    """Kopi av radene med reparert selskapsnavn i `felt`."""
    ut = []
    for rad in rader:
        kopi = dict(rad)
        if felt in kopi:
            kopi[felt] = normaliser_forsikringsselskap(kopi[felt])
        ut.append(kopi)
    return ut


__all__ = [
    "SkadeFilter",
    "aggreger_nysalg",
    "analyser_garanti",
    "del_periode",
    "filtrer_skade",
    "klassifiser_prosjekttype",
    "kontraktssum_fordeling",
    "kontraktssum_statistikk",
    "legg_til_maaneder",
    "maaneder_mellom",
    "median",
    "normaliser_selskapsnavn",
    "slaa_sammen_skade",
    "unike_verdier",
]
