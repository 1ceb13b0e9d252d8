# processing/kalkulatorer/tariffer.py
"""Tariff-tabeller for kalkulatorene. Ren data, ingen logikk utover oppslag."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

D = Decimal

# -------------------------------
# Arbeidsmaskin
# -------------------------------
ARBEIDSMASKIN_TYPER: Dict[str, str] = {
    "SMALL_EXCAVATOR": "Gravemaskin / Hjullaster - inntil 3,5t",
    "MEDIUM_EXCAVATOR": "Gravemaskin / Hjullaster - 3,5-7,5t",
    "LARGE_EXCAVATOR": "Gravemaskin / Hjullaster - 7,5-15t",
    "XLARGE_EXCAVATOR": "Gravemaskin / Hjullaster - +15t",
    "TRACTOR": "Traktor",
    "WAREHOUSE_TRUCK": "Truck (Lager)",
    "TELESCOPIC_TRUCK": "Teleskoptruck (Manitou og lignende)",
}

# type -> (ansvar, sats brann/tyveri, sats kasko)
ARBEIDSMASKIN_TARIFF: Dict[str, Tuple[Decimal, Decimal, Decimal]] = {
    "SMALL_EXCAVATOR": (D("1923"), D("0.0105084"), D("0.007506")),
    "MEDIUM_EXCAVATOR": (D("3078"), D("0.007506"), D("0.0060048")),
    "LARGE_EXCAVATOR": (D("3847"), D("0.007506"), D("0.0060048")),
    "XLARGE_EXCAVATOR": (D("4616"), D("0.007506"), D("0.0060048")),
    "TRACTOR": (D("2308"), D("0.0052542"), D("0.0045036")),
    "WAREHOUSE_TRUCK": (D("1154"), D("0.0052542"), D("0.0052542")),
    "TELESCOPIC_TRUCK": (D("2308"), D("0.0052542"), D("0.0052542")),
}

ARBEIDSMASKIN_DEKNINGER: Dict[str, str] = {
    "LIABILITY": "Ansvar",
    "FIRE_THEFT": "Brann/Tyveri",
    "KASKO": "Kasko",
}

# id -> (label, pris)
ARBEIDSMASKIN_TILLEGG: Dict[str, Tuple[str, Decimal]] = {
    "driverAccident": ("Fører- og passasjerulykke", D("210")),
    "leasing": ("Leasing / 3.mannsinteresse", D("199")),
    "limitedIdentification": ("Begrenset identifikasjon", D("245")),
    "craneLiability": ("Kranansvar", D("1700")),
    "snowPlowing": ("Snøbrøyting", D("1450")),
}
ARBEIDSMASKIN_KUN_KASKO = frozenset({"leasing", "craneLiability"})
ARBEIDSMASKIN_HOY_VERDI = D("1000000")

# -------------------------------
# Tilhenger
# -------------------------------
TILHENGER_SATS_BRANN_TYVERI = D("0.0118")
TILHENGER_SATS_KASKO = D("0.0177")
TILHENGER_VARSEL_VERDI = D("100000")

# -------------------------------
# Veterankjøretøy (priser inkl. fører- og passasjerulykke)
# -------------------------------
VETERAN_ALDERSGRENSE = 30

_VETERAN_PRISER: List[Tuple[str, Dict[str, Tuple[int, int, int]]]] = [
    (
        "<=1950",
        {
            "100000": (351, 531, 801),
            "200000": (351, 691, 1201),
            "300000": (351, 771, 1401),
            "400000": (351, 851, 1601),
            "500000": (351, 931, 1801),
        },
    ),
    (
        "1951-1960",
        {
            "100000": (391, 621, 966),
            "200000": (391, 801, 1331),
            "300000": (391, 891, 1551),
            "400000": (391, 981, 1771),
            "500000": (391, 1071, 1991),
        },
    ),
    (
        "1961-1970",
        {
            "100000": (431, 721, 1156),
            "200000": (431, 921, 1636),
            "300000": (431, 1021, 1876),
            "400000": (431, 1121, 2116),
            "500000": (431, 1221, 2356),
        },
    ),
    (
        "1971-1980",
        {
            "100000": (501, 851, 1376),
            "200000": (501, 1071, 1896),
            "300000": (501, 1181, 2156),
            "400000": (501, 1291, 2416),
            "500000": (501, 1401, 2676),
        },
    ),
    (
        "1981-{cutoff}",
        {
            "100000": (586, 1006, 1636),
            "200000": (586, 1246, 2196),
            "300000": (586, 1366, 2476),
            "400000": (586, 1486, 2756),
            "500000": (586, 1606, 3036),
        },
    ),
]

FORSIKRINGSSUMMER: Dict[str, str] = {
    "100000": "100 000 kr",
    "200000": "200 000 kr",
    "300000": "300 000 kr",
    "400000": "400 000 kr",
    "500000": "500 000 kr",
}

DEKNINGSTYPER: Dict[str, str] = {
    "ANSVAR": "Ansvar",
    "DELKASKO": "Ansvar/Delkasko",
    "KASKO": "Ansvar/Kasko",
}


def veteran_cutoff_aar(i_aar: Optional[int] = None) -> int:
    """Siste årsmodell som regnes som veterankjøretøy (30 år eller eldre)."""
    return (i_aar or date.today().year) - VETERAN_ALDERSGRENSE


def veteran_tariffer(i_aar: Optional[int] = None) -> Dict[str, Dict[str, Dict[str, int]]]:
    """gruppe -> forsikringssum -> dekningstype -> pris. Siste gruppe flytter seg med året."""
    cutoff = veteran_cutoff_aar(i_aar)
    tabell: Dict[str, Dict[str, Dict[str, int]]] = {}
    for gruppe, summer in _VETERAN_PRISER:
        nokkel = gruppe.format(cutoff=cutoff)
        tabell[nokkel] = {
            sum_: {"ANSVAR": ansvar, "DELKASKO": delkasko, "KASKO": kasko}
            for sum_, (ansvar, delkasko, kasko) in summer.items()
        }
    return tabell


def aarsmodell_grupper(i_aar: Optional[int] = None) -> Dict[str, str]:
    grupper = {}
    for gruppe, _ in _VETERAN_PRISER:
        nokkel = gruppe.format(cutoff=veteran_cutoff_aar(i_aar))
        grupper[nokkel] = "Før 1951" if nokkel == "<=1950" else nokkel
    return grupper


# -------------------------------
# Lastebil
# -------------------------------
LASTEBIL_GRUNNPRIS: Dict[str, Decimal] = {
    "ANSVAR": D("5355"),  # inkl. fører- og passasjerulykke
    "DELKASKO": D("5405"),
    "KASKO": D("8898"),
}

LASTEBIL_TYPER: Dict[str, str] = {
    "SKAP_PLAN_LETT": "Skapbil / Planbil inntil 7 500 kg",
    "TREKKBIL": "Trekkbil",
    "SKAPBIL": "Skapbil",
    "PLANBIL": "Planbil",
    "TIPP_KROK": "Tippbil / Krokbil",
    "CONTAINERBIL": "Containerbil",
}

LASTEBIL_DEKNINGER: Dict[str, str] = {
    "ANSVAR": "Ansvar inkl. Fører- og passasjerulykke",
    "DELKASKO": "Delkasko",
    "KASKO": "Kasko",
}

KJOEREOMRAADER: Dict[str, str] = {
    "NORGE": "Norge",
    "NORDEN": "Norden",
    "EUROPA_MINUS": "Europa - Untatt Russland, Belarus og Kosovo",
}


def _adk(a: str, d: str, k: str) -> Dict[str, Decimal]:
    return {"A": D(a), "D": D(d), "K": D(k)}


FAKTORER_KJOERETOEYTYPE: Dict[str, Dict[str, Decimal]] = {
    "SKAP_PLAN_LETT": _adk("1.05", "1.00", "1.05"),
    "TREKKBIL": _adk("1.15", "1.00", "1.15"),
    "SKAPBIL": _adk("0.96", "0.92", "0.96"),
    "PLANBIL": _adk("0.96", "0.92", "0.96"),
    "TIPP_KROK": _adk("1.00", "1.00", "1.00"),
    "CONTAINERBIL": _adk("1.00", "1.00", "1.00"),
}

FAKTORER_EGENANDEL_KASKO: Dict[str, Decimal] = {
    "6000": D("1.20"),
    "10000": D("1.00"),
    "20000": D("0.85"),
    "50000": D("0.70"),
    "100000": D("0.55"),
}

FAKTORER_EGENANDEL_ANSVAR: Dict[str, Decimal] = {
    "5000": D("1.25"),
    "10000": D("1.00"),
}

FAKTORER_KJOERELENGDE: Dict[str, Dict[str, Decimal]] = {
    "8000": _adk("0.47", "0.55", "0.47"),
    "12000": _adk("0.55", "0.60", "0.55"),
    "16000": _adk("0.60", "0.65", "0.60"),
    "20000": _adk("0.65", "0.65", "0.65"),
    "25000": _adk("0.70", "0.65", "0.70"),
    "30000": _adk("0.80", "0.80", "0.80"),
    "40000": _adk("0.90", "0.90", "0.90"),
    "60000": _adk("1.00", "1.00", "1.00"),
    "80000": _adk("1.20", "1.10", "1.20"),
    "100000": _adk("1.40", "1.20", "1.40"),
    "120000": _adk("1.50", "1.30", "1.50"),
    "UBEGRENSET": _adk("1.75", "1.40", "1.75"),
}

FAKTORER_KJOEREOMRAADE: Dict[str, Dict[str, Decimal]] = {
    "NORGE": _adk("1.00", "1.00", "1.00"),
    "NORDEN": _adk("1.05", "1.05", "1.05"),
    "EUROPA_MINUS": _adk("1.15", "1.15", "1.15"),
}

FAKTORER_TOTALVEKT: Dict[str, Dict[str, Decimal]] = {
    "Inntil 7 500 kg": _adk("1.10", "1.10", "1.10"),
    "Inntil 10 000 kg": _adk("1.12", "1.12", "1.12"),
    "Inntil 13 000 kg": _adk("1.14", "1.14", "1.14"),
    "Inntil 17 000 kg": _adk("1.17", "1.17", "1.17"),
    "Inntil 21 000 kg": _adk("1.20", "1.20", "1.20"),
    "Inntil 27 000 kg": _adk("1.25", "1.25", "1.25"),
    "Inntil 36 000 kg": _adk("1.30", "1.30", "1.30"),
    "Inntil 43 000 kg": _adk("1.40", "1.40", "1.40"),
}

# alder -> (A, D, K). Alder = inneværende år - registreringsår.
_ALDER_RADER: List[Tuple[int, str, str, str]] = [
    (-1, "1.00", "1.00", "1.00"),
    (0, "1.00", "1.00", "1.00"),
    (1, "1.00", "1.00", "0.98"),
    (2, "1.00", "1.00", "0.97"),
    (3, "1.00", "0.99", "0.96"),
    (4, "1.00", "0.99", "0.95"),
    (5, "1.00", "0.98", "0.94"),
    (6, "1.00", "0.98", "0.93"),
    (7, "1.00", "0.98", "0.92"),
    (8, "1.00", "0.97", "0.91"),
    (9, "1.00", "0.97", "0.90"),
    (10, "1.00", "0.96", "0.89"),
    (11, "1.00", "0.96", "0.88"),
    (12, "1.00", "0.95", "0.80"),
    (13, "1.00", "0.95", "0.86"),
    (14, "1.00", "0.94", "0.85"),
    (15, "1.00", "0.94", "0.84"),
    (16, "1.00", "0.93", "0.83"),
    (17, "1.00", "0.93", "0.82"),
    (18, "1.00", "0.93", "0.81"),
    (19, "1.00", "0.92", "0.80"),
    (20, "1.00", "0.92", "0.80"),
    (21, "1.00", "0.91", "0.80"),
    (22, "1.00", "0.91", "0.80"),
    (23, "1.00", "0.90", "0.80"),
    (24, "1.00", "0.90", "0.80"),
    (25, "1.00", "0.89", "0.80"),
    (26, "1.00", "0.88", "0.80"),
    (27, "1.00", "0.87", "0.80"),
    (28, "1.00", "0.86", "0.80"),
    (29, "1.00", "0.85", "0.80"),
    (30, "1.00", "0.85", "0.80"),
    (31, "1.00", "0.85", "0.79"),
    (32, "1.00", "0.85", "0.78"),
    (33, "1.00", "0.85", "0.77"),
    (34, "1.00", "0.85", "0.76"),
    (35, "1.00", "0.85", "0.75"),
    (36, "1.00", "0.85", "0.74"),
    (37, "1.00", "0.85", "0.73"),
    (38, "1.00", "0.85", "0.72"),
    (39, "1.00", "0.85", "0.71"),
    (40, "1.00", "0.85", "0.70"),
    (41, "1.00", "0.85", "0.69"),
    (42, "1.00", "0.85", "0.68"),
    (43, "1.00", "0.85", "0.67"),
    (44, "1.00", "0.85", "0.66"),
    (45, "1.00", "0.85", "0.65"),
    (46, "1.00", "0.85", "0.64"),
    (47, "1.00", "0.85", "0.63"),
    (48, "1.00", "0.85", "0.62"),
    (49, "1.00", "0.85", "0.61"),
    (50, "1.00", "0.85", "0.60"),
]
FAKTORER_ALDER: Dict[int, Dict[str, Decimal]] = {
    alder: _adk(a, d, k) for alder, a, d, k in _ALDER_RADER
}
MAKS_ALDER = 50

# id -> (type, verdi, label). "special" prises med egen logikk.
LASTEBIL_TILLEGG: Dict[str, Tuple[str, Decimal, str]] = {
    "begrensetIdent": ("fixed", D("300"), "Begrenset identifikasjon"),
    "annetAnsvar": ("fixed", D("1700"), "Kranansvar"),
    "yrkesloesoereVarer": ("fixed", D("1500"), "Yrkesløsøre og varer"),
    "forsikringsattest": ("fixed", D("100"), "Forsikringsattest (Panthaver/Leasing)"),
    "avbrudd": ("special", D("1.5"), "Avbrudd"),  # dagsbeløp x 1.5
}
LASTEBIL_UW_TILLEGG = frozenset({"annetAnsvar", "avbrudd"})
LASTEBIL_UW_VERDI = D("1500000")

# -------------------------------
# Personbil (bonustariff x kjørelengdefaktor)
# -------------------------------
PERSONBIL_TYPER: Dict[str, str] = {
    "PRIVATE_LIGHT": "Privat- og firmabiler inntil 3,5 tonn",
    "ELECTRIC_LIGHT": "El-biler inntil 3,5 tonn",
    "BUDGET": "Rimeligere biler (spesialtariff)",
    "PRIVATE_MEDIUM": "Privat- og firmabiler 3,5 - 7,499 tonn",
    "TRUCK": "Lastebiler fom 7,5 tonn",
}

PERSONBIL_DEKNINGER: Dict[str, str] = {
    "LIABILITY": "Ansvar",
    "PARTIAL_KASKO": "Delkasko",
    "FULL_KASKO": "Kasko",
}

BONUSNIVAAER: List[str] = ["75%", "70%", "60%", "50%", "40%", "30%", "20%", "-10%"]

RIMELIGE_BILMERKER: List[str] = [
    "Ford Connect",
    "Citroen Berlingo",
    "Nissan Kubistar",
    "Toyota Yaris Verso",
    "Ford Courier",
    "Opel Combo",
    "Renault Kangoo",
    "Mercedes-Benz Citan",
    "Fiat Doblo",
    "Peugeot Partner",
    "Seat Inca",
    "Annet",
]


def _bonusrad(*priser: int) -> Dict[str, Decimal]:
    return {nivaa: D(pris) for nivaa, pris in zip(BONUSNIVAAER, priser)}


PERSONBIL_TARIFF: Dict[str, Dict[str, Dict[str, Decimal]]] = {
    "PRIVATE_LIGHT": {
        "LIABILITY": _bonusrad(2949, 3215, 3539, 3981, 4424, 4896, 5456, 6488),
        "PARTIAL_KASKO": _bonusrad(5818, 6361, 7024, 7928, 8832, 9796, 10942, 13052),
        "FULL_KASKO": _bonusrad(9149, 10001, 11031, 12434, 13838, 15336, 17114, 18389),
    },
    "ELECTRIC_LIGHT": {
        "LIABILITY": _bonusrad(3250, 3542, 3900, 4387, 4874, 5394, 6012, 7149),
        "PARTIAL_KASKO": _bonusrad(6266, 6849, 7561, 8532, 9504, 10540, 11770, 14037),
        "FULL_KASKO": _bonusrad(9929, 10841, 11956, 13477, 15008, 16620, 18547, 22095),
    },
    "PRIVATE_MEDIUM": {
        "LIABILITY": _bonusrad(4087, 4455, 4904, 5517, 6130, 6784, 7560, 8991),
        "PARTIAL_KASKO": _bonusrad(6639, 7255, 8009, 9036, 10063, 11159, 12460, 14857),
        "FULL_KASKO": _bonusrad(11287, 12322, 13587, 15312, 17036, 18876, 21060, 25084),
    },
    "TRUCK": {
        "LIABILITY": _bonusrad(6120, 6671, 7344, 8262, 9180, 10159, 11322, 13464),
        "PARTIAL_KASKO": _bonusrad(11046, 12059, 13297, 14996, 16684, 18485, 20614, 24553),
        "FULL_KASKO": _bonusrad(14521, 15847, 17467, 19677, 21886, 24243, 27042, 32198),
    },
    # spesialtariff; delkasko og kasko er fratrukket førerulykke (210)
    "BUDGET": {
        "LIABILITY": _bonusrad(2949, 3215, 3359, 3981, 4424, 4896, 5456, 6488),
        "PARTIAL_KASKO": _bonusrad(4612, 5046, 5577, 6300, 7024, 7795, 8711, 10399),
        "FULL_KASKO": _bonusrad(6716, 7339, 8101, 9139, 10178, 11286, 12602, 15026),
    },
}

# km per år -> faktor. 999999 er fri kjørelengde.
FAKTORER_PERSONBIL_KJOERELENGDE: Dict[int, Decimal] = {
    10000: D("0.90"),
    12000: D("0.92"),
    16000: D("0.96"),
    20000: D("1.00"),
    25000: D("1.05"),
    30000: D("1.10"),
    35000: D("1.15"),
    999999: D("1.25"),
}

# typegruppe -> (fast ansvarsdel, delkaskoandel av grunnpremien ved full kasko)
PERSONBIL_FORDELING: Dict[str, Tuple[Decimal, Decimal]] = {
    "PRIVATE_LIGHT": (D("2949"), D("0.28")),
    "ELECTRIC_LIGHT": (D("2949"), D("0.28")),
    "BUDGET": (D("2949"), D("0.28")),
    "PRIVATE_MEDIUM": (D("3449"), D("0.25")),
    "TRUCK": (D("4842"), D("0.36")),
}

# id -> (label, pris)
PERSONBIL_TILLEGG: Dict[str, Tuple[str, Decimal]] = {
    "driverAccident": ("Fører- og passasjerulykke", D("210")),
    "leasing": ("Leasing/3. manns interesse", D("199")),
    "limitedIdentification": ("Begrenset identifikasjon", D("245")),
    "rentalCar15": ("Leiebil 15 dager", D("375")),
    "rentalCar30": ("Leiebil 30 dager", D("670")),
    "craneLiability": ("Kranansvar", D("1700")),
    "bilEkstra": ("BilEkstra (10% + 500 kr)", D("500")),
}
PERSONBIL_KUN_KASKO = frozenset({"leasing", "rentalCar15", "rentalCar30", "bilEkstra"})
BILEKSTRA_SATS = D("0.1")


__all__ = [
    "ARBEIDSMASKIN_DEKNINGER",
    "ARBEIDSMASKIN_HOY_VERDI",
    "ARBEIDSMASKIN_KUN_KASKO",
    "ARBEIDSMASKIN_TARIFF",
    "ARBEIDSMASKIN_TILLEGG",
    "ARBEIDSMASKIN_TYPER",
    "BILEKSTRA_SATS",
    "BONUSNIVAAER",
    "DEKNINGSTYPER",
    "FAKTORER_ALDER",
    "FAKTORER_EGENANDEL_ANSVAR",
    "FAKTORER_EGENANDEL_KASKO",
    "FAKTORER_KJOERELENGDE",
    "FAKTORER_KJOEREOMRAADE",
    "FAKTORER_KJOERETOEYTYPE",
    "FAKTORER_PERSONBIL_KJOERELENGDE",
    "FAKTORER_TOTALVEKT",
    "FORSIKRINGSSUMMER",
    "KJOEREOMRAADER",
    "LASTEBIL_DEKNINGER",
    "LASTEBIL_GRUNNPRIS",
    "LASTEBIL_TILLEGG",
    "LASTEBIL_TYPER",
    "LASTEBIL_UW_TILLEGG",
    "LASTEBIL_UW_VERDI",
    "MAKS_ALDER",
    "PERSONBIL_DEKNINGER",
    "PERSONBIL_FORDELING",
    "PERSONBIL_KUN_KASKO",
    "PERSONBIL_TARIFF",
    "PERSONBIL_TILLEGG",
    "PERSONBIL_TYPER",
    "RIMELIGE_BILMERKER",
    "TILHENGER_SATS_BRANN_TYVERI",
    "TILHENGER_SATS_KASKO",
    "TILHENGER_VARSEL_VERDI",
    "aarsmodell_grupper",
    "veteran_cutoff_aar",
    "veteran_tariffer",
]
