# processing/tekst.py
"""
Reparasjon av ødelagte tegn i selskapsnavn fra rapport-API-et.

Rapportkilden blander tegnsett. Svenske forsikringsselskaper kommer ofte som
"F��rsäkring" eller "F??rsäkring", og norske navn kan være UTF-8 lest som
Latin-1 ("Ã¸" for "ø"). Tabellene under er de kjente sekvensene; rekkefølgen
betyr noe siden lengre sekvenser må byttes før kortere.
"""
from __future__ import annotations

from typing import Optional, Tuple

ERSTATNINGSTEGN = "\ufffd"

# Kjente ødelagte varianter av "Försäkring"
FORSAKRING_VARIANTER: Tuple[str, ...] = (
    "Förs" + ERSTATNINGSTEGN * 2 + "kring",
    "Förs??kring",
    "F" + ERSTATNINGSTEGN * 2 + "rsäkring",
    "F??rsäkring",
    "F" + ERSTATNINGSTEGN + "rsäkring",
)
FORSAKRING = "Försäkring"

# UTF-8 tolket som Latin-1/cp1252
MOJIBAKE: Tuple[Tuple[str, str], ...] = (
    ("Ã¸", "ø"),
    ("Ã¥", "å"),
    ("Ã¦", "æ"),
    ("Ã˜", "Ø"),
    ("Ã…", "Å"),
    ("Ã†", "Æ"),
    ("Ã¤", "ä"),
    ("Ã¶", "ö"),
    ("Ã„", "Ä"),
    ("Ã–", "Ö"),
    ("Ã©", "é"),
    ("Ã¼", "ü"),
)


def normaliser_forsikringsselskap(navn: Optional[str]) -> str:
    """Kanonisk selskapsnavn. Tom verdi gir tom streng."""
    if not navn:
        return ""
    tekst = str(navn)
    for feil, riktig in MOJIBAKE:
        tekst = tekst.replace(feil, riktig)
    for variant in FORSAKRING_VARIANTER:
        tekst = tekst.replace(variant, FORSAKRING)
    return tekst.strip()


__all__ = ["FORSAKRING_VARIANTER", "MOJIBAKE", "normaliser_forsikringsselskap"]
