# processing/csv_eksport.py
from __future__ import annotations

import csv
import io
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

NYSALG_KOLONNER: List[str] = [
    "KundeNr",
    "KundeNavn",
    "OrgPersonNr",
    "KundeType",
    "FørstePoliseDato",
    "SalgsMedarbeider",
    "AntallPoliser",
    "TotalPremie",
    "Produkter",
]

GARANTI_KOLONNER: List[str] = [
    "KundeNr",
    "KundeNavn",
    "OrgPersonNr",
    "KundeType",
    "ProduksjonsDato",
    "SalgsMedarbeider",
    "AntallPoliser",
    "TotalPremie",
    "Kontraktssum",
    "Overleveringsdato",
    "Beskrivelse",
    "Produkter",
]

SKADE_KOLONNER: List[str] = [
    "Skadenummer",
    "Navn",
    "OrgPersonNr",
    "ErBedriftskunde",
    "Polisenummer",
    "Polisestatus",
    "Skadereserve",
    "Utbetalt",
    "Regress",
    "Skadetype",
    "Skadestatus",
    "Skademeldtdato",
    "Hendelsesdato",
    "Skadeavsluttetdato",
]


def _celle(verdi: Any) -> Any:
    """Tall skrives som tall, alt annet som tekst (og dermed i anførselstegn)."""
    if verdi is None:
        return ""
    if isinstance(verdi, bool):
        return "1" if verdi else "0"
    if isinstance(verdi, (int, float)):
        return verdi
    return str(verdi)


def _skade_rad(skade: Mapping[str, Any]) -> Dict[str, Any]:
    bedrift = bool(skade.get("ErBedriftskunde"))
    if bedrift:
        navn = skade.get("Bedriftsnavn") or ""
    else:
        navn = f"{skade.get('Fornavn') or ''} {skade.get('Etternavn') or ''}".strip()
    return {
        **skade,
        "Navn": navn,
        "OrgPersonNr": skade.get("Orgnr") or skade.get("Personnummer") or "",
        "ErBedriftskunde": "1" if bedrift else "0",
    }


def til_csv(
    rader: Iterable[Mapping[str, Any]],
    kolonner: Sequence[str],
    *,
    transform: Callable[[Mapping[str, Any]], Mapping[str, Any]] | None = None,
) -> str:
    """
    Skriv rader som CSV med fast kolonnerekkefølge.

    Tekstfelt står alltid i anførselstegn og interne anførselstegn dobles, så
    komma og linjeskift i navn og beskrivelser overlever en ny innlesing.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(kolonner)
    for rad in rader:
        if transform is not None:
            rad = transform(rad)
        writer.writerow([_celle(rad.get(kolonne)) for kolonne in kolonner])
    return buffer.getvalue()


def nysalg_csv(rapport: Mapping[str, Any] | None) -> str:
    return til_csv((rapport or {}).get("KundeDetaljer") or [], NYSALG_KOLONNER)


def garanti_csv(rapport: Mapping[str, Any] | None) -> str:
    return til_csv((rapport or {}).get("KundeDetaljer") or [], GARANTI_KOLONNER)


def skade_csv(rapport: Mapping[str, Any] | None) -> str:
    return til_csv((rapport or {}).get("SkadeDetaljer") or [], SKADE_KOLONNER, transform=_skade_rad)


__all__ = [
    "GARANTI_KOLONNER",
    "NYSALG_KOLONNER",
    "SKADE_KOLONNER",
    "garanti_csv",
    "nysalg_csv",
    "skade_csv",
    "til_csv",
]
