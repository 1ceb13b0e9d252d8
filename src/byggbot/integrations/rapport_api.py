# byggbot/integrations/rapport_api.py
from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Optional

import requests

from byggbot.infrastructure.config import SETTINGS, require_env

logger = logging.getLogger(__name__)

NYSALG_RAPPORT = "API_Byggbot_nysalgsrapport"
SKADE_RAPPORT = "API_Byggbot_skaderapport"
GARANTI_RAPPORT = "API_Byggbot_garantirapport"

PARAMETERFEIL = (
    "API-parameterfeil: Parameterne ble ikke funnet i spørringen. Kontakt systemadministrator."
)
_PARAMETERFEIL_MARKORER = ("not found in query definition", "Value is not defined")


class RapportApiError(RuntimeError):
    """Feil fra rapport-API-et, med melding som kan vises til brukeren."""


def _forste_setning(melding: str) -> str:
    deler = re.split(r"(?<=\.)\s", melding.strip(), maxsplit=1)
    return deler[0] if deler else melding


def _feilmelding(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    if "ErrorCode" not in body and "ErrorMessage" not in body:
        return None
    melding = str(body.get("ErrorMessage") or body.get("ErrorCode") or "Ukjent feil")
    if any(markor in melding for markor in _PARAMETERFEIL_MARKORER):
        return PARAMETERFEIL
    return f"API-feil: {_forste_setning(melding)}"


def build_payload(start: date, slutt: date) -> dict[str, Any]:
    return {
        "Params": [
            {"Name": "@FromDate", "Value": start.isoformat()},
            {"Name": "@ToDate", "Value": slutt.isoformat()},
        ]
    }


def fetch_report(
    rapport_navn: str,
    start: date,
    slutt: date,
    *,
    session: Optional[requests.Session] = None,
    timeout: Optional[int] = None,
) -> Any:
    """
    Hent én rapport for perioden [start, slutt].

    Tokenet leses fra RAPPORT_API_TOKEN ved hvert kall. Svar med ErrorCode
    eller ErrorMessage gjøres om til RapportApiError med lesbar melding.
    """
    token = require_env("RAPPORT_API_TOKEN", context="rapport-API")
    sess = session or requests.Session()
    try:
        resp = sess.post(
            SETTINGS.RAPPORT_API_URL,
            params={"reportname": rapport_navn},
            json=build_payload(start, slutt),
            headers={"Authorization": token, "Content-Type": "application/json"},
            timeout=timeout or SETTINGS.RAPPORT_API_TIMEOUT,
        )
        resp.raise_for_status()
        body = resp.json()
    except requests.RequestException as exc:
        raise RapportApiError(f"Kunne ikke hente rapport {rapport_navn}: {exc}") from exc
    except ValueError as exc:
        raise RapportApiError(f"Ugyldig svar fra rapport-API for {rapport_navn}.") from exc
    finally:
        if session is None:
            sess.close()

    feil = _feilmelding(body)
    if feil:
        logger.warning("Rapport-API svarte med feil for %s: %s", rapport_navn, body)
        raise RapportApiError(feil)
    return body


__all__ = [
    "GARANTI_RAPPORT",
    "NYSALG_RAPPORT",
    "PARAMETERFEIL",
    "RapportApiError",
    "SKADE_RAPPORT",
    "build_payload",
    "fetch_report",
]
