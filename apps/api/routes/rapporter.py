from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import Response

from byggbot.domain.garanti.errors import InfrastrukturFeil, ValideringsFeil
from byggbot.ipc.registry import jsonable
from byggbot.services import rapporter as rapport_service

router = APIRouter(prefix="/rapporter", tags=["rapporter"])


def _filtre(
    saksbehandler: Optional[str],
    skadestatus: Optional[str],
    skadetype: Optional[str],
    kundetype: Optional[str],
) -> Dict[str, Any]:
    valgt = {
        "saksbehandler": saksbehandler,
        "status": skadestatus,
        "skadetype": skadetype,
        "kundetype": kundetype,
    }
    return {k: v for k, v in valgt.items() if v}


def _http_feil(exc: Exception) -> HTTPException:
    if isinstance(exc, ValideringsFeil):
        return HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))
    return HTTPException(status.HTTP_502_BAD_GATEWAY, str(exc))


@router.get("/{rapport}")
async def hent_rapport(
    rapport: str,
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    saksbehandler: Optional[str] = Query(default=None),
    skadestatus: Optional[str] = Query(default=None, alias="status"),
    skadetype: Optional[str] = Query(default=None),
    kundetype: Optional[str] = Query(default=None),
) -> Any:
    try:
        data = await rapport_service.hent_aggregert(
            rapport,
            start_dato=start_date,
            slutt_dato=end_date,
            filtre=_filtre(saksbehandler, skadestatus, skadetype, kundetype),
        )
    except (ValideringsFeil, InfrastrukturFeil) as exc:
        raise _http_feil(exc) from exc
    if data is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Ingen data for perioden.")
    return jsonable(data)


@router.get("/{rapport}/csv")
async def eksporter_csv(
    rapport: str,
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    saksbehandler: Optional[str] = Query(default=None),
    skadestatus: Optional[str] = Query(default=None, alias="status"),
    skadetype: Optional[str] = Query(default=None),
    kundetype: Optional[str] = Query(default=None),
) -> Response:
    try:
        tekst = await rapport_service.eksporter_csv(
            rapport,
            start_dato=start_date,
            slutt_dato=end_date,
            filtre=_filtre(saksbehandler, skadestatus, skadetype, kundetype),
        )
    except (ValideringsFeil, InfrastrukturFeil) as exc:
        raise _http_feil(exc) from exc
    filnavn = f"{rapport}_{start_date.isoformat()}_{end_date.isoformat()}.csv"
    return Response(
        content=tekst,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filnavn}"'},
    )
