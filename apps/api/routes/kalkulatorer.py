from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from byggbot.ipc.registry import jsonable
from byggbot.processing.kalkulatorer import (
    beregn_arbeidsmaskin,
    beregn_lastebil,
    beregn_personbil,
    beregn_tilhenger,
    beregn_veteran,
)
from byggbot.processing.kalkulatorer.lastebil import fra_mapping

router = APIRouter(prefix="/kalkulator", tags=["kalkulator"])


class _Req(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArbeidsmaskinReq(_Req):
    maskintype: Optional[str] = None
    verdi: Any = None
    dekning: Optional[str] = None
    tillegg: List[str] = Field(default_factory=list)


class TilhengerReq(_Req):
    verdi: Any = None


class PersonbilReq(_Req):
    kjoeretoeytype: Optional[str] = None
    dekning: Optional[str] = None
    bonusnivaa: Any = None
    kjoerelengde: Any = None
    # førerulykke er valgt med mindre klienten sender egen liste
    tillegg: List[str] = Field(default_factory=lambda: ["driverAccident"])


class VeteranReq(_Req):
    aarsmodell: Optional[str] = None
    forsikringssum: Optional[str] = None
    dekningstype: Optional[str] = None


@router.post("/arbeidsmaskin")
def arbeidsmaskin(payload: ArbeidsmaskinReq) -> Dict[str, Any]:
    premie = beregn_arbeidsmaskin(payload.maskintype, payload.verdi, payload.dekning, payload.tillegg)
    return jsonable(premie)


@router.post("/tilhenger")
def tilhenger(payload: TilhengerReq) -> Dict[str, Any]:
    return jsonable(beregn_tilhenger(payload.verdi))


@router.post("/veteran")
def veteran(payload: VeteranReq) -> Dict[str, Any]:
    return jsonable(beregn_veteran(payload.aarsmodell, payload.forsikringssum, payload.dekningstype))


@router.post("/lastebil")
def lastebil(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Tar skjemaet slik klienten sender det (camelCase, ``tillegg`` som avkrysninger)."""
    return jsonable(beregn_lastebil(fra_mapping(payload)))


@router.post("/personbil")
def personbil(payload: PersonbilReq) -> Dict[str, Any]:
    premie = beregn_personbil(
        payload.kjoeretoeytype,
        payload.dekning,
        payload.bonusnivaa,
        payload.kjoerelengde,
        payload.tillegg,
    )
    return jsonable(premie)
