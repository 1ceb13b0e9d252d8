from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .felles import rund, til_decimal
from .tariffer import TILHENGER_SATS_BRANN_TYVERI, TILHENGER_SATS_KASKO, TILHENGER_VARSEL_VERDI


@dataclass
class TilhengerPremie:
    brann_tyveri: int = 0
    kasko: int = 0
    total: int = 0
    advarsel: Optional[str] = None


def beregn_tilhenger(verdi: Any) -> TilhengerPremie:
    belop = til_decimal(verdi)
    if belop is None or belop <= 0:
        return TilhengerPremie()
    brann_tyveri = rund(belop * TILHENGER_SATS_BRANN_TYVERI)
    kasko = rund(belop * TILHENGER_SATS_KASKO)
    advarsel = None
    if belop > TILHENGER_VARSEL_VERDI:
        advarsel = "Tilhengere med verdi over 100 000 kr må godkjennes av underwriter."
    return TilhengerPremie(
        brann_tyveri=brann_tyveri,
        kasko=kasko,
        total=brann_tyveri + kasko,
        advarsel=advarsel,
    )


__all__ = ["TilhengerPremie", "beregn_tilhenger"]
