from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from .tariffer import DEKNINGSTYPER, FORSIKRINGSSUMMER, aarsmodell_grupper, veteran_tariffer


@dataclass
class VeteranPremie:
    total: int = 0
    detaljer: Dict[str, str] = field(default_factory=dict)


def beregn_veteran(
    aarsmodell: Optional[str],
    forsikringssum: Optional[str],
    dekningstype: Optional[str],
    *,
    i_aar: Optional[int] = None,
) -> VeteranPremie:
    """Rent oppslag i veterantariffen. Manglende eller ukjent valg gir total 0."""
    if not aarsmodell or not forsikringssum or not dekningstype:
        return VeteranPremie()
    sum_nokkel = str(forsikringssum)
    premie = veteran_tariffer(i_aar).get(aarsmodell, {}).get(sum_nokkel, {}).get(dekningstype)
    if premie is None:
        return VeteranPremie()
    return VeteranPremie(
        total=premie,
        detaljer={
            "aarsmodell": aarsmodell_grupper(i_aar).get(aarsmodell, aarsmodell),
            "forsikringssum": FORSIKRINGSSUMMER.get(sum_nokkel, sum_nokkel),
            "dekningstype": DEKNINGSTYPER.get(dekningstype, dekningstype),
        },
    )


__all__ = ["VeteranPremie", "beregn_veteran"]
