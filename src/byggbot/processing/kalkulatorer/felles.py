from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

KRONE = Decimal("1")


def rund(verdi: Decimal) -> int:
    """Avrund til nærmeste hele krone, halvveis opp."""
    return int(verdi.quantize(KRONE, rounding=ROUND_HALF_UP))


def eksakt(verdi: Decimal) -> Decimal:
    """Fjern etterfølgende nuller uten å gå over til eksponentnotasjon."""
    normalisert = verdi.normalize()
    if normalisert == normalisert.to_integral_value():
        return normalisert.quantize(KRONE)
    return normalisert


def til_decimal(x: Any) -> Optional[Decimal]:
    """Tolker tall og tekst som "1 250 000" eller "1250,5". Ugyldig verdi gir None."""
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, Decimal):
        return x
    if isinstance(x, (int, float)):
        return Decimal(str(x))
    if isinstance(x, str):
        t = x.strip().replace(" ", "").replace("\u00a0", "").replace(",", ".")
        if not t:
            return None
        try:
            verdi = Decimal(t)
        except InvalidOperation:
            return None
        return verdi if verdi.is_finite() else None
    return None


def til_int(x: Any) -> Optional[int]:
    verdi = til_decimal(x)
    if verdi is None or verdi != verdi.to_integral_value():
        return None
    return int(verdi)


__all__ = ["KRONE", "eksakt", "rund", "til_decimal", "til_int"]
