"""Premiekalkulatorer for kjøretøy og maskiner."""
from __future__ import annotations

from .arbeidsmaskin import ArbeidsmaskinPremie, beregn_arbeidsmaskin
from .lastebil import LastebilInput, LastebilPremie, beregn_lastebil
from .personbil import PersonbilPremie, beregn_personbil
from .tilhenger import TilhengerPremie, beregn_tilhenger
from .veteran import VeteranPremie, beregn_veteran

__all__ = [
    "ArbeidsmaskinPremie",
    "LastebilInput",
    "LastebilPremie",
    "PersonbilPremie",
    "TilhengerPremie",
    "VeteranPremie",
    "beregn_arbeidsmaskin",
    "beregn_lastebil",
    "beregn_personbil",
    "beregn_tilhenger",
    "beregn_veteran",
]
