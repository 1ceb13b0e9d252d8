from decimal import Decimal

import pytest

from byggbot.domain.garanti.constants import ProsjektStatus, TilbudStatus
from byggbot.domain.garanti.status import hoyeste_tilbud_status, utled_prosjekt_status
from byggbot.services.enhet import fordel_andeler
from byggbot.services.ramme import fargekode


@pytest.mark.parametrize(
    "statuser, forventet",
    [
        ([], ProsjektStatus.NY),
        ([TilbudStatus.UTKAST], ProsjektStatus.TILDELT),
        ([TilbudStatus.TIL_BEHANDLING, TilbudStatus.UTKAST], ProsjektStatus.BEHANDLES),
        ([TilbudStatus.UNDER_UW_BEHANDLING], ProsjektStatus.AVVENTER_GODKJENNING_UW),
        ([TilbudStatus.GODKJENT, TilbudStatus.AVSLATT], ProsjektStatus.KLAR_TIL_PRODUKSJON),
        ([TilbudStatus.PRODUSERT], ProsjektStatus.PRODUSERT),
        ([TilbudStatus.PRODUSERT, TilbudStatus.UTKAST], ProsjektStatus.UTVIDES),
        ([TilbudStatus.PRODUSERT, TilbudStatus.UTLOPT], ProsjektStatus.PRODUSERT),
        ([TilbudStatus.AVSLATT, TilbudStatus.UTLOPT], ProsjektStatus.AVSLAATT),
        (["Godkjent", "TilBehandling"], ProsjektStatus.KLAR_TIL_PRODUKSJON),
    ],
)
def test_utled_prosjekt_status(statuser, forventet):
    assert utled_prosjekt_status(statuser) == forventet


def test_hoyeste_tilbud_status_tom_liste():
    assert hoyeste_tilbud_status([]) is None


def test_ukjent_tilbudsstatus_avvises():
    with pytest.raises(ValueError):
        utled_prosjekt_status(["Ukjent"])


@pytest.mark.parametrize(
    "antall, forste, siste",
    [
        (1, Decimal("100"), Decimal("100")),
        (3, Decimal("33.33"), Decimal("33.34")),
        (7, Decimal("14.28"), Decimal("14.32")),
    ],
)
def test_fordel_andeler_summerer_til_hundre(antall, forste, siste):
    andeler = fordel_andeler(antall)

    assert len(andeler) == antall
    assert sum(andeler) == Decimal("100")
    assert andeler[0] == forste
    assert andeler[-1] == siste


def test_fordel_andeler_uten_enheter():
    assert fordel_andeler(0) == []


@pytest.mark.parametrize(
    "prosent, farge",
    [(Decimal("0"), "grønn"), (Decimal("69.99"), "grønn"), (Decimal("70"), "gul"), (Decimal("90"), "rød")],
)
def test_fargekode(prosent, farge):
    assert fargekode(prosent) == farge
