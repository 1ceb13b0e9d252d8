import csv
import io
from datetime import date

import pytest

from byggbot.domain.garanti.errors import InfrastrukturFeil, ValideringsFeil
from byggbot.infrastructure.config import ConfigError
from byggbot.integrations.rapport_api import NYSALG_RAPPORT, SKADE_RAPPORT, RapportApiError
from byggbot.processing import csv_eksport
from byggbot.processing.rapporter import (
    SkadeFilter,
    aggreger_nysalg,
    analyser_garanti,
    del_periode,
    filtrer_skade,
    legg_til_maaneder,
    median,
    normaliser_selskapsnavn,
    slaa_sammen_skade,
    unike_verdier,
)
from byggbot.processing.tekst import normaliser_forsikringsselskap
from byggbot.services import rapporter as rapport_service


NYSALG_RADER = [
    {
        "CustomerNumber": 1,
        "CustomerName": "Bygg AS",
        "IsBusiness": True,
        "ProductionDate": "2025-01-15T00:00:00",
        "ProducedBy": "Per",
        "PolicyNumber": "P1",
        "ProductName": "Ansvar",
        "PeriodPremium": 1000,
    },
    {
        "CustomerNumber": 1,
        "CustomerName": "Bygg AS",
        "IsBusiness": True,
        "ProductionDate": "2025-01-15T00:00:00",
        "ProducedBy": "Per",
        "PolicyNumber": "P1",
        "ProductName": "Kasko",
        "PeriodPremium": "500,5",
    },
    {
        "CustomerNumber": 2,
        "CustomerName": "Ola Nordmann",
        "IsBusiness": False,
        "ProductionDate": "2025-02-01",
        "ProducedBy": "Kari",
        "PolicyNumber": "P2",
        "ProductName": "Ansvar",
        "PeriodPremium": 300,
    },
]


def _skadedata():
    return {
        "TotaltAntallSkader": 2,
        "SkadeDetaljer": [
            {
                "Skadenummer": 1,
                "Skadesaksbehandler": "Per",
                "Skadeavsluttetdato": None,
                "Skadetype": "Brann",
                "Skadestatus": "Under behandling",
                "ErBedriftskunde": True,
                "Bedriftsnavn": "Bygg AS",
                "Orgnr": "987654321",
                "Skademeldtdato": "2025-01-10",
                "Utbetalt": 100,
                "Skadereserve": 50,
            },
            {
                "Skadenummer": 2,
                "Skadesaksbehandler": "Kari",
                "Skadeavsluttetdato": "2025-03-01",
                "Skadetype": "Vann",
                "Skadestatus": "Avsluttet",
                "ErBedriftskunde": False,
                "Fornavn": "Ola",
                "Etternavn": "Nordmann",
                "Skademeldtdato": "2025-02-10",
                "Utbetalt": 200,
                "Skadereserve": 0,
            },
        ],
    }


# -------------------------------
# Tekst
# -------------------------------
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Trygg-Hansa F??rsäkring", "Trygg-Hansa Försäkring"),
        ("Folksam F\ufffd\ufffdrsäkring AB", "Folksam Försäkring AB"),
        ("If Förs\ufffd\ufffdkring", "If Försäkring"),
        ("Ã…lesund Forsikring", "Ålesund Forsikring"),
        ("  Gjensidige  ", "Gjensidige"),
        (None, ""),
    ],
)
def test_normaliser_forsikringsselskap(raw, expected):
    assert normaliser_forsikringsselskap(raw) == expected


def test_normaliser_selskapsnavn_endrer_ikke_input():
    rader = [{"Forsikringsselskap": "F??rsäkring", "Premie": 10}, {"Premie": 5}]
    ut = normaliser_selskapsnavn(rader)

    assert ut[0]["Forsikringsselskap"] == "Försäkring"
    assert ut[1] == {"Premie": 5}
    assert rader[0]["Forsikringsselskap"] == "F??rsäkring"


# -------------------------------
# Datoer
# -------------------------------
def test_legg_til_maaneder_klemmer_til_siste_dag():
    assert legg_til_maaneder(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert legg_til_maaneder(date(2024, 8, 31), 6) == date(2025, 2, 28)


def test_del_periode_gir_sammenhengende_biter():
    biter = del_periode(date(2025, 1, 1), date(2025, 12, 31), 6)
    assert biter == [
        (date(2025, 1, 1), date(2025, 6, 30)),
        (date(2025, 7, 1), date(2025, 12, 31)),
    ]


def test_median():
    assert median([]) == 0.0
    assert median([3, 1, 2]) == 2
    assert median([4, 1, 3, 2]) == 2.5


# -------------------------------
# Nysalg
# -------------------------------
def test_aggreger_nysalg():
    rapport = aggreger_nysalg(NYSALG_RADER)

    assert rapport["TotaltAntallNyeKunder"] == 2
    assert rapport["TotalPremieNysalg"] == pytest.approx(1800.5)
    assert rapport["AntallNyeBedriftskunder"] == 1
    assert rapport["PremieNyeBedriftskunder"] == pytest.approx(1500.5)
    assert rapport["AntallNyePrivatkunder"] == 1

    bygg = rapport["KundeDetaljer"][0]
    assert bygg["AntallPoliser"] == 1
    assert bygg["Produkter"] == "Ansvar, Kasko"
    assert bygg["KundeType"] == "Bedriftskunde"

    assert [(m["År"], m["Måned"], m["AntallNyeKunder"]) for m in rapport["MånedsStatistikk"]] == [
        (2025, 1, 1),
        (2025, 2, 1),
    ]
    topp = rapport["ToppProdukter"][0]
    assert (topp["ProduktNavn"], topp["AntallKunder"], topp["TotalPremie"]) == ("Ansvar", 2, 1300)


def test_aggreger_nysalg_tom_input():
    assert aggreger_nysalg([]) is None
    assert aggreger_nysalg(None) is None


# -------------------------------
# Skade
# -------------------------------
def test_filtrer_skade_paa_aapne():
    resultat = filtrer_skade(_skadedata(), SkadeFilter(status="åpen"))

    assert [s["Skadenummer"] for s in resultat["SkadeDetaljer"]] == [1]
    assert resultat["AntallApne"] == 1
    assert resultat["AntallAvsluttede"] == 0
    assert resultat["KundetypeStatistikk"][0] == {"Kundetype": "Bedriftskunde", "AntallSkader": 1}
    assert resultat["SkadetypeStatistikk"] == [{"ClaimType": "Brann", "AntallSkader": 1}]


@pytest.mark.parametrize(
    "filtre, forventet",
    [
        ({"kundetype": "privat"}, [2]),
        ({"saksbehandler": "Per"}, [1]),
        ({"status": "avsluttet"}, [2]),
        ({"status": "Under behandling"}, [1]),
        ({"skadetype": "Vann", "kundetype": "bedrift"}, []),
        ({}, [1, 2]),
    ],
)
def test_filtrer_skade_kombinasjoner(filtre, forventet):
    resultat = filtrer_skade(_skadedata(), SkadeFilter.fra_mapping(filtre))
    assert [s["Skadenummer"] for s in resultat["SkadeDetaljer"]] == forventet


def test_unike_verdier():
    assert unike_verdier(_skadedata(), "Skadetype") == ["Brann", "Vann"]
    assert unike_verdier({}, "Skadetype") == []


def test_slaa_sammen_skade_summerer_maaneder():
    forste = {
        "TotaltAntallSkader": 2,
        "TotalUtbetalt": 100.0,
        "SkadeDetaljer": [{"Skadenummer": 1}, {"Skadenummer": 2}],
        "MånedsStatistikk": [{"År": 2025, "Måned": 6, "AntallSkader": 2, "TotalUtbetalt": 100}],
        "SkadetypeStatistikk": [{"ClaimType": "Brann", "AntallSkader": 2}],
    }
    andre = {
        "TotaltAntallSkader": 3,
        "TotalUtbetalt": 50.0,
        "SkadeDetaljer": [{"Skadenummer": 3}],
        "MånedsStatistikk": [
            {"År": 2025, "Måned": 7, "AntallSkader": 2, "TotalUtbetalt": 20},
            {"År": 2025, "Måned": 6, "AntallSkader": 1, "TotalUtbetalt": 30},
        ],
        "SkadetypeStatistikk": [{"ClaimType": "Brann", "AntallSkader": 3}],
    }

    samlet = slaa_sammen_skade([forste, andre])

    assert samlet["TotaltAntallSkader"] == 5
    assert samlet["TotalUtbetalt"] == 150.0
    assert len(samlet["SkadeDetaljer"]) == 3
    assert [(m["Måned"], m["AntallSkader"]) for m in samlet["MånedsStatistikk"]] == [(6, 3), (7, 2)]
    assert samlet["SkadetypeStatistikk"] == [
        {"ClaimType": "Brann", "AntallSkader": 5, "TotalUtbetalt": 0.0, "TotalReservert": 0.0}
    ]


# -------------------------------
# Garanti
# -------------------------------
def test_analyser_garanti():
    data = {
        "KundeDetaljer": [
            {"Kontraktssum": 4_000_000, "Beskrivelse": "Oppføring av bolig", "Overleveringsdato": "2026-11-15"},
            {"Kontraktssum": "12000000", "Beskrivelse": "Rehabilitering av tak", "Overleveringsdato": "2027-06-01"},
            {"Kontraktssum": 0, "Beskrivelse": "Noe annet", "Overleveringsdato": None},
        ]
    }

    resultat = analyser_garanti(data, i_dag=date(2026, 10, 19))

    statistikk = resultat["KontraktssumStatistikk"]
    assert statistikk["Antall"] == 2
    assert statistikk["Median"] == 8_000_000
    assert statistikk["Maks"] == 12_000_000
    fordeling = {rad["Intervall"]: rad["Antall"] for rad in resultat["KontraktssumFordeling"]}
    assert fordeling == {"Under 5M": 1, "5M-10M": 0, "10M-15M": 1, "15M-20M": 0, "Over 20M": 0}
    assert resultat["Prosjekttyper"] == [
        {"Prosjekttype": "Boligoppføring", "Antall": 1},
        {"Prosjekttype": "Rehabilitering", "Antall": 1},
        {"Prosjekttype": "Annet", "Antall": 1},
    ]
    assert resultat["OverleveringerPerKvartal"] == [
        {"Kvartal": "2026 Q4", "Antall": 1},
        {"Kvartal": "2027 Q2", "Antall": 1},
    ]
    assert resultat["OverleveringerNeste6Mnd"] == 1


# -------------------------------
# CSV
# -------------------------------
def test_til_csv_siterer_tekst_og_dobler_anforselstegn():
    tekst = csv_eksport.nysalg_csv(
        {"KundeDetaljer": [{"KundeNr": 1, "KundeNavn": 'Bygg, "Nord" AS', "TotalPremie": 1500.5}]}
    )
    linjer = tekst.splitlines()

    assert linjer[0].startswith('"KundeNr","KundeNavn","OrgPersonNr"')
    assert linjer[1] == '1,"Bygg, ""Nord"" AS","","","","","",1500.5,""'

    rad = next(csv.DictReader(io.StringIO(tekst)))
    assert rad["KundeNavn"] == 'Bygg, "Nord" AS'


def test_skade_csv_bygger_navn_og_kundetype():
    tekst = csv_eksport.skade_csv(_skadedata())
    rader = list(csv.DictReader(io.StringIO(tekst)))

    assert [r["Navn"] for r in rader] == ["Bygg AS", "Ola Nordmann"]
    assert [r["ErBedriftskunde"] for r in rader] == ["1", "0"]
    assert rader[0]["OrgPersonNr"] == "987654321"


def test_tom_rapport_gir_bare_overskrift():
    assert csv_eksport.garanti_csv(None).count("\n") == 1


# -------------------------------
# Tjeneste
# -------------------------------
class FakeHenter:
    def __init__(self, svar=None, feil_for=()):
        self.kall = []
        self.svar = svar
        self.feil_for = set(feil_for)

    def __call__(self, rapport_navn, start, slutt):
        self.kall.append((rapport_navn, start, slutt))
        if start in self.feil_for:
            raise RapportApiError("API-feil: Tidsavbrudd.")
        if callable(self.svar):
            return self.svar(start, slutt)
        return self.svar


@pytest.mark.asyncio
async def test_lang_skadeperiode_hentes_i_biter():
    henter = FakeHenter(svar=lambda start, slutt: {"TotaltAntallSkader": start.month, "SkadeDetaljer": []})

    data = await rapport_service.hent_rapport(
        rapport_navn=SKADE_RAPPORT, start_dato="2025-01-01", slutt_dato="2025-12-31", henter=henter
    )

    assert [(k[1], k[2]) for k in henter.kall] == [
        (date(2025, 1, 1), date(2025, 6, 30)),
        (date(2025, 7, 1), date(2025, 12, 31)),
    ]
    assert data["TotaltAntallSkader"] == 1 + 7


@pytest.mark.asyncio
async def test_feilende_bit_hoppes_over():
    henter = FakeHenter(svar={"TotaltAntallSkader": 4, "SkadeDetaljer": []}, feil_for={date(2025, 1, 1)})

    data = await rapport_service.hent_rapport(
        rapport_navn=SKADE_RAPPORT, start_dato="2025-01-01", slutt_dato="2025-12-31", henter=henter
    )
    assert data["TotaltAntallSkader"] == 4


@pytest.mark.asyncio
async def test_alle_biter_feiler():
    henter = FakeHenter(feil_for={date(2025, 1, 1), date(2025, 7, 1)})
    with pytest.raises(InfrastrukturFeil):
        await rapport_service.hent_rapport(
            rapport_navn=SKADE_RAPPORT, start_dato="2025-01-01", slutt_dato="2025-12-31", henter=henter
        )


@pytest.mark.asyncio
async def test_nysalg_hentes_i_ett_kall():
    henter = FakeHenter(svar=NYSALG_RADER)
    rapport = await rapport_service.hent_aggregert(
        "nysalg", start_dato="2025-01-01", slutt_dato="2025-12-31", henter=henter
    )

    assert len(henter.kall) == 1
    assert henter.kall[0][0] == NYSALG_RAPPORT
    assert rapport["TotaltAntallNyeKunder"] == 2


@pytest.mark.parametrize(
    "start, slutt",
    [("2025-13-01", "2025-12-31"), ("2025-06-01", "2025-01-01"), ("", "2025-01-01")],
)
@pytest.mark.asyncio
async def test_ugyldig_periode_avvises(start, slutt):
    with pytest.raises(ValideringsFeil):
        await rapport_service.hent_rapport(
            rapport_navn=NYSALG_RAPPORT, start_dato=start, slutt_dato=slutt, henter=FakeHenter()
        )


@pytest.mark.asyncio
async def test_ukjent_rapport_avvises():
    with pytest.raises(ValideringsFeil):
        await rapport_service.hent_aggregert("budsjett", start_dato="2025-01-01", slutt_dato="2025-02-01")


@pytest.mark.asyncio
async def test_manglende_konfigurasjon_blir_infrastrukturfeil():
    def _henter(rapport_navn, start, slutt):
        raise ConfigError("RAPPORT_API_TOKEN mangler")

    with pytest.raises(InfrastrukturFeil) as exc:
        await rapport_service.hent_rapport(
            rapport_navn=NYSALG_RAPPORT, start_dato="2025-01-01", slutt_dato="2025-01-31", henter=_henter
        )
    assert str(exc.value) == "Rapport-API er ikke konfigurert."


@pytest.mark.asyncio
async def test_eksporter_skade_csv_med_filter():
    henter = FakeHenter(svar=_skadedata())
    tekst = await rapport_service.eksporter_csv(
        "skade",
        start_dato="2025-01-01",
        slutt_dato="2025-03-31",
        filtre={"kundetype": "privat"},
        henter=henter,
    )
    rader = list(csv.DictReader(io.StringIO(tekst)))
    assert [r["Navn"] for r in rader] == ["Ola Nordmann"]
