import base64
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from byggbot.domain.garanti.constants import ProsjektStatus
from byggbot.domain.garanti.errors import ValideringsFeil
from byggbot.ipc import registry
from byggbot.ipc.garanti_handlers import dekod_fildata
from byggbot.ipc.registry import RELATERT_IKKE_FUNNET, UVENTET_FEIL, ChannelRegistry, aktor, jsonable


@dataclass
class _Linje:
    pris: Decimal
    dato: date


def test_jsonable_gjor_decimal_til_tekst():
    assert jsonable({"a": Decimal("10.50"), "b": [ProsjektStatus.NY, date(2026, 1, 2)]}) == {
        "a": "10.50",
        "b": ["Ny", "2026-01-02"],
    }
    assert jsonable(_Linje(pris=Decimal("1"), dato=date(2026, 3, 1))) == {"pris": "1", "dato": "2026-03-01"}


@pytest.mark.parametrize(
    "params, forventet",
    [({"brukerId": "5"}, 5), ({"brukerId": ""}, 1), ({}, 1), ({"brukerId": "abc"}, 1)],
)
def test_aktor_faller_tilbake_til_systembruker(params, forventet):
    assert aktor(params) == forventet


def test_registrerte_kanaler():
    kanaler = registry.channels
    for navn in (
        "garanti:createSak",
        "garanti:uploadDokument",
        "garanti:getDokumentSasUrl",
        "garanti:getProsjekter",
        "tilbud:beregnPremie",
        "tilbud:registrerEierskifte",
        "tilbud:validerRammeForbruk",
        "rapport:fetchReport",
    ):
        assert navn in kanaler
    assert kanaler == sorted(kanaler)


def test_kanal_kan_ikke_registreres_to_ganger():
    lokal = ChannelRegistry()

    @lokal.channel("test:ping")
    async def _ping(session, params):
        return "pong"

    with pytest.raises(ValueError):
        lokal.channel("test:ping")(_ping)


# -------------------------------
# Filinnhold
# -------------------------------
@pytest.mark.parametrize(
    "fil_data",
    [
        {"base64": base64.b64encode(b"hei").decode()},
        {"base64": "data:text/plain;base64," + base64.b64encode(b"hei").decode()},
        {"buffer": [104, 101, 105]},
        {"buffer": {"type": "Buffer", "data": [104, 101, 105]}},
    ],
)
def test_dekod_fildata(fil_data):
    assert dekod_fildata(fil_data) == b"hei"


@pytest.mark.parametrize(
    "fil_data, melding",
    [
        (None, "filData (med originaltFilnavn og innhold) er påkrevd."),
        ({"base64": "ikke base64!"}, "Mottok filinnhold i ukjent format."),
        ({"buffer": [300]}, "Mottok filinnhold i ukjent format."),
        ({"innhold": 42}, "Mottok filinnhold i ukjent format."),
        ({"buffer": []}, "Filinnholdet er tomt eller ugyldig etter konvertering."),
    ],
)
def test_dekod_fildata_avviser(fil_data, melding):
    with pytest.raises(ValideringsFeil) as exc:
        dekod_fildata(fil_data)
    assert str(exc.value) == melding


# -------------------------------
# Konvolutt
# -------------------------------
@pytest.mark.asyncio
async def test_ukjent_kanal(session):
    svar = await registry.dispatch("garanti:finnesIkke", {}, session=session)
    assert svar == {"success": False, "error": "Ukjent kanal: garanti:finnesIkke"}


@pytest.mark.asyncio
async def test_valideringsfeil_blir_feilkonvolutt(session):
    svar = await registry.dispatch("garanti:createSak", {}, session=session)
    assert svar == {"success": False, "error": "RequestData er påkrevd."}


@pytest.mark.asyncio
async def test_uventede_feil_gir_generisk_melding(session):
    lokal = ChannelRegistry()

    @lokal.channel("test:krasj")
    async def _krasj(session, params):
        raise RuntimeError("intern detalj")

    @lokal.channel("test:fk")
    async def _fk(session, params):
        raise IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))

    assert await lokal.dispatch("test:krasj", None, session=session) == {"success": False, "error": UVENTET_FEIL}
    assert await lokal.dispatch("test:fk", None, session=session) == {"success": False, "error": RELATERT_IKKE_FUNNET}


@pytest.mark.asyncio
async def test_create_sak_og_beregn_premie(produkter, garanti_foresporsel):
    svar = await registry.dispatch(
        "garanti:createSak", {"requestData": garanti_foresporsel, "opprettetAvBrukerId": 3}, session=produkter
    )
    assert svar["success"] is True
    data = svar["data"]
    assert data["nyttSelskap"] is True
    assert data["selskap"]["organisasjonsnummer"] == "987654321"
    assert data["prosjekt"]["status"] == "Ny"
    assert data["prosjekt"]["selskapId"] == data["selskap"]["id"]

    prosjekt = await registry.dispatch(
        "garanti:getProsjektById", {"prosjektId": data["prosjekt"]["id"]}, session=produkter
    )
    assert prosjekt["data"]["navn"] == "Solsiden Boligblokk"

    premie = await registry.dispatch(
        "tilbud:beregnPremie",
        {"produkttype": "Utføringsgaranti", "beregningParams": {"kontraktssum": 10_000_000}},
        session=produkter,
    )
    assert premie["success"] is True
    assert premie["data"]["totalPremie"] == "75000.00"


@pytest.mark.asyncio
async def test_get_by_id_for_ukjent_prosjekt_gir_null(session):
    svar = await registry.dispatch("garanti:getProsjektById", {"prosjektId": "finnes-ikke"}, session=session)
    assert svar == {"success": True, "data": None}


@pytest.mark.asyncio
async def test_upload_uten_entity_context(session):
    svar = await registry.dispatch(
        "garanti:uploadDokument",
        {"filData": {"originaltFilnavn": "a.pdf", "base64": "aGVp"}, "dokumentType": "Kontrakt"},
        session=session,
    )
    assert svar["success"] is False
    assert "entityContext" in svar["error"]


@pytest.mark.asyncio
async def test_normaliser_selskapsnavn_kanal(session):
    svar = await registry.dispatch(
        "rapport:normaliserSelskapsnavn",
        {"rader": [{"Forsikringsselskap": "Ã…lesund"}]},
        session=session,
    )
    assert svar == {"success": True, "data": [{"Forsikringsselskap": "Ålesund"}]}


@pytest.mark.asyncio
async def test_sak_kontekst_med_ikke_numerisk_id_gir_valideringsfeil(session):
    svar = await registry.dispatch(
        "garanti:addInternKommentar",
        {"entityContext": {"type": "sak", "id": "abc"}, "kommentarTekst": "Ring kunden"},
        session=session,
    )
    assert svar["success"] is False
    assert svar["error"] != UVENTET_FEIL
    assert "entityContext.id" in svar["error"]
