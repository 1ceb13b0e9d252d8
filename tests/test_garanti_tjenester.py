from decimal import Decimal

import pytest
from sqlalchemy import text

from byggbot.domain.garanti.constants import ProsjektStatus, TilbudStatus
from byggbot.domain.garanti.errors import (
    ForretningsregelFeil,
    IkkeFunnetFeil,
    InfrastrukturFeil,
    ValideringsFeil,
)
from byggbot.domain.garanti.schemas import ORGNR_FEIL
from byggbot.integrations.blob_storage import BlobStorageError, StoredBlob
from byggbot.services import benefisient as benefisient_service
from byggbot.services import dokumenter as dokument_service
from byggbot.services import enhet as enhet_service
from byggbot.services import hendelser as hendelse_service
from byggbot.services import prosjekt as prosjekt_service
from byggbot.services import ramme as ramme_service
from byggbot.services import selskap as selskap_service
from byggbot.services import tilbud as tilbud_service


JURIDISK = {"type": "Juridisk", "navn": "Eiendom AS", "organisasjonsnummer": "912345678", "andel": "60"}
FYSISK = {"type": "Fysisk", "navn": "Ola Nordmann", "personident": "01017012345", "andel": "50"}


async def _ny_sak(session, foresporsel, **ekstra):
    return await prosjekt_service.handle_new_guarantee_request(
        session, request_data={**foresporsel, **ekstra}, opprettet_av_id=7
    )


async def _tilbud(session, foresporsel):
    _, prosjekt, _ = await _ny_sak(session, foresporsel)
    return await tilbud_service.create_tilbud(session, prosjekt_id=prosjekt.id, opprettet_av_id=7)


class FakeStorage:
    def __init__(self, feil=None):
        self.feil = feil
        self.lastet_opp = []

    def upload(self, content, original_filename, *, content_type=None):
        if self.feil:
            raise self.feil
        self.lastet_opp.append((content, original_filename, content_type))
        return StoredBlob(container="garanti-dokumenter", blob_name=f"abc-{original_filename}", url="https://example/abc")

    def signed_read_url(self, blob_name, *, container=None, expires_in=None):
        return f"https://example/{container}/{blob_name}?sig=1"


# -------------------------------
# Selskap og garantiforespørsel
# -------------------------------
@pytest.mark.asyncio
async def test_ny_foresporsel_gjenbruker_selskap_med_samme_orgnr(session, garanti_foresporsel):
    selskap1, prosjekt1, nytt1 = await _ny_sak(session, garanti_foresporsel)
    selskap2, prosjekt2, nytt2 = await _ny_sak(session, garanti_foresporsel, prosjektNavn="Trinn 2")

    assert nytt1 is True
    assert nytt2 is False
    assert selskap1.id == selskap2.id
    assert prosjekt1.id != prosjekt2.id
    assert prosjekt1.status == ProsjektStatus.NY
    assert prosjekt2.navn == "Trinn 2"

    rader = await selskap_service.get_selskaper(session)
    assert [(s.id, antall) for s, antall in rader] == [(selskap1.id, 2)]


@pytest.mark.asyncio
async def test_foresporsel_uten_selskapsnavn_for_nytt_selskap_avvises(session, garanti_foresporsel):
    data = {**garanti_foresporsel, "selskapsnavn": "  "}
    with pytest.raises(ValideringsFeil):
        await prosjekt_service.handle_new_guarantee_request(session, request_data=data)


@pytest.mark.asyncio
async def test_create_selskap_avviser_duplikat_og_ugyldig_orgnr(session):
    await selskap_service.create_selskap(
        session, data={"organisasjonsnummer": "987654321", "selskapsnavn": "Byggmester AS"}
    )

    with pytest.raises(ForretningsregelFeil):
        await selskap_service.create_selskap(
            session, data={"organisasjonsnummer": "987654321", "selskapsnavn": "Kopi AS"}
        )
    with pytest.raises(ValideringsFeil) as exc:
        await selskap_service.create_selskap(
            session, data={"organisasjonsnummer": "12345", "selskapsnavn": "Kort AS"}
        )
    assert str(exc.value) == ORGNR_FEIL


@pytest.mark.asyncio
async def test_update_selskap_logger_endringer_og_laaser_orgnr(session, garanti_foresporsel):
    selskap, _, _ = await _ny_sak(session, garanti_foresporsel)

    oppdatert = await selskap_service.update_selskap(
        session, selskap_id=selskap.id, data={"poststed": "Bergen", "ramme": "5000000"}, utfort_av_id=7
    )
    assert oppdatert.poststed == "Bergen"

    hendelser = await hendelse_service.list_hendelser(session, selskap_id=selskap.id)
    assert "Poststed" in hendelser[0].beskrivelse

    with pytest.raises(ValideringsFeil):
        await selskap_service.update_selskap(
            session, selskap_id=selskap.id, data={"organisasjonsnummer": "111111111"}
        )


@pytest.mark.asyncio
async def test_find_selskap_soker_i_navn_og_orgnr(session, garanti_foresporsel):
    await _ny_sak(session, garanti_foresporsel)

    assert len(await selskap_service.find_selskap(session, search_term="byggmester")) == 1
    assert len(await selskap_service.find_selskap(session, search_term="98765")) == 1
    assert await selskap_service.find_selskap(session, search_term="   ") == []


# -------------------------------
# Prosjekt
# -------------------------------
@pytest.mark.asyncio
async def test_tildelt_raadgiver_setter_status_tildelt(session, raadgiver, garanti_foresporsel):
    _, prosjekt, _ = await _ny_sak(session, garanti_foresporsel)

    oppdatert = await prosjekt_service.update_prosjekt(
        session, prosjekt_id=prosjekt.id, data={"ansvarligRaadgiverId": raadgiver.id}, utfort_av_id=7
    )

    assert oppdatert.status == ProsjektStatus.TILDELT
    hendelser = await hendelse_service.list_hendelser(session, prosjekt_id=prosjekt.id)
    assert "pga. tildelt rådgiver" in hendelser[0].beskrivelse


@pytest.mark.asyncio
async def test_update_prosjekt_med_ukjent_bruker_feiler(session, garanti_foresporsel):
    _, prosjekt, _ = await _ny_sak(session, garanti_foresporsel)
    with pytest.raises(IkkeFunnetFeil):
        await prosjekt_service.update_prosjekt(
            session, prosjekt_id=prosjekt.id, data={"uwAnsvarligId": 999}
        )


@pytest.mark.asyncio
async def test_intern_kommentar_krever_tekst_og_forelder(session, garanti_foresporsel):
    _, prosjekt, _ = await _ny_sak(session, garanti_foresporsel)
    context = {"type": "prosjekt", "id": prosjekt.id}

    kommentar = await prosjekt_service.add_intern_kommentar(
        session, entity_context=context, kommentar_tekst=" Ring kunden ", bruker_id=7
    )
    assert kommentar.kommentar == "Ring kunden"
    assert kommentar.prosjekt_id == prosjekt.id
    assert kommentar.selskap_id is None

    with pytest.raises(ValideringsFeil):
        await prosjekt_service.add_intern_kommentar(session, entity_context=context, kommentar_tekst="")
    with pytest.raises(IkkeFunnetFeil):
        await prosjekt_service.add_intern_kommentar(
            session, entity_context={"type": "prosjekt", "id": "finnes-ikke"}, kommentar_tekst="Hei"
        )


@pytest.mark.asyncio
async def test_upload_dokument_lagrer_blob_referanse(session, garanti_foresporsel):
    selskap, _, _ = await _ny_sak(session, garanti_foresporsel)
    storage = FakeStorage()

    dokument = await dokument_service.upload_dokument(
        session,
        entity_context={"type": "selskap", "id": selskap.id},
        innhold=b"%PDF-1.4",
        filnavn="kontrakt.pdf",
        dokument_type="Kontrakt",
        opplastet_av_id=7,
        content_type="application/pdf",
        storage=storage,
    )

    assert dokument.blob_navn == "abc-kontrakt.pdf"
    assert dokument.container_navn == "garanti-dokumenter"
    assert dokument.selskap_id == selskap.id
    assert storage.lastet_opp == [(b"%PDF-1.4", "kontrakt.pdf", "application/pdf")]

    url = await dokument_service.get_dokument_sas_url(
        container_navn="garanti-dokumenter", blob_navn="abc-kontrakt.pdf", storage=storage
    )
    assert url.endswith("abc-kontrakt.pdf?sig=1")


@pytest.mark.asyncio
async def test_upload_dokument_oversetter_lagringsfeil(session, garanti_foresporsel):
    selskap, _, _ = await _ny_sak(session, garanti_foresporsel)
    with pytest.raises(InfrastrukturFeil):
        await dokument_service.upload_dokument(
            session,
            entity_context={"type": "selskap", "id": selskap.id},
            innhold=b"data",
            filnavn="a.pdf",
            dokument_type="Annet",
            storage=FakeStorage(feil=BlobStorageError("nede")),
        )


# -------------------------------
# Tilbud og beregning
# -------------------------------
@pytest.mark.asyncio
async def test_tilbudsstatus_styrer_prosjektstatus(session, garanti_foresporsel):
    _, prosjekt, _ = await _ny_sak(session, garanti_foresporsel)

    tilbud = await tilbud_service.create_tilbud(session, prosjekt_id=prosjekt.id)
    assert tilbud.status == TilbudStatus.UTKAST
    assert tilbud.versjonsnummer == 1
    assert prosjekt.status == ProsjektStatus.TILDELT

    tilbud = await tilbud_service.update_tilbud(
        session, tilbud_id=tilbud.id, data={"status": "UnderUWBehandling"}
    )
    assert tilbud.versjonsnummer == 2
    assert prosjekt.status == ProsjektStatus.AVVENTER_GODKJENNING_UW

    await tilbud_service.update_tilbud(session, tilbud_id=tilbud.id, data={"status": "Produsert"})
    assert prosjekt.status == ProsjektStatus.PRODUSERT

    await tilbud_service.create_tilbud(session, prosjekt_id=prosjekt.id)
    assert prosjekt.status == ProsjektStatus.UTVIDES


@pytest.mark.asyncio
async def test_feil_i_statusutledning_gir_behandles_og_lagrer_tilbudet(
    session, garanti_foresporsel, monkeypatch, caplog
):
    _, prosjekt, _ = await _ny_sak(session, garanti_foresporsel)

    def _feiler(statuser):
        raise RuntimeError("utledning feilet")

    monkeypatch.setattr(prosjekt_service, "utled_prosjekt_status", _feiler)
    with caplog.at_level("ERROR", logger="byggbot.services.prosjekt"):
        tilbud = await tilbud_service.create_tilbud(session, prosjekt_id=prosjekt.id)

    assert prosjekt.status == prosjekt_service.STATUS_FALLBACK == ProsjektStatus.BEHANDLES
    assert "Kunne ikke utlede prosjektstatus" in caplog.text

    tilbud_id, prosjekt_id = tilbud.id, prosjekt.id
    await session.rollback()
    assert await tilbud_service.get_tilbud_by_id(session, tilbud_id=tilbud_id) is not None
    prosjekt = await prosjekt_service.require_prosjekt(session, prosjekt_id)
    assert prosjekt.status == ProsjektStatus.BEHANDLES


class _FeilendeSporring:
    def where(self, *args):
        return text("SELECT status FROM finnes_ikke")


@pytest.mark.asyncio
async def test_feilet_statussporring_ruller_bare_tilbake_savepoint(session, garanti_foresporsel, monkeypatch):
    _, prosjekt, _ = await _ny_sak(session, garanti_foresporsel)
    monkeypatch.setattr(prosjekt_service, "select", lambda *args: _FeilendeSporring())

    tilbud = await tilbud_service.create_tilbud(session, prosjekt_id=prosjekt.id)

    assert prosjekt.status == ProsjektStatus.BEHANDLES
    tilbud_id = tilbud.id
    await session.rollback()
    assert await tilbud_service.get_tilbud_by_id(session, tilbud_id=tilbud_id) is not None


@pytest.mark.asyncio
async def test_tilbud_kan_ikke_slettes_naar_prosjektet_er_produsert(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    await tilbud_service.update_tilbud(session, tilbud_id=tilbud.id, data={"status": "Produsert"})

    with pytest.raises(ForretningsregelFeil):
        await tilbud_service.delete_tilbud(session, tilbud_id=tilbud.id)


@pytest.mark.asyncio
async def test_delete_tilbud_setter_prosjekt_tilbake_til_ny(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    prosjekt_id = tilbud.prosjekt_id

    assert await tilbud_service.delete_tilbud(session, tilbud_id=tilbud.id) is True
    assert await tilbud_service.get_tilbud_by_id(session, tilbud_id=tilbud.id) is None
    prosjekt = await prosjekt_service.require_prosjekt(session, prosjekt_id)
    assert prosjekt.status == ProsjektStatus.NY


@pytest.mark.asyncio
async def test_save_beregning_oker_versjon(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)

    beregning = await tilbud_service.save_beregning(
        session,
        tilbud_id=tilbud.id,
        data={"kontraktssum": "10000000", "totalPremie": "75000", "startDato": "2026-01-01", "sluttDato": "2027-01-01"},
    )
    assert beregning.kontraktssum == Decimal("10000000")
    assert tilbud.versjonsnummer == 2

    with pytest.raises(ValideringsFeil):
        await tilbud_service.save_beregning(
            session,
            tilbud_id=tilbud.id,
            data={"startDato": "2026-05-01", "sluttDato": "2026-01-01"},
        )


@pytest.mark.asyncio
async def test_beregn_premie_fra_produktkonfigurasjon(produkter):
    resultat = await tilbud_service.beregn_premie(
        produkter, produkttype="Utføringsgaranti", parametre={"kontraktssum": "10000000"}
    )

    assert resultat["utforelsesPremie"] == "50000.00"
    assert resultat["garantiPremie"] == "25000.00"
    assert resultat["totalPremie"] == "75000.00"
    assert resultat["garantitid"] == 24
    assert resultat["manueltOverstyrt"] is False


@pytest.mark.asyncio
async def test_beregn_premie_med_etableringsgebyr(produkter):
    resultat = await tilbud_service.beregn_premie(
        produkter,
        produkttype="Utføringsgaranti",
        parametre={"kontraktssum": "1000000", "etableringsgebyr": "2500"},
    )
    assert resultat["totalPremie"] == "10000.00"


@pytest.mark.asyncio
async def test_beregn_premie_ukjent_produkt_og_ugyldig_sum(produkter):
    with pytest.raises(IkkeFunnetFeil):
        await tilbud_service.beregn_premie(produkter, produkttype="Finnes ikke", parametre={"kontraktssum": 1})
    with pytest.raises(ValideringsFeil):
        await tilbud_service.beregn_premie(produkter, produkttype="Utføringsgaranti", parametre={"kontraktssum": 0})


@pytest.mark.asyncio
async def test_seed_produkt_konfigurasjoner_er_idempotent(produkter):
    assert await tilbud_service.seed_produkt_konfigurasjoner(produkter) == 0
    konfigurasjoner = await tilbud_service.get_produkt_konfigurasjoner(produkter)
    assert len(konfigurasjoner) == 8


@pytest.mark.asyncio
async def test_create_tilbud_avviser_ukjent_produkttype(produkter, garanti_foresporsel):
    _, prosjekt, _ = await _ny_sak(produkter, garanti_foresporsel)
    with pytest.raises(ValideringsFeil):
        await tilbud_service.create_tilbud(produkter, prosjekt_id=prosjekt.id, data={"produkttype": "Tull"})


# -------------------------------
# Benefisienter
# -------------------------------
@pytest.mark.asyncio
async def test_benefisientandeler_kan_ikke_overstige_hundre(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    await benefisient_service.create_benefisient(session, tilbud_id=tilbud.id, data=JURIDISK)

    with pytest.raises(ForretningsregelFeil) as exc:
        await benefisient_service.create_benefisient(session, tilbud_id=tilbud.id, data=FYSISK)
    assert str(exc.value) == "Total andel kan ikke overskride 100%. Gjenstående: 40%"

    fysisk = await benefisient_service.create_benefisient(
        session, tilbud_id=tilbud.id, data={**FYSISK, "andel": "40"}
    )
    assert fysisk.organisasjonsnummer is None
    assert fysisk.aktiv is True


@pytest.mark.parametrize(
    "data",
    [
        {**JURIDISK, "organisasjonsnummer": "12345"},
        {**FYSISK, "personident": "0101701234"},
        {**FYSISK, "andel": "0"},
        {**FYSISK, "andel": "100.5"},
        {**FYSISK, "type": "Annet"},
        {**FYSISK, "navn": ""},
    ],
)
@pytest.mark.asyncio
async def test_ugyldig_benefisient_avvises(session, garanti_foresporsel, data):
    tilbud = await _tilbud(session, garanti_foresporsel)
    with pytest.raises(ValideringsFeil):
        await benefisient_service.create_benefisient(session, tilbud_id=tilbud.id, data=data)


@pytest.mark.asyncio
async def test_deaktivert_benefisient_frigjor_andel(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    juridisk = await benefisient_service.create_benefisient(session, tilbud_id=tilbud.id, data=JURIDISK)

    await benefisient_service.update_benefisient(session, benefisient_id=juridisk.id, data={"aktiv": False})
    assert juridisk.aktiv_til is not None

    await benefisient_service.create_benefisient(session, tilbud_id=tilbud.id, data={**FYSISK, "andel": "100"})
    aktive = await benefisient_service.get_benefisienter(session, tilbud_id=tilbud.id, kun_aktive=True)
    assert [b.navn for b in aktive] == ["Ola Nordmann"]

    with pytest.raises(ForretningsregelFeil):
        await benefisient_service.update_benefisient(session, benefisient_id=juridisk.id, data={"aktiv": True})


@pytest.mark.asyncio
async def test_reaktivering_nullstiller_aktiv_til(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    benefisient = await benefisient_service.create_benefisient(session, tilbud_id=tilbud.id, data=JURIDISK)

    await benefisient_service.update_benefisient(session, benefisient_id=benefisient.id, data={"aktiv": False})
    assert benefisient.aktiv_til is not None

    reaktivert = await benefisient_service.update_benefisient(
        session, benefisient_id=benefisient.id, data={"aktiv": True}
    )
    assert reaktivert.aktiv is True
    assert reaktivert.aktiv_til is None


@pytest.mark.asyncio
async def test_eierskifte_overforer_andel(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    gammel = await benefisient_service.create_benefisient(session, tilbud_id=tilbud.id, data=JURIDISK)

    tidligere, ny = await benefisient_service.registrer_eierskifte(
        session,
        benefisient_id=gammel.id,
        ny_benefisient={"type": "Fysisk", "navn": "Kari Kjøper", "personident": "02028012345"},
    )

    assert tidligere.aktiv is False
    assert tidligere.aktiv_til is not None
    assert ny.aktiv is True
    assert ny.andel == Decimal("60")
    assert ny.tilbud_id == tilbud.id
    assert "overtatt fra Eiendom AS" in ny.kommentar

    with pytest.raises(ForretningsregelFeil):
        await benefisient_service.registrer_eierskifte(
            session, benefisient_id=gammel.id, ny_benefisient={"type": "Fysisk", "navn": "X", "personident": "02028012345"}
        )


# -------------------------------
# Enheter
# -------------------------------
@pytest.mark.asyncio
async def test_auto_generer_enheter_for_boligblokk(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)

    enheter = await enhet_service.auto_generer_enheter(
        session, data={"tilbudId": tilbud.id, "antallEnheter": 3, "prosjekttype": "Boligblokk"}
    )

    assert [e.betegnelse for e in enheter] == ["Leilighet 1", "Leilighet 2", "Leilighet 3"]
    assert sum(e.andel_av_helhet for e in enheter) == Decimal("100")
    assert tilbud.antall_enheter == 3
    assert tilbud.prosjekttype == "Boligblokk"

    with pytest.raises(ForretningsregelFeil):
        await enhet_service.auto_generer_enheter(
            session, data={"tilbudId": tilbud.id, "antallEnheter": 2, "prosjekttype": "Boligblokk"}
        )

    assert await enhet_service.slett_alle_enheter(session, tilbud_id=tilbud.id) == {"antallSlettet": 3}
    assert await enhet_service.get_enheter(session, tilbud_id=tilbud.id) == []


@pytest.mark.asyncio
async def test_enebolig_har_fast_en_enhet(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    enheter = await enhet_service.auto_generer_enheter(
        session, data={"tilbudId": tilbud.id, "antallEnheter": 5, "prosjekttype": "Enebolig"}
    )
    assert [e.betegnelse for e in enheter] == ["Enebolig"]
    assert enheter[0].andel_av_helhet == Decimal("100")


@pytest.mark.parametrize(
    "prosjekttype, antall",
    [("Infrastruktur", 3), ("Slott", 3), ("Boligblokk", 0), ("Boligblokk", 501)],
)
@pytest.mark.asyncio
async def test_auto_generer_enheter_avviser_ugyldig_input(session, garanti_foresporsel, prosjekttype, antall):
    tilbud = await _tilbud(session, garanti_foresporsel)
    with pytest.raises(ValideringsFeil):
        await enhet_service.auto_generer_enheter(
            session, data={"tilbudId": tilbud.id, "antallEnheter": antall, "prosjekttype": prosjekttype}
        )


@pytest.mark.asyncio
async def test_benefisient_per_enhet_har_eget_omfang(session, garanti_foresporsel):
    tilbud = await _tilbud(session, garanti_foresporsel)
    enheter = await enhet_service.auto_generer_enheter(
        session, data={"tilbudId": tilbud.id, "antallEnheter": 2, "prosjekttype": "Boligblokk"}
    )

    for enhet in enheter:
        await benefisient_service.create_benefisient(
            session, tilbud_id=tilbud.id, data={**FYSISK, "andel": "100", "enhetId": enhet.id}
        )

    pa_forste = await benefisient_service.get_benefisienter(session, tilbud_id=tilbud.id, enhet_id=enheter[0].id)
    assert len(pa_forste) == 1


# -------------------------------
# Ramme
# -------------------------------
@pytest.mark.asyncio
async def test_rammeforbruk_teller_bare_produserte_prosjekter(session, garanti_foresporsel):
    selskap, produsert, _ = await _ny_sak(session, garanti_foresporsel, ramme="10000000")
    _, aapent, _ = await _ny_sak(session, garanti_foresporsel, prosjektNavn="Trinn 2")

    tilbud = await tilbud_service.create_tilbud(session, prosjekt_id=produsert.id)
    await tilbud_service.save_beregning(session, tilbud_id=tilbud.id, data={"kontraktssum": "4000000"})
    await tilbud_service.update_tilbud(session, tilbud_id=tilbud.id, data={"status": "Produsert"})

    utkast = await tilbud_service.create_tilbud(session, prosjekt_id=aapent.id)
    await tilbud_service.save_beregning(session, tilbud_id=utkast.id, data={"kontraktssum": "3000000"})

    info = await ramme_service.get_ramme_forbruk(session, selskap_id=selskap.id)
    assert info["totalRamme"] == Decimal("10000000")
    assert info["forbruktPaAndreProsjekter"] == Decimal("4000000")
    assert info["tilgjengeligRamme"] == Decimal("6000000")
    assert info["forbruksProsent"] == Decimal("40.00")
    assert info["fargekode"] == "grønn"
    assert info["antallAndreProsjekter"] == 1

    naa = await ramme_service.get_ramme_forbruk(
        session, selskap_id=selskap.id, navarende_prosjekt_id=aapent.id
    )
    assert naa["navarendeProsjektBelop"] == Decimal("3000000")
    assert naa["totalForbruk"] == Decimal("7000000")
    assert naa["fargekode"] == "gul"


@pytest.mark.asyncio
async def test_produsert_tilbud_belaster_rammen_mens_prosjektet_utvides(session, garanti_foresporsel):
    selskap, prosjekt, _ = await _ny_sak(session, garanti_foresporsel, ramme="10000000")
    tilbud = await tilbud_service.create_tilbud(session, prosjekt_id=prosjekt.id)
    await tilbud_service.save_beregning(session, tilbud_id=tilbud.id, data={"kontraktssum": "8000000"})
    await tilbud_service.update_tilbud(session, tilbud_id=tilbud.id, data={"status": "Produsert"})

    utvidelse = await tilbud_service.create_tilbud(session, prosjekt_id=prosjekt.id)
    await tilbud_service.save_beregning(session, tilbud_id=utvidelse.id, data={"kontraktssum": "1000000"})
    assert prosjekt.status == ProsjektStatus.UTVIDES

    info = await ramme_service.get_ramme_forbruk(session, selskap_id=selskap.id)
    assert info["forbruktPaAndreProsjekter"] == Decimal("8000000")
    assert info["tilgjengeligRamme"] == Decimal("2000000")

    svar = await ramme_service.valider_ramme_forbruk(session, selskap_id=selskap.id, tilbud_belop="9000000")
    assert svar["gyldig"] is False


@pytest.mark.asyncio
async def test_valider_ramme_forbruk(session, garanti_foresporsel):
    selskap, _, _ = await _ny_sak(session, garanti_foresporsel, ramme="1000000")

    ok = await ramme_service.valider_ramme_forbruk(session, selskap_id=selskap.id, tilbud_belop="800000")
    assert ok["gyldig"] is True
    assert ok["advarsel"] is False

    knapp = await ramme_service.valider_ramme_forbruk(session, selskap_id=selskap.id, tilbud_belop="950000")
    assert knapp["gyldig"] is True
    assert knapp["advarsel"] is True

    over = await ramme_service.valider_ramme_forbruk(session, selskap_id=selskap.id, tilbud_belop="1200000")
    assert over["gyldig"] is False
    assert over["overskredetBelop"] == Decimal("200000")

    with pytest.raises(ValideringsFeil):
        await ramme_service.valider_ramme_forbruk(session, selskap_id=selskap.id, tilbud_belop="mye")
